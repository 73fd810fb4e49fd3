"""
API DTOs - Balance snapshots and recalculation results.
"""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from app.domain.value_objects import EntityType


class BalanceResponseDTO(BaseModel):
    """DTO - Cached balance of one entity; balance is None until first recalculated."""
    entity_type: EntityType
    entity_id: int
    balance: Decimal | None = Field(None, description="Signed balance")
    last_recalculated_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)


class RecalculationFailureDTO(BaseModel):
    entity_id: int
    error: str
    error_type: str

    model_config = ConfigDict(from_attributes=True)


class BatchResultDTO(BaseModel):
    """DTO - Outcome of a batch recalculation."""
    entity_type: EntityType
    total: int
    succeeded: int
    failed: list[RecalculationFailureDTO]
    is_complete: bool

    model_config = ConfigDict(from_attributes=True)
