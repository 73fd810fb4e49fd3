"""
API Routers - Balance snapshots and recalculation triggers.
"""

import logging

from fastapi import APIRouter, Depends, Path

from app.api.deps import get_balance_aggregator, get_batch_recalculator
from app.application.dto.balance_dto import BalanceResponseDTO, BatchResultDTO
from app.core.security import Permission, require_permission
from app.domain.services import BalanceAggregator, BatchRecalculator

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/balances", tags=["Balances"])


@router.post(
    "/{entity_type}/recalculate",
    response_model=BatchResultDTO,
    dependencies=[Depends(require_permission(Permission.BALANCE_RECALCULATE))]
)
def recalculate_all(
    entity_type: str = Path(..., description="customer, supplier or cash_account"),
    recalculator: BatchRecalculator = Depends(get_batch_recalculator)
):
    """
    Rebuild every balance of one entity type.

    Responds 200 even when some entities failed; see `failed`.
    """
    result = recalculator.recalculate_all(entity_type)
    return BatchResultDTO.model_validate(result)


@router.post(
    "/{entity_type}/{entity_id}/recalculate",
    response_model=BalanceResponseDTO,
    dependencies=[Depends(require_permission(Permission.BALANCE_RECALCULATE))]
)
def recalculate_one(
    entity_type: str = Path(..., description="customer, supplier or cash_account"),
    entity_id: int = Path(..., ge=1),
    aggregator: BalanceAggregator = Depends(get_balance_aggregator)
):
    """Rebuild one entity's balance from its full ledger history."""
    snapshot = aggregator.recalculate(entity_type, entity_id)
    return BalanceResponseDTO.model_validate(snapshot)


@router.get(
    "/{entity_type}/{entity_id}",
    response_model=BalanceResponseDTO,
    dependencies=[Depends(require_permission(Permission.BALANCE_VIEW))]
)
def get_balance(
    entity_type: str = Path(..., description="customer, supplier or cash_account"),
    entity_id: int = Path(..., ge=1),
    aggregator: BalanceAggregator = Depends(get_balance_aggregator)
):
    """Cached balance; may be stale until the next recalculation."""
    snapshot = aggregator.get_balance(entity_type, entity_id)
    if snapshot is None:
        return BalanceResponseDTO(entity_type=entity_type, entity_id=entity_id)
    return BalanceResponseDTO.model_validate(snapshot)
