"""
Domain Services - Balance recalculation over the append-only ledger.
"""

import logging
from abc import ABC, abstractmethod
from collections.abc import Callable, Iterable
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal

from .entities import (
    BalanceSnapshot,
    Debt,
    Expense,
    InventoryItem,
    InventoryMovement,
    Invoice,
    InvoiceLine,
    LedgerEntry,
    Party,
    Product,
)
from .errors import InvalidArgumentError, NotFoundError
from .value_objects import ZERO, EntityScope, EntityType

logger = logging.getLogger(__name__)


class ILedgerRepository(ABC):

    @abstractmethod
    def list_entries(self, entity_type: EntityType, entity_id: int) -> list[LedgerEntry]:
        """All entries of one entity ordered by (occurred_at, id)."""

    @abstractmethod
    def list_entries_in_range(
        self,
        start: datetime,
        end: datetime,
        scope: EntityScope | None = None
    ) -> list[LedgerEntry]:
        ...

    @abstractmethod
    def list_entries_before(
        self,
        instant: datetime,
        scope: EntityScope | None = None
    ) -> list[LedgerEntry]:
        ...


class ISnapshotRepository(ABC):

    @abstractmethod
    def upsert_snapshot(self, snapshot: BalanceSnapshot) -> BalanceSnapshot:
        ...

    @abstractmethod
    def get_snapshot(self, entity_type: EntityType, entity_id: int) -> BalanceSnapshot | None:
        ...

    @abstractmethod
    def list_snapshots(self, entity_type: EntityType) -> list[BalanceSnapshot]:
        ...


class IEntityRepository(ABC):

    @abstractmethod
    def exists(self, entity_type: EntityType, entity_id: int) -> bool:
        ...

    @abstractmethod
    def list_ids(self, entity_type: EntityType) -> list[int]:
        ...

    @abstractmethod
    def list_parties(self, entity_type: EntityType) -> list[Party]:
        ...


class ISalesRepository(ABC):

    @abstractmethod
    def list_invoices(self, start: datetime, end: datetime) -> list[Invoice]:
        ...

    @abstractmethod
    def list_invoice_lines(self, start: datetime, end: datetime) -> list[InvoiceLine]:
        ...

    @abstractmethod
    def list_products(self) -> list[Product]:
        ...


class IExpenseRepository(ABC):

    @abstractmethod
    def list_expenses(self, start: datetime, end: datetime) -> list[Expense]:
        ...


class IInventoryRepository(ABC):

    @abstractmethod
    def list_items(self, active_only: bool = True) -> list[InventoryItem]:
        ...

    @abstractmethod
    def list_movements(self, start: datetime, end: datetime) -> list[InventoryMovement]:
        ...


class IDebtRepository(ABC):

    @abstractmethod
    def list_debts(self, open_only: bool = True) -> list[Debt]:
        ...


def sum_entries(entries: Iterable[LedgerEntry]) -> Decimal:
    """Signed sum of ledger amounts."""
    return sum((entry.amount for entry in entries), ZERO)


def _coerce_entity_type(entity_type: EntityType | str) -> EntityType:
    try:
        return EntityType(entity_type)
    except ValueError:
        raise InvalidArgumentError(f"Unknown entity type: {entity_type!r}") from None


class BalanceAggregator:
    """
    Service - Rebuilds one entity's BalanceSnapshot from its full ledger history.

    Idempotent: the same ledger always yields the same balance. A ledger read
    failure propagates as StorageError and leaves the snapshot untouched.
    """

    def __init__(
        self,
        entity_repo: IEntityRepository,
        ledger_repo: ILedgerRepository,
        snapshot_repo: ISnapshotRepository,
        clock: Callable[[], datetime] = datetime.now
    ):
        self.entity_repo = entity_repo
        self.ledger_repo = ledger_repo
        self.snapshot_repo = snapshot_repo
        self.clock = clock

    def recalculate(self, entity_type: EntityType | str, entity_id: int) -> BalanceSnapshot:
        entity_type = _coerce_entity_type(entity_type)
        if not self.entity_repo.exists(entity_type, entity_id):
            raise NotFoundError(entity_type.value, entity_id)

        entries = sorted(
            self.ledger_repo.list_entries(entity_type, entity_id),
            key=lambda e: (e.occurred_at, e.id)
        )
        snapshot = BalanceSnapshot(
            entity_type=entity_type,
            entity_id=entity_id,
            balance=sum_entries(entries),
            last_recalculated_at=self.clock(),
        )
        self.snapshot_repo.upsert_snapshot(snapshot)

        logger.debug(
            "Recalculated %s %s from %d entries: %s",
            entity_type.value, entity_id, len(entries), snapshot.balance
        )
        return snapshot

    def get_balance(self, entity_type: EntityType | str, entity_id: int) -> BalanceSnapshot | None:
        """Cached balance; may be stale until the next recalculation."""
        entity_type = _coerce_entity_type(entity_type)
        if not self.entity_repo.exists(entity_type, entity_id):
            raise NotFoundError(entity_type.value, entity_id)
        return self.snapshot_repo.get_snapshot(entity_type, entity_id)


@dataclass(frozen=True)
class RecalculationFailure:
    entity_id: int
    error: str
    error_type: str


@dataclass(frozen=True)
class BatchResult:
    """Partial-success summary of a batch recalculation."""
    entity_type: EntityType
    total: int
    succeeded: int
    failed: list[RecalculationFailure] = field(default_factory=list)

    @property
    def is_complete(self) -> bool:
        return not self.failed


ProgressCallback = Callable[[int, int], None]


class BatchRecalculator:
    """
    Service - Recalculates every entity of a type.

    Entities are processed in a bounded thread pool. One entity's failure is
    recorded in the result and never aborts its siblings.
    """

    def __init__(
        self,
        aggregator: BalanceAggregator,
        entity_repo: IEntityRepository,
        max_workers: int = 4
    ):
        if max_workers < 1:
            raise InvalidArgumentError("max_workers must be at least 1")
        self.aggregator = aggregator
        self.entity_repo = entity_repo
        self.max_workers = max_workers

    def recalculate_all(
        self,
        entity_type: EntityType | str,
        progress: ProgressCallback | None = None
    ) -> BatchResult:
        """
        Recalculate all entities of entity_type.

        Args:
            entity_type: customer, supplier or cash_account
            progress: called as progress(current, total) from the collecting
                thread after each entity finishes
        """
        entity_type = _coerce_entity_type(entity_type)
        entity_ids = self.entity_repo.list_ids(entity_type)
        total = len(entity_ids)
        succeeded = 0
        failures: list[RecalculationFailure] = []

        logger.info("Recalculating %d %s balances", total, entity_type.value)
        if progress:
            progress(0, total)

        workers = max(1, min(self.max_workers, total))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="recalc") as pool:
            futures = {
                pool.submit(self.aggregator.recalculate, entity_type, entity_id): entity_id
                for entity_id in entity_ids
            }
            for current, future in enumerate(as_completed(futures), start=1):
                entity_id = futures[future]
                try:
                    future.result()
                except Exception as exc:
                    logger.warning(
                        "Recalculation failed for %s %s: %s",
                        entity_type.value, entity_id, exc
                    )
                    failures.append(RecalculationFailure(
                        entity_id=entity_id,
                        error=str(exc),
                        error_type=type(exc).__name__,
                    ))
                else:
                    succeeded += 1
                if progress:
                    progress(current, total)

        failures.sort(key=lambda f: f.entity_id)
        logger.info(
            "Recalculated %s balances: %d succeeded, %d failed",
            entity_type.value, succeeded, len(failures)
        )
        return BatchResult(
            entity_type=entity_type,
            total=total,
            succeeded=succeeded,
            failed=failures,
        )
