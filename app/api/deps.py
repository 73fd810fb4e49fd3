"""
API Dependencies - Wire repositories and services per request.
"""

from fastapi import Depends
from sqlalchemy.orm import sessionmaker

from app.core.config import Settings, get_settings
from app.domain.reports import ReportQueryEngine
from app.domain.services import BalanceAggregator, BatchRecalculator
from app.infrastructure.database import SessionLocal
from app.infrastructure.database.repositories import (
    SQLDebtRepository,
    SQLEntityRepository,
    SQLExpenseRepository,
    SQLInventoryRepository,
    SQLLedgerRepository,
    SQLSalesRepository,
    SQLSnapshotRepository,
)


def get_session_factory() -> sessionmaker:
    """Dependency - Session factory; tests override it with their own database."""
    return SessionLocal


def get_balance_aggregator(
    session_factory: sessionmaker = Depends(get_session_factory)
) -> BalanceAggregator:
    return BalanceAggregator(
        entity_repo=SQLEntityRepository(session_factory),
        ledger_repo=SQLLedgerRepository(session_factory),
        snapshot_repo=SQLSnapshotRepository(session_factory),
    )


def get_batch_recalculator(
    session_factory: sessionmaker = Depends(get_session_factory),
    aggregator: BalanceAggregator = Depends(get_balance_aggregator),
    settings: Settings = Depends(get_settings)
) -> BatchRecalculator:
    return BatchRecalculator(
        aggregator=aggregator,
        entity_repo=SQLEntityRepository(session_factory),
        max_workers=settings.recalc_max_workers,
    )


def get_report_engine(
    session_factory: sessionmaker = Depends(get_session_factory),
    settings: Settings = Depends(get_settings)
) -> ReportQueryEngine:
    return ReportQueryEngine(
        ledger_repo=SQLLedgerRepository(session_factory),
        snapshot_repo=SQLSnapshotRepository(session_factory),
        entity_repo=SQLEntityRepository(session_factory),
        sales_repo=SQLSalesRepository(session_factory),
        expense_repo=SQLExpenseRepository(session_factory),
        inventory_repo=SQLInventoryRepository(session_factory),
        debt_repo=SQLDebtRepository(session_factory),
        low_stock_threshold=settings.low_stock_threshold,
    )
