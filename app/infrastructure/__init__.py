"""Infrastructure layer."""

from app.infrastructure.database import SessionLocal, build_engine, build_session_factory, init_db
from app.infrastructure.database.repositories import (
    SQLDebtRepository,
    SQLEntityRepository,
    SQLExpenseRepository,
    SQLInventoryRepository,
    SQLLedgerRepository,
    SQLSalesRepository,
    SQLSnapshotRepository,
)
from app.infrastructure.export import CSVExportAdapter, get_export_adapter
from app.infrastructure.memory import InMemoryStore
