"""
Pytest configuration and fixtures.
"""

from datetime import date, datetime

import pytest
from fastapi.testclient import TestClient

from app.api.deps import get_session_factory
from app.domain.periods import end_of_day, start_of_day
from app.domain.reports import ReportQueryEngine
from app.domain.services import BalanceAggregator, BatchRecalculator
from app.domain.value_objects import ReportFilter, ReportPeriod
from app.infrastructure.database import build_engine, build_session_factory, init_db
from app.infrastructure.memory import InMemoryStore
from app.main import app

FIXED_NOW = datetime(2024, 3, 15, 10, 0)


@pytest.fixture
def now() -> datetime:
    return FIXED_NOW


@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def aggregator(store: InMemoryStore, now: datetime) -> BalanceAggregator:
    return BalanceAggregator(store, store, store, clock=lambda: now)


@pytest.fixture
def recalculator(aggregator: BalanceAggregator, store: InMemoryStore) -> BatchRecalculator:
    return BatchRecalculator(aggregator, store, max_workers=4)


@pytest.fixture
def reports(store: InMemoryStore, now: datetime) -> ReportQueryEngine:
    return ReportQueryEngine(
        ledger_repo=store,
        snapshot_repo=store,
        entity_repo=store,
        sales_repo=store,
        expense_repo=store,
        inventory_repo=store,
        debt_repo=store,
        clock=lambda: now,
    )


@pytest.fixture
def march() -> ReportFilter:
    return ReportFilter(
        start_date=start_of_day(date(2024, 3, 1)),
        end_date=end_of_day(date(2024, 3, 31)),
        period=ReportPeriod.DAILY,
    )


@pytest.fixture
def sql_engine(tmp_path):
    engine = build_engine(f"sqlite:///{tmp_path / 'printshop.db'}")
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(sql_engine):
    return build_session_factory(sql_engine)


@pytest.fixture
def client(session_factory):
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    yield TestClient(app, headers={"X-User-Role": "owner"})
    app.dependency_overrides.clear()
