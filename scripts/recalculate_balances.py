#!/usr/bin/env python3
"""
Recalculate cached balances from the ledger.

Usage:
    python scripts/recalculate_balances.py --entity-type supplier
    python scripts/recalculate_balances.py --entity-type customer --workers 8

Exits with status 1 when any entity failed.
"""

import argparse
import logging
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from app.core.config import get_settings
from app.core.logging import setup_logging
from app.domain.services import BalanceAggregator, BatchRecalculator
from app.domain.value_objects import EntityType
from app.infrastructure.database import SessionLocal, init_db
from app.infrastructure.database.repositories import (
    SQLEntityRepository,
    SQLLedgerRepository,
    SQLSnapshotRepository,
)

logger = logging.getLogger(__name__)


def print_progress(current: int, total: int) -> None:
    print(f"  [{current}/{total}]", flush=True)


def run(entity_type: EntityType, workers: int, session_factory=SessionLocal) -> int:
    entity_repo = SQLEntityRepository(session_factory)
    aggregator = BalanceAggregator(
        entity_repo=entity_repo,
        ledger_repo=SQLLedgerRepository(session_factory),
        snapshot_repo=SQLSnapshotRepository(session_factory),
    )
    recalculator = BatchRecalculator(aggregator, entity_repo, max_workers=workers)

    print("=" * 60)
    print(f"Recalculating {entity_type.value} balances")
    print("=" * 60)

    result = recalculator.recalculate_all(entity_type, progress=print_progress)

    print(f"\nSucceeded: {result.succeeded}")
    print(f"Failed: {len(result.failed)}")
    for failure in result.failed:
        print(f"  - {entity_type.value} {failure.entity_id}: {failure.error_type}: {failure.error}")

    return 0 if result.is_complete else 1


def main(argv: list[str] | None = None) -> int:
    settings = get_settings()
    parser = argparse.ArgumentParser(description="Recalculate cached balances from the ledger")
    parser.add_argument(
        "--entity-type",
        choices=[t.value for t in EntityType],
        required=True,
        help="Entity type to recalculate"
    )
    parser.add_argument(
        "--workers",
        type=int,
        default=settings.recalc_max_workers,
        help=f"Concurrent recalculations (default: {settings.recalc_max_workers})"
    )
    args = parser.parse_args(argv)

    setup_logging(settings.log_level)
    init_db()
    return run(EntityType(args.entity_type), args.workers)


if __name__ == "__main__":
    sys.exit(main())
