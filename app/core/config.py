"""
Application settings read from environment variables.
"""

import os
from collections.abc import Mapping
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from functools import lru_cache


@dataclass(frozen=True)
class Settings:
    """Immutable runtime configuration."""

    database_type: str = "sqlite"
    database_path: str = "./data/printshop.db"
    db_host: str = "localhost"
    db_port: int = 5432
    db_name: str = "printshop"
    db_user: str = "postgres"
    db_password: str = "postgres"
    recalc_max_workers: int = 4
    low_stock_threshold: Decimal = Decimal("10")
    report_default_limit: int = 50
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "Settings":
        """
        Build settings from environment variables.

        Raises:
            ValueError: a numeric variable does not parse
        """
        env = os.environ if environ is None else environ
        defaults = cls()

        def integer(name: str, default: int) -> int:
            raw = env.get(name)
            if raw is None or raw == "":
                return default
            try:
                return int(raw)
            except ValueError:
                raise ValueError(f"{name} must be an integer, got {raw!r}") from None

        raw_threshold = env.get("LOW_STOCK_THRESHOLD")
        try:
            threshold = Decimal(raw_threshold) if raw_threshold else defaults.low_stock_threshold
        except InvalidOperation:
            raise ValueError(f"LOW_STOCK_THRESHOLD must be a number, got {raw_threshold!r}") from None

        return cls(
            database_type=env.get("DATABASE_TYPE", defaults.database_type),
            database_path=env.get("DATABASE_PATH", defaults.database_path),
            db_host=env.get("DB_HOST", defaults.db_host),
            db_port=integer("DB_PORT", defaults.db_port),
            db_name=env.get("DB_NAME", defaults.db_name),
            db_user=env.get("DB_USER", defaults.db_user),
            db_password=env.get("DB_PASSWORD", defaults.db_password),
            recalc_max_workers=integer("RECALC_MAX_WORKERS", defaults.recalc_max_workers),
            low_stock_threshold=threshold,
            report_default_limit=integer("REPORT_DEFAULT_LIMIT", defaults.report_default_limit),
            log_level=env.get("LOG_LEVEL", defaults.log_level).upper(),
        )


@lru_cache
def get_settings() -> Settings:
    return Settings.from_env()


def get_engine_url(settings: Settings) -> str:
    """SQLAlchemy database URL for the configured backend."""
    if settings.database_type == "sqlite":
        return f"sqlite:///{settings.database_path}"
    elif settings.database_type == "postgresql":
        return (
            f"postgresql://{settings.db_user}:{settings.db_password}"
            f"@{settings.db_host}:{settings.db_port}/{settings.db_name}"
        )
    else:
        raise ValueError(f"Unsupported database type: {settings.database_type}")
