"""
Unit tests - Settings from environment variables.
"""

from decimal import Decimal

import pytest

from app.core.config import Settings, get_engine_url


class TestSettings:

    def test_defaults(self):
        settings = Settings.from_env({})
        assert settings.database_type == "sqlite"
        assert settings.recalc_max_workers == 4
        assert settings.low_stock_threshold == Decimal("10")
        assert settings.report_default_limit == 50
        assert settings.log_level == "INFO"

    def test_overrides(self):
        settings = Settings.from_env({
            "RECALC_MAX_WORKERS": "8",
            "LOW_STOCK_THRESHOLD": "2.5",
            "REPORT_DEFAULT_LIMIT": "20",
            "LOG_LEVEL": "debug",
        })
        assert settings.recalc_max_workers == 8
        assert settings.low_stock_threshold == Decimal("2.5")
        assert settings.report_default_limit == 20
        assert settings.log_level == "DEBUG"

    def test_empty_value_falls_back_to_default(self):
        assert Settings.from_env({"DB_PORT": ""}).db_port == 5432

    @pytest.mark.parametrize("name, value", [
        ("RECALC_MAX_WORKERS", "many"),
        ("DB_PORT", "54.32"),
        ("LOW_STOCK_THRESHOLD", "ten"),
    ])
    def test_bad_numbers_rejected(self, name, value):
        with pytest.raises(ValueError, match=name):
            Settings.from_env({name: value})


class TestEngineUrl:

    def test_sqlite(self):
        assert get_engine_url(Settings(database_path="/tmp/shop.db")) == "sqlite:////tmp/shop.db"

    def test_postgresql(self):
        settings = Settings(database_type="postgresql", db_user="u", db_password="p", db_host="db", db_name="shop")
        assert get_engine_url(settings) == "postgresql://u:p@db:5432/shop"

    def test_unsupported_backend(self):
        with pytest.raises(ValueError):
            get_engine_url(Settings(database_type="oracle"))
