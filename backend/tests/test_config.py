"""
Trame Backend — Configuration Tests
====================================

What:  Tests for Settings validation and engine option selection.
"""

import pytest
from pydantic import ValidationError as PydanticValidationError

from trame.config import Settings
from trame.database import engine_options


class TestSettings:

    def test_defaults(self):
        settings = Settings(_env_file=None, database_url="sqlite+aiosqlite:///x.db")
        assert settings.backend_port == 3000
        assert settings.session_ttl_days == 30
        assert settings.cors_origins_list == ["*"]
        assert settings.is_sqlite

    def test_cors_origins_split(self):
        settings = Settings(_env_file=None, cors_origins=" http://a.test , http://b.test ,")
        assert settings.cors_origins_list == ["http://a.test", "http://b.test"]

    def test_log_level_normalized(self):
        assert Settings(_env_file=None, log_level="debug").log_level == "DEBUG"

    def test_log_level_rejected(self):
        with pytest.raises(PydanticValidationError):
            Settings(_env_file=None, log_level="LOUD")

    def test_sync_driver_rejected(self):
        settings = Settings(_env_file=None, database_url="postgresql://u:p@db/trame")
        with pytest.raises(ValueError, match="async driver"):
            settings.validate_required_for_production()

    @pytest.mark.parametrize(
        "url",
        ["postgresql+asyncpg://u:p@db/trame", "sqlite+aiosqlite:///./trame.db"],
    )
    def test_async_drivers_accepted(self, url):
        Settings(_env_file=None, database_url=url).validate_required_for_production()


class TestEngineOptions:

    def test_sqlite_has_no_pool_sizing(self):
        options = engine_options("sqlite+aiosqlite:///x.db")
        assert "pool_size" not in options
        assert "max_overflow" not in options

    def test_postgres_pool_sizing(self):
        options = engine_options("postgresql+asyncpg://u:p@db/trame")
        assert options["pool_size"] >= 5
        assert options["pool_pre_ping"] is True
