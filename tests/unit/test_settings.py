"""Unit tests for engine settings."""

import qme.config
from qme.config import Settings, clear_settings_cache, get_settings


def test_database_url_override_wins():
    settings = Settings(database_url_override="sqlite+aiosqlite:///qme.db")

    assert settings.database_url == "sqlite+aiosqlite:///qme.db"


def test_database_url_built_from_postgres_settings():
    settings = Settings(
        database_url_override=None,
        postgres_host="db",
        postgres_port=5433,
        postgres_user="qme",
        postgres_password="secret",
        postgres_db="measures",
    )

    assert settings.database_url == "postgresql+asyncpg://qme:secret@db:5433/measures"


def test_get_settings_is_cached():
    clear_settings_cache()

    assert get_settings() is get_settings()

    clear_settings_cache()


def test_env_prefix(monkeypatch):
    monkeypatch.setenv("QME_LOG_LEVEL", "DEBUG")
    monkeypatch.setenv("QME_DATABASE_URL", "sqlite+aiosqlite:///:memory:")

    settings = Settings()

    assert settings.log_level == "DEBUG"
    assert settings.database_url == "sqlite+aiosqlite:///:memory:"


def test_config_package_exports():
    assert sorted(qme.config.__all__) == [
        "Settings",
        "clear_settings_cache",
        "configure_logging",
        "get_settings",
    ]
