"""Engine configuration loaded from environment variables.

Configuration sources (in priority order):
1. OS environment variables
2. QME_ENV_FILE (path to a .env file)
3. config/.env.dev, then config/.env
4. Defaults below
"""

from functools import lru_cache

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

from ._utils import resolve_env_file_path


class Settings(BaseSettings):
    """Quality measure engine configuration."""

    log_level: str = "INFO"

    # Postgres settings are shared with other services and therefore not
    # prefixed with QME_ (see SettingsConfigDict).
    postgres_host: str = Field(default="localhost", validation_alias="POSTGRES_HOST")
    postgres_port: int = Field(default=5432, validation_alias="POSTGRES_PORT")
    postgres_user: str = Field(default="postgres", validation_alias="POSTGRES_USER")
    postgres_password: SecretStr = Field(
        default=SecretStr(""), validation_alias="POSTGRES_PASSWORD"
    )
    postgres_db: str = Field(default="qme", validation_alias="POSTGRES_DB")

    # Full SQLAlchemy URL, e.g. sqlite+aiosqlite:///qme.db
    database_url_override: str | None = Field(
        default=None, validation_alias="QME_DATABASE_URL"
    )
    database_echo: bool = False

    @property
    def database_url(self) -> str:
        """Database URL, falling back to the asyncpg Postgres URL."""
        if self.database_url_override:
            return self.database_url_override
        return (
            f"postgresql+asyncpg://{self.postgres_user}:"
            f"{self.postgres_password.get_secret_value()}"
            f"@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"
        )

    model_config = SettingsConfigDict(
        env_file=resolve_env_file_path(),
        env_file_encoding="utf-8",
        env_prefix="QME_",
        extra="ignore",
        populate_by_name=True,
    )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


def clear_settings_cache() -> None:
    """Clear the settings cache (useful for tests)."""
    get_settings.cache_clear()
