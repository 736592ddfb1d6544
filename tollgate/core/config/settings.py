"""Application settings loaded from the environment."""

from typing import Optional

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from tollgate.core.config.enums import Environment, LogFormat


class Settings(BaseSettings):
    """Tollgate settings.

    Values are read from environment variables (and an optional ``.env`` file).
    ``DATABASE_URL`` wins over the individual ``POSTGRES_*`` parts when set,
    which is how tests point the engine at an in-memory SQLite database.
    """

    model_config = SettingsConfigDict(env_file=".env", extra="ignore", case_sensitive=True)

    ENVIRONMENT: Environment = Environment.LOCAL
    LOCAL_DEVELOPMENT: bool = False
    TESTING: bool = False

    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: Optional[LogFormat] = None

    POSTGRES_HOST: str = "localhost"
    POSTGRES_PORT: int = 5432
    POSTGRES_USER: str = "tollgate"
    POSTGRES_PASSWORD: str = Field(default="", repr=False)
    POSTGRES_DB: str = "tollgate"
    DATABASE_URL: Optional[str] = None

    db_pool_size: int = Field(default=20, ge=1)
    db_pool_max_overflow: int = Field(default=40, ge=0)
    db_pool_timeout: int = Field(default=30, ge=0)
    DB_ECHO: bool = False

    # Grant hygiene. Checker semantics do not depend on either flag.
    ENFORCE_UNIQUE_GRANTS: bool = False
    CREATE_OWNER_GRANTS: bool = True

    @model_validator(mode="after")
    def _default_log_format(self) -> "Settings":
        if self.LOG_FORMAT is None:
            local = self.LOCAL_DEVELOPMENT or self.ENVIRONMENT in (
                Environment.LOCAL,
                Environment.TEST,
            )
            self.LOG_FORMAT = LogFormat.TEXT if local else LogFormat.JSON
        return self

    @property
    def SQLALCHEMY_ASYNC_DATABASE_URI(self) -> str:
        """Async SQLAlchemy URL for the grants database."""
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return (
            f"postgresql+asyncpg://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}"
            f"@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"
        )

    @property
    def is_sqlite(self) -> bool:
        """Whether the configured database is SQLite (no pool tuning applies)."""
        return self.SQLALCHEMY_ASYNC_DATABASE_URI.startswith("sqlite")
