"""Configuration for pylitedoc.

Settings are read from ``PYLITEDOC_*`` environment variables and an optional
``.env`` file. A :class:`~pylitedoc.database.Database` takes an explicit
``Settings`` instance or falls back to :func:`get_settings`.
"""

from functools import lru_cache
from typing import Literal, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Storage, locking and logging settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="PYLITEDOC_",
        case_sensitive=False,
        extra="ignore",
    )

    # Storage
    data_dir: str = "./pylitedoc_data"
    json_indent: Optional[int] = 2
    fsync: bool = True
    id_strategy: Literal["objectid", "uuid", "timestamp"] = "objectid"

    # Locking
    lock_timeout: Optional[float] = Field(
        default=10.0,
        description="Seconds to wait for a collection file lock; None waits forever",
    )

    # Map-kind counters
    counter_floor: float = 0
    allow_negative: bool = False

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "WARNING"
    log_format: Literal["json", "console"] = "console"

    @field_validator("lock_timeout")
    @classmethod
    def normalise_lock_timeout(cls, v: Optional[float]) -> Optional[float]:
        if v is not None and v < 0:
            return None
        return v

    @field_validator("log_level", mode="before")
    @classmethod
    def upper_log_level(cls, v):
        return v.upper() if isinstance(v, str) else v


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
