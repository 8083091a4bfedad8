"""Mini README: Centralised configuration for the donation ledger tooling.

Structure:
    * LedgerSettings - Pydantic settings model describing runtime configuration.
    * get_settings - cached accessor for environment-aware settings.

Usage:
    Only the outer layer (the admin CLI or an embedding web application)
    reads settings and decides which storage backend to build. The ledger core
    itself never imports this module; it receives a constructed backend.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import Field, validator
from pydantic_settings import BaseSettings

SUPPORTED_BACKENDS = ("memory", "sqlite")


class LedgerSettings(BaseSettings):
    """Runtime configuration for the donation ledger."""

    environment: str = Field(
        "development",
        description="Environment label controlling debug toggles and logging levels.",
    )
    storage_backend: str = Field(
        "sqlite",
        description="Name of the registered storage backend to build ('memory' or 'sqlite').",
    )
    database_path: Path = Field(
        Path("data/donation_ledger.db"),
        description="SQLite database file used by the 'sqlite' backend.",
    )
    backup_directory: Path = Field(
        Path("backups"),
        description="Directory where exported backups are written by default.",
    )
    log_level: str = Field(
        "INFO",
        description="Root logging level applied by the admin CLI.",
    )

    class Config:
        env_prefix = "DONATION_LEDGER_"
        env_file = ".env"
        case_sensitive = False

    @validator("storage_backend", pre=True)
    def _normalise_backend(cls, value: str) -> str:
        """Accept any casing but only known backend identifiers."""

        normalised = str(value).strip().lower()
        if normalised not in SUPPORTED_BACKENDS:
            raise ValueError(
                f"Unsupported storage backend '{value}'. Choose one of: {', '.join(SUPPORTED_BACKENDS)}"
            )
        return normalised

    @validator("database_path", "backup_directory", pre=True)
    def _expand_path(cls, value: Optional[str | Path]) -> Path:
        """Expand user directories so relative and ``~`` paths behave alike."""

        return Path(value).expanduser()


@lru_cache()
def get_settings() -> LedgerSettings:
    """Return cached settings, ensuring consistent configuration across modules."""

    return LedgerSettings()
