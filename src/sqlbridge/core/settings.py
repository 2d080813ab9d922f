"""Environment-driven settings for sqlbridge.

Every field can be set through an ``SQLBRIDGE_``-prefixed environment
variable or a ``.env`` file in the working directory.

Fields
──────
library_path    : Explicit path to the SQLite shared library (else discovered)
rows_per_flush  : Rows a BulkLoader queues before handing a batch to the engine
open_uri        : Interpret connection names as ``file:`` URIs
log_level       : Structlog log level used by ``sqlbridge.init()``
json_logs       : Force JSON (True) or console (False) rendering; None = auto

Examples:
    >>> import os
    >>> os.environ["SQLBRIDGE_ROWS_PER_FLUSH"] = "64"
    >>> reset_settings()
    >>> get_settings().rows_per_flush
    64
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class SqlBridgeSettings(BaseSettings):
    """Settings shared by every sqlbridge component."""

    model_config = SettingsConfigDict(
        env_prefix="SQLBRIDGE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Native library ───────────────────────────────────────────
    library_path: Path | None = Field(
        default=None,
        description="SQLite shared library to load instead of discovering one",
    )
    open_uri: bool = False

    # ── Transfer ─────────────────────────────────────────────────
    rows_per_flush: int = Field(default=16, ge=1)

    # ── Observability ────────────────────────────────────────────
    log_level: str = "INFO"
    json_logs: bool | None = None


@lru_cache(maxsize=1)
def get_settings() -> SqlBridgeSettings:
    """Return the process-wide settings, read once from the environment."""
    return SqlBridgeSettings()


def reset_settings() -> None:
    """Forget cached settings so the next ``get_settings()`` re-reads the environment."""
    get_settings.cache_clear()


__all__ = [
    "SqlBridgeSettings",
    "get_settings",
    "reset_settings",
]
