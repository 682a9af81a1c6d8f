"""Runtime settings for sheetdb.

Reads ``SHEETDB_*`` environment variables (and a ``.env`` file) into a
validated :class:`SheetDBSettings`. Collections and registries take an
explicit settings object; when none is passed they use :func:`get_settings`.

Examples:
    >>> from sheetdb.core.settings import SheetDBSettings
    >>> settings = SheetDBSettings(lock_timeout_seconds=2.5)
    >>> settings.reserved_prefix
    '_'

Tags:
    settings, configuration, pydantic, environment, sheetdb
"""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class SheetDBSettings(BaseSettings):
    """Settings shared by every collection bound from a document.

    Fields
    ──────
    lock_timeout_seconds : Bounded wait for the batch rewrite lock
    lock_expiry_seconds  : Age after which a cross-process lock row is reaped
    reserved_prefix      : Sheets whose name starts with this are not collections
    cell_cap             : Cell capacity ceiling used by inspect()
    stream_chunk_size    : Default rows per chunk for Collection.stream()
    log_level            : Structlog log level
    json_logs            : Force JSON (True) or console (False) logs; None → auto
    """

    model_config = SettingsConfigDict(
        env_prefix="SHEETDB_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Concurrency ──────────────────────────────────────────────
    lock_timeout_seconds: float = Field(default=10.0, ge=0)
    lock_expiry_seconds: int = Field(default=300, gt=0)

    # ── Document layout ──────────────────────────────────────────
    reserved_prefix: str = Field(default="_", min_length=1)
    cell_cap: int = Field(default=10_000_000, gt=0)
    stream_chunk_size: int = Field(default=5000, gt=0)

    # ── Observability ────────────────────────────────────────────
    log_level: str = "INFO"
    json_logs: bool | None = None


@lru_cache(maxsize=1)
def get_settings() -> SheetDBSettings:
    """Load and cache settings from the environment."""
    return SheetDBSettings()


__all__ = ["SheetDBSettings", "get_settings"]
