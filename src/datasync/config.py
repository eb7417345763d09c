"""Runtime settings for dataset synchronization.

Settings are a frozen pydantic model so they can be passed around freely and
validated once. ``SyncSettings.from_env`` reads ``DATASYNC_*`` variables.
"""

import os
from collections.abc import Mapping

from pydantic import BaseModel, ConfigDict, Field, field_validator

ENV_PREFIX = "DATASYNC_"

DEFAULT_MAX_CHUNK_SIZE = 30_000
DEFAULT_SESSION_TIMEOUT_SECONDS = 60.0
DEFAULT_SWEEP_INTERVAL_SECONDS = 30.0
DEFAULT_PEER_SETTLE_DELAY_SECONDS = 5.0

_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


class SyncSettings(BaseModel):
    """Tunables for chunking, session reclamation and peer sync timing."""

    max_chunk_size: int = Field(default=DEFAULT_MAX_CHUNK_SIZE, gt=0)
    session_timeout_seconds: float = Field(default=DEFAULT_SESSION_TIMEOUT_SECONDS, gt=0)
    sweep_interval_seconds: float = Field(default=DEFAULT_SWEEP_INTERVAL_SECONDS, gt=0)
    peer_settle_delay_seconds: float = Field(default=DEFAULT_PEER_SETTLE_DELAY_SECONDS, ge=0)
    log_level: str = "INFO"

    model_config = ConfigDict(frozen=True, extra="forbid")

    @field_validator("log_level", mode="before")
    @classmethod
    def _normalize_log_level(cls, value: str) -> str:
        level = str(value).strip().upper()
        if level not in _LOG_LEVELS:
            raise ValueError(f"log_level must be one of {sorted(_LOG_LEVELS)}")
        return level

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "SyncSettings":
        """Build settings from ``DATASYNC_<FIELD>`` environment variables.

        Unset variables fall back to the field defaults.

        Args:
            environ: Mapping to read instead of ``os.environ``.

        Returns:
            Validated settings.
        """
        source = os.environ if environ is None else environ
        values = {}
        for name in cls.model_fields:
            raw = source.get(f"{ENV_PREFIX}{name.upper()}")
            if raw is not None and raw.strip():
                values[name] = raw.strip()
        return cls.model_validate(values)
