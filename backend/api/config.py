"""Application settings via pydantic-settings."""

from __future__ import annotations

import json

from pydantic_settings import BaseSettings, SettingsConfigDict

from flightrec.constants import (
    ADMISSION_MAX_ACCURACY_M,
    BUFFER_SIZE,
    FAST_STOP_KPH,
    FLUSH_INTERVAL_S,
    LOCK_MAX_ACCURACY_M,
    LOCK_MIN_READINGS,
    SHORT_SESSION_S,
    TICK_INTERVAL_S,
)
from flightrec.recorder import RecorderConfig


def _parse_cors_origins(raw: str) -> list[str]:
    """Parse a CORS origins string, tolerating non-JSON formats.

    Handles:
    - Valid JSON arrays: ``["https://a.com","https://b.com"]``
    - Bracketed non-JSON: ``[https://a.com,https://b.com]``
    - Comma-separated: ``https://a.com,https://b.com``
    """
    try:
        parsed = json.loads(raw)
        if isinstance(parsed, list):
            return [str(x) for x in parsed]
    except (json.JSONDecodeError, ValueError):
        pass

    stripped = raw.strip("[] ")
    return [s.strip().strip('"').strip("'") for s in stripped.split(",") if s.strip()]


class Settings(BaseSettings):
    """Flight recorder service configuration.

    Values are loaded from environment variables, falling back to a ``.env``
    file in the project root.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Database
    database_url: str = "sqlite+aiosqlite:///./flightrec.db"

    # CORS, stored raw to avoid pydantic-settings' strict JSON parsing of lists
    cors_origins_raw: str = '["http://localhost:3000"]'

    # Debug mode (echoes SQL)
    debug: bool = False

    # Whether the host grants location access; false makes start return 403
    location_enabled: bool = True

    # Recorder tunables
    tick_interval_s: float = TICK_INTERVAL_S
    flush_interval_s: float = FLUSH_INTERVAL_S
    buffer_size: int = BUFFER_SIZE
    lock_min_readings: int = LOCK_MIN_READINGS
    lock_accuracy_m: float = LOCK_MAX_ACCURACY_M
    admission_accuracy_m: float = ADMISSION_MAX_ACCURACY_M
    short_session_s: float = SHORT_SESSION_S
    fast_stop_kph: float = FAST_STOP_KPH

    @property
    def cors_origins(self) -> list[str]:
        """Parse CORS origins from the raw string."""
        return _parse_cors_origins(self.cors_origins_raw)

    def recorder_config(self) -> RecorderConfig:
        """Core recorder configuration built from these settings."""
        return RecorderConfig(
            tick_interval_s=self.tick_interval_s,
            flush_interval_s=self.flush_interval_s,
            buffer_size=self.buffer_size,
            lock_min_readings=self.lock_min_readings,
            lock_accuracy_m=self.lock_accuracy_m,
            admission_accuracy_m=self.admission_accuracy_m,
            short_session_s=self.short_session_s,
            fast_stop_kph=self.fast_stop_kph,
        )
