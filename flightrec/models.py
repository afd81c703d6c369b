"""Data model: sessions, samples, raw sensor readings and live snapshots."""

from __future__ import annotations

import math
from dataclasses import asdict, dataclass, replace
from datetime import datetime
from enum import Enum
from typing import Any


class FixState(str, Enum):
    """GPS quality gate state for the active session."""

    ACQUIRING = "acquiring"
    LOCKED = "locked"


def default_session_name(start_time: datetime) -> str:
    """Display name used when the user has not named a session, in local time."""
    return f"Flight of {start_time.astimezone():%d/%m/%Y %H:%M}"


@dataclass
class Session:
    """One continuous recording from start to stop.

    ``session_id`` is assigned by storage on creation. Derived fields stay
    ``None`` until the statistics aggregator has run.
    """

    start_time: datetime
    session_id: int | None = None
    end_time: datetime | None = None
    duration_s: int | None = None
    max_altitude_m: float | None = None
    total_distance_m: float | None = None
    max_positive_g: float | None = None
    max_negative_g: float | None = None
    max_speed_mps: float | None = None
    avg_speed_mps: float | None = None
    notes: str | None = None
    name: str = ""

    def __post_init__(self) -> None:
        if not self.name:
            self.name = default_session_name(self.start_time)

    def with_updates(self, **changes: Any) -> Session:
        """Return a copy with the given fields replaced."""
        return replace(self, **changes)


def _check_coordinates(latitude: float, longitude: float) -> None:
    if not (math.isfinite(latitude) and -90.0 <= latitude <= 90.0):
        msg = f"latitude {latitude} outside [-90, 90]"
        raise ValueError(msg)
    if not (math.isfinite(longitude) and -180.0 <= longitude <= 180.0):
        msg = f"longitude {longitude} outside [-180, 180]"
        raise ValueError(msg)


@dataclass(frozen=True)
class Sample:
    """One synthesized, timestamped, geolocated reading of a session."""

    session_id: int
    timestamp: datetime
    latitude: float
    longitude: float
    altitude_m: float | None = None
    speed_mps: float | None = None
    accuracy_m: float | None = None
    accel_x: float | None = None
    accel_y: float | None = None
    accel_z: float | None = None
    g_force: float | None = None
    heading_deg: float | None = None
    pressure_hpa: float | None = None

    def __post_init__(self) -> None:
        _check_coordinates(self.latitude, self.longitude)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


# ---------------------------------------------------------------------------
# Raw adapter readings
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PositionReading:
    """A positioning fix as reported by the satellite receiver."""

    latitude: float
    longitude: float
    altitude_m: float | None = None
    speed_mps: float | None = None
    accuracy_m: float | None = None
    course_deg: float | None = None
    timestamp: datetime | None = None

    def __post_init__(self) -> None:
        _check_coordinates(self.latitude, self.longitude)


@dataclass(frozen=True)
class AccelerationReading:
    """Three-axis accelerometer reading in m/s²."""

    x: float
    y: float
    z: float


@dataclass(frozen=True)
class MagneticReading:
    """Three-axis magnetometer reading in µT."""

    x: float
    y: float
    z: float


@dataclass(frozen=True)
class PressureReading:
    """Barometric pressure in hPa."""

    pressure_hpa: float


SensorReading = PositionReading | AccelerationReading | MagneticReading | PressureReading


# ---------------------------------------------------------------------------
# Live-data channel
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class LiveData:
    """Best-effort snapshot pushed to display layers once per tick."""

    timestamp: datetime
    has_good_fix: bool
    fix_state: FixState = FixState.ACQUIRING
    altitude_m: float | None = None
    speed_mps: float | None = None
    g_force: float | None = None
    heading_deg: float | None = None
    pressure_hpa: float | None = None
    gps_accuracy_m: float | None = None
    sample_count: int = 0

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["fix_state"] = self.fix_state.value
        return data
