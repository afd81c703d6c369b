"""Sample synthesizer: fuses the latest reading of every sensor into one sample per tick.

Adapters overwrite their slot in :class:`LiveReadingCache` whenever a reading
arrives; the synthesizer reads (never consumes) a snapshot of the cache on
each tick. Adapter callbacks and ticks all run on the same event loop and
never await while touching the cache, so a tick can never observe a
half-applied update.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from flightrec.constants import ADMISSION_MAX_ACCURACY_M, COURSE_MIN_SPEED_MPS
from flightrec.geo import g_force, magnetic_heading, normalize_heading
from flightrec.gps_quality import GpsQualityGate, is_admissible
from flightrec.models import (
    AccelerationReading,
    LiveData,
    MagneticReading,
    PositionReading,
    PressureReading,
    Sample,
)


@dataclass(frozen=True)
class CacheSnapshot:
    """Immutable view of the live reading cache at one instant."""

    position: PositionReading | None
    acceleration: AccelerationReading | None
    magnetic_heading_deg: float | None
    pressure: PressureReading | None


class LiveReadingCache:
    """Most recent reading from each adapter; every slot starts empty."""

    def __init__(self) -> None:
        self.clear()

    def clear(self) -> None:
        self.position: PositionReading | None = None
        self.acceleration: AccelerationReading | None = None
        self.magnetic_heading_deg: float | None = None
        self.pressure: PressureReading | None = None

    def update_position(self, reading: PositionReading) -> None:
        self.position = reading

    def update_acceleration(self, reading: AccelerationReading) -> None:
        self.acceleration = reading

    def update_magnetic(self, reading: MagneticReading) -> None:
        self.magnetic_heading_deg = magnetic_heading(reading.x, reading.y)

    def update_pressure(self, reading: PressureReading) -> None:
        self.pressure = reading

    def snapshot(self) -> CacheSnapshot:
        return CacheSnapshot(
            position=self.position,
            acceleration=self.acceleration,
            magnetic_heading_deg=self.magnetic_heading_deg,
            pressure=self.pressure,
        )


@dataclass(frozen=True)
class TickResult:
    """Outcome of one synthesizer tick.

    ``candidate`` is None while no position has been received ("no-fix").
    ``admitted`` tells whether the candidate may be persisted.
    """

    live: LiveData
    candidate: Sample | None
    admitted: bool


def select_heading(
    position: PositionReading | None,
    magnetic_heading_deg: float | None,
) -> float | None:
    """Prefer the receiver's course while moving, else the magnetometer heading."""
    if (
        position is not None
        and position.course_deg is not None
        and position.speed_mps is not None
        and position.speed_mps > COURSE_MIN_SPEED_MPS
    ):
        return normalize_heading(position.course_deg)
    return magnetic_heading_deg


class SampleSynthesizer:
    """Builds candidate samples and live-data snapshots from cache snapshots."""

    def __init__(
        self,
        gate: GpsQualityGate,
        admission_accuracy_m: float = ADMISSION_MAX_ACCURACY_M,
    ) -> None:
        self._gate = gate
        self._admission_accuracy_m = admission_accuracy_m

    def synthesize(
        self,
        snapshot: CacheSnapshot,
        session_id: int,
        now: datetime,
        sample_count: int = 0,
    ) -> TickResult:
        accel = snapshot.acceleration
        g = g_force(accel.x, accel.y, accel.z) if accel is not None else None
        pressure = snapshot.pressure.pressure_hpa if snapshot.pressure is not None else None
        position = snapshot.position
        heading = select_heading(position, snapshot.magnetic_heading_deg)

        if position is None:
            live = LiveData(
                timestamp=now,
                has_good_fix=False,
                fix_state=self._gate.state,
                g_force=g,
                heading_deg=heading,
                pressure_hpa=pressure,
                sample_count=sample_count,
            )
            return TickResult(live=live, candidate=None, admitted=False)

        candidate = Sample(
            session_id=session_id,
            timestamp=now,
            latitude=position.latitude,
            longitude=position.longitude,
            altitude_m=position.altitude_m,
            speed_mps=position.speed_mps,
            accuracy_m=position.accuracy_m,
            accel_x=accel.x if accel is not None else None,
            accel_y=accel.y if accel is not None else None,
            accel_z=accel.z if accel is not None else None,
            g_force=g,
            heading_deg=heading,
            pressure_hpa=pressure,
        )
        admitted = is_admissible(position.accuracy_m, self._admission_accuracy_m)
        live = LiveData(
            timestamp=now,
            has_good_fix=self._gate.has_good_fix,
            fix_state=self._gate.state,
            altitude_m=position.altitude_m,
            speed_mps=position.speed_mps,
            g_force=g,
            heading_deg=heading,
            pressure_hpa=pressure,
            gps_accuracy_m=position.accuracy_m,
            sample_count=sample_count + (1 if admitted else 0),
        )
        return TickResult(live=live, candidate=candidate, admitted=admitted)
