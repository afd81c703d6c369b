"""Shared constants for the flightrec recording pipeline.

Centralises conversion factors and thresholds used across multiple modules.
"""

from __future__ import annotations

# Standard gravity used to normalise accelerometer magnitude into G
STANDARD_GRAVITY_MPS2: float = 9.81

# Mean Earth radius for haversine distances
EARTH_RADIUS_M: float = 6_371_000.0

# Speed conversion: meters per second → kilometers per hour
MPS_TO_KPH: float = 3.6
KPH_TO_MPS: float = 1.0 / MPS_TO_KPH

# Synthesizer cadence and write buffer triggers
TICK_INTERVAL_S: float = 1.0
BUFFER_SIZE: int = 10
FLUSH_INTERVAL_S: float = 5.0

# GPS quality gate
LOCK_MIN_READINGS: int = 5
LOCK_MAX_ACCURACY_M: float = 20.0
ADMISSION_MAX_ACCURACY_M: float = 50.0

# Course over ground is only trusted above this speed
COURSE_MIN_SPEED_MPS: float = 1.0

# Stop-policy hints exposed to callers
SHORT_SESSION_S: float = 60.0
FAST_STOP_KPH: float = 50.0

# Adapter back-off after a source error
SENSOR_RETRY_DELAY_S: float = 0.5
