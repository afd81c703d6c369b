"""GPS quality gate: fix-lock state machine and persistence admission rule.

The lock is advisory: it drives the "good fix" indicator on the live-data
channel. Whether a sample reaches storage is decided by
:func:`is_admissible` alone, independent of the lock state.
"""

from __future__ import annotations

import logging

from flightrec.constants import (
    ADMISSION_MAX_ACCURACY_M,
    LOCK_MAX_ACCURACY_M,
    LOCK_MIN_READINGS,
)
from flightrec.models import FixState

logger = logging.getLogger(__name__)


def is_admissible(
    accuracy_m: float | None,
    max_accuracy_m: float = ADMISSION_MAX_ACCURACY_M,
) -> bool:
    """Return True if a candidate with this reported accuracy may be persisted.

    Candidates reporting ``accuracy_m >= max_accuracy_m`` are dropped. A
    missing accuracy is not evidence of a bad fix, so it is admitted.
    """
    if accuracy_m is None:
        return True
    return accuracy_m < max_accuracy_m


class GpsQualityGate:
    """Tracks whether the positioning fix can be trusted for this session.

    Transitions ``ACQUIRING -> LOCKED`` once at least ``min_readings``
    position readings have been observed and the most recent one reports an
    accuracy below ``lock_accuracy_m``. The lock is sticky: later accuracy
    degradation does not revert it. Call :meth:`reset` at the start of every
    session.
    """

    def __init__(
        self,
        min_readings: int = LOCK_MIN_READINGS,
        lock_accuracy_m: float = LOCK_MAX_ACCURACY_M,
    ) -> None:
        self.min_readings = min_readings
        self.lock_accuracy_m = lock_accuracy_m
        self._readings = 0
        self._state = FixState.ACQUIRING
        self._last_accuracy_m: float | None = None
        self._locked_at_reading: int | None = None

    @property
    def state(self) -> FixState:
        return self._state

    @property
    def has_good_fix(self) -> bool:
        return self._state is FixState.LOCKED

    @property
    def reading_count(self) -> int:
        return self._readings

    @property
    def last_accuracy_m(self) -> float | None:
        return self._last_accuracy_m

    @property
    def locked_at_reading(self) -> int | None:
        """1-based index of the position reading that triggered the lock."""
        return self._locked_at_reading

    def reset(self) -> None:
        self._readings = 0
        self._state = FixState.ACQUIRING
        self._last_accuracy_m = None
        self._locked_at_reading = None

    def observe(self, accuracy_m: float | None) -> FixState:
        """Record one position reading and return the (possibly new) state."""
        self._readings += 1
        self._last_accuracy_m = accuracy_m

        if self._state is FixState.LOCKED:
            return self._state

        if (
            self._readings >= self.min_readings
            and accuracy_m is not None
            and accuracy_m < self.lock_accuracy_m
        ):
            self._state = FixState.LOCKED
            self._locked_at_reading = self._readings
            logger.info(
                "GPS fix locked after %d readings (accuracy %.1f m)",
                self._readings,
                accuracy_m,
            )
        return self._state
