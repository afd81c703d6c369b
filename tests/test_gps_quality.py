"""Tests for flightrec.gps_quality: lock state machine and admission rule."""

from __future__ import annotations

import numpy as np
import pytest

from flightrec.gps_quality import GpsQualityGate, is_admissible
from flightrec.models import FixState


class TestIsAdmissible:
    @pytest.mark.parametrize(
        ("accuracy", "expected"),
        [(0.5, True), (10.0, True), (49.99, True), (50.0, False), (60.0, False), (None, True)],
    )
    def test_threshold(self, accuracy: float | None, expected: bool) -> None:
        assert is_admissible(accuracy) is expected

    def test_custom_threshold(self) -> None:
        assert is_admissible(15.0, max_accuracy_m=20.0)
        assert not is_admissible(20.0, max_accuracy_m=20.0)


class TestGpsQualityGate:
    def test_starts_acquiring(self) -> None:
        gate = GpsQualityGate()
        assert gate.state is FixState.ACQUIRING
        assert not gate.has_good_fix
        assert gate.reading_count == 0

    def test_locks_on_fifth_good_reading(self) -> None:
        gate = GpsQualityGate()
        for _ in range(4):
            assert gate.observe(5.0) is FixState.ACQUIRING
        assert gate.observe(5.0) is FixState.LOCKED
        assert gate.locked_at_reading == 5

    def test_needs_tight_accuracy_on_latest_reading(self) -> None:
        gate = GpsQualityGate()
        for _ in range(6):
            gate.observe(25.0)
        assert gate.state is FixState.ACQUIRING
        gate.observe(19.9)
        assert gate.state is FixState.LOCKED
        assert gate.locked_at_reading == 7

    def test_accuracy_exactly_at_threshold_does_not_lock(self) -> None:
        gate = GpsQualityGate()
        for _ in range(5):
            gate.observe(20.0)
        assert not gate.has_good_fix

    def test_missing_accuracy_never_locks(self) -> None:
        gate = GpsQualityGate()
        for _ in range(10):
            gate.observe(None)
        assert gate.state is FixState.ACQUIRING
        assert gate.last_accuracy_m is None

    def test_lock_is_sticky(self) -> None:
        gate = GpsQualityGate()
        for _ in range(5):
            gate.observe(3.0)
        for _ in range(20):
            assert gate.observe(300.0) is FixState.LOCKED
        assert gate.locked_at_reading == 5
        assert gate.last_accuracy_m == 300.0

    def test_reset_returns_to_acquiring(self) -> None:
        gate = GpsQualityGate()
        for _ in range(5):
            gate.observe(3.0)
        gate.reset()
        assert gate.state is FixState.ACQUIRING
        assert gate.reading_count == 0
        assert gate.locked_at_reading is None

    def test_locks_exactly_once_for_random_sequences(self) -> None:
        rng = np.random.default_rng(42)
        for _ in range(50):
            gate = GpsQualityGate()
            transitions = 0
            previous = gate.state
            for acc in rng.uniform(1.0, 80.0, size=40):
                state = gate.observe(float(acc))
                if previous is FixState.ACQUIRING and state is FixState.LOCKED:
                    transitions += 1
                assert not (previous is FixState.LOCKED and state is FixState.ACQUIRING)
                previous = state
            assert transitions <= 1
            if gate.locked_at_reading is not None:
                assert gate.locked_at_reading >= 5

    def test_custom_thresholds(self) -> None:
        gate = GpsQualityGate(min_readings=2, lock_accuracy_m=5.0)
        gate.observe(4.0)
        assert gate.observe(4.0) is FixState.LOCKED
