"""Tests for flightrec.session_stats: the end-of-session aggregator."""

from __future__ import annotations

from datetime import timedelta

import numpy as np
import pytest

from flightrec.models import Session
from flightrec.session_stats import (
    SessionStatistics,
    aggregate_session,
    apply_statistics,
    compute_duration_s,
    samples_to_frame,
)
from tests.conftest import BASE_TIME, SampleFactory


def _session(duration_s: float | None = 120.0) -> Session:
    end = BASE_TIME + timedelta(seconds=duration_s) if duration_s is not None else None
    return Session(start_time=BASE_TIME, session_id=1, end_time=end)


class TestDuration:
    def test_open_session_has_no_duration(self) -> None:
        assert compute_duration_s(_session(None)) is None

    def test_whole_seconds(self) -> None:
        assert compute_duration_s(_session(90.9)) == 90


class TestAggregateEmpty:
    def test_no_samples(self) -> None:
        stats = aggregate_session(_session(), [])
        assert stats == SessionStatistics(
            sample_count=0,
            duration_s=120,
            max_altitude_m=None,
            total_distance_m=0.0,
            max_positive_g=None,
            max_negative_g=None,
            max_speed_mps=None,
            avg_speed_mps=None,
        )

    def test_single_sample_has_zero_distance(self, sample_factory: SampleFactory) -> None:
        stats = aggregate_session(_session(), [sample_factory(0, altitude_m=300.0)])
        assert stats.total_distance_m == 0.0
        assert stats.max_altitude_m == 300.0
        assert stats.sample_count == 1


class TestAggregate:
    def test_distance_one_degree_latitude_at_equator(self, sample_factory: SampleFactory) -> None:
        samples = [
            sample_factory(0, latitude=0.0, longitude=0.0),
            sample_factory(1, latitude=1.0, longitude=0.0),
        ]
        stats = aggregate_session(_session(), samples)
        assert stats.total_distance_m == pytest.approx(111_195, abs=50)

    def test_distance_sums_consecutive_pairs(self, sample_factory: SampleFactory) -> None:
        samples = [
            sample_factory(0, latitude=0.0, longitude=0.0),
            sample_factory(1, latitude=0.5, longitude=0.0),
            sample_factory(2, latitude=0.0, longitude=0.0),
        ]
        stats = aggregate_session(_session(), samples)
        # Out and back: twice the half-degree leg, not the zero net displacement
        assert stats.total_distance_m == pytest.approx(111_195, abs=50)

    def test_stationary_samples_have_zero_distance(self, sample_factory: SampleFactory) -> None:
        samples = [sample_factory(i, latitude=47.0) for i in range(5)]
        assert aggregate_session(_session(), samples).total_distance_m == 0.0

    def test_altitude_ignores_absent_values(self, sample_factory: SampleFactory) -> None:
        samples = [
            sample_factory(0, altitude_m=None),
            sample_factory(1, altitude_m=820.5),
            sample_factory(2, altitude_m=None),
            sample_factory(3, altitude_m=790.0),
        ]
        assert aggregate_session(_session(), samples).max_altitude_m == 820.5

    def test_zero_altitude_is_a_value(self, sample_factory: SampleFactory) -> None:
        samples = [sample_factory(0, altitude_m=0.0), sample_factory(1, altitude_m=-12.0)]
        assert aggregate_session(_session(), samples).max_altitude_m == 0.0

    def test_g_force_extrema(self, sample_factory: SampleFactory) -> None:
        samples = [
            sample_factory(0, g_force=1.0),
            sample_factory(1, g_force=None),
            sample_factory(2, g_force=2.4),
            sample_factory(3, g_force=0.3),
        ]
        stats = aggregate_session(_session(), samples)
        assert stats.max_positive_g == 2.4
        assert stats.max_negative_g == 0.3

    def test_g_force_absent_when_no_sample_has_it(self, sample_factory: SampleFactory) -> None:
        stats = aggregate_session(_session(), [sample_factory(i) for i in range(3)])
        assert stats.max_positive_g is None
        assert stats.max_negative_g is None

    def test_speed_extrema(self, sample_factory: SampleFactory) -> None:
        samples = [
            sample_factory(0, speed_mps=10.0),
            sample_factory(1, speed_mps=30.0),
            sample_factory(2, speed_mps=None),
            sample_factory(3, speed_mps=20.0),
        ]
        stats = aggregate_session(_session(), samples)
        assert stats.max_speed_mps == 30.0
        assert stats.avg_speed_mps == pytest.approx(20.0)

    def test_samples_sorted_by_timestamp(self, sample_factory: SampleFactory) -> None:
        ordered = [sample_factory(i, latitude=47.0 + i * 0.01) for i in range(4)]
        shuffled = [ordered[2], ordered[0], ordered[3], ordered[1]]
        assert aggregate_session(_session(), shuffled) == aggregate_session(_session(), ordered)

    def test_deterministic(self, sample_factory: SampleFactory) -> None:
        rng = np.random.default_rng(3)
        samples = [
            sample_factory(
                i,
                latitude=float(47.0 + rng.normal(0, 0.01)),
                longitude=float(8.5 + rng.normal(0, 0.01)),
                altitude_m=float(rng.uniform(400, 900)),
                g_force=float(rng.uniform(0.2, 3.0)),
                speed_mps=float(rng.uniform(0, 40)),
            )
            for i in range(200)
        ]
        first = aggregate_session(_session(), samples)
        second = aggregate_session(_session(), samples)
        assert first == second
        assert first.total_distance_m.hex() == second.total_distance_m.hex()


class TestApplyStatistics:
    def test_copies_fields_onto_session(self, sample_factory: SampleFactory) -> None:
        session = _session(60.0)
        samples = [
            sample_factory(0, latitude=0.0, longitude=0.0, altitude_m=100.0, g_force=1.1),
            sample_factory(1, latitude=1.0, longitude=0.0, altitude_m=200.0, g_force=0.9),
        ]
        result = apply_statistics(session, aggregate_session(session, samples))
        assert result.duration_s == 60
        assert result.max_altitude_m == 200.0
        assert result.max_positive_g == 1.1
        assert result.max_negative_g == 0.9
        assert result.total_distance_m == pytest.approx(111_195, abs=50)
        assert result.name == session.name
        assert session.duration_s is None


class TestSamplesToFrame:
    def test_empty_frame_has_columns(self) -> None:
        df = samples_to_frame([])
        assert df.empty
        assert {"latitude", "longitude", "altitude_m", "g_force"} <= set(df.columns)

    def test_absent_values_become_nan(self, sample_factory: SampleFactory) -> None:
        df = samples_to_frame([sample_factory(0), sample_factory(1, altitude_m=5.0)])
        assert np.isnan(df["altitude_m"].iloc[0])
        assert df["altitude_m"].iloc[1] == 5.0
