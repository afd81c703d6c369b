"""Shared test fixtures for flightrec tests."""

from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, datetime, timedelta

import pytest

from flightrec.models import PositionReading, Sample
from flightrec.recorder import FlightRecorder, RecorderConfig
from flightrec.storage import InMemoryFlightStore

# Type alias for the sample_factory fixture
SampleFactory = Callable[..., Sample]

BASE_TIME = datetime(2026, 6, 1, 10, 0, 0, tzinfo=UTC)


class FakeClock:
    """Deterministic clock; advances only when told to."""

    def __init__(self, start: datetime = BASE_TIME) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> datetime:
        self.now += timedelta(seconds=seconds)
        return self.now


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store() -> InMemoryFlightStore:
    return InMemoryFlightStore()


@pytest.fixture
def manual_config() -> RecorderConfig:
    """Recorder config with both periodic tasks disabled; tests drive tick/flush."""
    return RecorderConfig(tick_interval_s=None, flush_interval_s=None)


@pytest.fixture
def recorder(
    store: InMemoryFlightStore, manual_config: RecorderConfig, clock: FakeClock
) -> FlightRecorder:
    return FlightRecorder(store, config=manual_config, clock=clock)


@pytest.fixture
def sample_factory() -> SampleFactory:
    """Factory building samples one second apart along a meridian."""

    def _factory(
        index: int = 0,
        *,
        session_id: int = 1,
        latitude: float | None = None,
        longitude: float = 8.5,
        **fields: float | None,
    ) -> Sample:
        lat = latitude if latitude is not None else 47.0 + index * 0.0001
        return Sample(
            session_id=session_id,
            timestamp=BASE_TIME + timedelta(seconds=index),
            latitude=lat,
            longitude=longitude,
            **fields,  # type: ignore[arg-type]
        )

    return _factory


def make_position(
    accuracy_m: float | None = 10.0,
    *,
    latitude: float = 47.0,
    longitude: float = 8.5,
    altitude_m: float | None = 500.0,
    speed_mps: float | None = 20.0,
    course_deg: float | None = 90.0,
) -> PositionReading:
    """Position reading with sensible defaults for recorder tests."""
    return PositionReading(
        latitude=latitude,
        longitude=longitude,
        altitude_m=altitude_m,
        speed_mps=speed_mps,
        accuracy_m=accuracy_m,
        course_deg=course_deg,
    )


@pytest.fixture
def position_factory() -> Callable[..., PositionReading]:
    return make_position
