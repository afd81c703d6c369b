"""Sensor source adapters: one push-based stream per physical sensor.

Each adapter wraps an optional async *source* (a zero-argument callable
returning an async iterator of readings, e.g. an async generator function
reading a device) and forwards every reading to the callback registered in
:meth:`SensorAdapter.start`. Readings can also be pushed directly with
:meth:`SensorAdapter.feed`, which is how the service layer's ingestion
endpoint delivers readings from a device-side bridge.

Adapter errors never escape: a failing source is logged, re-opened after a
short back-off, and the pipeline keeps running.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import AsyncIterator, Callable
from typing import Generic, TypeVar

from flightrec.constants import SENSOR_RETRY_DELAY_S
from flightrec.errors import SensorError
from flightrec.models import (
    AccelerationReading,
    MagneticReading,
    PositionReading,
    PressureReading,
    SensorReading,
)

logger = logging.getLogger(__name__)

ReadingT = TypeVar("ReadingT")


class SensorAdapter(Generic[ReadingT]):
    """Base adapter: owns one listening task and one registered callback."""

    kind: str = "sensor"
    reading_type: type = object
    nominal_rate_hz: float = 1.0

    def __init__(
        self,
        source: Callable[[], AsyncIterator[ReadingT]] | None = None,
        *,
        retry_delay_s: float = SENSOR_RETRY_DELAY_S,
    ) -> None:
        self._source = source
        self._retry_delay_s = retry_delay_s
        self._callback: Callable[[ReadingT], None] | None = None
        self._task: asyncio.Task[None] | None = None
        self._running = False
        self.readings_received = 0
        self.error_count = 0

    @property
    def is_running(self) -> bool:
        return self._running

    def start(self, callback: Callable[[ReadingT], None]) -> None:
        """Subscribe ``callback`` and begin listening. No-op if already running."""
        if self._running:
            return
        self._callback = callback
        self._running = True
        if self._source is not None:
            self._task = asyncio.create_task(self._listen(), name=f"sensor-{self.kind}")
        logger.debug("Started %s adapter", self.kind)

    async def stop(self) -> None:
        """Unsubscribe and cancel the listening task. Safe to call repeatedly."""
        self._running = False
        self._callback = None
        task, self._task = self._task, None
        if task is not None and not task.done():
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task

    def feed(self, reading: ReadingT) -> bool:
        """Deliver one reading to the callback.

        Returns False when the adapter is not running (the reading is
        ignored) or the reading was rejected.
        """
        if not self._running or self._callback is None:
            return False
        if not isinstance(reading, self.reading_type):
            self._report(SensorError(self.kind, f"unexpected reading {type(reading).__name__}"))
            return False
        try:
            self._callback(reading)
        except Exception as exc:  # noqa: BLE001
            self._report(SensorError(self.kind, f"callback failed: {exc}"))
            return False
        self.readings_received += 1
        return True

    def _report(self, error: SensorError) -> None:
        self.error_count += 1
        logger.warning("Sensor error (adapter keeps listening): %s", error)

    async def _listen(self) -> None:
        assert self._source is not None
        while self._running:
            try:
                async for reading in self._source():
                    if not self._running:
                        return
                    self.feed(reading)
            except asyncio.CancelledError:
                raise
            except Exception as exc:  # noqa: BLE001
                self._report(SensorError(self.kind, f"source failed: {exc}"))
                await asyncio.sleep(self._retry_delay_s)
                continue
            logger.info("%s source ended", self.kind)
            return


class PositionAdapter(SensorAdapter[PositionReading]):
    kind = "position"
    reading_type = PositionReading
    nominal_rate_hz = 1.0


class AccelerationAdapter(SensorAdapter[AccelerationReading]):
    kind = "acceleration"
    reading_type = AccelerationReading
    nominal_rate_hz = 50.0


class MagnetometerAdapter(SensorAdapter[MagneticReading]):
    kind = "magnetometer"
    reading_type = MagneticReading
    nominal_rate_hz = 10.0


class PressureAdapter(SensorAdapter[PressureReading]):
    kind = "pressure"
    reading_type = PressureReading
    nominal_rate_hz = 1.0


class SensorSuite:
    """The four adapters a recording session listens to, started and stopped together."""

    def __init__(
        self,
        position: PositionAdapter | None = None,
        acceleration: AccelerationAdapter | None = None,
        magnetometer: MagnetometerAdapter | None = None,
        pressure: PressureAdapter | None = None,
    ) -> None:
        self.position = position or PositionAdapter()
        self.acceleration = acceleration or AccelerationAdapter()
        self.magnetometer = magnetometer or MagnetometerAdapter()
        self.pressure = pressure or PressureAdapter()

    @property
    def adapters(self) -> list[SensorAdapter]:  # type: ignore[type-arg]
        return [self.position, self.acceleration, self.magnetometer, self.pressure]

    def start_all(
        self,
        on_position: Callable[[PositionReading], None],
        on_acceleration: Callable[[AccelerationReading], None],
        on_magnetic: Callable[[MagneticReading], None],
        on_pressure: Callable[[PressureReading], None],
    ) -> None:
        self.position.start(on_position)
        self.acceleration.start(on_acceleration)
        self.magnetometer.start(on_magnetic)
        self.pressure.start(on_pressure)

    async def stop_all(self) -> None:
        await asyncio.gather(*(adapter.stop() for adapter in self.adapters))

    def route(self, reading: SensorReading) -> bool:
        """Feed a reading to the adapter matching its type."""
        for adapter in self.adapters:
            if isinstance(reading, adapter.reading_type):
                return adapter.feed(reading)
        logger.warning("No adapter accepts %s", type(reading).__name__)
        return False
