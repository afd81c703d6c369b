"""Session lifecycle manager: owns one recording session from start to stop.

:class:`FlightRecorder` is a long-lived object created once at application
startup and handed to whichever layer needs it. While ``RECORDING`` it runs
two periodic tasks on the event loop:

- the synthesizer tick (1 Hz): snapshot the live reading cache, build a
  candidate sample, admit or reject it, publish a live-data snapshot;
- the flush timer (every 5 s): hand everything buffered to storage.

A size-triggered flush is spawned as soon as a tick fills the buffer. Flush
failures during recording are logged and the samples retried on the next
trigger; only the final flush and the statistics write at stop are surfaced
to the caller.
"""

from __future__ import annotations

import asyncio
import contextlib
import inspect
import logging
from collections.abc import AsyncIterator, Awaitable, Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from flightrec.constants import (
    ADMISSION_MAX_ACCURACY_M,
    BUFFER_SIZE,
    FAST_STOP_KPH,
    FLUSH_INTERVAL_S,
    LOCK_MAX_ACCURACY_M,
    LOCK_MIN_READINGS,
    MPS_TO_KPH,
    SHORT_SESSION_S,
    TICK_INTERVAL_S,
)
from flightrec.errors import PermissionDenied, PersistenceError
from flightrec.gps_quality import GpsQualityGate
from flightrec.models import (
    AccelerationReading,
    LiveData,
    MagneticReading,
    PositionReading,
    PressureReading,
    SensorReading,
    Session,
)
from flightrec.sensors import SensorSuite
from flightrec.session_stats import SessionStatistics, aggregate_session, apply_statistics
from flightrec.storage import FlightStore
from flightrec.synthesizer import LiveReadingCache, SampleSynthesizer, TickResult
from flightrec.write_buffer import WriteBuffer

logger = logging.getLogger(__name__)

LocationPermission = Callable[[], bool | Awaitable[bool]]

_LIVE_QUEUE_SIZE = 32


class RecordingState(str, Enum):
    IDLE = "idle"
    RECORDING = "recording"


@dataclass(frozen=True)
class RecorderConfig:
    """Recorder tunables.

    An interval of ``None`` disables that periodic task; the owner then
    drives :meth:`FlightRecorder.tick` / :meth:`FlightRecorder.flush` itself.
    """

    tick_interval_s: float | None = TICK_INTERVAL_S
    flush_interval_s: float | None = FLUSH_INTERVAL_S
    buffer_size: int = BUFFER_SIZE
    lock_min_readings: int = LOCK_MIN_READINGS
    lock_accuracy_m: float = LOCK_MAX_ACCURACY_M
    admission_accuracy_m: float = ADMISSION_MAX_ACCURACY_M
    short_session_s: float = SHORT_SESSION_S
    fast_stop_kph: float = FAST_STOP_KPH


@dataclass(frozen=True)
class StartResult:
    session: Session
    already_recording: bool = False


@dataclass(frozen=True)
class StopAdvice:
    """Data a caller needs to decide on stop confirmation or discard."""

    elapsed_s: float
    speed_mps: float | None
    is_short: bool
    is_fast: bool


def _utcnow() -> datetime:
    return datetime.now(UTC)


def _always_permitted() -> bool:
    return True


class FlightRecorder:
    """Start/stop state machine tying adapters, synthesizer, gate and buffer together."""

    def __init__(
        self,
        store: FlightStore,
        sensors: SensorSuite | None = None,
        location_permission: LocationPermission = _always_permitted,
        config: RecorderConfig | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._store = store
        self._sensors = sensors or SensorSuite()
        self._location_permission = location_permission
        self._config = config or RecorderConfig()
        self._clock = clock

        self._gate = GpsQualityGate(
            min_readings=self._config.lock_min_readings,
            lock_accuracy_m=self._config.lock_accuracy_m,
        )
        self._cache = LiveReadingCache()
        self._synthesizer = SampleSynthesizer(
            self._gate, admission_accuracy_m=self._config.admission_accuracy_m
        )

        self._state = RecordingState.IDLE
        self._transition_lock = asyncio.Lock()
        self._session: Session | None = None
        self._buffer: WriteBuffer | None = None
        self._timers: list[asyncio.Task[None]] = []
        self._pending_flushes: set[asyncio.Task[Any]] = set()

        self._accepted = 0
        self._rejected = 0
        self._latest_live: LiveData | None = None
        self._subscribers: list[asyncio.Queue[LiveData]] = []
        self.last_statistics: SessionStatistics | None = None

    # -- Accessors -----------------------------------------------------------

    @property
    def state(self) -> RecordingState:
        return self._state

    @property
    def is_recording(self) -> bool:
        return self._state is RecordingState.RECORDING

    @property
    def current_session(self) -> Session | None:
        """Active session metadata while recording, else None."""
        return self._session if self.is_recording else None

    @property
    def config(self) -> RecorderConfig:
        return self._config

    @property
    def gate(self) -> GpsQualityGate:
        return self._gate

    @property
    def sensors(self) -> SensorSuite:
        return self._sensors

    @property
    def buffer(self) -> WriteBuffer | None:
        return self._buffer

    @property
    def accepted_count(self) -> int:
        return self._accepted

    @property
    def rejected_count(self) -> int:
        return self._rejected

    @property
    def latest_live(self) -> LiveData | None:
        return self._latest_live

    @property
    def elapsed_s(self) -> float | None:
        if self._session is None or not self.is_recording:
            return None
        return (self._clock() - self._session.start_time).total_seconds()

    @property
    def current_speed_mps(self) -> float | None:
        position = self._cache.position
        return position.speed_mps if position is not None else None

    def stop_advice(self) -> StopAdvice | None:
        """Elapsed time and ground speed with the short/fast policy hints.

        The recorder never prompts; callers use this to ask for confirmation
        on a fast stop or to offer discarding a short session.
        """
        elapsed = self.elapsed_s
        if elapsed is None:
            return None
        speed = self.current_speed_mps
        return StopAdvice(
            elapsed_s=elapsed,
            speed_mps=speed,
            is_short=elapsed < self._config.short_session_s,
            is_fast=speed is not None and speed * MPS_TO_KPH > self._config.fast_stop_kph,
        )

    # -- Lifecycle -----------------------------------------------------------

    async def _has_location_permission(self) -> bool:
        result = self._location_permission()
        if inspect.isawaitable(result):
            result = await result
        return bool(result)

    async def start_recording(self) -> StartResult:
        """Create a session and start adapters, tick and flush timer.

        Raises :class:`PermissionDenied` (creating nothing) when location is
        unavailable. Returns the existing session with
        ``already_recording=True`` if a session is already active.
        """
        async with self._transition_lock:
            if self.is_recording and self._session is not None:
                logger.info("Already recording session %s", self._session.session_id)
                return StartResult(session=self._session, already_recording=True)

            if not await self._has_location_permission():
                msg = "Location permission not granted or location service disabled"
                raise PermissionDenied(msg)

            session = Session(start_time=self._clock())
            session_id = await self._store.create_session(session)
            self._session = session.with_updates(session_id=session_id)

            self._gate.reset()
            self._cache.clear()
            self._buffer = WriteBuffer(self._store, session_id, capacity=self._config.buffer_size)
            self._accepted = 0
            self._rejected = 0
            self._latest_live = None
            self.last_statistics = None

            self._sensors.start_all(
                on_position=self._on_position,
                on_acceleration=self._on_acceleration,
                on_magnetic=self._on_magnetic,
                on_pressure=self._on_pressure,
            )
            if self._config.tick_interval_s is not None:
                self._timers.append(
                    asyncio.create_task(
                        self._run_periodic(self._config.tick_interval_s, self._tick_safely),
                        name="recorder-tick",
                    )
                )
            if self._config.flush_interval_s is not None:
                self._timers.append(
                    asyncio.create_task(
                        self._run_periodic(self._config.flush_interval_s, self._flush_quietly),
                        name="recorder-flush",
                    )
                )
            self._state = RecordingState.RECORDING
            logger.info("Started recording session %d", session_id)
            return StartResult(session=self._session)

    async def stop_recording(self) -> Session | None:
        """Tear down the session, flush, and write the end time and statistics.

        Returns None if nothing was recording. Teardown always happens; a
        :class:`PersistenceError` from the final flush or the session updates
        is re-raised afterwards.

        Derived fields are applied to the stored row, so a rename or notes
        edit made while recording is kept.
        """
        async with self._transition_lock:
            if not self.is_recording or self._session is None or self._buffer is None:
                return None

            stopped_at = self._clock()
            session, buffer = self._session, self._buffer
            await self._teardown()

            try:
                if self._pending_flushes:
                    # Failed batches stay buffered for the final flush below
                    await asyncio.gather(*self._pending_flushes, return_exceptions=True)
                await buffer.flush()

                # Start from the stored row so a rename made while recording survives
                stored = await self._store.get_session(session.session_id)  # type: ignore[arg-type]
                ended = stored.with_updates(end_time=stopped_at)
                await self._store.update_session(ended)

                samples = await self._store.query_samples(ended.session_id)  # type: ignore[arg-type]
                stats = aggregate_session(ended, samples)
                final = apply_statistics(ended, stats)
                await self._store.update_session(final)
            except PersistenceError as exc:
                logger.error(
                    "Failed to finalise session %s (%d samples unsaved): %s",
                    session.session_id,
                    exc.unsaved,
                    exc,
                )
                raise

            self.last_statistics = stats
            logger.info(
                "Stopped session %s: %d samples, %.0f m",
                final.session_id,
                stats.sample_count,
                stats.total_distance_m,
            )
            return final

    async def _teardown(self) -> None:
        self._state = RecordingState.IDLE
        await self._sensors.stop_all()
        timers, self._timers = self._timers, []
        for task in timers:
            task.cancel()
        for task in timers:
            with contextlib.suppress(asyncio.CancelledError):
                await task

    async def discard_session(self, session_id: int) -> None:
        """Delete a stored session, e.g. a too-short flight the user rejected."""
        if self.is_recording and self._session is not None and self._session.session_id == session_id:
            msg = "Cannot discard the session that is currently recording"
            raise ValueError(msg)
        await self._store.delete_session(session_id)
        logger.info("Discarded session %d", session_id)

    async def aclose(self) -> None:
        """Finalise any active session; used on application shutdown."""
        try:
            await self.stop_recording()
        except PersistenceError:
            logger.warning("Active session could not be finalised on shutdown", exc_info=True)

    # -- Adapter callbacks ---------------------------------------------------

    def _on_position(self, reading: PositionReading) -> None:
        self._cache.update_position(reading)
        self._gate.observe(reading.accuracy_m)

    def _on_acceleration(self, reading: AccelerationReading) -> None:
        self._cache.update_acceleration(reading)

    def _on_magnetic(self, reading: MagneticReading) -> None:
        self._cache.update_magnetic(reading)

    def _on_pressure(self, reading: PressureReading) -> None:
        self._cache.update_pressure(reading)

    def ingest(self, reading: SensorReading) -> bool:
        """Push a reading into the matching adapter (ignored when idle)."""
        if not self.is_recording:
            return False
        return self._sensors.route(reading)

    # -- Tick and flush ------------------------------------------------------

    async def tick(self) -> TickResult | None:
        """Run one synthesizer step. Returns None when not recording."""
        if not self.is_recording or self._session is None or self._buffer is None:
            return None

        result = self._synthesizer.synthesize(
            self._cache.snapshot(),
            session_id=self._session.session_id,  # type: ignore[arg-type]
            now=self._clock(),
            sample_count=self._accepted,
        )
        if result.candidate is not None:
            if result.admitted:
                self._accepted += 1
                if self._buffer.append(result.candidate):
                    self._spawn_flush(limit=self._config.buffer_size)
            else:
                self._rejected += 1
                logger.debug(
                    "Rejected sample with accuracy %.1f m", result.candidate.accuracy_m or 0.0
                )

        self._publish(result.live)
        return result

    async def flush(self) -> int:
        """Flush the whole buffer now. Raises :class:`PersistenceError` on failure."""
        if self._buffer is None:
            return 0
        return await self._buffer.flush()

    def _track(self, task: asyncio.Task[Any]) -> None:
        self._pending_flushes.add(task)
        task.add_done_callback(self._pending_flushes.discard)

    def _spawn_flush(self, limit: int | None) -> None:
        self._track(asyncio.create_task(self._flush_quietly(limit), name="recorder-size-flush"))

    async def _flush_quietly(self, limit: int | None = None) -> None:
        buffer = self._buffer
        if buffer is None:
            return
        batch = asyncio.create_task(buffer.flush(limit=limit), name="recorder-flush-batch")
        # Tracked so stop awaits a batch whose timer was cancelled mid-write
        self._track(batch)
        try:
            await asyncio.shield(batch)
        except PersistenceError as exc:
            logger.warning(
                "Flush failed for session %d, %d samples kept for retry: %s",
                buffer.session_id,
                exc.unsaved,
                exc,
            )

    async def _tick_safely(self) -> None:
        try:
            await self.tick()
        except Exception:
            logger.exception("Synthesizer tick failed")

    async def _run_periodic(self, interval_s: float, step: Callable[[], Awaitable[None]]) -> None:
        loop = asyncio.get_running_loop()
        next_at = loop.time() + interval_s
        while True:
            await asyncio.sleep(max(0.0, next_at - loop.time()))
            next_at += interval_s
            await step()

    # -- Live-data channel ---------------------------------------------------

    def _publish(self, live: LiveData) -> None:
        self._latest_live = live
        for queue in self._subscribers:
            if queue.full():
                queue.get_nowait()
            queue.put_nowait(live)

    def subscribe(self, maxsize: int = _LIVE_QUEUE_SIZE) -> asyncio.Queue[LiveData]:
        """Register a queue receiving every live-data snapshot."""
        queue: asyncio.Queue[LiveData] = asyncio.Queue(maxsize=maxsize)
        self._subscribers.append(queue)
        return queue

    def unsubscribe(self, queue: asyncio.Queue[LiveData]) -> None:
        with contextlib.suppress(ValueError):
            self._subscribers.remove(queue)

    async def live_updates(self) -> AsyncIterator[LiveData]:
        """Yield live-data snapshots as they are published."""
        queue = self.subscribe()
        try:
            while True:
                yield await queue.get()
        finally:
            self.unsubscribe(queue)
