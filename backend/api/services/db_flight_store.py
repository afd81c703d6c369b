"""Relational FlightStore backed by the SQLAlchemy async ORM.

Each call runs in its own transaction, so a batch append is all-or-nothing:
a failed batch leaves no rows behind and the write buffer can retry it whole.
Backend failures surface as :class:`PersistenceError`.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from datetime import UTC, datetime

from sqlalchemy import delete, func, insert, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from backend.api.db.models import Flight, SampleRow
from flightrec.errors import PersistenceError, SessionNotFound
from flightrec.models import Sample, Session

logger = logging.getLogger(__name__)

_SAMPLE_FIELDS = (
    "latitude",
    "longitude",
    "altitude_m",
    "speed_mps",
    "accuracy_m",
    "accel_x",
    "accel_y",
    "accel_z",
    "g_force",
    "heading_deg",
    "pressure_hpa",
)

_SESSION_FIELDS = (
    "name",
    "start_time",
    "end_time",
    "duration_s",
    "max_altitude_m",
    "total_distance_m",
    "max_positive_g",
    "max_negative_g",
    "max_speed_mps",
    "avg_speed_mps",
    "notes",
)


def _as_utc(value: datetime | None) -> datetime | None:
    """SQLite hands back naive datetimes; everything is stored in UTC."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=UTC)


def flight_to_session(row: Flight) -> Session:
    return Session(
        session_id=row.id,
        name=row.name,
        start_time=_as_utc(row.start_time),  # type: ignore[arg-type]
        end_time=_as_utc(row.end_time),
        duration_s=row.duration_s,
        max_altitude_m=row.max_altitude_m,
        total_distance_m=row.total_distance_m,
        max_positive_g=row.max_positive_g,
        max_negative_g=row.max_negative_g,
        max_speed_mps=row.max_speed_mps,
        avg_speed_mps=row.avg_speed_mps,
        notes=row.notes,
    )


def row_to_sample(row: SampleRow) -> Sample:
    return Sample(
        session_id=row.flight_id,
        timestamp=_as_utc(row.timestamp),  # type: ignore[arg-type]
        **{name: getattr(row, name) for name in _SAMPLE_FIELDS},
    )


class DbFlightStore:
    """:class:`flightrec.storage.FlightStore` over ``flights`` / ``samples`` tables."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def create_session(self, session: Session) -> int:
        row = Flight(**{name: getattr(session, name) for name in _SESSION_FIELDS})
        try:
            async with self._session_factory() as db, db.begin():
                db.add(row)
                await db.flush()
                flight_id = row.id
        except SQLAlchemyError as exc:
            msg = f"Failed to create session: {exc}"
            raise PersistenceError(msg) from exc
        logger.debug("Created flight %d", flight_id)
        return flight_id

    async def update_session(self, session: Session) -> None:
        if session.session_id is None:
            raise SessionNotFound(None)
        try:
            async with self._session_factory() as db, db.begin():
                row = await db.get(Flight, session.session_id)
                if row is None:
                    raise SessionNotFound(session.session_id)
                for name in _SESSION_FIELDS:
                    setattr(row, name, getattr(session, name))
        except SQLAlchemyError as exc:
            msg = f"Failed to update session {session.session_id}: {exc}"
            raise PersistenceError(msg) from exc

    async def append_samples_batch(self, session_id: int, samples: Sequence[Sample]) -> None:
        if not samples:
            return
        rows = [
            {
                "flight_id": session_id,
                "timestamp": sample.timestamp,
                **{name: getattr(sample, name) for name in _SAMPLE_FIELDS},
            }
            for sample in samples
        ]
        try:
            async with self._session_factory() as db, db.begin():
                if await db.get(Flight, session_id) is None:
                    raise SessionNotFound(session_id)
                await db.execute(insert(SampleRow), rows)
        except SQLAlchemyError as exc:
            msg = f"Failed to append {len(samples)} samples to session {session_id}: {exc}"
            raise PersistenceError(msg, unsaved=len(samples)) from exc

    async def query_samples(self, session_id: int) -> list[Sample]:
        try:
            async with self._session_factory() as db:
                if await db.get(Flight, session_id) is None:
                    raise SessionNotFound(session_id)
                result = await db.execute(
                    select(SampleRow)
                    .where(SampleRow.flight_id == session_id)
                    .order_by(SampleRow.timestamp, SampleRow.id)
                )
                return [row_to_sample(row) for row in result.scalars()]
        except SQLAlchemyError as exc:
            msg = f"Failed to query samples of session {session_id}: {exc}"
            raise PersistenceError(msg) from exc

    async def delete_session(self, session_id: int) -> None:
        try:
            async with self._session_factory() as db, db.begin():
                result = await db.execute(delete(Flight).where(Flight.id == session_id))
                if result.rowcount == 0:
                    raise SessionNotFound(session_id)
        except SQLAlchemyError as exc:
            msg = f"Failed to delete session {session_id}: {exc}"
            raise PersistenceError(msg) from exc
        logger.info("Deleted flight %d", session_id)

    async def get_session(self, session_id: int) -> Session:
        try:
            async with self._session_factory() as db:
                row = await db.get(Flight, session_id)
        except SQLAlchemyError as exc:
            msg = f"Failed to load session {session_id}: {exc}"
            raise PersistenceError(msg) from exc
        if row is None:
            raise SessionNotFound(session_id)
        return flight_to_session(row)

    async def list_sessions(self) -> list[Session]:
        try:
            async with self._session_factory() as db:
                result = await db.execute(
                    select(Flight).order_by(Flight.start_time.desc(), Flight.id.desc())
                )
                return [flight_to_session(row) for row in result.scalars()]
        except SQLAlchemyError as exc:
            msg = f"Failed to list sessions: {exc}"
            raise PersistenceError(msg) from exc

    async def count_samples(self, session_id: int) -> int:
        try:
            async with self._session_factory() as db:
                if await db.get(Flight, session_id) is None:
                    raise SessionNotFound(session_id)
                result = await db.execute(
                    select(func.count()).select_from(SampleRow).where(SampleRow.flight_id == session_id)
                )
                return int(result.scalar_one())
        except SQLAlchemyError as exc:
            msg = f"Failed to count samples of session {session_id}: {exc}"
            raise PersistenceError(msg) from exc
