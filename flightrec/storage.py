"""Storage collaborator contract and an in-memory implementation.

The recorder only talks to storage through :class:`FlightStore`. The
relational implementation lives in the service layer; the dict-backed store
here serves headless runs and tests.
"""

from __future__ import annotations

import asyncio
import itertools
from collections.abc import Sequence
from dataclasses import replace
from typing import Protocol

from flightrec.errors import PersistenceError, SessionNotFound
from flightrec.models import Sample, Session


class FlightStore(Protocol):
    """Durable storage for sessions and their samples.

    Implementations raise :class:`PersistenceError` when the backend fails
    and :class:`SessionNotFound` for unknown ids.
    """

    async def create_session(self, session: Session) -> int: ...

    async def update_session(self, session: Session) -> None: ...

    async def append_samples_batch(self, session_id: int, samples: Sequence[Sample]) -> None: ...

    async def query_samples(self, session_id: int) -> list[Sample]: ...

    async def delete_session(self, session_id: int) -> None: ...

    async def get_session(self, session_id: int) -> Session: ...

    async def list_sessions(self) -> list[Session]: ...

    async def count_samples(self, session_id: int) -> int: ...


class InMemoryFlightStore:
    """Dict-backed :class:`FlightStore`.

    ``fail_next_appends`` makes the next N ``append_samples_batch`` calls
    raise :class:`PersistenceError` without storing anything;
    ``fail_next_updates`` does the same for ``update_session``.
    """

    def __init__(self) -> None:
        self._sessions: dict[int, Session] = {}
        self._samples: dict[int, list[Sample]] = {}
        self._ids = itertools.count(1)
        self._lock = asyncio.Lock()
        self.append_calls: list[int] = []
        self.fail_next_appends = 0
        self.fail_next_updates = 0

    async def create_session(self, session: Session) -> int:
        async with self._lock:
            session_id = next(self._ids)
            self._sessions[session_id] = replace(session, session_id=session_id)
            self._samples[session_id] = []
            return session_id

    async def update_session(self, session: Session) -> None:
        if session.session_id is None or session.session_id not in self._sessions:
            raise SessionNotFound(session.session_id)
        async with self._lock:
            if self.fail_next_updates > 0:
                self.fail_next_updates -= 1
                msg = f"Simulated storage failure updating session {session.session_id}"
                raise PersistenceError(msg)
            self._sessions[session.session_id] = session

    async def append_samples_batch(self, session_id: int, samples: Sequence[Sample]) -> None:
        if session_id not in self._sessions:
            raise SessionNotFound(session_id)
        async with self._lock:
            if self.fail_next_appends > 0:
                self.fail_next_appends -= 1
                msg = f"Simulated storage failure appending {len(samples)} samples"
                raise PersistenceError(msg, unsaved=len(samples))
            self.append_calls.append(len(samples))
            self._samples[session_id].extend(samples)

    async def query_samples(self, session_id: int) -> list[Sample]:
        if session_id not in self._samples:
            raise SessionNotFound(session_id)
        return sorted(self._samples[session_id], key=lambda s: s.timestamp)

    async def delete_session(self, session_id: int) -> None:
        async with self._lock:
            if self._sessions.pop(session_id, None) is None:
                raise SessionNotFound(session_id)
            self._samples.pop(session_id, None)

    async def get_session(self, session_id: int) -> Session:
        session = self._sessions.get(session_id)
        if session is None:
            raise SessionNotFound(session_id)
        return session

    async def list_sessions(self) -> list[Session]:
        return sorted(self._sessions.values(), key=lambda s: s.start_time, reverse=True)

    async def count_samples(self, session_id: int) -> int:
        if session_id not in self._samples:
            raise SessionNotFound(session_id)
        return len(self._samples[session_id])
