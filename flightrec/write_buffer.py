"""In-memory write buffer that batches accepted samples into storage.

Samples are appended in tick order and handed to storage FIFO. A flush
either hands a whole batch to storage in one ``append_samples_batch`` call
and then drops exactly those samples, or leaves the buffer untouched so the
next trigger retries them.
"""

from __future__ import annotations

import asyncio
import logging

from flightrec.constants import BUFFER_SIZE
from flightrec.errors import PersistenceError
from flightrec.models import Sample
from flightrec.storage import FlightStore

logger = logging.getLogger(__name__)


class WriteBuffer:
    """Accumulates samples for one session and flushes them in batches."""

    def __init__(self, store: FlightStore, session_id: int, capacity: int = BUFFER_SIZE) -> None:
        if capacity < 1:
            msg = f"capacity must be >= 1, got {capacity}"
            raise ValueError(msg)
        self._store = store
        self.session_id = session_id
        self.capacity = capacity
        self._items: list[Sample] = []
        self._flush_lock = asyncio.Lock()
        self.flush_attempts = 0
        self.batches_written = 0
        self.samples_written = 0

    def __len__(self) -> int:
        return len(self._items)

    @property
    def is_full(self) -> bool:
        return len(self._items) >= self.capacity

    def append(self, sample: Sample) -> bool:
        """Queue a sample. Returns True once the buffer has reached capacity."""
        if sample.session_id != self.session_id:
            msg = f"sample belongs to session {sample.session_id}, buffer to {self.session_id}"
            raise ValueError(msg)
        self._items.append(sample)
        return self.is_full

    async def flush(self, limit: int | None = None) -> int:
        """Hand buffered samples to storage in a single batch call.

        ``limit`` caps the batch at the oldest ``limit`` samples; ``None``
        flushes everything currently buffered. Returns the number of samples
        written (0 for an empty buffer, which makes no storage call).

        Raises :class:`PersistenceError` if storage fails; the samples stay
        buffered in their original order.
        """
        async with self._flush_lock:
            self.flush_attempts += 1
            batch = self._items[:limit] if limit is not None else list(self._items)
            if not batch:
                return 0

            try:
                await self._store.append_samples_batch(self.session_id, batch)
            except PersistenceError as exc:
                exc.unsaved = len(self._items)
                raise
            except Exception as exc:
                msg = f"Failed to append {len(batch)} samples to session {self.session_id}"
                raise PersistenceError(msg, unsaved=len(self._items)) from exc

            # Appends made while storage was awaited sit behind the batch
            del self._items[: len(batch)]
            self.batches_written += 1
            self.samples_written += len(batch)
            logger.debug(
                "Flushed %d samples for session %d (%d still buffered)",
                len(batch),
                self.session_id,
                len(self._items),
            )
            return len(batch)
