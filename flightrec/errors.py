"""Exception taxonomy for the recording pipeline."""

from __future__ import annotations


class FlightRecorderError(Exception):
    """Base class for all flightrec errors."""


class PermissionDenied(FlightRecorderError):
    """Location capability is unavailable or not authorised."""


class SensorError(FlightRecorderError):
    """A single sensor adapter failed to read or deliver a reading."""

    def __init__(self, adapter: str, message: str) -> None:
        super().__init__(f"{adapter}: {message}")
        self.adapter = adapter


class PersistenceError(FlightRecorderError):
    """Storage rejected a batch append or a session update."""

    def __init__(self, message: str, unsaved: int = 0) -> None:
        super().__init__(message)
        self.unsaved = unsaved


class SessionNotFound(FlightRecorderError):
    """A session id does not (or no longer) exist in storage."""

    def __init__(self, session_id: int | None) -> None:
        super().__init__(f"Session {session_id} not found")
        self.session_id = session_id
