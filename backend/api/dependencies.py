"""FastAPI dependency injection functions."""

from __future__ import annotations

from functools import lru_cache

from fastapi import Request

from backend.api.config import Settings
from flightrec.recorder import FlightRecorder
from flightrec.storage import FlightStore


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return the singleton application settings."""
    return Settings()


def get_recorder(request: Request) -> FlightRecorder:
    """The recorder created by the application lifespan."""
    recorder: FlightRecorder = request.app.state.recorder
    return recorder


def get_store(request: Request) -> FlightStore:
    """The flight store shared by the recorder and the read endpoints."""
    store: FlightStore = request.app.state.store
    return store
