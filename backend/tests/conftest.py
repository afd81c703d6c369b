"""Test fixtures for the backend test suite."""

from __future__ import annotations

from collections.abc import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from backend.api.db.database import build_engine, build_session_factory
from backend.api.db.models import Base
from backend.api.main import app
from backend.api.services.db_flight_store import DbFlightStore
from flightrec.models import PositionReading
from flightrec.recorder import FlightRecorder, RecorderConfig

# In-memory SQLite for test isolation; build_engine turns on foreign keys
_test_engine = build_engine("sqlite+aiosqlite:///")
_test_session_factory = build_session_factory(_test_engine)


def position_body(
    accuracy_m: float | None = 10.0,
    latitude: float = 47.0,
    longitude: float = 8.5,
    speed_mps: float = 20.0,
) -> dict[str, object]:
    """JSON body for POST /api/recording/readings carrying a position fix."""
    return {
        "kind": "position",
        "latitude": latitude,
        "longitude": longitude,
        "altitude_m": 500.0,
        "speed_mps": speed_mps,
        "accuracy_m": accuracy_m,
        "course_deg": 90.0,
    }


def make_position(accuracy_m: float | None = 10.0, latitude: float = 47.0) -> PositionReading:
    return PositionReading(
        latitude=latitude, longitude=8.5, altitude_m=500.0, speed_mps=20.0, accuracy_m=accuracy_m
    )


@pytest_asyncio.fixture(autouse=True)
async def _test_db() -> AsyncGenerator[None, None]:
    """Create tables in in-memory SQLite for each test."""
    async with _test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with _test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture
def db_store() -> DbFlightStore:
    return DbFlightStore(_test_session_factory)


@pytest.fixture
def manual_recorder(db_store: DbFlightStore) -> FlightRecorder:
    """Recorder without periodic tasks; tests call tick() themselves."""
    return FlightRecorder(
        db_store, config=RecorderConfig(tick_interval_s=None, flush_interval_s=None)
    )


@pytest_asyncio.fixture
async def client(
    db_store: DbFlightStore, manual_recorder: FlightRecorder
) -> AsyncGenerator[AsyncClient, None]:
    """Yield an async HTTP test client wired to the FastAPI app.

    ASGITransport does not run the lifespan, so the store and recorder are
    installed on ``app.state`` here.
    """
    app.state.store = db_store
    app.state.recorder = manual_recorder
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    await manual_recorder.aclose()


@pytest.fixture
def session_factory() -> async_sessionmaker[AsyncSession]:
    """Raw ORM sessions on the test database, for assertions below the store."""
    return _test_session_factory
