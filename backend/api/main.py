"""FastAPI application entry point."""

from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response

from backend.api.db.database import build_session_factory, engine_from_settings
from backend.api.db.models import Base
from backend.api.dependencies import get_settings
from backend.api.routers import recording, sessions
from backend.api.services.db_flight_store import DbFlightStore
from flightrec.errors import PermissionDenied, PersistenceError, SessionNotFound
from flightrec.recorder import FlightRecorder

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Create the store and the long-lived recorder; finalise any session on shutdown."""
    logging.basicConfig(level=logging.INFO)

    engine = engine_from_settings(settings)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    store = DbFlightStore(build_session_factory(engine))
    recorder = FlightRecorder(
        store,
        location_permission=lambda: settings.location_enabled,
        config=settings.recorder_config(),
    )
    app.state.store = store
    app.state.recorder = recorder
    logger.info("Flight recorder ready (database %s)", engine.url.render_as_string())

    yield

    await recorder.aclose()
    await engine.dispose()


load_dotenv()  # Populate os.environ from .env before reading settings
settings = get_settings()

app = FastAPI(
    title="Flight Recorder API",
    description="Sensor fusion recording of flights with end-of-session statistics",
    version="0.1.0",
    lifespan=lifespan,
    redirect_slashes=False,
)


# -- Cache-Control middleware --------------------------------------------------

# Route prefix -> Cache-Control header value
_CACHE_RULES: list[tuple[str, str]] = [
    # Live state changes every tick
    ("/api/recording", "no-store"),
    # Stored sessions change on stop, rename and delete
    ("/api/sessions", "no-cache"),
]


class CacheControlMiddleware(BaseHTTPMiddleware):
    """Set Cache-Control headers based on the request path and method."""

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        response = await call_next(request)

        if request.method != "GET" or response.status_code >= 400:
            return response
        if "cache-control" in response.headers:
            return response

        path = request.url.path
        for prefix, value in _CACHE_RULES:
            if path.startswith(prefix):
                response.headers["Cache-Control"] = value
                break
        else:
            response.headers["Cache-Control"] = "no-cache"

        return response


# -- Exception handlers --------------------------------------------------------


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all handler for unhandled exceptions.

    Logs the full traceback server-side but returns a safe generic message
    to the client (no internal details leaked).
    """
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error"},
    )


@app.exception_handler(ValueError)
async def value_error_handler(request: Request, exc: ValueError) -> JSONResponse:
    """Return 422 for ValueError (bad input data that passed validation)."""
    logger.warning("ValueError on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(
        status_code=422,
        content={"detail": str(exc)},
    )


@app.exception_handler(PermissionDenied)
async def permission_denied_handler(request: Request, exc: PermissionDenied) -> JSONResponse:
    logger.warning("Recording refused on %s: %s", request.url.path, exc)
    return JSONResponse(status_code=403, content={"detail": str(exc)})


@app.exception_handler(SessionNotFound)
async def session_not_found_handler(request: Request, exc: SessionNotFound) -> JSONResponse:
    return JSONResponse(status_code=404, content={"detail": str(exc)})


@app.exception_handler(PersistenceError)
async def persistence_error_handler(request: Request, exc: PersistenceError) -> JSONResponse:
    """Return 503 when storage is unavailable; unsaved samples are reported."""
    logger.error("Storage failure on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(
        status_code=503,
        content={"detail": str(exc), "unsaved_samples": exc.unsaved},
    )


# -- Middleware (order matters: last added = first executed) ------------------

app.add_middleware(CacheControlMiddleware)
app.add_middleware(GZipMiddleware, minimum_size=1000)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# -- Routers -----------------------------------------------------------------

app.include_router(recording.router, prefix="/api/recording", tags=["recording"])
app.include_router(sessions.router, prefix="/api/sessions", tags=["sessions"])


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Return a simple health-check response."""
    return {"status": "ok"}
