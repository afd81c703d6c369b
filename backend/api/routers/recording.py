"""Live recording endpoints: start, stop, status, live data, reading ingestion."""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Body, Depends

from backend.api.dependencies import get_recorder
from backend.api.schemas.recording import (
    AccelerationIn,
    LiveDataOut,
    MagneticIn,
    PositionIn,
    ReadingAccepted,
    ReadingIn,
    RecordingStatus,
    StartResponse,
    StopAdviceOut,
)
from backend.api.schemas.session import SessionSummary
from flightrec.models import (
    AccelerationReading,
    MagneticReading,
    PositionReading,
    PressureReading,
    SensorReading,
)
from flightrec.recorder import FlightRecorder

logger = logging.getLogger(__name__)

router = APIRouter()


def _to_reading(body: ReadingIn) -> SensorReading:
    """Convert a validated request body into the core reading type."""
    if isinstance(body, PositionIn):
        return PositionReading(
            latitude=body.latitude,
            longitude=body.longitude,
            altitude_m=body.altitude_m,
            speed_mps=body.speed_mps,
            accuracy_m=body.accuracy_m,
            course_deg=body.course_deg,
            timestamp=body.timestamp,
        )
    if isinstance(body, AccelerationIn):
        return AccelerationReading(x=body.x, y=body.y, z=body.z)
    if isinstance(body, MagneticIn):
        return MagneticReading(x=body.x, y=body.y, z=body.z)
    return PressureReading(pressure_hpa=body.pressure_hpa)


@router.post("/start", response_model=StartResponse)
async def start_recording(
    recorder: Annotated[FlightRecorder, Depends(get_recorder)],
) -> StartResponse:
    """Start a new recording session (no-op if one is already active)."""
    result = await recorder.start_recording()
    return StartResponse(
        session=SessionSummary.model_validate(result.session),
        already_recording=result.already_recording,
    )


@router.post("/stop", response_model=SessionSummary | None)
async def stop_recording(
    recorder: Annotated[FlightRecorder, Depends(get_recorder)],
) -> SessionSummary | None:
    """Stop the active session and return it with its statistics, or null if idle."""
    session = await recorder.stop_recording()
    if session is None:
        return None
    return SessionSummary.model_validate(session)


@router.get("/status", response_model=RecordingStatus)
async def recording_status(
    recorder: Annotated[FlightRecorder, Depends(get_recorder)],
) -> RecordingStatus:
    session = recorder.current_session
    advice = recorder.stop_advice()
    return RecordingStatus(
        state=recorder.state.value,
        session=SessionSummary.model_validate(session) if session is not None else None,
        advice=StopAdviceOut.model_validate(advice) if advice is not None else None,
        fix_state=recorder.gate.state.value,
        accepted_samples=recorder.accepted_count,
        rejected_samples=recorder.rejected_count,
    )


@router.get("/live", response_model=LiveDataOut | None)
async def live_data(
    recorder: Annotated[FlightRecorder, Depends(get_recorder)],
) -> LiveDataOut | None:
    """Latest live-data snapshot, or null before the first tick."""
    live = recorder.latest_live
    if live is None:
        return None
    return LiveDataOut.model_validate(live.to_dict())


@router.post("/readings", response_model=ReadingAccepted)
async def push_reading(
    body: Annotated[ReadingIn, Body()],
    recorder: Annotated[FlightRecorder, Depends(get_recorder)],
) -> ReadingAccepted:
    """Deliver one sensor reading to the matching adapter.

    Readings arriving while no session is recording are ignored
    (``accepted: false``).
    """
    accepted = recorder.ingest(_to_reading(body))
    if not accepted:
        logger.debug("Ignored %s reading", body.kind)
    return ReadingAccepted(accepted=accepted)
