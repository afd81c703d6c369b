"""Pydantic schemas for the live recording endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field

from backend.api.schemas.session import SessionSummary


class StartResponse(BaseModel):
    session: SessionSummary
    already_recording: bool = False


class StopAdviceOut(BaseModel):
    """Hints for confirming a fast stop or offering to discard a short session."""

    model_config = ConfigDict(from_attributes=True)

    elapsed_s: float
    speed_mps: float | None = None
    is_short: bool
    is_fast: bool


class RecordingStatus(BaseModel):
    state: Literal["idle", "recording"]
    session: SessionSummary | None = None
    advice: StopAdviceOut | None = None
    fix_state: Literal["acquiring", "locked"]
    accepted_samples: int
    rejected_samples: int


class LiveDataOut(BaseModel):
    """Latest live-data snapshot published by the synthesizer tick."""

    model_config = ConfigDict(from_attributes=True)

    timestamp: datetime
    has_good_fix: bool
    fix_state: Literal["acquiring", "locked"]
    altitude_m: float | None = None
    speed_mps: float | None = None
    g_force: float | None = None
    heading_deg: float | None = None
    pressure_hpa: float | None = None
    gps_accuracy_m: float | None = None
    sample_count: int = 0


# -- Sensor readings pushed by the device-side bridge ------------------------


class PositionIn(BaseModel):
    kind: Literal["position"]
    latitude: float = Field(ge=-90.0, le=90.0)
    longitude: float = Field(ge=-180.0, le=180.0)
    altitude_m: float | None = None
    speed_mps: float | None = None
    accuracy_m: float | None = Field(default=None, ge=0.0)
    course_deg: float | None = None
    timestamp: datetime | None = None


class AccelerationIn(BaseModel):
    kind: Literal["acceleration"]
    x: float
    y: float
    z: float


class MagneticIn(BaseModel):
    kind: Literal["magnetometer"]
    x: float
    y: float
    z: float


class PressureIn(BaseModel):
    kind: Literal["pressure"]
    pressure_hpa: float = Field(gt=0.0)


ReadingIn = Annotated[
    PositionIn | AccelerationIn | MagneticIn | PressureIn,
    Field(discriminator="kind"),
]


class ReadingAccepted(BaseModel):
    accepted: bool
