"""Pydantic schemas for stored-session endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class SessionSummary(BaseModel):
    """Session metadata and end-of-session statistics."""

    model_config = ConfigDict(from_attributes=True)

    session_id: int
    name: str
    start_time: datetime
    end_time: datetime | None = None
    duration_s: int | None = None
    max_altitude_m: float | None = None
    total_distance_m: float | None = None
    max_positive_g: float | None = None
    max_negative_g: float | None = None
    max_speed_mps: float | None = None
    avg_speed_mps: float | None = None
    notes: str | None = None


class SessionList(BaseModel):
    """All stored sessions, newest first."""

    items: list[SessionSummary]
    total: int


class SessionUpdate(BaseModel):
    """Rename a session or edit its notes; omitted fields stay unchanged."""

    name: str | None = Field(default=None, min_length=1, max_length=200)
    notes: str | None = None


class SampleOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    timestamp: datetime
    latitude: float
    longitude: float
    altitude_m: float | None = None
    speed_mps: float | None = None
    accuracy_m: float | None = None
    accel_x: float | None = None
    accel_y: float | None = None
    accel_z: float | None = None
    g_force: float | None = None
    heading_deg: float | None = None
    pressure_hpa: float | None = None


class SampleList(BaseModel):
    """Samples of one session in timestamp order."""

    session_id: int
    items: list[SampleOut]
    total: int
