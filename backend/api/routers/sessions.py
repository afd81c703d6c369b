"""Stored session endpoints: list, get, samples, rename/notes, delete."""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Response

from backend.api.dependencies import get_recorder, get_store
from backend.api.schemas.session import (
    SampleList,
    SampleOut,
    SessionList,
    SessionSummary,
    SessionUpdate,
)
from flightrec.recorder import FlightRecorder
from flightrec.storage import FlightStore

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("", response_model=SessionList)
async def list_sessions(
    store: Annotated[FlightStore, Depends(get_store)],
) -> SessionList:
    """List stored sessions ordered by start time descending."""
    sessions = await store.list_sessions()
    items = [SessionSummary.model_validate(s) for s in sessions]
    return SessionList(items=items, total=len(items))


@router.get("/{session_id}", response_model=SessionSummary)
async def get_session(
    session_id: int,
    store: Annotated[FlightStore, Depends(get_store)],
) -> SessionSummary:
    return SessionSummary.model_validate(await store.get_session(session_id))


@router.get("/{session_id}/samples", response_model=SampleList)
async def get_samples(
    session_id: int,
    store: Annotated[FlightStore, Depends(get_store)],
) -> SampleList:
    """All persisted samples of a session in timestamp order."""
    samples = await store.query_samples(session_id)
    items = [SampleOut.model_validate(s) for s in samples]
    return SampleList(session_id=session_id, items=items, total=len(items))


@router.patch("/{session_id}", response_model=SessionSummary)
async def update_session(
    session_id: int,
    body: SessionUpdate,
    store: Annotated[FlightStore, Depends(get_store)],
) -> SessionSummary:
    """Rename a session and/or edit its notes."""
    session = await store.get_session(session_id)
    changes = body.model_dump(exclude_unset=True)
    if changes.get("name") is None:
        changes.pop("name", None)
    if changes:
        session = session.with_updates(**changes)
        await store.update_session(session)
        logger.info("Updated session %d: %s", session_id, sorted(changes))
    return SessionSummary.model_validate(session)


@router.delete("/{session_id}", status_code=204)
async def delete_session(
    session_id: int,
    recorder: Annotated[FlightRecorder, Depends(get_recorder)],
) -> Response:
    """Discard a session and all of its samples."""
    await recorder.discard_session(session_id)
    return Response(status_code=204)
