from __future__ import annotations

from fastapi import APIRouter, HTTPException, Query
from fastapi.responses import Response

from podstudio.application import EditSession, get_batch_service, get_edit_session_manager
from podstudio.core.errors import (
    BatchBusyError,
    BatchNotFoundError,
    EditSessionBusyError,
    EditSessionNotFoundError,
    GenerationFailure,
    ResultSlotNotFoundError,
)
from podstudio.core.naming import clean_file_name
from podstudio.core.rendering import render_png
from podstudio.core.schema import Adjustments, CommitRequest, OpenEditRequest, RegenerateRequest

router = APIRouter(prefix="/edits", tags=["edits"])

EDIT_ERRORS = (
    EditSessionBusyError,
    EditSessionNotFoundError,
    BatchBusyError,
    BatchNotFoundError,
    ResultSlotNotFoundError,
)


def _serialise_session(session: EditSession) -> dict:
    return {
        "id": session.session_id,
        "batch_id": session.batch_id,
        "tier": session.tier.value,
        "index": session.index,
        "image": session.displayed,
        "busy": session.busy,
        "can_undo": session.can_undo,
        "can_redo": session.can_redo,
    }


def _get_session(session_id: str) -> EditSession:
    try:
        return get_edit_session_manager().get(session_id)
    except EditSessionNotFoundError as exc:
        raise HTTPException(status_code=404, detail="edit session not found") from exc


def _translate(exc: Exception) -> HTTPException:
    if isinstance(exc, (EditSessionBusyError, BatchBusyError)):
        return HTTPException(status_code=409, detail=str(exc))
    if isinstance(exc, EditSessionNotFoundError):
        return HTTPException(status_code=404, detail="edit session not found")
    if isinstance(exc, BatchNotFoundError):
        return HTTPException(status_code=404, detail="batch not found")
    if isinstance(exc, ResultSlotNotFoundError):
        return HTTPException(status_code=404, detail=str(exc))
    return HTTPException(status_code=500, detail=str(exc))


@router.post("")
async def open_session(payload: OpenEditRequest) -> dict:
    try:
        session = get_edit_session_manager().open(payload.batch_id, payload.tier, payload.index)
    except (BatchBusyError, BatchNotFoundError, ResultSlotNotFoundError) as exc:
        raise _translate(exc) from exc
    return _serialise_session(session)


@router.get("/{session_id}")
async def get_session(session_id: str) -> dict:
    return _serialise_session(_get_session(session_id))


@router.delete("/{session_id}")
async def close_session(session_id: str) -> dict:
    try:
        get_edit_session_manager().close(session_id)
    except EditSessionNotFoundError as exc:
        raise HTTPException(status_code=404, detail="edit session not found") from exc
    return {"id": session_id, "closed": True}


@router.post("/{session_id}/regenerate")
async def regenerate(session_id: str, payload: RegenerateRequest) -> dict:
    session = _get_session(session_id)
    try:
        await session.regenerate(payload.instruction)
    except GenerationFailure as exc:
        raise HTTPException(status_code=502, detail=exc.message) from exc
    except EDIT_ERRORS as exc:
        raise _translate(exc) from exc
    return _serialise_session(session)


@router.post("/{session_id}/undo")
async def undo(session_id: str) -> dict:
    session = _get_session(session_id)
    try:
        session.undo()
    except EDIT_ERRORS as exc:
        raise _translate(exc) from exc
    return _serialise_session(session)


@router.post("/{session_id}/redo")
async def redo(session_id: str) -> dict:
    session = _get_session(session_id)
    try:
        session.redo()
    except EDIT_ERRORS as exc:
        raise _translate(exc) from exc
    return _serialise_session(session)


@router.post("/{session_id}/commit")
async def commit(session_id: str, payload: CommitRequest) -> dict:
    session = _get_session(session_id)
    try:
        session.commit(payload.apply_to_all, payload.adjustments)
    except EDIT_ERRORS as exc:
        raise _translate(exc) from exc
    return _serialise_session(session)


@router.get("/{session_id}/download")
async def download(
    session_id: str,
    brightness: int = Query(default=100, ge=0, le=200),
    contrast: int = Query(default=100, ge=0, le=200),
    rotation: int = Query(default=0),
) -> Response:
    session = _get_session(session_id)
    if rotation not in (0, 90, 180, 270):
        raise HTTPException(status_code=400, detail="rotation must be one of 0, 90, 180, 270")
    adjustments = Adjustments(brightness=brightness, contrast=contrast, rotation=rotation)
    try:
        batch = get_batch_service().get_batch(session.batch_id)
    except BatchNotFoundError as exc:
        raise _translate(exc) from exc
    filename = f"{clean_file_name(batch.name)}.png"
    return Response(
        content=render_png(session.displayed, adjustments),
        media_type="image/png",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
