from __future__ import annotations

from pathlib import Path
from typing import Any

from fastapi import APIRouter, File, HTTPException, UploadFile

from podstudio.application import get_batch_service
from podstudio.core.errors import (
    BatchBusyError,
    BatchNotFoundError,
    SourceFormatError,
    SourceUnavailableError,
)
from podstudio.core.schema import GenerateRequest, SyncRequest
from podstudio.domain import Batch, Tier
from podstudio.workers.scheduler import get_generation_scheduler

router = APIRouter(prefix="/batches", tags=["batches"])

WORKBOOK_SUFFIXES = {".xlsx", ".xlsm"}


def serialise_batch(batch: Batch) -> dict[str, Any]:
    return {
        "id": batch.batch_id,
        "name": batch.name,
        "custom_prompt": batch.custom_prompt,
        "status": batch.status.value,
        "active_mode": batch.active_mode.value if batch.active_mode else None,
        "error": batch.last_error,
        "references": [
            {"slot": slot, "source_url": ref.source_url, "data": ref.encoded_data} if ref else None
            for slot, ref in enumerate(batch.references)
        ],
        "results": {tier.value: list(batch.results[tier]) for tier in Tier},
    }


def _items(batches: list[Batch]) -> dict:
    return {"items": [serialise_batch(batch) for batch in batches]}


@router.get("")
async def list_batches() -> dict:
    return _items(get_batch_service().list_batches())


@router.post("/sync")
async def sync_batches(payload: SyncRequest) -> dict:
    service = get_batch_service()
    try:
        batches = await service.sync_from_sheet(payload.sheet_url)
    except SourceFormatError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except SourceUnavailableError as exc:
        raise HTTPException(status_code=502, detail=str(exc)) from exc
    except BatchBusyError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    return _items(batches)


@router.post("/import")
async def import_batches(file: UploadFile = File(...)) -> dict:
    """Import a job sheet uploaded as CSV text or an ``.xlsx`` workbook."""
    if not file.filename:
        raise HTTPException(status_code=400, detail="Uploaded file must have a filename")

    service = get_batch_service()
    try:
        data = await file.read()
        if Path(file.filename).suffix.lower() in WORKBOOK_SUFFIXES:
            batches = await service.import_workbook(data)
        else:
            batches = await service.import_text(data.decode("utf-8-sig", errors="replace"))
    except SourceFormatError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except BatchBusyError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    finally:
        await file.close()
    return _items(batches)


@router.post("/generate")
async def generate_all(payload: GenerateRequest) -> dict:
    scheduler = get_generation_scheduler()
    try:
        batches = await scheduler.run_all(payload.tier, payload.outputs_per_batch)
    except BatchBusyError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    return _items(batches)


@router.post("/stop")
async def stop_all() -> dict:
    return {"stopping": get_generation_scheduler().stop_all()}


@router.get("/{batch_id}")
async def get_batch(batch_id: str) -> dict:
    try:
        batch = get_batch_service().get_batch(batch_id)
    except BatchNotFoundError as exc:
        raise HTTPException(status_code=404, detail="batch not found") from exc
    return serialise_batch(batch)


@router.post("/{batch_id}/generate")
async def generate_batch(batch_id: str, payload: GenerateRequest) -> dict:
    scheduler = get_generation_scheduler()
    try:
        batch = await scheduler.run_batch(batch_id, payload.tier, payload.outputs_per_batch)
    except BatchNotFoundError as exc:
        raise HTTPException(status_code=404, detail="batch not found") from exc
    except BatchBusyError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    return serialise_batch(batch)


@router.post("/{batch_id}/stop")
async def stop_batch(batch_id: str) -> dict:
    try:
        stopping = get_generation_scheduler().stop_batch(batch_id)
    except BatchNotFoundError as exc:
        raise HTTPException(status_code=404, detail="batch not found") from exc
    return {"id": batch_id, "stopping": stopping}
