from __future__ import annotations

from fastapi import APIRouter, HTTPException

from podstudio.core.schema import GrantAccessRequest
from podstudio.infrastructure import get_access_broker

router = APIRouter(prefix="/access", tags=["access"])


@router.get("")
async def access_status() -> dict:
    return get_access_broker().status()


@router.post("/grant")
async def grant_access(payload: GrantAccessRequest) -> dict:
    broker = get_access_broker()
    try:
        broker.grant(payload.api_key)
    except RuntimeError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    return broker.status()
