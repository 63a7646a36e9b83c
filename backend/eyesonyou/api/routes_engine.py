from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query

from eyesonyou.auth.jwt import require_role
from eyesonyou.deps import get_engine_svc
from eyesonyou.services.engine_service import EngineService

router = APIRouter()


def _status(svc: EngineService) -> dict:
    return {
        "mapping": svc.mapping,
        "anchors": len(svc.registry),
        "tracked": len(svc.tracker.tracked_ids()),
        "warnings_enabled": svc.alerts.enabled,
        "speech": svc.speech.state,
    }


@router.get("/engine")
async def engine_status(svc: EngineService = Depends(get_engine_svc)):
    return _status(svc)


@router.post("/engine/start")
async def start_mapping(
    announce: Optional[bool] = Query(None, description="Override ANNOUNCE_MODE_CHANGES"),
    svc: EngineService = Depends(get_engine_svc),
    user: str | None = Depends(require_role("device", "caregiver")),
):
    await svc.start_mapping(announce=announce)
    return _status(svc)


@router.post("/engine/stop")
async def stop_mapping(
    announce: Optional[bool] = Query(None, description="Override ANNOUNCE_MODE_CHANGES"),
    svc: EngineService = Depends(get_engine_svc),
    user: str | None = Depends(require_role("device", "caregiver")),
):
    """Stop mapping. Every anchor and motion track is discarded."""
    await svc.stop_mapping(announce=announce)
    return _status(svc)
