from __future__ import annotations

from fastapi import APIRouter

from eyesonyou import deps
from eyesonyou.api.routes_ws import hub
from eyesonyou.config import settings

router = APIRouter()


@router.get("/health")
def health():
    """Health check endpoint with engine status."""
    svc = deps.engine_svc
    return {
        "status": "ok",
        "environment": settings.environment,
        "speech_backend": settings.speech_backend,
        "scan_source_enabled": settings.scan_source_enabled,
        "mapping": bool(svc and svc.mapping),
        "speech": svc.speech.state if svc else None,
        "ws_clients": hub.client_count,
        "version": "0.1.0",
    }
