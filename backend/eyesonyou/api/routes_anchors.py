from __future__ import annotations

from typing import List, Union

from fastapi import APIRouter, Depends, HTTPException

from eyesonyou.auth.jwt import require_role
from eyesonyou.deps import get_engine_svc
from eyesonyou.schemas.geometry import AnchorOut, GeometryEvent
from eyesonyou.services.engine_service import EngineService

router = APIRouter()


@router.post("/anchors/events")
async def submit_events(
    body: Union[GeometryEvent, List[GeometryEvent]],
    svc: EngineService = Depends(get_engine_svc),
    user: str | None = Depends(require_role("device")),
):
    """Hand geometry events to the ingest loop.

    Accepts a single event or a batch. Events sent while mapping is
    inactive are discarded; ``queued`` reports how many were accepted.
    """
    events = body if isinstance(body, list) else [body]
    queued = svc.submit(events)
    return {"queued": queued, "mapping": svc.mapping}


@router.get("/anchors", response_model=list[AnchorOut])
async def list_anchors(svc: EngineService = Depends(get_engine_svc)):
    anchors = sorted(svc.registry.snapshot(), key=lambda a: a.distance_m)
    return [AnchorOut.from_anchor(a) for a in anchors]


@router.get("/anchors/{anchor_id}", response_model=AnchorOut)
async def get_anchor(anchor_id: str, svc: EngineService = Depends(get_engine_svc)):
    anchor = svc.registry.get(anchor_id)
    if anchor is None:
        raise HTTPException(status_code=404, detail="Anchor not found")
    return AnchorOut.from_anchor(anchor)
