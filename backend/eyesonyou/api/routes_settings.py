from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from eyesonyou.auth.jwt import require_role
from eyesonyou.deps import get_db, get_engine_svc
from eyesonyou.schemas.toggles import DisplayPreferences, ToggleState, ToggleUpdate
from eyesonyou.services.engine_service import EngineService
from eyesonyou.services.toggle_service import ToggleService

router = APIRouter()
toggle_svc = ToggleService()


@router.get("/settings", response_model=ToggleState)
def get_settings(db: Session = Depends(get_db)):
    return toggle_svc.load(db)


@router.put("/settings", response_model=ToggleState)
async def update_settings(
    body: ToggleUpdate,
    db: Session = Depends(get_db),
    svc: EngineService = Depends(get_engine_svc),
    user: str | None = Depends(require_role("caregiver")),
):
    """Persist toggle changes and push the new values into the engine."""
    state = toggle_svc.save(db, body)
    svc.update_config(state)
    return state


@router.get("/settings/display", response_model=DisplayPreferences)
async def display_preferences(svc: EngineService = Depends(get_engine_svc)):
    return svc.display_preferences()
