from __future__ import annotations

from fastapi import APIRouter, HTTPException, Query

from eyesonyou.auth.jwt import ROLES, create_access_token
from eyesonyou.config import settings

router = APIRouter()


@router.post("/auth/dev-token")
def dev_token(role: str = Query("device", description="device | caregiver")):
    """Development helper: issue a token for the given role.

    Disabled in production.
    """
    if settings.is_production:
        raise HTTPException(status_code=404, detail="Not found")
    if role not in ROLES:
        raise HTTPException(status_code=400, detail=f"Unknown role: {role}")
    return {"access_token": create_access_token(f"dev-{role}", role=role), "token_type": "bearer"}
