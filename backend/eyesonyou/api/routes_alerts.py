from __future__ import annotations

import pathlib
from typing import Optional

import yaml
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from eyesonyou.deps import get_db
from eyesonyou.schemas.alerts import AlertOut, AlertRuleInfo
from eyesonyou.services.alert_history import AlertHistoryService

router = APIRouter()
history = AlertHistoryService()

CATALOG_PATH = pathlib.Path(__file__).resolve().parent.parent / "policies" / "alert_catalog.yaml"


@router.get("/alerts", response_model=list[AlertOut])
def list_alerts(
    rule: Optional[str] = Query(None, description="Filter by rule, e.g. PROXIMITY"),
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
):
    return history.list(db, rule=rule, limit=limit, offset=offset)


@router.get("/alerts/rules", response_model=list[AlertRuleInfo])
def list_rules():
    with open(CATALOG_PATH, "r", encoding="utf-8") as f:
        doc = yaml.safe_load(f) or {}
    return [
        AlertRuleInfo(
            rule=r["rule"],
            name=r["name"],
            description=r["description"].strip(),
            priority=int(r.get("priority", 99)),
            channels=r.get("channels", []),
        )
        for r in sorted(doc.get("rules", []), key=lambda r: r.get("priority", 99))
    ]
