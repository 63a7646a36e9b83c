from __future__ import annotations

import datetime as dt
from typing import List, Literal, Optional

from pydantic import BaseModel, Field

from eyesonyou.schemas.motion import MotionKind


AlertRule = Literal["HUMAN_STATIC", "HUMAN_MOVING", "LARGE_OBSTACLE", "PROXIMITY", "MOVING_OBJECT"]


class AlertCandidate(BaseModel):
    """Per-anchor signals the alert rules decide on."""

    anchor_id: str
    label: str = "Obstacle"
    distance_m: float
    area_m2: float = 0.0  # width * height
    volume_m3: float = 0.0
    human_confirmed: bool = False
    motion: Optional[MotionKind] = None


class AlertDecision(BaseModel):
    emit: bool = False
    rule: Optional[AlertRule] = None
    text: Optional[str] = None
    anchor_id: Optional[str] = None
    distance_cm: Optional[int] = None


class AlertOut(BaseModel):
    id: str
    ts: dt.datetime
    rule: str
    text: str
    anchor_id: Optional[str] = None
    delivered: bool


class AlertRuleInfo(BaseModel):
    rule: str
    name: str
    description: str
    priority: int
    channels: List[str] = Field(default_factory=list)
