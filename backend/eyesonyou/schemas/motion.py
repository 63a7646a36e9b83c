from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel

from eyesonyou.schemas.geometry import Vec3


MotionKind = Literal["MOVING_HUMAN", "MOVING_OBJECT"]


class MotionSignal(BaseModel):
    anchor_id: str
    position: Vec3
    score: float = 0.0
    volume: float = 0.0
    kind: Optional[MotionKind] = None
    # Static human-shape channel, independent of the score
    human_confirmed: bool = False
