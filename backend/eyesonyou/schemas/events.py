from __future__ import annotations

from pydantic import BaseModel
from typing import Any, Dict


class WsMessage(BaseModel):
    kind: str  # anchor|alert|speech|display
    data: Dict[str, Any]
