from __future__ import annotations

"""Mock Scan Source

- Stands in for the headset's scene reconstruction.
- Loads a small furnished room from room.json and reports it as
  "added" geometry events on startup.
- Keeps an append-only event log; clients poll it with a cursor:
  GET /anchors/updates?cursor=N -> {"cursor": M, "events": [...]}
- A walking person can be injected; every poll advances it and reports
  an "updated" event while it moves.
- Supports deterministic scenario injection via POST /scenario.

Coordinates follow the engine's convention: metres, observer at the
origin, -z is straight ahead, y is up.
"""

import json
import math
import os
import time
from pathlib import Path
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, HTTPException, Query, Request
from pydantic import BaseModel, Field

app = FastAPI(title="EyesOnYou Mock Scan Source", version="0.1.0")

SCAN_TOKEN = os.getenv("SCAN_TOKEN", "").strip()


def _require_scan_token(request: Request) -> None:
    """Require X-Scan-Token header if SCAN_TOKEN is configured."""
    if not SCAN_TOKEN:
        return
    got = (request.headers.get("X-Scan-Token") or "").strip()
    if got != SCAN_TOKEN:
        raise HTTPException(status_code=401, detail="Unauthorized scan call")


# --- Load room.json relative to this file, not the CWD ---
HERE = Path(__file__).resolve().parent
ROOM_PATH = HERE / "room.json"
with ROOM_PATH.open("r", encoding="utf-8") as f:
    ROOM = json.load(f)

PERSON = ROOM["person"]
CLOSE_WALL = ROOM["close_wall"]

PERSON_ID = "scn_person"
CLOSE_WALL_ID = "scn_wall"


class ScenarioRequest(BaseModel):
    scenario: str = Field(..., description="person_approach|wall_close|clear")


def _centered_bbox(size: List[float]) -> Dict[str, List[float]]:
    hw, hh, hd = (s / 2.0 for s in size)
    return {"min": [-hw, -hh, -hd], "max": [hw, hh, hd]}


def _translation(at: List[float]) -> List[List[float]]:
    x, y, z = at
    return [
        [1.0, 0.0, 0.0, x],
        [0.0, 1.0, 0.0, y],
        [0.0, 0.0, 1.0, z],
        [0.0, 0.0, 0.0, 1.0],
    ]


# ---- Append-only event log ----
events: List[Dict[str, Any]] = []
live: Dict[str, Dict[str, Any]] = {}


def _emit(kind: str, anchor_id: str, size: Optional[List[float]] = None, at: Optional[List[float]] = None) -> None:
    ev: Dict[str, Any] = {"kind": kind, "anchor_id": anchor_id}
    if kind == "removed":
        live.pop(anchor_id, None)
    else:
        ev["bbox"] = _centered_bbox(size or [0.0, 0.0, 0.0])
        ev["world_transform"] = _translation(at or [0.0, 0.0, 0.0])
        live[anchor_id] = {"size": size, "at": [round(v, 3) for v in (at or [0.0, 0.0, 0.0])]}
    events.append(ev)


class WalkingPerson:
    """A person walking straight toward the observer, stopping short of them."""

    def __init__(self, start: List[float], speed: float, stop_distance_m: float):
        self.pos = list(start)
        self.speed = speed
        self.stop_distance_m = stop_distance_m
        self.last_update = time.time()

    def _distance(self) -> float:
        return math.sqrt(sum(v * v for v in self.pos))

    def step(self) -> bool:
        """Advance toward the origin; True while the person is still moving."""
        now = time.time()
        dt = now - self.last_update
        self.last_update = now
        d = self._distance()
        if dt <= 0 or d <= self.stop_distance_m:
            return False
        step = min(self.speed * dt, d - self.stop_distance_m)
        self.pos = [v - (v / d) * step for v in self.pos]
        return True


person: Optional[WalkingPerson] = None


def _load_room() -> None:
    for a in ROOM.get("anchors", []):
        _emit("added", a["id"], a["size"], a["at"])


_load_room()


@app.get("/anchors/updates")
def updates(request: Request, cursor: int = Query(0, ge=0)):
    _require_scan_token(request)
    if person is not None and person.step():
        _emit("updated", PERSON_ID, PERSON["size"], person.pos)

    # A cursor from before a restart replays the whole log
    if cursor > len(events):
        cursor = 0
    return {"cursor": len(events), "events": events[cursor:]}


@app.get("/anchors")
def anchors(request: Request):
    _require_scan_token(request)
    return {"anchors": live, "log_length": len(events)}


# ---------------------------------------------------------------------------
# Scenario injection
# ---------------------------------------------------------------------------
@app.post("/scenario")
def inject_scenario(request: Request, body: ScenarioRequest):
    """Deterministically inject a scenario for an alert demo.

    Scenarios:
      - person_approach: a person appears 3.5m ahead and walks to 0.8m
        (human confirmation, then moving-person warnings)
      - wall_close: a wall appears 0.8m ahead (large obstacle warning)
      - clear: remove everything injected by scenarios
    """
    _require_scan_token(request)
    global person

    if body.scenario == "person_approach":
        person = WalkingPerson(PERSON["start"], PERSON["speed"], PERSON["stop_distance_m"])
        _emit("added", PERSON_ID, PERSON["size"], person.pos)
        return {"ok": True, "scenario": "person_approach", "anchor_id": PERSON_ID}

    elif body.scenario == "wall_close":
        _emit("added", CLOSE_WALL_ID, CLOSE_WALL["size"], CLOSE_WALL["at"])
        return {"ok": True, "scenario": "wall_close", "anchor_id": CLOSE_WALL_ID}

    elif body.scenario == "clear":
        person = None
        removed = [aid for aid in (PERSON_ID, CLOSE_WALL_ID) if aid in live]
        for aid in removed:
            _emit("removed", aid)
        return {"ok": True, "scenario": "clear", "removed": removed}

    else:
        raise HTTPException(
            status_code=400,
            detail=f"Unknown scenario: {body.scenario}. "
                   f"Valid: person_approach, wall_close, clear",
        )
