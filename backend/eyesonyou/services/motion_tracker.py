from __future__ import annotations

import logging
from typing import Dict, Iterable, Optional

import numpy as np

from eyesonyou.config import settings
from eyesonyou.schemas.geometry import Vec3
from eyesonyou.schemas.motion import MotionKind, MotionSignal

logger = logging.getLogger("eyesonyou.motion")


# --- Motion scoring ---
SCORE_DECAY = 0.8
DISPLACEMENT_GAIN = 5.0
MOVING_HUMAN_SCORE = 1.0
MOVING_OBJECT_SCORE = 2.0
HUMAN_VOLUME_RANGE = (0.05, 2.0)  # cubic metres

# --- Static human shape (metres) ---
HUMAN_HEIGHT_RANGE = (1.2, 2.2)
HUMAN_WIDTH_RANGE = (0.25, 1.0)
HUMAN_DEPTH_RANGE = (0.1, 0.5)


def is_human_shape(dimensions: Vec3) -> bool:
    width, height, depth = dimensions
    return (
        HUMAN_HEIGHT_RANGE[0] < height < HUMAN_HEIGHT_RANGE[1]
        and HUMAN_WIDTH_RANGE[0] < width < HUMAN_WIDTH_RANGE[1]
        and HUMAN_DEPTH_RANGE[0] < depth < HUMAN_DEPTH_RANGE[1]
    )


def is_human_sized(volume: float) -> bool:
    return HUMAN_VOLUME_RANGE[0] < volume < HUMAN_VOLUME_RANGE[1]


class MotionTracker:
    """Per-anchor motion smoothing plus the human-shape confirmation timer.

    All maps are keyed by anchor id and must only hold ids the registry
    still knows; the engine calls prune() every tick and purge() on removal.
    """

    def __init__(self, confirmation_s: Optional[float] = None):
        self.confirmation_s = settings.human_confirmation_s if confirmation_s is None else confirmation_s
        self._positions: Dict[str, np.ndarray] = {}
        self._scores: Dict[str, float] = {}
        self._volumes: Dict[str, float] = {}
        self._shape_first_seen: Dict[str, float] = {}
        self._confirmed: set[str] = set()

    # ------------------------------------------------------------
    # Observation
    # ------------------------------------------------------------
    def observe(
        self,
        anchor_id: str,
        position: Vec3,
        volume_hint: float,
        now: float,
        dimensions: Optional[Vec3] = None,
    ) -> MotionSignal:
        pos = np.asarray(position, dtype=float)

        # Volume is estimated once and reused for the anchor's lifetime
        volume = self._volumes.setdefault(anchor_id, float(volume_hint))

        score = self._scores.get(anchor_id, 0.0)
        kind: Optional[MotionKind] = None
        prev = self._positions.get(anchor_id)
        if prev is not None:
            movement = float(np.linalg.norm(pos - prev))
            score = score * SCORE_DECAY + movement * DISPLACEMENT_GAIN
            self._scores[anchor_id] = score

            if score > MOVING_HUMAN_SCORE and is_human_sized(volume):
                kind = "MOVING_HUMAN"
            elif score > MOVING_OBJECT_SCORE:
                kind = "MOVING_OBJECT"
        self._positions[anchor_id] = pos

        confirmed = False
        if dimensions is not None:
            confirmed = self.observe_shape(anchor_id, dimensions, now)

        return MotionSignal(
            anchor_id=anchor_id,
            position=(float(pos[0]), float(pos[1]), float(pos[2])),
            score=score,
            volume=volume,
            kind=kind,
            human_confirmed=confirmed,
        )

    def observe_shape(self, anchor_id: str, dimensions: Vec3, now: float) -> bool:
        """Advance the human-shape timer; True while confirmed and still matching.

        Confirmation happens once per anchor lifetime. Dropping out of the
        shape before confirmation restarts the timer.
        """
        if not is_human_shape(dimensions):
            if anchor_id not in self._confirmed:
                self._shape_first_seen.pop(anchor_id, None)
            return False

        if anchor_id in self._confirmed:
            return True

        first_seen = self._shape_first_seen.setdefault(anchor_id, now)
        if now - first_seen >= self.confirmation_s:
            self._confirmed.add(anchor_id)
            logger.info("Human shape confirmed for anchor %s after %.2fs", anchor_id, now - first_seen)
            return True
        return False

    # ------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------
    def score(self, anchor_id: str) -> float:
        return self._scores.get(anchor_id, 0.0)

    def is_confirmed(self, anchor_id: str) -> bool:
        return anchor_id in self._confirmed

    def tracked_ids(self) -> set[str]:
        return (
            set(self._positions)
            | set(self._scores)
            | set(self._volumes)
            | set(self._shape_first_seen)
            | self._confirmed
        )

    # ------------------------------------------------------------
    # Cleanup
    # ------------------------------------------------------------
    def purge(self, anchor_id: str) -> None:
        self._positions.pop(anchor_id, None)
        self._scores.pop(anchor_id, None)
        self._volumes.pop(anchor_id, None)
        self._shape_first_seen.pop(anchor_id, None)
        self._confirmed.discard(anchor_id)

    def prune(self, live_ids: Iterable[str]) -> None:
        live = set(live_ids)
        for anchor_id in self.tracked_ids() - live:
            self.purge(anchor_id)
