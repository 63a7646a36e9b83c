from __future__ import annotations

from typing import Iterable, List, Optional

from eyesonyou.config import settings
from eyesonyou.schemas.alerts import AlertCandidate, AlertDecision, AlertRule


# --- Alert parameters ---
PROXIMITY_THRESHOLD_M = settings.proximity_threshold_m
MIN_WARNING_DISTANCE_M = settings.min_warning_distance_m
LARGE_OBSTACLE_MAX_DISTANCE_M = settings.large_obstacle_max_distance_m
LARGE_OBSTACLE_MIN_AREA_M2 = settings.large_obstacle_min_area_m2
MAX_REPORTED_DISTANCE_CM = settings.max_reported_distance_cm

# Highest priority first
RULE_ORDER: List[AlertRule] = [
    "HUMAN_STATIC",
    "HUMAN_MOVING",
    "LARGE_OBSTACLE",
    "PROXIMITY",
    "MOVING_OBJECT",
]


def to_centimeters(distance_m: float) -> int:
    """Whole centimetres, truncated."""
    return int(distance_m * 100)


def _nearest(cands: List[AlertCandidate]) -> Optional[AlertCandidate]:
    return min(cands, key=lambda c: c.distance_m) if cands else None


def _decision(rule: AlertRule, c: AlertCandidate, text: str) -> AlertDecision:
    return AlertDecision(
        emit=True,
        rule=rule,
        text=text,
        anchor_id=c.anchor_id,
        distance_cm=to_centimeters(c.distance_m),
    )


def evaluate_alerts(candidates: Iterable[AlertCandidate], *, include_proximity: bool = True) -> AlertDecision:
    """Pick the single warning to speak for a batch of anchors.

    Rules are tried in RULE_ORDER; the nearest anchor wins within a rule.
    Geometry updates evaluate with include_proximity=True, the motion tick
    with include_proximity=False so that static clutter is only reported
    when the scan actually changes it.
    """
    # Zero-volume anchors never produce a warning
    live = [c for c in candidates if c.volume_m3 > 0.0]
    if not live:
        return AlertDecision()

    # --- HUMAN_STATIC ---
    c = _nearest([c for c in live if c.human_confirmed])
    if c:
        return _decision("HUMAN_STATIC", c, "Human detected nearby")

    # --- HUMAN_MOVING ---
    c = _nearest([c for c in live if c.motion == "MOVING_HUMAN" and c.distance_m < PROXIMITY_THRESHOLD_M])
    if c:
        cm = to_centimeters(c.distance_m)
        return _decision("HUMAN_MOVING", c, f"Moving person detected {cm} centimeters away")

    if include_proximity:
        # --- LARGE_OBSTACLE ---
        c = _nearest([
            c for c in live
            if c.area_m2 > LARGE_OBSTACLE_MIN_AREA_M2
            and MIN_WARNING_DISTANCE_M < c.distance_m < LARGE_OBSTACLE_MAX_DISTANCE_M
        ])
        if c:
            cm = to_centimeters(c.distance_m)
            return _decision("LARGE_OBSTACLE", c, f"{c.label} detected {cm} centimeters ahead")

        # --- PROXIMITY ---
        c = _nearest([
            c for c in live
            if MIN_WARNING_DISTANCE_M < c.distance_m < PROXIMITY_THRESHOLD_M
            and to_centimeters(c.distance_m) <= MAX_REPORTED_DISTANCE_CM
        ])
        if c:
            cm = to_centimeters(c.distance_m)
            return _decision("PROXIMITY", c, f"{c.label} detected approximately {cm} centimeters away")

    # --- MOVING_OBJECT ---
    c = _nearest([c for c in live if c.motion == "MOVING_OBJECT" and c.distance_m < PROXIMITY_THRESHOLD_M])
    if c:
        cm = to_centimeters(c.distance_m)
        return _decision("MOVING_OBJECT", c, f"Moving object detected {cm} centimeters away")

    return AlertDecision()
