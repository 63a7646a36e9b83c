from __future__ import annotations

import logging
from typing import Callable, Dict, Iterable, List, Optional

from eyesonyou.policies.alert_rules import evaluate_alerts
from eyesonyou.schemas.alerts import AlertCandidate, AlertDecision
from eyesonyou.schemas.geometry import Anchor
from eyesonyou.schemas.motion import MotionSignal
from eyesonyou.services.cooldown_gate import CooldownGate
from eyesonyou.services.speech_queue import SpeechQueue

logger = logging.getLogger("eyesonyou.alerts")

# (decision, delivered) -> None
AlertListener = Callable[[AlertDecision, bool], None]


def candidate_for(anchor: Anchor, signal: Optional[MotionSignal] = None, human_confirmed: bool = False) -> AlertCandidate:
    bbox = anchor.bbox
    return AlertCandidate(
        anchor_id=anchor.id,
        label=anchor.label,
        distance_m=anchor.distance_m,
        area_m2=bbox.width * bbox.height,
        volume_m3=bbox.volume,
        human_confirmed=human_confirmed or bool(signal and signal.human_confirmed),
        motion=signal.kind if signal else None,
    )


class ProximityAlertEngine:
    """Decides which single warning, if any, is spoken.

    Every emission consumes the shared CooldownGate, whether or not the
    speech queue was free to take the warning.
    """

    def __init__(self, speech: SpeechQueue, gate: Optional[CooldownGate] = None, enabled: bool = True):
        self.speech = speech
        self.gate = gate or CooldownGate()
        self.enabled = enabled
        self._listeners: List[AlertListener] = []

    def add_listener(self, listener: AlertListener) -> None:
        self._listeners.append(listener)

    def on_geometry(self, anchor: Anchor, human_confirmed: bool, now: float) -> Optional[AlertDecision]:
        """Evaluate a freshly added or updated anchor."""
        return self._decide([candidate_for(anchor, human_confirmed=human_confirmed)], now, include_proximity=True)

    def on_motion(self, anchors: Iterable[Anchor], signals: Dict[str, MotionSignal], now: float) -> Optional[AlertDecision]:
        """Evaluate the motion channel for every live anchor on a tracker tick."""
        cands = [candidate_for(a, signals.get(a.id)) for a in anchors]
        return self._decide(cands, now, include_proximity=False)

    def _decide(self, candidates: List[AlertCandidate], now: float, *, include_proximity: bool) -> Optional[AlertDecision]:
        if not self.enabled:
            return None
        if not self.gate.is_open(now):
            return None

        decision = evaluate_alerts(candidates, include_proximity=include_proximity)
        if not decision.emit:
            return None

        self.gate.try_consume(now)
        delivered = self.speech.enqueue_warning(decision.text) is not None
        logger.info("Warning %s (%s, delivered=%s): %s", decision.rule, decision.anchor_id, delivered, decision.text)

        for listener in list(self._listeners):
            try:
                listener(decision, delivered)
            except Exception:
                logger.exception("Alert listener failed")
        return decision
