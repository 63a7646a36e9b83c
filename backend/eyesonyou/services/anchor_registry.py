from __future__ import annotations

import logging
from typing import Callable, Dict, List, Optional

from eyesonyou.policies.classification import classify, label_for
from eyesonyou.schemas.geometry import Anchor, GeometryEvent, identity_transform
from eyesonyou.utils.time import Clock, monotonic

logger = logging.getLogger("eyesonyou.registry")

RemovalListener = Callable[[str], None]


class AnchorRegistry:
    """Owns the live anchor set.

    Every mutation goes through apply(). Readers get copies from snapshot()
    or get(); nothing handed out aliases the registry's own objects.
    """

    def __init__(self, clock: Clock = monotonic):
        self._anchors: Dict[str, Anchor] = {}
        self._removal_listeners: List[RemovalListener] = []
        self._clock = clock

    def add_removal_listener(self, listener: RemovalListener) -> None:
        """Register a hook that purges derived state for a removed anchor id."""
        self._removal_listeners.append(listener)

    def __contains__(self, anchor_id: str) -> bool:
        return anchor_id in self._anchors

    def __len__(self) -> int:
        return len(self._anchors)

    def ids(self) -> List[str]:
        return list(self._anchors.keys())

    def get(self, anchor_id: str) -> Optional[Anchor]:
        a = self._anchors.get(anchor_id)
        return a.model_copy(deep=True) if a else None

    def snapshot(self) -> List[Anchor]:
        return [a.model_copy(deep=True) for a in self._anchors.values()]

    def apply(self, event: GeometryEvent, now: Optional[float] = None) -> Optional[Anchor]:
        """Apply one scan event.

        Returns a copy of the added/updated anchor, or None when the event
        removed an anchor or was ignored.
        """
        now = self._clock() if now is None else now

        if event.kind == "removed":
            self._remove(event.anchor_id)
            return None

        if event.kind == "added" and event.anchor_id in self._anchors:
            logger.info("Duplicate add for anchor %s; applying as update", event.anchor_id)
            return self._update(event, now)

        if event.kind == "added":
            return self._add(event, now)
        return self._update(event, now)

    def _add(self, event: GeometryEvent, now: float) -> Anchor:
        bbox = event.bounding_box()
        category = classify(bbox)
        anchor = Anchor(
            id=event.anchor_id,
            bbox=bbox,
            world_transform=event.world_transform or identity_transform(),
            category=category,
            label=label_for(category),
            created_at=now,
            updated_at=now,
        )
        self._anchors[anchor.id] = anchor
        logger.debug("Anchor added: %s (%s)", anchor.id, category)
        return anchor.model_copy(deep=True)

    def _update(self, event: GeometryEvent, now: float) -> Optional[Anchor]:
        anchor = self._anchors.get(event.anchor_id)
        if anchor is None:
            logger.debug("Update for unknown anchor %s ignored", event.anchor_id)
            return None

        # Geometry is replaced, never merged
        anchor.bbox = event.bounding_box()
        if event.world_transform is not None:
            anchor.world_transform = event.world_transform
        anchor.category = classify(anchor.bbox)
        anchor.label = label_for(anchor.category)
        anchor.updated_at = now
        anchor.revision += 1
        return anchor.model_copy(deep=True)

    def _remove(self, anchor_id: str) -> None:
        if self._anchors.pop(anchor_id, None) is None:
            logger.debug("Remove for unknown anchor %s ignored", anchor_id)
            return
        for listener in self._removal_listeners:
            listener(anchor_id)
        logger.debug("Anchor removed: %s", anchor_id)

    def clear(self) -> None:
        for anchor_id in list(self._anchors.keys()):
            self._remove(anchor_id)
