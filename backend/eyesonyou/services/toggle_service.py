from __future__ import annotations

import logging

from sqlalchemy.orm import Session

from eyesonyou.config import settings
from eyesonyou.db.models import Toggle
from eyesonyou.schemas.toggles import ToggleState, ToggleUpdate
from eyesonyou.utils.time import utc_now

logger = logging.getLogger("eyesonyou.toggles")


def default_toggles() -> ToggleState:
    return ToggleState(
        proximity_warnings=settings.default_proximity_warnings,
        wireframe=settings.default_wireframe,
        ripple=settings.default_ripple,
    )


class ToggleService:
    """Boolean key/value settings owned by the surrounding application.

    The engine never reads these rows itself; callers load them and push
    the resulting ToggleState into EngineService.update_config().
    """

    def load(self, db: Session) -> ToggleState:
        state = default_toggles().model_dump()
        for row in db.query(Toggle).filter(Toggle.key.in_(list(state.keys()))).all():
            state[row.key] = bool(row.value)
        return ToggleState(**state)

    def save(self, db: Session, update: ToggleUpdate) -> ToggleState:
        changes = update.model_dump(exclude_none=True)
        now = utc_now()
        for key, value in changes.items():
            row = db.query(Toggle).filter(Toggle.key == key).first()
            if row is None:
                db.add(Toggle(key=key, value=value, updated_at=now))
            else:
                row.value = value
                row.updated_at = now
        db.commit()
        if changes:
            logger.info("Toggles updated: %s", changes)
        return self.load(db)
