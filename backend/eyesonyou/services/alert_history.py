from __future__ import annotations

from typing import List, Optional

from sqlalchemy.orm import Session

from eyesonyou.db.models import AlertRecord
from eyesonyou.schemas.alerts import AlertDecision, AlertOut
from eyesonyou.utils.ids import new_id
from eyesonyou.utils.time import utc_now


class AlertHistoryService:
    """Stores every emitted warning, spoken or dropped by a busy queue."""

    def add(self, db: Session, decision: AlertDecision, delivered: bool) -> AlertRecord:
        row = AlertRecord(
            id=new_id("alr"),
            ts=utc_now(),
            rule=decision.rule or "UNKNOWN",
            text=decision.text or "",
            anchor_id=decision.anchor_id,
            delivered=delivered,
        )
        db.add(row)
        return row

    def list(
        self,
        db: Session,
        *,
        rule: Optional[str] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> List[AlertOut]:
        q = db.query(AlertRecord)
        if rule:
            q = q.filter(AlertRecord.rule == rule)
        rows = q.order_by(AlertRecord.ts.desc()).offset(offset).limit(limit).all()
        return [
            AlertOut(id=r.id, ts=r.ts, rule=r.rule, text=r.text, anchor_id=r.anchor_id, delivered=r.delivered)
            for r in rows
        ]
