from __future__ import annotations

from sqlalchemy import Boolean, Column, DateTime, String, Text

from eyesonyou.db.session import Base


class Toggle(Base):
    __tablename__ = "toggles"

    key = Column(String, primary_key=True)
    value = Column(Boolean, nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False)


class AlertRecord(Base):
    __tablename__ = "alerts"

    id = Column(String, primary_key=True, index=True)
    ts = Column(DateTime(timezone=True), nullable=False, index=True)
    rule = Column(String, nullable=False)  # HUMAN_STATIC|HUMAN_MOVING|LARGE_OBSTACLE|PROXIMITY|MOVING_OBJECT
    text = Column(Text, nullable=False)
    anchor_id = Column(String, nullable=True)
    delivered = Column(Boolean, nullable=False)  # false when the speech queue was busy
