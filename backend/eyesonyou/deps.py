from __future__ import annotations

from typing import Iterator

from sqlalchemy.orm import Session

from eyesonyou.db.session import SessionLocal
from eyesonyou.services.engine_service import EngineService

# Injected by main (simple shared singleton)
engine_svc: EngineService | None = None


def get_db() -> Iterator[Session]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_engine_svc() -> EngineService:
    assert engine_svc is not None, "EngineService not initialized"
    return engine_svc
