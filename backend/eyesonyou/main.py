from __future__ import annotations

import logging
import time
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text

from eyesonyou import deps
from eyesonyou.config import settings
from eyesonyou.observability.logging import configure_logging
from eyesonyou.db.session import SessionLocal, engine, init_db
from eyesonyou.api.routes_health import router as health_router
from eyesonyou.api.routes_anchors import router as anchors_router
from eyesonyou.api.routes_engine import router as engine_router
from eyesonyou.api.routes_settings import router as settings_router
from eyesonyou.api.routes_speech import router as speech_router
from eyesonyou.api.routes_alerts import router as alerts_router
from eyesonyou.api.routes_ws import router as ws_router, hub
from eyesonyou.auth.routes import router as auth_router
from eyesonyou.schemas.toggles import ToggleState
from eyesonyou.services.engine_service import EngineService
from eyesonyou.services.toggle_service import ToggleService, default_toggles

configure_logging()
logger = logging.getLogger("eyesonyou")


def init_database(max_retries: int = 5, retry_delay: int = 2) -> bool:
    """Initialize database with retry logic."""
    for attempt in range(max_retries):
        try:
            with engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            init_db()
            logger.info("Database initialized")
            return True
        except Exception as e:
            logger.warning("Database connection attempt %d/%d failed: %s", attempt + 1, max_retries, e)
            if attempt < max_retries - 1:
                time.sleep(retry_delay)
    # Don't crash: the engine runs on default toggles and alerts go unrecorded
    logger.error("Failed to connect to database after all retries")
    return False


def load_toggles() -> ToggleState:
    db = SessionLocal()
    try:
        return ToggleService().load(db)
    except Exception as e:
        logger.warning("Could not load toggles, using defaults: %s", e)
        return default_toggles()
    finally:
        db.close()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events."""
    logger.info("Starting EyesOnYou engine API")
    logger.info("   Environment: %s", settings.environment)
    logger.info("   Speech: %s", settings.speech_backend)
    logger.info("   Scan source: %s", settings.scan_base_url if settings.scan_source_enabled else "disabled")

    db_ok = init_database()

    await engine_service.open(load_toggles() if db_ok else default_toggles())
    if settings.auto_start_mapping:
        await engine_service.start_mapping()

    yield

    logger.info("Shutting down...")
    await engine_service.close()


app = FastAPI(
    title="EyesOnYou Engine API",
    version="0.1.0",
    lifespan=lifespan,
)


@app.get("/")
def root():
    return {
        "name": "EyesOnYou Engine API",
        "status": "ok",
        "docs": "/docs",
        "health": "/health",
    }


app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Routers
app.include_router(health_router)
app.include_router(auth_router)
app.include_router(engine_router)
app.include_router(anchors_router)
app.include_router(settings_router)
app.include_router(speech_router)
app.include_router(alerts_router)
app.include_router(ws_router)

# Engine singleton, shared with the routers through deps
engine_service = EngineService()
engine_service.bind_broadcaster(hub.broadcast)
deps.engine_svc = engine_service
