from __future__ import annotations

import secrets
from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def generate_secret() -> str:
    """Generate a secure random token."""
    return secrets.token_hex(32)


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # ------------------------------------------------------------
    # Server
    # ------------------------------------------------------------
    backend_host: str = "0.0.0.0"
    backend_port: int = 8080
    environment: str = "development"  # development | staging | production
    log_level: str = "INFO"

    # ------------------------------------------------------------
    # Database (toggles + alert history only, no spatial maps)
    # ------------------------------------------------------------
    database_url: str = "sqlite:///./data/eyesonyou.db"

    # ------------------------------------------------------------
    # Authentication (JWT)
    # ------------------------------------------------------------
    # In production, MUST be set via env var JWT_SECRET
    jwt_secret: str = Field(default_factory=generate_secret)
    jwt_issuer: str = "eyesonyou"
    jwt_audience: str = "eyesonyou-ui"
    access_token_expire_minutes: int = 720
    jwt_algorithm: str = "HS256"

    # ------------------------------------------------------------
    # Scan source
    # ------------------------------------------------------------
    # Polled only when scan_source_enabled is true, e.g. the mock scanner:
    #   uvicorn sim.mock_scan.server:app --port 8090
    scan_source_enabled: bool = False
    scan_base_url: str = "http://127.0.0.1:8090"
    scan_poll_interval_s: float = 0.2
    scan_token: str = ""  # sent as X-Scan-Token when set

    # ------------------------------------------------------------
    # CORS
    # ------------------------------------------------------------
    cors_origins: str = "http://localhost:3000"

    # ------------------------------------------------------------
    # Speech
    # ------------------------------------------------------------
    speech_backend: str = "log"  # log | pyttsx3
    speech_rate_wpm: int = 180
    speech_volume: float = 1.0
    speech_grace_s: float = 0.3
    announce_mode_changes: bool = True

    # Start a mapping session as soon as the API is up
    auto_start_mapping: bool = True

    # ------------------------------------------------------------
    # Alert engine
    # ------------------------------------------------------------
    warning_cooldown_s: float = 3.0
    proximity_threshold_m: float = 2.0
    min_warning_distance_m: float = 0.1
    large_obstacle_max_distance_m: float = 1.5
    large_obstacle_min_area_m2: float = 1.0
    max_reported_distance_cm: int = 200

    # ------------------------------------------------------------
    # Motion tracking
    # ------------------------------------------------------------
    motion_tick_s: float = 0.5
    motion_wake_s: float = 0.1
    human_confirmation_s: float = 1.0

    # ------------------------------------------------------------
    # Toggle defaults (used until a persisted value exists)
    # ------------------------------------------------------------
    default_proximity_warnings: bool = True
    default_wireframe: bool = False
    default_ripple: bool = False

    @property
    def cors_origins_list(self) -> List[str]:
        return [x.strip() for x in self.cors_origins.split(",") if x.strip()]

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"

    def validate_runtime(self) -> None:
        """Fail fast on missing critical config in production."""
        import os
        if self.is_production and not os.environ.get("JWT_SECRET"):
            raise RuntimeError("Missing required environment variables in production: JWT_SECRET")


settings = Settings()
settings.validate_runtime()
