from __future__ import annotations

"""Preflight checks for container startup.

- ensures data directory exists for SQLite
- checks the configured speech backend can be imported
- prints config summary
"""

import importlib.util
import os
import sys

from eyesonyou.config import settings


def _masked_db_url(db_url: str) -> str:
    if "@" in db_url:
        # Hide password: show scheme + host only
        parts = db_url.split("@")
        return parts[0].split("://")[0] + "://***@" + parts[-1]
    return db_url


def main() -> int:
    os.makedirs("data", exist_ok=True)

    if settings.speech_backend == "pyttsx3" and importlib.util.find_spec("pyttsx3") is None:
        print("Preflight FAILED: SPEECH_BACKEND=pyttsx3 but pyttsx3 is not installed (pip install .[voice])")
        return 1

    print("Preflight OK")
    print(f"DATABASE_URL={_masked_db_url(settings.database_url)}")
    print(f"SPEECH_BACKEND={settings.speech_backend}")
    print(f"SCAN_SOURCE={settings.scan_base_url if settings.scan_source_enabled else 'disabled'}")
    print(f"WARNING_COOLDOWN_S={settings.warning_cooldown_s}")
    print(f"CORS_ORIGINS={settings.cors_origins}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
