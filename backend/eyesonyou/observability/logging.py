from __future__ import annotations

import logging

from eyesonyou.config import settings

LOG_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"


def configure_logging(level: str | None = None) -> None:
    """Configure root logging once for the process.

    Uvicorn installs its own handlers; we only attach ours when the root
    logger has none, so repeated imports (tests, reload) stay quiet.
    """
    root = logging.getLogger()
    root.setLevel((level or settings.log_level).upper())
    if not root.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root.addHandler(handler)

    # httpx logs every poll of the scan source at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)
