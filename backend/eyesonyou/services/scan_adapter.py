from __future__ import annotations

import httpx
from typing import Any, Dict, Optional

from eyesonyou.config import settings


class ScanAdapter:
    """Minimal HTTP adapter for a scene-reconstruction source.

    The source exposes:
      - GET  /anchors/updates?cursor=N -> {"cursor": M, "events": [...]}
    """

    def __init__(self, base_url: Optional[str] = None):
        self.base_url = (base_url or settings.scan_base_url).rstrip("/")
        headers = {"X-Scan-Token": settings.scan_token} if settings.scan_token else None
        self._client = httpx.AsyncClient(timeout=5.0, headers=headers)

    async def get_updates(self, cursor: int) -> Dict[str, Any]:
        r = await self._client.get(f"{self.base_url}/anchors/updates", params={"cursor": cursor})
        r.raise_for_status()
        return r.json()

    async def close(self) -> None:
        await self._client.aclose()
