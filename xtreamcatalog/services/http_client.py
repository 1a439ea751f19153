"""Upstream HTTP access — one pooled httpx.AsyncClient for every panel call."""
from __future__ import annotations

import logging
from typing import Optional

import httpx

from xtreamcatalog.models.xtream import ADDON_VERSION

logger = logging.getLogger(__name__)

# Some panels reject requests without a player-like agent
PANEL_HEADERS = {
    "User-Agent": f"xtreamcatalog/{ADDON_VERSION} (Xtream catalog addon)",
    "Accept": "application/json, audio/x-mpegurl, application/xml;q=0.9, */*;q=0.8",
    "Accept-Language": "en-US,en;q=0.9",
}

# Fallback only; XtreamService passes its own per-action timeout
DEFAULT_TIMEOUT = httpx.Timeout(connect=10.0, read=60.0, write=10.0, pool=10.0)
POOL_LIMITS = httpx.Limits(max_connections=100, max_keepalive_connections=20)


class HttpClientService:
    """Owns the panel-facing AsyncClient; built on first use, reopened after close.

    ``transport`` swaps the network layer, e.g. for an ``httpx.MockTransport``.
    """

    def __init__(self, transport: Optional[httpx.AsyncBaseTransport] = None):
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    @property
    def is_open(self) -> bool:
        return self._client is not None and not self._client.is_closed

    async def get_client(self) -> httpx.AsyncClient:
        if not self.is_open:
            self._client = httpx.AsyncClient(
                headers=PANEL_HEADERS,
                timeout=DEFAULT_TIMEOUT,
                limits=POOL_LIMITS,
                follow_redirects=True,
                transport=self._transport,
            )
            logger.debug("Opened upstream HTTP client")
        return self._client

    async def close(self):
        if self.is_open:
            await self._client.aclose()
            logger.info("Upstream HTTP client closed")
        self._client = None
