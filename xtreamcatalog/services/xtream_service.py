"""Xtream service — upstream calls to the panel's player API, playlist and XMLTV feed.

Every call carries its own timeout and converts network errors, non-2xx
responses and malformed JSON into ``None`` (logged), so callers decide how
a failure degrades.
"""
from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING, Any, Optional

import httpx

from xtreamcatalog.errors import ConfigError
from xtreamcatalog.models.xtream import (
    ACTION_SERIES_INFO,
    EPG_TIMEOUT,
    PLAYLIST_TIMEOUT,
    PROBE_TIMEOUT,
    SERIES_INFO_TIMEOUT,
)

if TYPE_CHECKING:
    from xtreamcatalog.models.config import AddonConfig
    from xtreamcatalog.services.http_client import HttpClientService

logger = logging.getLogger(__name__)


def require_credentials(config: "AddonConfig") -> None:
    if not config.base_url or not config.xtream_username or not config.xtream_password:
        raise ConfigError("Xtream credentials incomplete")
    if not config.base_url.startswith(("http://", "https://")):
        raise ConfigError(f"Invalid Xtream URL: {config.xtream_url!r}")


class XtreamService:
    """Thin async client for one Xtream Codes panel account at a time."""

    def __init__(self, http_client: "HttpClientService"):
        self.http_client = http_client

    @staticmethod
    def _credentials(config: "AddonConfig") -> dict[str, str]:
        return {"username": config.xtream_username, "password": config.xtream_password}

    async def _get(self, url: str, params: dict, timeout: float, label: str) -> Optional[httpx.Response]:
        try:
            client = await self.http_client.get_client()
            start_time = time.time()
            response = await client.get(url, params=params, timeout=timeout)
            elapsed = time.time() - start_time
            if response.status_code != 200:
                logger.warning(f"Fetch {label} failed with status {response.status_code} in {elapsed:.1f}s")
                return None
            logger.debug(f"Fetched {label} in {elapsed:.1f}s")
            return response
        except httpx.TimeoutException:
            logger.error(f"Timeout fetching {label} (limit {timeout:.0f}s)")
        except httpx.HTTPError as e:
            logger.error(f"HTTP error fetching {label}: {e}")
        return None

    async def _get_json(self, url: str, params: dict, timeout: float, label: str) -> Any:
        response = await self._get(url, params, timeout, label)
        if response is None:
            return None
        try:
            return response.json()
        except ValueError as e:
            logger.error(f"Malformed JSON from {label}: {e}")
            return None

    # ------------------------------------------------------------------
    # Player API
    # ------------------------------------------------------------------

    async def probe(self, config: "AddonConfig") -> bool:
        """Lightweight capability check against ``player_api.php``."""
        data = await self._get_json(
            f"{config.base_url}/player_api.php", self._credentials(config), PROBE_TIMEOUT, "probe"
        )
        if not isinstance(data, dict):
            return False
        user_info = data.get("user_info")
        if isinstance(user_info, dict) and str(user_info.get("auth", "1")) == "0":
            logger.warning("Probe: panel rejected the credentials")
            return False
        return True

    async def fetch_action(self, config: "AddonConfig", action: str, timeout: float, **extra) -> Any:
        params = {**self._credentials(config), "action": action, **extra}
        return await self._get_json(f"{config.base_url}/player_api.php", params, timeout, action)

    async def fetch_series_info(self, config: "AddonConfig", series_id: str) -> Optional[dict]:
        data = await self.fetch_action(config, ACTION_SERIES_INFO, SERIES_INFO_TIMEOUT, series_id=series_id)
        return data if isinstance(data, dict) else None

    # ------------------------------------------------------------------
    # Playlist / XMLTV
    # ------------------------------------------------------------------

    async def fetch_playlist(self, config: "AddonConfig") -> Optional[str]:
        params = {**self._credentials(config), "type": "m3u_plus"}
        if config.m3u_output:
            params["output"] = config.m3u_output
        response = await self._get(f"{config.base_url}/get.php", params, PLAYLIST_TIMEOUT, "playlist")
        return response.text if response is not None else None

    async def fetch_epg(self, config: "AddonConfig") -> Optional[bytes]:
        if config.epg_url.strip():
            url, params = config.epg_url.strip(), {}
        else:
            url, params = f"{config.base_url}/xmltv.php", self._credentials(config)
        response = await self._get(url, params, EPG_TIMEOUT, "xmltv")
        return response.content if response is not None else None

    # ------------------------------------------------------------------
    # URL building
    # ------------------------------------------------------------------

    @staticmethod
    def stream_url(config: "AddonConfig", content_type: str, stream_id, ext: str) -> str:
        """Build the upstream playback URL for a stream."""
        host = config.base_url
        username = config.xtream_username
        password = config.xtream_password
        if content_type == "live":
            return f"{host}/live/{username}/{password}/{stream_id}.{ext}"
        elif content_type == "vod":
            return f"{host}/movie/{username}/{password}/{stream_id}.{ext}"
        elif content_type == "series":
            return f"{host}/series/{username}/{password}/{stream_id}.{ext}"
        return f"{host}/{username}/{password}/{stream_id}.{ext}"
