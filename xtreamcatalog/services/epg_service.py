"""EPG service — best-effort XMLTV parsing for current/next programme info.

Schedule data only decorates channel metadata; any failure leaves the
channel without a guide and never fails a catalog request.
"""
from __future__ import annotations

import io
import logging
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Optional

from lxml import etree

from xtreamcatalog.errors import UpstreamError
from xtreamcatalog.services.cache_service import cache_key

if TYPE_CHECKING:
    from xtreamcatalog.models.config import AddonConfig
    from xtreamcatalog.services.cache_service import CacheService
    from xtreamcatalog.services.xtream_service import XtreamService

logger = logging.getLogger(__name__)

Programme = dict  # {"start": datetime, "stop": datetime, "title": str, "desc": str}


def parse_xmltv_time(value: str) -> Optional[datetime]:
    """Parse ``YYYYmmddHHMMSS [+HHMM]``; naive times are taken as UTC."""
    value = (value or "").strip()
    if not value:
        return None
    for fmt in ("%Y%m%d%H%M%S %z", "%Y%m%d%H%M%S%z", "%Y%m%d%H%M%S"):
        try:
            parsed = datetime.strptime(value, fmt)
        except ValueError:
            continue
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return parsed
    return None


def parse_xmltv(data: bytes) -> dict[str, list[Programme]]:
    """Programmes per lower-cased channel id, sorted by start time."""
    parser = etree.XMLParser(recover=True, huge_tree=True)
    try:
        root = etree.parse(io.BytesIO(data), parser).getroot()
    except etree.XMLSyntaxError as e:
        logger.error(f"Error parsing XMLTV: {e}")
        return {}
    if root is None:
        return {}

    guide: dict[str, list[Programme]] = {}
    for programme in root.iter("programme"):
        channel = (programme.get("channel") or "").strip().lower()
        start = parse_xmltv_time(programme.get("start", ""))
        stop = parse_xmltv_time(programme.get("stop", ""))
        if not channel or start is None or stop is None:
            continue
        guide.setdefault(channel, []).append({
            "start": start,
            "stop": stop,
            "title": (programme.findtext("title") or "").strip(),
            "desc": (programme.findtext("desc") or "").strip(),
        })
    for programmes in guide.values():
        programmes.sort(key=lambda p: p["start"])
    return guide


def now_and_next(
    guide: dict[str, list[Programme]],
    channel_id: Optional[str],
    now: Optional[datetime] = None,
) -> tuple[Optional[Programme], Optional[Programme]]:
    if not channel_id:
        return None, None
    now = now or datetime.now(timezone.utc)
    current = upcoming = None
    for programme in guide.get(channel_id.strip().lower(), []):
        if programme["start"] <= now < programme["stop"]:
            current = programme
        elif programme["start"] >= now:
            upcoming = programme
            break
    return current, upcoming


class EpgService:
    """Fetches and caches one parsed guide per backend account."""

    def __init__(self, xtream_service: "XtreamService", epg_cache: "CacheService"):
        self.xtream_service = xtream_service
        self.epg_cache = epg_cache

    async def get_guide(self, config: "AddonConfig") -> dict[str, list[Programme]]:
        if not config.enable_epg:
            return {}
        key = cache_key(config.epg_url or config.base_url, config.xtream_username)

        async def load() -> dict[str, list[Programme]]:
            data = await self.xtream_service.fetch_epg(config)
            if data is None:
                raise UpstreamError("EPG unavailable")
            guide = parse_xmltv(data)
            logger.info(f"Parsed EPG: {len(guide)} channels")
            return guide

        try:
            return await self.epg_cache.get_or_load(key, load)
        except UpstreamError as e:
            logger.warning(str(e))
            return {}

    async def describe(self, config: "AddonConfig", channel_id: Optional[str]) -> Optional[str]:
        """Human-readable now/next line for a channel, if the guide has one."""
        guide = await self.get_guide(config)
        current, upcoming = now_and_next(guide, channel_id)
        parts = []
        if current:
            parts.append(f"Now: {current['title']} ({current['start']:%H:%M}-{current['stop']:%H:%M})")
        if upcoming:
            parts.append(f"Next: {upcoming['title']} ({upcoming['start']:%H:%M})")
        return " | ".join(parts) or None
