"""Stream service — resolves item and episode ids to playable URLs.

Episode ids look like ``series_<id>:<season>:<episode>``; the two-part form
``series_<id>:<episode stream id>`` addresses a backend episode id directly.
Episode lists are fetched lazily per series (``get_series_info``) and cached
with the same TTL as the catalog.
"""
from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, NamedTuple, Optional

from xtreamcatalog.errors import NotFoundError, UpstreamError
from xtreamcatalog.models.catalog import CatalogSnapshot, ContentKind, Episode
from xtreamcatalog.models.xtream import (
    DEFAULT_EPISODE_EXTENSION,
    EPISODE_SEPARATOR,
    ID_PREFIXES,
)
from xtreamcatalog.services.cache_service import cache_key
from xtreamcatalog.services.catalog_service import CatalogIndex
from xtreamcatalog.services.xtream_service import XtreamService

if TYPE_CHECKING:
    from xtreamcatalog.models.config import AddonConfig
    from xtreamcatalog.services.cache_service import CacheService

logger = logging.getLogger(__name__)


class EpisodeRef(NamedTuple):
    series_item_id: str
    season: Optional[int]
    episode: Optional[int]
    stream_id: Optional[str] = None


def parse_episode_ref(item_id: str) -> Optional[EpisodeRef]:
    """Split an episode id into its parts; ``None`` for non-episode ids."""
    if not item_id.startswith(ID_PREFIXES["series"]) or EPISODE_SEPARATOR not in item_id:
        return None
    parts = item_id.split(EPISODE_SEPARATOR)
    series_item_id = parts[0]
    try:
        if len(parts) == 3:
            season, episode = int(parts[1]), int(parts[2])
            if season < 1 or episode < 1:
                return None
            return EpisodeRef(series_item_id, season, episode)
        if len(parts) == 2 and parts[1]:
            return EpisodeRef(series_item_id, None, None, parts[1])
    except ValueError:
        return None
    return None


def _safe_int(value: Any, default: int = 0) -> int:
    try:
        return int(value)
    except (ValueError, TypeError):
        return default


def parse_series_info(config: "AddonConfig", series_item_id: str, data: dict) -> tuple[Episode, ...]:
    """Decode a ``get_series_info`` payload into sorted episodes.

    ``episodes`` is normally keyed by season; some panels send a flat list.
    """
    raw = data.get("episodes") or {}
    if isinstance(raw, list):
        groups = [(None, raw)]
    elif isinstance(raw, dict):
        groups = list(raw.items())
    else:
        groups = []

    episodes: dict[tuple[int, int], Episode] = {}
    for season_key, season_episodes in groups:
        if not isinstance(season_episodes, list):
            continue
        for ep in season_episodes:
            if not isinstance(ep, dict) or ep.get("id") in (None, ""):
                continue
            season = _safe_int(ep.get("season") or season_key, 1) or 1
            number = _safe_int(ep.get("episode_num") or ep.get("episode"), 0)
            if number < 1:
                continue
            stream_id = str(ep["id"])
            ext = str(ep.get("container_extension") or DEFAULT_EPISODE_EXTENSION)
            info = ep.get("info") if isinstance(ep.get("info"), dict) else {}
            episodes.setdefault((season, number), Episode(
                id=f"{series_item_id}{EPISODE_SEPARATOR}{season}{EPISODE_SEPARATOR}{number}",
                series_id=series_item_id,
                season=season,
                episode=number,
                title=str(ep.get("title") or f"Episode {number}"),
                url=XtreamService.stream_url(config, "series", stream_id, ext),
                thumbnail=info.get("movie_image") or info.get("episode_image") or info.get("cover_big"),
                released=ep.get("releasedate") or info.get("releasedate") or info.get("air_date"),
                stream_id=stream_id,
            ))
    return tuple(episodes[key] for key in sorted(episodes))


class StreamService:
    """Maps content ids to playback URLs."""

    def __init__(self, xtream_service: "XtreamService", episode_cache: "CacheService"):
        self.xtream_service = xtream_service
        self.episode_cache = episode_cache

    async def episodes(
        self,
        config: "AddonConfig",
        snapshot: CatalogSnapshot,
        series_item_id: str,
    ) -> Optional[tuple[Episode, ...]]:
        """Episodes of a series, or ``None`` when the backend can't provide them."""
        if snapshot.source == "m3u":
            return snapshot.episodes.get(series_item_id, ())

        series_id = series_item_id[len(ID_PREFIXES["series"]):]
        key = f"{cache_key(config.base_url, config.xtream_username)}{EPISODE_SEPARATOR}{series_id}"

        async def load() -> tuple[Episode, ...]:
            data = await self.xtream_service.fetch_series_info(config, series_id)
            if data is None:
                raise UpstreamError(f"Series info unavailable for {series_id}")
            episodes = parse_series_info(config, series_item_id, data)
            logger.info(f"Fetched {len(episodes)} episodes for series {series_id}")
            return episodes

        try:
            return await self.episode_cache.get_or_load(key, load, ttl=config.cache_ttl or None)
        except UpstreamError as e:
            logger.warning(str(e))
            return None

    async def resolve(
        self,
        config: "AddonConfig",
        snapshot: CatalogSnapshot,
        item_id: str,
        index: Optional[CatalogIndex] = None,
    ) -> str:
        """Playback URL for *item_id*; raises ``NotFoundError`` when unknown."""
        index = index or CatalogIndex(snapshot)
        ref = parse_episode_ref(item_id)
        if ref is not None:
            return await self._resolve_episode(config, snapshot, index, ref, item_id)

        item = index.get(item_id)
        if item is None:
            raise NotFoundError(f"Unknown id {item_id}")
        if item.kind is ContentKind.SERIES or not item.url:
            raise NotFoundError(f"{item_id} is a series; request an episode id instead")
        return item.url

    async def _resolve_episode(
        self,
        config: "AddonConfig",
        snapshot: CatalogSnapshot,
        index: CatalogIndex,
        ref: EpisodeRef,
        item_id: str,
    ) -> str:
        series = index.get(ref.series_item_id)
        if series is None or series.kind is not ContentKind.SERIES:
            raise NotFoundError(f"Unknown series {ref.series_item_id}")

        episodes = await self.episodes(config, snapshot, ref.series_item_id)
        if episodes is None:
            if config.fallback_episode_urls and ref.season is not None:
                return self.fallback_episode_url(config, series.series_id or "", ref.season, ref.episode)
            raise NotFoundError(f"No episode data for {ref.series_item_id}")

        for ep in episodes:
            if ref.stream_id is not None:
                if ep.stream_id == ref.stream_id and ep.url:
                    return ep.url
            elif (ep.season, ep.episode) == (ref.season, ref.episode) and ep.url:
                return ep.url
        raise NotFoundError(f"Unknown episode {item_id}")

    @staticmethod
    def fallback_episode_url(config: "AddonConfig", series_id: str, season: int, episode: int) -> str:
        return (
            f"{config.base_url}/series/{config.xtream_username}/{config.xtream_password}/"
            f"{series_id}/{season}/{episode}.{DEFAULT_EPISODE_EXTENSION}"
        )
