"""Loader service — builds a CatalogSnapshot from an Xtream panel.

Primary path: probe ``player_api.php``, then fetch the three listings and
three category tables concurrently.  Category tables are optional (a failure
leaves raw labels defaulted); the live and VOD listings are required.  When
the probe or a required listing fails, the ``get.php`` playlist is tried
instead.  If that fails too the load raises ``UpstreamError`` and nothing is
cached.
"""
from __future__ import annotations

import asyncio
import logging
import re
import time
from typing import TYPE_CHECKING, Any, Iterable, Optional

from xtreamcatalog.errors import UpstreamError
from xtreamcatalog.models.catalog import CatalogSnapshot, ContentItem, ContentKind, Episode
from xtreamcatalog.models.xtream import (
    ACTION_LIVE_CATEGORIES,
    ACTION_LIVE_STREAMS,
    ACTION_SERIES,
    ACTION_SERIES_CATEGORIES,
    ACTION_VOD_CATEGORIES,
    ACTION_VOD_STREAMS,
    CATEGORY_TIMEOUT,
    DEFAULT_RAW_CATEGORIES,
    DEFAULT_VOD_EXTENSION,
    EPISODE_SEPARATOR,
    ID_PREFIXES,
    LISTING_TIMEOUT,
    SERIES_LISTING_TIMEOUT,
)
from xtreamcatalog.services.category_service import distinct_categories, normalize_category
from xtreamcatalog.services.m3u_service import (
    PlaylistEntry,
    entry_kind,
    parse_episode_marker,
    parse_m3u,
    series_base_name,
    short_hash,
)
from xtreamcatalog.services.xtream_service import require_credentials

if TYPE_CHECKING:
    from xtreamcatalog.models.config import AddonConfig
    from xtreamcatalog.services.xtream_service import XtreamService

logger = logging.getLogger(__name__)

_YEAR_RE = re.compile(r"(\d{4})")
_URL_STREAM_ID_RE = re.compile(r"/(\d+)(?:\.[A-Za-z0-9]+)?$")
_MISSING_RATINGS = ("", "n/a", "na", "none", "null")


# ---------------------------------------------------------------------------
# Record decoding
# ---------------------------------------------------------------------------

def decode_category_table(data: Any) -> dict[str, str]:
    """Build ``category_id -> category_name`` from either backend shape.

    Panels return an array of ``{category_id, category_name}`` records or an
    object keyed by id whose values are records or bare names.  Records with
    missing fields are skipped.
    """
    cat_map: dict[str, str] = {}
    if isinstance(data, list):
        for cat in data:
            if isinstance(cat, dict):
                cat_id = cat.get("category_id")
                name = cat.get("category_name")
                if cat_id not in (None, "") and name:
                    cat_map[str(cat_id)] = str(name)
    elif isinstance(data, dict):
        for key, cat in data.items():
            if isinstance(cat, dict):
                cat_id = cat.get("category_id", key)
                name = cat.get("category_name")
            else:
                cat_id, name = key, cat
            if cat_id not in (None, "") and name:
                cat_map[str(cat_id)] = str(name)
    return cat_map


def parse_rating(value: Any, zero_is_missing: bool = True) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str) and value.strip().lower() in _MISSING_RATINGS:
        return None
    try:
        rating = float(value)
    except (ValueError, TypeError):
        return None
    if rating == 0 and zero_is_missing:
        return None
    return rating


def parse_year(record: dict) -> Optional[int]:
    for key in ("year", "releasedate", "releaseDate", "release_date"):
        value = record.get(key)
        if not value:
            continue
        m = _YEAR_RE.search(str(value))
        if m:
            year = int(m.group(1))
            if 1870 <= year <= 2100:
                return year
    return None


def _text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _as_list(data: Any, label: str) -> list:
    if isinstance(data, list):
        return data
    if isinstance(data, dict):
        # Some panels key listings by id
        return [v for v in data.values() if isinstance(v, dict)]
    if data is not None:
        logger.warning(f"Unexpected {label} payload type: {type(data).__name__}")
    return []


# ---------------------------------------------------------------------------
# Loader
# ---------------------------------------------------------------------------

class LoaderService:
    """Orchestrates fetching and normalizing a full catalog snapshot."""

    def __init__(self, xtream_service: "XtreamService"):
        self.xtream_service = xtream_service

    async def load(self, config: "AddonConfig") -> CatalogSnapshot:
        require_credentials(config)
        started = time.time()

        snapshot: Optional[CatalogSnapshot] = None
        if config.use_m3u:
            logger.info(f"Loading catalog from playlist for {config.base_url}")
        elif await self.xtream_service.probe(config):
            snapshot = await self._load_from_api(config)
            if snapshot is None:
                logger.warning("Required listing fetch failed, falling back to playlist")
        else:
            logger.warning(f"Probe failed for {config.base_url}, falling back to playlist")

        if snapshot is None:
            snapshot = await self._load_from_playlist(config)
        if snapshot is None:
            raise UpstreamError(f"Could not load catalog from {config.base_url}")

        counts = snapshot.counts
        logger.info(
            f"Catalog loaded from {snapshot.source} in {time.time() - started:.1f}s: "
            f"{counts['channels']} channels, {counts['movies']} movies, {counts['series']} series"
        )
        return snapshot

    # ------------------------------------------------------------------
    # JSON API
    # ------------------------------------------------------------------

    async def _load_from_api(self, config: "AddonConfig") -> Optional[CatalogSnapshot]:
        fetch = self.xtream_service.fetch_action

        async def skipped():
            return None

        include_series = config.include_series
        (
            live, vod, series,
            live_cats, vod_cats, series_cats,
        ) = await asyncio.gather(
            fetch(config, ACTION_LIVE_STREAMS, LISTING_TIMEOUT),
            fetch(config, ACTION_VOD_STREAMS, LISTING_TIMEOUT),
            fetch(config, ACTION_SERIES, SERIES_LISTING_TIMEOUT) if include_series else skipped(),
            fetch(config, ACTION_LIVE_CATEGORIES, CATEGORY_TIMEOUT),
            fetch(config, ACTION_VOD_CATEGORIES, CATEGORY_TIMEOUT),
            fetch(config, ACTION_SERIES_CATEGORIES, CATEGORY_TIMEOUT) if include_series else skipped(),
        )

        if not isinstance(live, (list, dict)) or not isinstance(vod, (list, dict)):
            return None

        channels = self._map_live(config, _as_list(live, "live"), decode_category_table(live_cats))
        movies = self._map_vod(config, _as_list(vod, "vod"), decode_category_table(vod_cats))
        series_items: list[ContentItem] = []
        if include_series:
            if series is None:
                logger.warning("Series listing unavailable, continuing without series")
            series_items = self._map_series(config, _as_list(series, "series"), decode_category_table(series_cats))

        return self._assemble(config, channels, movies, series_items, {}, source="api")

    @staticmethod
    def _raw_category(record: dict, cat_map: dict[str, str], kind: str) -> str:
        cat_id = record.get("category_id")
        if cat_id not in (None, "") and str(cat_id) in cat_map:
            return cat_map[str(cat_id)]
        return _text(record.get("category_name")) or DEFAULT_RAW_CATEGORIES[kind]

    def _map_live(self, config: "AddonConfig", records: list, cat_map: dict[str, str]) -> list[ContentItem]:
        items = []
        for record in records:
            if not isinstance(record, dict) or record.get("stream_id") in (None, ""):
                continue
            stream_id = record["stream_id"]
            raw = self._raw_category(record, cat_map, "channel")
            items.append(ContentItem(
                id=f"{ID_PREFIXES['channel']}{stream_id}",
                kind=ContentKind.CHANNEL,
                name=_text(record.get("name")) or f"Channel {stream_id}",
                url=self.xtream_service.stream_url(config, "live", stream_id, config.live_extension),
                poster=_text(record.get("stream_icon")),
                raw_category=raw,
                category=normalize_category(raw),
                epg_channel_id=_text(record.get("epg_channel_id")),
            ))
        return items

    def _map_vod(self, config: "AddonConfig", records: list, cat_map: dict[str, str]) -> list[ContentItem]:
        items = []
        for record in records:
            if not isinstance(record, dict) or record.get("stream_id") in (None, ""):
                continue
            stream_id = record["stream_id"]
            raw = self._raw_category(record, cat_map, "movie")
            ext = _text(record.get("container_extension")) or DEFAULT_VOD_EXTENSION
            rating = record.get("rating")
            if rating in (None, ""):
                rating = record.get("rating_5based")
            items.append(ContentItem(
                id=f"{ID_PREFIXES['movie']}{stream_id}",
                kind=ContentKind.MOVIE,
                name=_text(record.get("name")) or f"Movie {stream_id}",
                url=self.xtream_service.stream_url(config, "vod", stream_id, ext),
                poster=_text(record.get("stream_icon")) or _text(record.get("cover")),
                raw_category=raw,
                category=normalize_category(raw),
                plot=_text(record.get("plot")),
                year=parse_year(record),
                rating=parse_rating(rating, config.zero_rating_is_missing),
                genre=_text(record.get("genre")),
            ))
        return items

    def _map_series(self, config: "AddonConfig", records: list, cat_map: dict[str, str]) -> list[ContentItem]:
        items = []
        for record in records:
            if not isinstance(record, dict) or record.get("series_id") in (None, ""):
                continue
            series_id = str(record["series_id"])
            raw = self._raw_category(record, cat_map, "series")
            items.append(ContentItem(
                id=f"{ID_PREFIXES['series']}{series_id}",
                kind=ContentKind.SERIES,
                name=_text(record.get("name")) or f"Series {series_id}",
                poster=_text(record.get("cover")),
                raw_category=raw,
                category=normalize_category(raw),
                plot=_text(record.get("plot")),
                year=parse_year(record),
                rating=parse_rating(record.get("rating"), config.zero_rating_is_missing),
                genre=_text(record.get("genre")),
                series_id=series_id,
            ))
        return items

    # ------------------------------------------------------------------
    # Playlist fallback
    # ------------------------------------------------------------------

    async def _load_from_playlist(self, config: "AddonConfig") -> Optional[CatalogSnapshot]:
        text = await self.xtream_service.fetch_playlist(config)
        if text is None:
            return None
        entries = parse_m3u(text)
        if not entries:
            logger.warning("Playlist fallback returned no entries")
            return None

        channels: list[ContentItem] = []
        movies: list[ContentItem] = []
        series_by_name: dict[str, ContentItem] = {}
        episodes: dict[str, list[Episode]] = {}

        for entry in entries:
            kind = entry_kind(entry)
            if kind == "series":
                if config.include_series:
                    self._add_playlist_episode(entry, series_by_name, episodes)
                continue
            prefix = ID_PREFIXES[kind]
            raw = entry.group or DEFAULT_RAW_CATEGORIES[kind]
            item = ContentItem(
                id=f"{prefix}{self._playlist_stream_id(entry)}",
                kind=ContentKind(kind),
                name=entry.name or entry.tvg_id or "Unknown",
                url=entry.url,
                poster=entry.logo or None,
                raw_category=raw,
                category=normalize_category(raw),
                epg_channel_id=entry.tvg_id or None,
                plot=entry.attributes.get("plot") or None,
            )
            (channels if kind == "channel" else movies).append(item)

        frozen_episodes = {
            series_id: tuple(sorted(eps, key=lambda e: (e.season, e.episode)))
            for series_id, eps in episodes.items()
        }
        return self._assemble(
            config, channels, movies, list(series_by_name.values()), frozen_episodes, source="m3u"
        )

    @staticmethod
    def _playlist_stream_id(entry: PlaylistEntry) -> str:
        m = _URL_STREAM_ID_RE.search(entry.url.split("?", 1)[0])
        return m.group(1) if m else short_hash(entry.name + entry.url)

    @staticmethod
    def _add_playlist_episode(
        entry: PlaylistEntry,
        series_by_name: dict[str, ContentItem],
        episodes: dict[str, list[Episode]],
    ) -> None:
        base_name = series_base_name(entry.name)
        series = series_by_name.get(base_name)
        if series is None:
            raw = entry.group or DEFAULT_RAW_CATEGORIES["series"]
            hashed = short_hash(base_name)
            series = ContentItem(
                id=f"{ID_PREFIXES['series']}{hashed}",
                kind=ContentKind.SERIES,
                name=base_name,
                poster=entry.logo or None,
                raw_category=raw,
                category=normalize_category(raw),
                plot=entry.attributes.get("plot") or None,
                series_id=hashed,
            )
            series_by_name[base_name] = series
            episodes[series.id] = []

        series_eps = episodes[series.id]
        taken = {(e.season, e.episode) for e in series_eps}
        marker = parse_episode_marker(entry.name)
        if marker is None or marker in taken:
            counter = len(series_eps) + 1
            while (1, counter) in taken:
                counter += 1
            marker = (1, counter)
        season, number = marker
        series_eps.append(Episode(
            id=f"{series.id}{EPISODE_SEPARATOR}{season}{EPISODE_SEPARATOR}{number}",
            series_id=series.id,
            season=season,
            episode=number,
            title=entry.name,
            url=entry.url,
            thumbnail=entry.logo or None,
        ))

    # ------------------------------------------------------------------
    # Assembly
    # ------------------------------------------------------------------

    @staticmethod
    def _assemble(
        config: "AddonConfig",
        channels: list[ContentItem],
        movies: list[ContentItem],
        series: list[ContentItem],
        episodes: dict[str, tuple[Episode, ...]],
        source: str,
    ) -> CatalogSnapshot:
        categories: dict[str, tuple[str, ...]] = {}
        if config.include_categories:
            categories = {
                ContentKind.CHANNEL.value: _distinct(channels),
                ContentKind.MOVIE.value: _distinct(movies),
                ContentKind.SERIES.value: _distinct(series),
            }
        return CatalogSnapshot(
            channels=tuple(channels),
            movies=tuple(movies),
            series=tuple(series),
            categories=categories,
            episodes=episodes,
            source=source,
            fetched_at=time.time(),
        )


def _distinct(items: Iterable[ContentItem]) -> tuple[str, ...]:
    return distinct_categories(item.category for item in items)
