"""Addon service — the catalog pipeline behind the addon endpoints.

cache -> loader (normalizer applied during load) -> index -> stream
resolver, parameterized by the per-client AddonConfig.  Returns plain dicts
in the addon's manifest/meta/stream shapes.
"""
from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Optional

from xtreamcatalog.models.catalog import CatalogSnapshot, ContentItem, ContentKind, Episode, kind_from_id
from xtreamcatalog.models.xtream import (
    ADDON_ID,
    ADDON_NAME,
    ADDON_VERSION,
    CATALOG_IDS,
    CATALOG_PAGE_SIZE,
    ID_PREFIXES,
)
from xtreamcatalog.errors import NotFoundError
from xtreamcatalog.services.cache_service import cache_key
from xtreamcatalog.services.catalog_service import CatalogIndex
from xtreamcatalog.services.stream_service import parse_episode_ref

if TYPE_CHECKING:
    from xtreamcatalog.models.config import AddonConfig
    from xtreamcatalog.services.cache_service import CacheService
    from xtreamcatalog.services.config_service import ConfigService
    from xtreamcatalog.services.epg_service import EpgService
    from xtreamcatalog.services.loader_service import LoaderService
    from xtreamcatalog.services.stream_service import StreamService

logger = logging.getLogger(__name__)


def to_meta_preview(item: ContentItem) -> dict:
    meta: dict = {
        "id": item.id,
        "type": item.kind.value,
        "name": item.name,
        "genres": [item.category] if item.category else [],
    }
    if item.poster:
        meta["poster"] = item.poster
        meta["posterShape"] = "square" if item.kind is ContentKind.CHANNEL else "poster"
    if item.plot:
        meta["description"] = item.plot
    if item.year:
        meta["releaseInfo"] = str(item.year)
    if item.rating is not None:
        meta["imdbRating"] = f"{item.rating:g}"
    return meta


class AddonService:
    """Serves catalog, meta and stream lookups for one AddonConfig at a time."""

    def __init__(
        self,
        config_service: "ConfigService",
        cache_service: "CacheService",
        loader_service: "LoaderService",
        stream_service: "StreamService",
        epg_service: "EpgService",
    ):
        self.config_service = config_service
        self.cache_service = cache_service
        self.loader_service = loader_service
        self.stream_service = stream_service
        self.epg_service = epg_service
        self._indexes: dict[str, CatalogIndex] = {}

    # ------------------------------------------------------------------
    # Snapshot / index
    # ------------------------------------------------------------------

    @staticmethod
    def key_for(config: "AddonConfig") -> str:
        return cache_key(config.base_url, config.xtream_username)

    async def snapshot(self, config: "AddonConfig") -> CatalogSnapshot:
        if not self.config_service.settings.cache_enabled:
            return await self.loader_service.load(config)
        return await self.cache_service.get_or_load(
            self.key_for(config),
            lambda: self.loader_service.load(config),
            ttl=self.config_service.get_cache_ttl(config),
        )

    async def index(self, config: "AddonConfig") -> CatalogIndex:
        snapshot = await self.snapshot(config)
        key = self.key_for(config)
        index = self._indexes.get(key)
        if index is None or index.snapshot is not snapshot or index.transliterate != config.transliterate:
            index = CatalogIndex(snapshot, transliterate=config.transliterate)
            self._indexes[key] = index
            logger.debug(f"Indexed {len(index)} items for {config.base_url}")
            for stale in [k for k in self._indexes if k not in self.cache_service]:
                del self._indexes[stale]
        return index

    def clear(self) -> None:
        self.cache_service.clear()
        self.stream_service.episode_cache.clear()
        self.epg_service.epg_cache.clear()
        self._indexes.clear()

    # ------------------------------------------------------------------
    # Manifest
    # ------------------------------------------------------------------

    def manifest(self, config: "AddonConfig", snapshot: Optional[CatalogSnapshot] = None) -> dict:
        kinds = [ContentKind.CHANNEL, ContentKind.MOVIE]
        if config.include_series:
            kinds.append(ContentKind.SERIES)

        index = None
        if snapshot is not None:
            index = self._indexes.get(self.key_for(config))
            if index is None or index.snapshot is not snapshot:
                index = CatalogIndex(snapshot, transliterate=config.transliterate)

        catalogs = []
        for kind in kinds:
            catalog_id, name = CATALOG_IDS[kind.value]
            extra: list[dict] = [{"name": "search"}, {"name": "skip"}]
            if config.include_categories:
                genre: dict = {"name": "genre"}
                if index is not None:
                    genre["options"] = index.categories(kind, sort=True)
                extra.insert(0, genre)
            catalogs.append({"type": kind.value, "id": catalog_id, "name": name, "extra": extra})

        return {
            "id": ADDON_ID,
            "version": ADDON_VERSION,
            "name": ADDON_NAME,
            "description": "Xtream Codes catalog with normalized categories and search",
            "resources": ["catalog", "meta", "stream"],
            "types": [kind.value for kind in kinds],
            "idPrefixes": list(ID_PREFIXES.values()),
            "catalogs": catalogs,
            "behaviorHints": {"configurable": True, "configurationRequired": False},
        }

    # ------------------------------------------------------------------
    # Catalog / meta / stream
    # ------------------------------------------------------------------

    async def catalog(
        self,
        config: "AddonConfig",
        kind: ContentKind,
        genre: Optional[str] = None,
        search: Optional[str] = None,
        skip: int = 0,
    ) -> list[dict]:
        index = await self.index(config)
        items = index.query(kind, category=genre, search=search, skip=skip, limit=CATALOG_PAGE_SIZE)
        return [to_meta_preview(item) for item in items]

    async def series_episodes(self, config: "AddonConfig", series_item_id: str) -> tuple[Episode, ...]:
        index = await self.index(config)
        item = index.get(series_item_id)
        if item is None or item.kind is not ContentKind.SERIES:
            raise NotFoundError(f"Unknown series {series_item_id}")
        return await self.stream_service.episodes(config, index.snapshot, item.id) or ()

    async def meta(self, config: "AddonConfig", kind: Optional[ContentKind], item_id: str) -> dict:
        index = await self.index(config)
        item = index.get(item_id)
        if item is None or (kind is not None and item.kind is not kind):
            raise NotFoundError(f"Unknown id {item_id}")

        meta = to_meta_preview(item)
        if item.kind is ContentKind.SERIES:
            episodes = await self.series_episodes(config, item.id)
            meta["videos"] = [
                {
                    "id": ep.id,
                    "title": ep.title,
                    "season": ep.season,
                    "episode": ep.episode,
                    "released": ep.released,
                    "thumbnail": ep.thumbnail,
                }
                for ep in episodes
            ]
        elif item.kind is ContentKind.CHANNEL and config.enable_epg:
            guide_line = await self.epg_service.describe(config, item.epg_channel_id)
            if guide_line:
                meta["description"] = guide_line
        return meta

    async def stream(self, config: "AddonConfig", item_id: str) -> dict:
        index = await self.index(config)
        url = await self.stream_service.resolve(config, index.snapshot, item_id, index=index)

        ref = parse_episode_ref(item_id)
        item = index.get(ref.series_item_id if ref else item_id)
        title = item.name if item else item_id
        if ref and ref.season is not None:
            title = f"{title} S{ref.season:02d}E{ref.episode:02d}"
        kind = kind_from_id(item_id)
        hints = {"notWebReady": kind is ContentKind.CHANNEL}
        return {"streams": [{"url": url, "title": title, "behaviorHints": hints}]}
