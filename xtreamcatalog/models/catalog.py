"""Pydantic models for catalog items, episodes and snapshots."""
from __future__ import annotations

import enum
import time
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from xtreamcatalog.models.xtream import ID_PREFIXES


class ContentKind(str, enum.Enum):
    """Kinds of listable content. Values are the addon catalog types."""

    CHANNEL = "channel"
    MOVIE = "movie"
    SERIES = "series"

    @classmethod
    def parse(cls, value: str) -> "ContentKind":
        """Accept the addon type names, including ``tv`` for channels."""
        v = (value or "").strip().lower()
        if v in ("tv", "live"):
            return cls.CHANNEL
        if v == "vod":
            return cls.MOVIE
        return cls(v)


def kind_from_id(item_id: str) -> Optional[ContentKind]:
    """Infer the kind of an item from its id prefix."""
    for kind, prefix in ID_PREFIXES.items():
        if item_id.startswith(prefix):
            return ContentKind(kind)
    return None


class ContentItem(BaseModel):
    """One playable or listable unit of a catalog."""
    model_config = ConfigDict(frozen=True)

    id: str
    kind: ContentKind
    name: str
    url: Optional[str] = None
    poster: Optional[str] = None
    raw_category: str = ""
    category: str = ""
    plot: Optional[str] = None
    year: Optional[int] = None
    rating: Optional[float] = None
    genre: Optional[str] = None
    epg_channel_id: Optional[str] = None
    series_id: Optional[str] = None


class Episode(BaseModel):
    """An episode of a series; never listed in the top-level catalog."""
    model_config = ConfigDict(frozen=True)

    id: str
    series_id: str
    season: int
    episode: int
    title: str = ""
    url: Optional[str] = None
    thumbnail: Optional[str] = None
    released: Optional[str] = None
    stream_id: Optional[str] = None


class CatalogSnapshot(BaseModel):
    """A fully loaded, immutable catalog as of ``fetched_at``."""
    model_config = ConfigDict(frozen=True)

    channels: tuple[ContentItem, ...] = ()
    movies: tuple[ContentItem, ...] = ()
    series: tuple[ContentItem, ...] = ()
    categories: dict[str, tuple[str, ...]] = Field(default_factory=dict)
    # Playlist mode only: series item id -> episodes
    episodes: dict[str, tuple[Episode, ...]] = Field(default_factory=dict)
    source: str = "api"
    fetched_at: float = Field(default_factory=time.time)

    def items(self, kind: ContentKind) -> tuple[ContentItem, ...]:
        if kind is ContentKind.CHANNEL:
            return self.channels
        if kind is ContentKind.MOVIE:
            return self.movies
        return self.series

    def category_labels(self, kind: ContentKind) -> tuple[str, ...]:
        """Distinct normalized categories in first-seen order."""
        return self.categories.get(kind.value, ())

    def sorted_categories(self, kind: ContentKind) -> list[str]:
        return sorted(self.category_labels(kind), key=str.casefold)

    @property
    def counts(self) -> dict[str, int]:
        return {
            "channels": len(self.channels),
            "movies": len(self.movies),
            "series": len(self.series),
        }
