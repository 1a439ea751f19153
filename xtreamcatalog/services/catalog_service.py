"""Catalog service — in-memory index over one snapshot for browse, filter and search."""
from __future__ import annotations

from typing import Optional

from xtreamcatalog.models.catalog import CatalogSnapshot, ContentItem, ContentKind
from xtreamcatalog.models.xtream import SEARCH_LIMIT
from xtreamcatalog.services.search_service import search_items


def is_all_sentinel(category: Optional[str]) -> bool:
    """``None``, blank, ``All`` and ``All <anything>`` mean no category filter."""
    if category is None:
        return True
    c = category.strip().casefold()
    return not c or c == "all" or c.startswith("all ")


class CatalogIndex:
    """Read-only lookups over a CatalogSnapshot.

    Built once per snapshot; the snapshot is never mutated so the index
    never goes stale.
    """

    def __init__(self, snapshot: CatalogSnapshot, transliterate: bool = True):
        self.snapshot = snapshot
        self.transliterate = transliterate
        self._by_id: dict[str, ContentItem] = {}
        for kind in ContentKind:
            for item in snapshot.items(kind):
                self._by_id.setdefault(item.id, item)

    def __len__(self) -> int:
        return len(self._by_id)

    def get(self, item_id: str) -> Optional[ContentItem]:
        return self._by_id.get(item_id)

    def categories(self, kind: ContentKind, sort: bool = False) -> list[str]:
        if sort:
            return self.snapshot.sorted_categories(kind)
        return list(self.snapshot.category_labels(kind))

    def query(
        self,
        kind: ContentKind,
        category: Optional[str] = None,
        search: Optional[str] = None,
        skip: int = 0,
        limit: Optional[int] = None,
    ) -> list[ContentItem]:
        """Listing for *kind*, optionally filtered by category and ranked by search.

        Without a search the stored (backend) order is kept; with one the
        result is relevance-ordered and capped at ``SEARCH_LIMIT``.
        """
        items: list[ContentItem] = list(self.snapshot.items(kind))
        if not is_all_sentinel(category):
            items = [item for item in items if item.category == category]
        if search and search.strip():
            items = search_items(items, search, self.transliterate, SEARCH_LIMIT)
        skip = max(skip, 0)
        if limit is None:
            return items[skip:]
        return items[skip:skip + limit]
