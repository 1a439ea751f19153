"""Search service — relevance scoring for catalog text search.

Scoring tiers, highest first:

  exact name        100
  name prefix        80
  substring          60   (name or category contains the query)
  token overlap      40   (at least half the query tokens overlap a name token)
  fuzzy              20   (rapidfuzz token_sort_ratio >= FUZZY_THRESHOLD)

The query is expanded with Latin->Cyrillic transliteration and a small
dictionary of whole-word translations; each item keeps its best score over
all expansions.  Results are ordered by score, then case-folded name, then
original position, so identical inputs always give identical output.
"""
from __future__ import annotations

import re
import unicodedata
from typing import Iterable, Sequence

from rapidfuzz import fuzz

from xtreamcatalog.models.catalog import ContentItem
from xtreamcatalog.models.xtream import SEARCH_LIMIT

SCORE_EXACT = 100
SCORE_PREFIX = 80
SCORE_SUBSTRING = 60
SCORE_TOKENS = 40
SCORE_FUZZY = 20

FUZZY_THRESHOLD = 85

# Multi-letter groups first so "sh" wins over "s" + "h"
TRANSLIT_LATIN_TO_CYRILLIC: tuple[tuple[str, str], ...] = (
    ("shch", "щ"),
    ("sch", "щ"),
    ("zh", "ж"),
    ("kh", "х"),
    ("ts", "ц"),
    ("ch", "ч"),
    ("sh", "ш"),
    ("yu", "ю"),
    ("ya", "я"),
    ("yo", "ё"),
    ("a", "а"),
    ("b", "б"),
    ("v", "в"),
    ("g", "г"),
    ("d", "д"),
    ("e", "е"),
    ("z", "з"),
    ("i", "и"),
    ("y", "й"),
    ("k", "к"),
    ("l", "л"),
    ("m", "м"),
    ("n", "н"),
    ("o", "о"),
    ("p", "п"),
    ("r", "р"),
    ("s", "с"),
    ("t", "т"),
    ("u", "у"),
    ("f", "ф"),
    ("h", "х"),
    ("c", "к"),
    ("w", "в"),
    ("x", "кс"),
    ("q", "к"),
    ("j", "дж"),
)

WORD_TRANSLATIONS: dict[str, tuple[str, ...]] = {
    "news": ("новости",),
    "sport": ("спорт",),
    "sports": ("спорт",),
    "movie": ("фильм", "кино"),
    "movies": ("фильмы", "кино"),
    "film": ("фильм",),
    "series": ("сериал",),
    "kids": ("детский", "дети"),
    "cartoon": ("мультфильм",),
    "cartoons": ("мультфильмы",),
    "music": ("музыка",),
    "documentary": ("документальный",),
    "football": ("футбол",),
    "first": ("первый",),
    "channel": ("канал",),
}

_LATIN_RE = re.compile(r"[a-z]")
_TOKEN_SPLIT_RE = re.compile(r"[\s\-_|:.,/()\[\]]+")


def fold(text: str) -> str:
    """Lower-case, strip accents and collapse whitespace."""
    out: list[str] = []
    for c in unicodedata.normalize("NFD", text.strip().lower()):
        # Only Latin letters lose their marks; й/ё recompose below
        if unicodedata.category(c) == "Mn" and out and out[-1].isascii():
            continue
        out.append(c)
    n = unicodedata.normalize("NFC", "".join(out))
    return re.sub(r"\s+", " ", n)


def tokens(text: str) -> list[str]:
    return [t for t in _TOKEN_SPLIT_RE.split(text) if t]


def transliterate(text: str) -> str:
    """Latin -> Cyrillic letter substitution, longest group first."""
    out = []
    i = 0
    while i < len(text):
        for latin, cyrillic in TRANSLIT_LATIN_TO_CYRILLIC:
            if text.startswith(latin, i):
                out.append(cyrillic)
                i += len(latin)
                break
        else:
            out.append(text[i])
            i += 1
    return "".join(out)


def expand_query(query: str, use_transliteration: bool = True) -> list[str]:
    """The folded query plus its transliterated and translated variants."""
    base = fold(query)
    if not base:
        return []
    variants = [base]
    if not use_transliteration or not _LATIN_RE.search(base):
        return variants

    translit = transliterate(base)
    if translit not in variants:
        variants.append(translit)

    words = base.split(" ")
    if any(w in WORD_TRANSLATIONS for w in words):
        translated = " ".join(WORD_TRANSLATIONS.get(w, (w,))[0] for w in words)
        if translated not in variants:
            variants.append(translated)
        for w in words:
            for alt in WORD_TRANSLATIONS.get(w, ()):
                if alt not in variants:
                    variants.append(alt)
    return variants


def score_text(query: str, name: str, category: str = "") -> int:
    """Score one folded query against a folded name/category. 0 = no match."""
    if not query or not name:
        return 0
    if name == query:
        return SCORE_EXACT
    if name.startswith(query):
        return SCORE_PREFIX
    if query in name or (category and query in category):
        return SCORE_SUBSTRING

    query_tokens = tokens(query)
    name_tokens = tokens(name)
    if query_tokens and name_tokens:
        overlapping = sum(
            1 for qt in query_tokens
            if any(qt in nt or (len(nt) > 1 and nt in qt) for nt in name_tokens)
        )
        if overlapping * 2 >= len(query_tokens):
            return SCORE_TOKENS

    if fuzz.token_sort_ratio(query, name) >= FUZZY_THRESHOLD:
        return SCORE_FUZZY
    return 0


def score_item(variants: Sequence[str], item: ContentItem) -> int:
    name = fold(item.name)
    category = fold(item.category)
    return max((score_text(v, name, category) for v in variants), default=0)


def search_items(
    items: Iterable[ContentItem],
    query: str,
    use_transliteration: bool = True,
    limit: int = SEARCH_LIMIT,
) -> list[ContentItem]:
    """Return matching items ordered by descending relevance."""
    variants = expand_query(query, use_transliteration)
    if not variants:
        return []
    scored = []
    for position, item in enumerate(items):
        score = score_item(variants, item)
        if score:
            scored.append((-score, item.name.casefold(), position, item))
    scored.sort(key=lambda entry: entry[:3])
    return [entry[3] for entry in scored[:limit]]
