"""Category service — maps free-text backend category labels onto a small vocabulary.

The synonym table is ordered: substring matches are tried entry by entry and
the first hit wins, so reordering the table changes results.
"""
from __future__ import annotations

from typing import Optional

from xtreamcatalog.models.xtream import UNKNOWN_CATEGORY

# (synonym, canonical label), in match priority order
CATEGORY_SYNONYMS: tuple[tuple[str, str], ...] = (
    # Sports
    ("sports", "Sports"),
    ("sport", "Sports"),
    ("football", "Sports"),
    ("soccer", "Sports"),
    ("basketball", "Sports"),
    ("tennis", "Sports"),
    ("futbol", "Sports"),
    ("fútbol", "Sports"),
    ("deportes", "Sports"),
    ("desporto", "Sports"),
    ("esportes", "Sports"),
    ("calcio", "Sports"),
    ("sportif", "Sports"),
    ("رياضة", "Sports"),
    ("спорт", "Sports"),
    # News
    ("news", "News"),
    ("noticias", "News"),
    ("actualités", "News"),
    ("actualites", "News"),
    ("info", "News"),
    ("nachrichten", "News"),
    ("notizie", "News"),
    ("notícias", "News"),
    ("أخبار", "News"),
    ("новости", "News"),
    # Movies
    ("movies", "Movies"),
    ("movie", "Movies"),
    ("film", "Movies"),
    ("cinema", "Movies"),
    ("cine", "Movies"),
    ("películas", "Movies"),
    ("peliculas", "Movies"),
    ("filmes", "Movies"),
    ("أفلام", "Movies"),
    ("кино", "Movies"),
    ("фильмы", "Movies"),
    # Series
    ("series", "Series"),
    ("tv shows", "Series"),
    ("shows", "Series"),
    ("séries", "Series"),
    ("serien", "Series"),
    ("serie", "Series"),
    ("مسلسلات", "Series"),
    ("сериалы", "Series"),
    # Kids
    ("kids", "Kids"),
    ("children", "Kids"),
    ("cartoon", "Kids"),
    ("cartoons", "Kids"),
    ("enfants", "Kids"),
    ("jeunesse", "Kids"),
    ("infantil", "Kids"),
    ("kinder", "Kids"),
    ("bambini", "Kids"),
    ("أطفال", "Kids"),
    ("детские", "Kids"),
    ("мультфильмы", "Kids"),
    # Music
    ("music", "Music"),
    ("musique", "Music"),
    ("música", "Music"),
    ("musica", "Music"),
    ("musik", "Music"),
    ("موسيقى", "Music"),
    ("музыка", "Music"),
    # Documentary
    ("documentary", "Documentary"),
    ("documentaries", "Documentary"),
    ("documentaire", "Documentary"),
    ("documentales", "Documentary"),
    ("documental", "Documentary"),
    ("dokumentation", "Documentary"),
    ("documentari", "Documentary"),
    ("وثائقي", "Documentary"),
    ("документальные", "Documentary"),
    # Religious
    ("religious", "Religious"),
    ("religion", "Religious"),
    ("religieux", "Religious"),
    ("religioso", "Religious"),
    ("religiös", "Religious"),
    ("islamic", "Religious"),
    ("christian", "Religious"),
    ("دينية", "Religious"),
    ("религия", "Religious"),
)

_EXACT: dict[str, str] = {}
for _synonym, _label in CATEGORY_SYNONYMS:
    _EXACT.setdefault(_synonym, _label)

# Canonical labels map to themselves so normalization is idempotent
for _label in {label for _, label in CATEGORY_SYNONYMS}:
    _EXACT.setdefault(_label.lower(), _label)

# Shortest raw label that may match inside a longer synonym
_MIN_REVERSE_LEN = 3


def _title_case(label: str) -> str:
    return " ".join(w[:1].upper() + w[1:].lower() for w in label.split())


def normalize_category(raw: Optional[str]) -> str:
    """Map a raw category label to its canonical label.

    Exact lookup first, then substring containment in table order (raw
    contains a synonym, or a synonym contains raw), else title case.
    """
    if raw is None:
        return UNKNOWN_CATEGORY
    lower = raw.strip().lower()
    if not lower:
        return UNKNOWN_CATEGORY

    exact = _EXACT.get(lower)
    if exact:
        return exact

    for synonym, label in CATEGORY_SYNONYMS:
        if synonym in lower:
            return label
        if len(lower) >= _MIN_REVERSE_LEN and lower in synonym:
            return label

    return _title_case(raw)


def distinct_categories(labels) -> tuple[str, ...]:
    """Distinct labels in first-seen order."""
    return tuple(dict.fromkeys(label for label in labels if label))
