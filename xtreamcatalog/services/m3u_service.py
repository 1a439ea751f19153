"""M3U service — playlist parsing and episode detection for the playlist fallback.

Episode markers are an ordered, declarative list of independent matchers;
the first one that matches a title wins.  Titles that match none get the
next number of a per-series counter (season 1).
"""
from __future__ import annotations

import hashlib
import re
from dataclasses import dataclass, field
from typing import Callable, Optional

_ATTR_RE = re.compile(r'([\w-]+)="([^"]*)"')
# Title follows the first comma outside a quoted attribute value
_EXTINF_RE = re.compile(r'^(#EXTINF:[^,"]*(?:"[^"]*"[^,"]*)*),(.*)$')


@dataclass
class PlaylistEntry:
    """One ``#EXTINF`` entry of a playlist."""

    name: str
    url: str
    attributes: dict[str, str] = field(default_factory=dict)

    @property
    def group(self) -> str:
        return self.attributes.get("group-title", "")

    @property
    def logo(self) -> str:
        return self.attributes.get("tvg-logo", "")

    @property
    def tvg_id(self) -> str:
        return self.attributes.get("tvg-id", "")


def parse_m3u(text: str) -> list[PlaylistEntry]:
    """Parse an extended M3U playlist: a metadata line followed by its URL line.

    Comment lines between the two (``#EXTGRP``, ``#EXTVLCOPT`` ...) are
    skipped; ``#EXTGRP`` fills in a missing group.
    """
    entries: list[PlaylistEntry] = []
    pending: Optional[PlaylistEntry] = None
    if text.startswith("\ufeff"):
        text = text[1:]
    for raw_line in text.splitlines():
        line = raw_line.strip()
        if not line:
            continue
        if line.startswith("#EXTINF"):
            m = _EXTINF_RE.match(line)
            if m:
                header, title = m.group(1), m.group(2)
            else:
                header, title = line, ""
            attrs = dict(_ATTR_RE.findall(header))
            pending = PlaylistEntry(name=title.strip() or attrs.get("tvg-name", ""), url="", attributes=attrs)
        elif line.startswith("#EXTGRP:"):
            if pending is not None and not pending.group:
                pending.attributes["group-title"] = line[len("#EXTGRP:"):].strip()
        elif line.startswith("#"):
            continue
        elif pending is not None:
            pending.url = line
            entries.append(pending)
            pending = None
    return entries


# ---------------------------------------------------------------------------
# Episode markers
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class EpisodePattern:
    """A named title pattern yielding ``(season, episode)`` from a match."""

    name: str
    regex: re.Pattern
    extract: Callable[[re.Match], tuple[int, int]]


def _season_episode(m: re.Match) -> tuple[int, int]:
    return int(m.group(1)), int(m.group(2))


def _episode_only(m: re.Match) -> tuple[int, int]:
    return 1, int(m.group(1))


def _dated(m: re.Match) -> tuple[int, int]:
    year, month, day = int(m.group(1)), int(m.group(2)), int(m.group(3))
    return year - 2020, month * 100 + day


EPISODE_PATTERNS: tuple[EpisodePattern, ...] = (
    EpisodePattern("sxxeyy", re.compile(r"\bS(\d{1,2})\s*E(\d{1,3})\b", re.I), _season_episode),
    EpisodePattern("season_episode", re.compile(r"\bSeason\s*(\d+).*?Episode\s*(\d+)\b", re.I), _season_episode),
    EpisodePattern("nxm", re.compile(r"\b(\d{1,2})x(\d{1,3})\b", re.I), _season_episode),
    EpisodePattern("ep", re.compile(r"\bEp\.?\s*(\d+)", re.I), _episode_only),
    EpisodePattern("e", re.compile(r"\bE(\d{1,3})\b", re.I), _episode_only),
    EpisodePattern("part", re.compile(r"\bPart\s*(\d+)", re.I), _episode_only),
    EpisodePattern("chapter", re.compile(r"\bChapter\s*(\d+)", re.I), _episode_only),
    EpisodePattern("bracketed", re.compile(r"\[(\d+)\]"), _episode_only),
    EpisodePattern("parenthesized", re.compile(r"\((\d{1,3})\)"), _episode_only),
    EpisodePattern("n_of_m", re.compile(r"\b(\d+)\s*of\s*\d+\b", re.I), _episode_only),
    EpisodePattern("n_slash_m", re.compile(r"\b(\d+)/\d+\b"), _episode_only),
    EpisodePattern("date", re.compile(r"\b(\d{4})\.(\d{2})\.(\d{2})\b"), _dated),
)

# Markers that make a playlist title look like an episode
_SERIES_HINT_PATTERNS = ("sxxeyy", "season_episode", "nxm")

# Suffixes stripped from a title to get the series base name
_TITLE_SUFFIXES = tuple(
    re.compile(p, re.I)
    for p in (
        r"\bS\d{1,2}\s*E\d{1,3}\b.*$",
        r"\bSeason\s*\d+.*$",
        r"\bEpisode\s*\d+.*$",
        r"\b\d{1,2}x\d{1,3}\b.*$",
        r"\bEp\.?\s*\d+.*$",
        r"\bE\d{1,3}\b.*$",
        r"\bPart\s*\d+.*$",
        r"\bChapter\s*\d+.*$",
        r"\[\d+\].*$",
        r"\(\d{1,3}\).*$",
        r"\b\d+\s*of\s*\d+.*$",
        r"\b\d+/\d+.*$",
        r"\bSeries\s*\d+.*$",
        r"\bVol(?:ume)?\s*\d+.*$",
        r"\b\d{4}\.\d{2}\.\d{2}.*$",
        r"\b\d{1,2}-\d{1,2}-\d{4}.*$",
    )
)
_TRAILING_SEPARATORS = re.compile(r"[\s\-_.|:]+$")


def parse_episode_marker(title: str) -> Optional[tuple[int, int]]:
    """Return ``(season, episode)`` from the first matching pattern, else None."""
    for pattern in EPISODE_PATTERNS:
        m = pattern.regex.search(title)
        if m:
            season, episode = pattern.extract(m)
            if season >= 1 and episode >= 1:
                return season, episode
    return None


def looks_like_episode(title: str) -> bool:
    for pattern in EPISODE_PATTERNS:
        if pattern.name in _SERIES_HINT_PATTERNS and pattern.regex.search(title):
            return True
    return False


def series_base_name(title: str) -> str:
    """Strip episode/season markers from a title; falls back to the title."""
    base = title
    for suffix in _TITLE_SUFFIXES:
        base = suffix.sub("", base).strip()
    base = _TRAILING_SEPARATORS.sub("", base).strip()
    return base if len(base) >= 2 else title.strip()


def short_hash(text: str) -> str:
    return hashlib.md5(text.encode("utf-8")).hexdigest()[:12]


def entry_kind(entry: PlaylistEntry) -> str:
    """Guess ``channel``/``movie``/``series`` for a playlist entry."""
    url = entry.url.lower()
    if "/series/" in url:
        return "series"
    if "/movie/" in url:
        return "movie"
    if looks_like_episode(entry.name):
        return "series"
    return "channel"
