"""Xtream-related constants: id prefixes, URL defaults and per-call timeouts."""
from __future__ import annotations

# Id prefixes per content kind, so the kind can be inferred from an id alone
ID_PREFIXES = {
    "channel": "live_",
    "movie": "vod_",
    "series": "series_",
}

# Separator between a series id and its season/episode suffix
EPISODE_SEPARATOR = ":"

# Default container extensions
DEFAULT_LIVE_EXTENSION = "ts"
DEFAULT_VOD_EXTENSION = "mp4"
DEFAULT_EPISODE_EXTENSION = "mp4"

# Raw category used when the backend gives none
DEFAULT_RAW_CATEGORIES = {
    "channel": "Live TV",
    "movie": "Movies",
    "series": "Series",
}

# Normalized label for an empty category
UNKNOWN_CATEGORY = "Other"

# Per-call timeouts in seconds
PROBE_TIMEOUT = 8.0
CATEGORY_TIMEOUT = 20.0
LISTING_TIMEOUT = 30.0
SERIES_LISTING_TIMEOUT = 35.0
PLAYLIST_TIMEOUT = 30.0
SERIES_INFO_TIMEOUT = 25.0
EPG_TIMEOUT = 45.0

# Upstream actions
ACTION_LIVE_STREAMS = "get_live_streams"
ACTION_VOD_STREAMS = "get_vod_streams"
ACTION_SERIES = "get_series"
ACTION_LIVE_CATEGORIES = "get_live_categories"
ACTION_VOD_CATEGORIES = "get_vod_categories"
ACTION_SERIES_CATEGORIES = "get_series_categories"
ACTION_SERIES_INFO = "get_series_info"

# Catalog sizing
CATALOG_PAGE_SIZE = 100
SEARCH_LIMIT = 100

# Addon manifest
ADDON_ID = "org.xtreamcatalog.addon"
ADDON_NAME = "Xtream Catalog"
ADDON_VERSION = "1.0.0"

# Catalog ids exposed per kind
CATALOG_IDS = {
    "channel": ("iptv_channels", "Live TV"),
    "movie": ("iptv_movies", "Movies"),
    "series": ("iptv_series", "Series"),
}
