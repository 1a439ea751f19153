"""Pydantic models for the per-client addon config and process settings."""
from __future__ import annotations

import os
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from xtreamcatalog.models.xtream import DEFAULT_LIVE_EXTENSION


class AddonConfig(BaseModel):
    """Configuration decoded from a client token.

    Field aliases accept the camelCase keys older configuration pages emit
    (``xtreamUrl``, ``xtreamUseM3U`` ...).
    """
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    xtream_url: str = Field("", alias="xtreamUrl")
    xtream_username: str = Field("", alias="xtreamUsername")
    xtream_password: str = Field("", alias="xtreamPassword")
    use_m3u: bool = Field(False, alias="xtreamUseM3U")
    m3u_output: str = Field("", alias="xtreamOutput")
    include_series: bool = Field(True, alias="includeSeries")
    include_categories: bool = Field(True, alias="includeCategories")
    cache_ttl: Optional[int] = Field(None, alias="cacheTtl")
    live_extension: str = Field(DEFAULT_LIVE_EXTENSION, alias="liveExtension")
    transliterate: bool = True
    zero_rating_is_missing: bool = Field(True, alias="zeroRatingIsMissing")
    fallback_episode_urls: bool = Field(True, alias="fallbackEpisodeUrls")
    enable_epg: bool = Field(False, alias="enableEpg")
    epg_url: str = Field("", alias="epgUrl")

    @property
    def base_url(self) -> str:
        return self.xtream_url.strip().rstrip("/")


class Settings(BaseModel):
    """Process-wide settings, read from the environment once at startup."""
    model_config = ConfigDict(extra="allow")

    cache_ttl: int = 1800
    max_cache_entries: int = 100
    cache_enabled: bool = True
    config_secret: str = ""
    debug: bool = False
    log_level: str = "INFO"
    host: str = "0.0.0.0"
    port: int = 7000

    @classmethod
    def from_env(cls, environ: Optional[dict] = None) -> "Settings":
        env = os.environ if environ is None else environ
        debug = env.get("DEBUG_MODE", "").lower() == "true"
        return cls(
            cache_ttl=int(env.get("CACHE_TTL", 1800)),
            max_cache_entries=int(env.get("MAX_CACHE_ENTRIES", 100)),
            cache_enabled=env.get("CACHE_ENABLED", "true").lower() != "false",
            config_secret=env.get("CONFIG_SECRET", ""),
            debug=debug,
            log_level=env.get("LOG_LEVEL", "DEBUG" if debug else "INFO").upper(),
            host=env.get("HOST", "0.0.0.0"),
            port=int(env.get("PORT", 7000)),
        )
