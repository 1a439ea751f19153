"""Cache management API routes."""
from __future__ import annotations

from fastapi import APIRouter, Depends

from xtreamcatalog.dependencies import get_addon_service, get_config_service
from xtreamcatalog.services.addon_service import AddonService
from xtreamcatalog.services.config_service import ConfigService

router = APIRouter(tags=["cache"])


@router.get("/api/cache/status")
async def cache_status(
    addon: AddonService = Depends(get_addon_service),
    cfg: ConfigService = Depends(get_config_service),
):
    return {
        "enabled": cfg.settings.cache_enabled,
        "ttl_seconds": cfg.get_cache_ttl(),
        "max_entries": cfg.settings.max_cache_entries,
        "catalogs": addon.cache_service.stats(),
        "episodes": addon.stream_service.episode_cache.stats(),
        "epg": addon.epg_service.epg_cache.stats(),
    }


@router.post("/api/cache/clear")
async def clear_cache(addon: AddonService = Depends(get_addon_service)):
    addon.clear()
    return {"status": "ok", "message": "Cache cleared"}
