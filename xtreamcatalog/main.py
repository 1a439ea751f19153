"""Application entry point — wires services onto app.state and mounts routers."""
from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import FastAPI, Request

from xtreamcatalog.models.config import Settings
from xtreamcatalog.models.xtream import ADDON_NAME, ADDON_VERSION
from xtreamcatalog.routes import addon, cache_api, config_api, health
from xtreamcatalog.services.addon_service import AddonService
from xtreamcatalog.services.cache_service import CacheService
from xtreamcatalog.services.config_service import ConfigService
from xtreamcatalog.services.epg_service import EpgService
from xtreamcatalog.services.http_client import HttpClientService
from xtreamcatalog.services.loader_service import LoaderService
from xtreamcatalog.services.stream_service import StreamService
from xtreamcatalog.services.xtream_service import XtreamService

logger = logging.getLogger(__name__)


def configure_logging(settings: Settings) -> None:
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def create_app(settings: Optional[Settings] = None, http_client: Optional[HttpClientService] = None) -> FastAPI:
    settings = settings or Settings.from_env()
    http = http_client or HttpClientService()

    cfg = ConfigService(settings)
    xtream = XtreamService(http)
    snapshot_cache = CacheService(settings.cache_ttl, settings.max_cache_entries, name="catalog")
    episode_cache = CacheService(settings.cache_ttl, settings.max_cache_entries, name="episodes")
    epg_cache = CacheService(settings.cache_ttl, settings.max_cache_entries, name="epg")
    stream_svc = StreamService(xtream, episode_cache)
    epg_svc = EpgService(xtream, epg_cache)
    addon_svc = AddonService(cfg, snapshot_cache, LoaderService(xtream), stream_svc, epg_svc)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(
            f"{ADDON_NAME} {ADDON_VERSION} starting (cache ttl={settings.cache_ttl}s, "
            f"max entries={settings.max_cache_entries}, enabled={settings.cache_enabled})"
        )
        if not cfg.encryption_enabled:
            logger.info("CONFIG_SECRET not set, /encrypt disabled")
        yield
        await http.close()
        logger.info("Application shutdown complete")

    app = FastAPI(title=ADDON_NAME, version=ADDON_VERSION, debug=settings.debug, lifespan=lifespan)

    app.state.settings = settings
    app.state.config_service = cfg
    app.state.http_client = http
    app.state.addon_service = addon_svc

    # Middleware to ensure UTF-8 charset in JSON responses
    @app.middleware("http")
    async def add_utf8_charset(request: Request, call_next):
        response = await call_next(request)
        content_type = response.headers.get("content-type", "")
        if "application/json" in content_type and "charset" not in content_type:
            response.headers["content-type"] = "application/json; charset=utf-8"
        response.headers.setdefault("Access-Control-Allow-Origin", "*")
        return response

    for r in (health, config_api, cache_api, addon):
        app.include_router(r.router)

    return app


_settings = Settings.from_env()
configure_logging(_settings)
app = create_app(_settings)


if __name__ == "__main__":
    uvicorn.run(app, host=_settings.host, port=_settings.port)
