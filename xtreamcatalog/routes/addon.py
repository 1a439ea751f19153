"""Addon routes — manifest, catalog, meta and stream resources per config token.

The token in the first path segment carries the client's AddonConfig.
Unknown ids answer with empty results; bad tokens with 400 and upstream
outages with 502.
"""
from __future__ import annotations

import logging
from typing import Optional
from urllib.parse import parse_qs

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from xtreamcatalog.dependencies import get_addon_service, get_config_service
from xtreamcatalog.errors import CatalogError, NotFoundError, UpstreamError
from xtreamcatalog.models.catalog import ContentKind
from xtreamcatalog.models.xtream import CATALOG_IDS
from xtreamcatalog.services.addon_service import AddonService
from xtreamcatalog.services.config_service import ConfigService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["addon"])


def _error_response(e: CatalogError) -> JSONResponse:
    return JSONResponse({"error": str(e)}, status_code=e.status_code)


def _parse_kind(value: str) -> Optional[ContentKind]:
    try:
        return ContentKind.parse(value)
    except ValueError:
        return None


def raw_extra_segment(request: Request, extra: str) -> str:
    """The extra segment as sent, before percent-decoding.

    Starlette decodes path parameters, which would turn an encoded ``&`` or
    ``+`` inside a value into a separator or a space.
    """
    raw_path = request.scope.get("raw_path")
    if not raw_path:
        return extra
    segment = raw_path.decode("latin-1").split("?", 1)[0].rsplit("/", 1)[-1]
    return segment[:-len(".json")] if segment.endswith(".json") else segment


def parse_extra(extra: str) -> dict:
    """``genre=Sports&search=x&skip=100`` (still percent-encoded) -> dict of first values, ``skip`` as int."""
    values = {key: vals[0] for key, vals in parse_qs(extra or "").items() if vals}
    try:
        skip = int(values.get("skip", 0))
    except ValueError:
        skip = 0
    return {
        "genre": values.get("genre"),
        "search": values.get("search"),
        "skip": max(skip, 0),
    }


@router.get("/{token}/manifest.json")
async def manifest(
    token: str,
    cfg: ConfigService = Depends(get_config_service),
    addon: AddonService = Depends(get_addon_service),
):
    try:
        config = cfg.resolve(token)
    except CatalogError as e:
        return _error_response(e)
    snapshot = None
    if config.include_categories:
        try:
            snapshot = (await addon.index(config)).snapshot
        except UpstreamError as e:
            logger.warning(f"Serving manifest without categories: {e}")
    return addon.manifest(config, snapshot)


async def _catalog(
    token: str,
    type: str,
    catalog_id: str,
    extra: str,
    cfg: ConfigService,
    addon: AddonService,
):
    try:
        config = cfg.resolve(token)
    except CatalogError as e:
        return _error_response(e)

    kind = _parse_kind(type)
    if kind is None or CATALOG_IDS[kind.value][0] != catalog_id:
        return {"metas": []}
    if kind is ContentKind.SERIES and not config.include_series:
        return {"metas": []}

    params = parse_extra(extra)
    try:
        metas = await addon.catalog(config, kind, params["genre"], params["search"], params["skip"])
    except UpstreamError as e:
        logger.error(f"Catalog {catalog_id} unavailable: {e}")
        return _error_response(e)
    return {"metas": metas}


@router.get("/{token}/catalog/{type}/{catalog_id}.json")
async def catalog(
    token: str,
    type: str,
    catalog_id: str,
    cfg: ConfigService = Depends(get_config_service),
    addon: AddonService = Depends(get_addon_service),
):
    return await _catalog(token, type, catalog_id, "", cfg, addon)


@router.get("/{token}/catalog/{type}/{catalog_id}/{extra}.json")
async def catalog_with_extra(
    request: Request,
    token: str,
    type: str,
    catalog_id: str,
    extra: str,
    cfg: ConfigService = Depends(get_config_service),
    addon: AddonService = Depends(get_addon_service),
):
    return await _catalog(token, type, catalog_id, raw_extra_segment(request, extra), cfg, addon)


@router.get("/{token}/meta/{type}/{id}.json")
async def meta(
    token: str,
    type: str,
    id: str,
    cfg: ConfigService = Depends(get_config_service),
    addon: AddonService = Depends(get_addon_service),
):
    try:
        config = cfg.resolve(token)
        kind = _parse_kind(type)
        if kind is None:
            return {"meta": None}
        return {"meta": await addon.meta(config, kind, id)}
    except NotFoundError:
        return {"meta": None}
    except CatalogError as e:
        return _error_response(e)


@router.get("/{token}/stream/{type}/{id}.json")
async def stream(
    token: str,
    type: str,
    id: str,
    cfg: ConfigService = Depends(get_config_service),
    addon: AddonService = Depends(get_addon_service),
):
    try:
        config = cfg.resolve(token)
        return await addon.stream(config, id)
    except NotFoundError as e:
        logger.info(f"No stream: {e}")
        return {"streams": []}
    except CatalogError as e:
        return _error_response(e)
