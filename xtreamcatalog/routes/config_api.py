"""Configuration token routes."""
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from xtreamcatalog.dependencies import get_config_service
from xtreamcatalog.errors import ConfigError
from xtreamcatalog.models.config import AddonConfig
from xtreamcatalog.services.config_service import ConfigService
from xtreamcatalog.services.xtream_service import require_credentials

logger = logging.getLogger(__name__)

router = APIRouter(tags=["config"])


@router.post("/encrypt")
async def encrypt_config(request: Request, cfg: ConfigService = Depends(get_config_service)):
    if not cfg.encryption_enabled:
        return JSONResponse({"error": "Encryption not enabled on server (CONFIG_SECRET missing)"}, status_code=400)
    try:
        payload = await request.json()
    except ValueError:
        return JSONResponse({"error": "Invalid config payload"}, status_code=400)
    if not isinstance(payload, dict):
        return JSONResponse({"error": "Invalid config payload"}, status_code=400)

    try:
        require_credentials(AddonConfig.model_validate(payload))
        token = cfg.encrypt(payload)
    except ValidationError:
        return JSONResponse({"error": "Invalid config payload"}, status_code=400)
    except ConfigError as e:
        return JSONResponse({"error": str(e)}, status_code=e.status_code)

    logger.info("Issued encrypted configuration token")
    base = str(request.base_url).rstrip("/")
    return {"token": token, "manifestUrl": f"{base}/{token}/manifest.json"}
