"""FastAPI dependency injection — provides services via Depends()."""
from __future__ import annotations

from fastapi import Request

from xtreamcatalog.services.addon_service import AddonService
from xtreamcatalog.services.config_service import ConfigService


def get_config_service(request: Request) -> ConfigService:
    return request.app.state.config_service


def get_addon_service(request: Request) -> AddonService:
    return request.app.state.addon_service
