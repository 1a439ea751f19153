"""Health check route."""
from __future__ import annotations

from datetime import datetime, timezone

from fastapi import APIRouter

from xtreamcatalog.models.xtream import ADDON_VERSION

router = APIRouter(tags=["health"])


@router.get("/health")
async def health():
    return {
        "status": "ok",
        "version": ADDON_VERSION,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
