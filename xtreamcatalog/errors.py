"""Error taxonomy shared by the catalog services."""
from __future__ import annotations


class CatalogError(Exception):
    """Base class for catalog errors."""

    status_code = 500


class ConfigError(CatalogError):
    """Missing or invalid credentials / configuration token. Never retried."""

    status_code = 400


class UpstreamError(CatalogError):
    """Backend unreachable or malformed after every fallback was tried."""

    status_code = 502


class NotFoundError(CatalogError):
    """Unknown item id at query time."""

    status_code = 404
