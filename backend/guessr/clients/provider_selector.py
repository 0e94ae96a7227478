"""Imagery resolver selection."""

from __future__ import annotations

from guessr.clients.imagery import StreetViewResolver
from guessr.clients.resolver_interface import ImageryResolver
from guessr.core.config import settings


def _guard_resolver(key: str | None) -> None:
    """Validates that the resolver API key is present.

    Raises:
        RuntimeError: If key is missing
    """
    if not key:
        raise RuntimeError(
            "Dynamic minting requires GOOGLE_MAPS_API_KEY. "
            "Set GOOGLE_MAPS_API_KEY in .env to enable the imagery resolver."
        )


def resolver_client() -> ImageryResolver:
    """Returns the configured imagery resolver.

    Raises:
        RuntimeError: If the API key is missing
    """
    _guard_resolver(settings.google_maps_api_key)
    return StreetViewResolver(
        api_key=settings.google_maps_api_key,
        base_url=settings.resolver_base_url,
        timeout_s=settings.resolver_timeout_s,
    )


def resolver_configured() -> bool:
    return bool(settings.google_maps_api_key)
