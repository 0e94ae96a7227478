"""Street View metadata client used as the minter's imagery resolver.

One metadata request per resolve() call and no internal retries: the minter
caps resolver calls per mint, so a retry here would spend that budget twice.
Metadata requests are not billed as panorama loads.
"""

from __future__ import annotations

from typing import Any

import httpx

from guessr.clients.resolver_interface import ImageryResolver, ResolverError
from guessr.core.logging import log
from guessr.core.models import ResolvedImagery

# Statuses meaning "no outdoor panorama within the radius"
NO_IMAGERY_STATUSES = {"ZERO_RESULTS", "NOT_FOUND"}


class StreetViewResolver(ImageryResolver):
    """Resolve coordinates to the nearest outdoor Street View panorama."""

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://maps.googleapis.com/maps/api/streetview/metadata",
        timeout_s: float = 10.0,
        transport: httpx.BaseTransport | None = None,
    ):
        """
        Initialize resolver.

        Args:
            api_key: Google Maps API key
            base_url: Metadata endpoint URL
            timeout_s: Connect and read timeout in seconds
            transport: Optional httpx transport (tests pass httpx.MockTransport)
        """
        if not api_key:
            raise ValueError("API key cannot be empty")

        self.base_url = base_url
        self._api_key = api_key
        self.client = httpx.Client(
            timeout=httpx.Timeout(timeout_s),
            headers={"User-Agent": "guessr-location-engine/1.0"},
            transport=transport,
        )

    def resolve(self, lat: float, lng: float, radius_m: int) -> ResolvedImagery | None:
        """Look up the nearest outdoor panorama.

        Args:
            lat: Candidate latitude
            lng: Candidate longitude
            radius_m: Search radius in meters

        Returns:
            ResolvedImagery, or None when the provider reports no imagery

        Raises:
            ResolverError: On network errors, HTTP errors or provider error statuses
        """
        params = {
            "location": f"{lat:.6f},{lng:.6f}",
            "radius": radius_m,
            "source": "outdoor",
            "key": self._api_key,
        }

        try:
            response = self.client.get(self.base_url, params=params)
            response.raise_for_status()
            data: dict[str, Any] = response.json()
        except httpx.HTTPStatusError as e:
            log.warning(f"RESOLVER_HTTP_ERROR status={e.response.status_code}")
            raise ResolverError(f"HTTP {e.response.status_code} from imagery provider") from e
        except (httpx.TimeoutException, httpx.TransportError) as e:
            log.warning(f"RESOLVER_NETWORK_ERROR: {e}")
            raise ResolverError(f"Imagery provider unreachable: {e}") from e
        except ValueError as e:
            raise ResolverError(f"Invalid JSON from imagery provider: {e}") from e

        status = data.get("status")
        if status in NO_IMAGERY_STATUSES:
            log.debug(f"RESOLVER_NO_IMAGERY lat={lat:.5f} lng={lng:.5f} status={status}")
            return None
        if status != "OK":
            detail = data.get("error_message", "")
            raise ResolverError(f"Imagery provider status {status}: {detail}".rstrip(": "))

        location = data.get("location") or {}
        pano_id = data.get("pano_id")
        if not pano_id:
            raise ResolverError("Imagery provider returned OK without pano_id")

        return ResolvedImagery(
            imagery_id=pano_id,
            lat=location.get("lat", lat),
            lng=location.get("lng", lng),
        )

    def close(self) -> None:
        """Close the HTTP client session."""
        self.client.close()

    def __enter__(self) -> StreetViewResolver:
        return self

    def __exit__(self, *args) -> None:
        self.close()
