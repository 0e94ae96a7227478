"""Abstract imagery resolver (provider-agnostic)."""

from __future__ import annotations

from abc import ABC, abstractmethod

from guessr.core.models import ResolvedImagery


class ResolverError(RuntimeError):
    """Transport failure or unexpected status from an imagery provider."""


class ImageryResolver(ABC):
    """Looks up the nearest outdoor panorama for a coordinate.

    Allows swapping the Street View client for a deterministic resolver in
    tests and simulations without touching the minter.
    """

    @abstractmethod
    def resolve(self, lat: float, lng: float, radius_m: int) -> ResolvedImagery | None:
        """Resolve a coordinate to a panorama.

        Args:
            lat: Candidate latitude
            lng: Candidate longitude
            radius_m: Search radius in meters

        Returns:
            ResolvedImagery for the nearest outdoor panorama, or None when
            there is no imagery within the radius

        Raises:
            ResolverError: On transport failures or provider errors
        """
