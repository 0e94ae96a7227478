"""Region Directory: static province reference data.

Loads guessr/data/regions.json once and answers name and substring lookups.
"""

from __future__ import annotations

from pydantic import ValidationError

from guessr.core.config import settings
from guessr.core.logging import log
from guessr.core.models import Region
from guessr.core.storage import read_json

DEFAULT_MACRO_REGION = "ic_anadolu"


class RegionDirectory:
    """In-memory directory of administrative regions."""

    def __init__(self, regions: list[Region]) -> None:
        self._regions = list(regions)
        self._by_name = {r.name: r for r in self._regions}

    @classmethod
    def from_file(cls, path: str | None = None) -> RegionDirectory:
        """Load directory from a JSON array of region objects.

        Args:
            path: JSON file path (defaults to settings.regions_file)

        Returns:
            RegionDirectory with every valid entry

        Raises:
            FileNotFoundError: If the file is missing
        """
        path = path or settings.regions_file
        raw = read_json(path)
        if raw is None:
            raise FileNotFoundError(f"Region directory not found: {path}")

        regions: list[Region] = []
        for entry in raw:
            try:
                regions.append(Region(**entry))
            except ValidationError as e:
                log.warning(f"REGION_ENTRY_INVALID entry={entry!r}: {e}")
        log.info(f"REGIONS_LOADED count={len(regions)} path={path}")
        return cls(regions)

    def __len__(self) -> int:
        return len(self._regions)

    def __contains__(self, name: object) -> bool:
        return name in self._by_name

    def all(self) -> list[Region]:
        return list(self._regions)

    def names(self) -> list[str]:
        return [r.name for r in self._regions]

    def get(self, name: str) -> Region | None:
        return self._by_name.get(name)

    def match(self, text: str) -> Region | None:
        """Find the first region whose name contains, or is contained in, text.

        Used for single-token place names such as "Toros Dağları" that carry
        no ", Region" suffix.
        """
        for region in self._regions:
            if region.name in text or (text and text in region.name):
                return region
        return None

    def macro_region(self, name: str) -> str:
        """Macro-region code for a province, defaulting to central Anatolia."""
        region = self._by_name.get(name)
        return region.region if region else DEFAULT_MACRO_REGION


_directory: RegionDirectory | None = None


def get_region_directory(refresh: bool = False) -> RegionDirectory:
    """Get the bundled region directory (loaded lazily, cached).

    Args:
        refresh: Force reload from disk

    Returns:
        Shared RegionDirectory instance (read-only)
    """
    global _directory
    if _directory is None or refresh:
        _directory = RegionDirectory.from_file()
    return _directory
