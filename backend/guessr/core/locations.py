"""Curated location dataset loading and caching.

Reads guessr/data/locations.json and partitions the validated records by
game mode.
"""

from __future__ import annotations

import json

from pydantic import ValidationError

from guessr.core.config import settings
from guessr.core.logging import log
from guessr.core.models import GameMode, LocationRecord
from guessr.core.storage import read_json


class LocationCache:
    """In-memory cache for the curated dataset."""

    def __init__(self, path: str | None = None) -> None:
        self._path = path
        self._by_mode: dict[GameMode, list[LocationRecord]] = {mode: [] for mode in GameMode}
        self._loaded = False

    def get_all(self, mode: GameMode, refresh: bool = False) -> list[LocationRecord]:
        """Get all curated records for a mode, loading from disk if needed.

        Args:
            mode: Dataset partition
            refresh: Force re-read of the dataset file

        Returns:
            Records in file order
        """
        if not self._loaded or refresh:
            self._load()
        return list(self._by_mode[mode])

    def _load(self) -> None:
        """Read and validate the dataset file."""
        path = self._path or settings.locations_file

        try:
            raw = read_json(path, default=[])
        except (json.JSONDecodeError, OSError) as e:
            log.warning(f"LOCATIONS_LOAD_FAILED path={path}: {e}")
            raw = []

        by_mode: dict[GameMode, list[LocationRecord]] = {mode: [] for mode in GameMode}
        seen_ids: set[str] = set()
        skipped = 0

        for entry in raw:
            try:
                record = LocationRecord(**entry)
            except ValidationError as e:
                log.warning(f"LOCATION_RECORD_INVALID id={entry.get('id')}: {e.error_count()} errors")
                skipped += 1
                continue

            if record.id in seen_ids:
                log.warning(f"LOCATION_RECORD_DUPLICATE id={record.id}")
                skipped += 1
                continue

            seen_ids.add(record.id)
            by_mode[record.mode].append(record)

        self._by_mode = by_mode
        self._loaded = True

        counts = " ".join(f"{mode.value}={len(records)}" for mode, records in by_mode.items())
        log.info(f"LOCATIONS_LOADED {counts} skipped={skipped} path={path}")


# Global cache instance
_cache = LocationCache()


def get_curated_locations(mode: GameMode, refresh: bool = False) -> list[LocationRecord]:
    """Get the bundled curated records for a mode.

    Args:
        mode: Dataset partition
        refresh: Force re-read of the dataset file

    Returns:
        List of location records
    """
    return _cache.get_all(mode, refresh=refresh)
