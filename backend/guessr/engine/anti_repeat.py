"""Anti-repeat engine: bounded recent-history windows plus the last-region pointer."""

from __future__ import annotations

from collections import deque

from guessr.core.models import AntiRepeatState, EnrichedLocation
from guessr.engine.profiles import EngineConfig

# Rejection reasons returned by AntiRepeatEngine.check
RECENT_SELECTION_ID = "recent_selection_id"
RECENT_IMAGERY_ID = "recent_imagery_id"
RECENT_LOCATION_HASH = "recent_location_hash"
RECENT_CLUSTER_ID = "recent_cluster_id"
RECENT_REGION = "recent_region"


class AntiRepeatEngine:
    """Sliding-window duplicate guard for one game session.

    Five FIFO windows (selection id, imagery id, location hash, cluster id,
    region), each evicting its oldest entry once it exceeds its size, plus
    ``last_region``. The region window can be relaxed by callers; the
    back-to-back region rule (``is_back_to_back``) cannot.
    """

    def __init__(self, config: EngineConfig | None = None) -> None:
        self._config = config or EngineConfig()
        self.clear()

    def clear(self) -> None:
        c = self._config
        self._selection_ids: deque[str] = deque(maxlen=c.recent_selection_window)
        self._imagery_ids: deque[str] = deque(maxlen=c.recent_imagery_window)
        self._location_hashes: deque[str] = deque(maxlen=c.recent_hash_window)
        self._cluster_ids: deque[str] = deque(maxlen=c.recent_cluster_window)
        self._regions: deque[str] = deque(maxlen=c.recent_region_window)
        self._last_region: str | None = None

    @property
    def last_region(self) -> str | None:
        return self._last_region

    @property
    def last_imagery_id(self) -> str | None:
        return self._imagery_ids[-1] if self._imagery_ids else None

    @property
    def last_location_hash(self) -> str | None:
        return self._location_hashes[-1] if self._location_hashes else None

    @property
    def last_cluster_id(self) -> str | None:
        return self._cluster_ids[-1] if self._cluster_ids else None

    def check(self, candidate: EnrichedLocation, relax_region_window: bool = False) -> str | None:
        """Check a candidate against every window.

        Args:
            candidate: Enriched location under consideration
            relax_region_window: Skip the region sliding-window check

        Returns:
            Rejection reason, or None if the candidate passes
        """
        if candidate.id in self._selection_ids:
            return RECENT_SELECTION_ID
        if candidate.imagery_id in self._imagery_ids:
            return RECENT_IMAGERY_ID
        if candidate.location_hash in self._location_hashes:
            return RECENT_LOCATION_HASH
        if candidate.cluster_id in self._cluster_ids:
            return RECENT_CLUSTER_ID
        if not relax_region_window and candidate.region in self._regions:
            return RECENT_REGION
        return None

    def check_identity(self, imagery_id: str, location_hash: str, cluster: str) -> str | None:
        """Check a resolved panorama that has no selection id yet."""
        if imagery_id in self._imagery_ids:
            return RECENT_IMAGERY_ID
        if location_hash in self._location_hashes:
            return RECENT_LOCATION_HASH
        if cluster in self._cluster_ids:
            return RECENT_CLUSTER_ID
        return None

    def is_back_to_back(self, region: str) -> bool:
        return self._last_region is not None and region == self._last_region

    def in_selection_window(self, selection_id: str) -> bool:
        return selection_id in self._selection_ids

    def record(self, candidate: EnrichedLocation) -> None:
        """Push the candidate into every window and move last_region."""
        self._selection_ids.append(candidate.id)
        self._imagery_ids.append(candidate.imagery_id)
        self._location_hashes.append(candidate.location_hash)
        self._cluster_ids.append(candidate.cluster_id)
        self._regions.append(candidate.region)
        self._last_region = candidate.region

    def snapshot(self) -> AntiRepeatState:
        """Read-only copy of the current windows."""
        return AntiRepeatState(
            recent_selection_ids=list(self._selection_ids),
            recent_imagery_ids=list(self._imagery_ids),
            recent_location_hashes=list(self._location_hashes),
            recent_cluster_ids=list(self._cluster_ids),
            recent_regions=list(self._regions),
            last_region=self._last_region,
        )

    def restore(self, state: AntiRepeatState) -> None:
        """Replace every window with a previously taken snapshot."""
        self.clear()
        self._selection_ids.extend(state.recent_selection_ids)
        self._imagery_ids.extend(state.recent_imagery_ids)
        self._location_hashes.extend(state.recent_location_hashes)
        self._cluster_ids.extend(state.recent_cluster_ids)
        self._regions.extend(state.recent_regions)
        self._last_region = state.last_region
