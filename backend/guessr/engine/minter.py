"""Dynamic location minter.

Mints a new location for a region when the curated pool has nothing fresh
left there. Cost-locked: at most ``max_mint_attempts`` (never more than 2)
resolver calls per mint, and zero reverse-geocoding calls; the place name is
derived from the seed and region.

Flow per attempt:
1. Pick a random seed of the region and sample a point inside it
2. Reject samples outside the global bounds (no resolver call)
3. Resolve the nearest outdoor panorama
4. Reject panoramas outside the seed envelope
5. Reject identities already in persistent history or the session windows
6. Build the record, record its fingerprint, return
"""

from __future__ import annotations

import random
import time

from guessr.clients.resolver_interface import ImageryResolver
from guessr.core.geo import cluster_id, local_distance_km, location_hash, within_bounds
from guessr.core.ids import deterministic_id
from guessr.core.logging import log
from guessr.core.models import (
    Difficulty,
    GameMode,
    ImageryRef,
    LocationFingerprint,
    LocationRecord,
    MintFailReason,
    MintResult,
    RegionSeeds,
    ResolvedImagery,
    SeedZone,
)
from guessr.core.regions import DEFAULT_MACRO_REGION, RegionDirectory
from guessr.engine.anti_repeat import RECENT_CLUSTER_ID, RECENT_IMAGERY_ID, AntiRepeatEngine
from guessr.engine.history import PERSISTENT_IMAGERY_ID, PERSISTENT_LOCATION_HASH, PersistentHistory
from guessr.engine.metrics import MintMetrics
from guessr.engine.profiles import EngineConfig
from guessr.engine.seeds import DEFAULT_DISTRICT, sample_from_seed, within_seed_envelope

# Directional branches relative to the primary heading: left, right, forward (opposite)
BRANCH_OFFSETS = (-90, 90, 180)

DYNAMIC_HINT_TAGS = ["signage", "dynamic"]
DYNAMIC_QUALITY_SCORE = 3
DYNAMIC_ROAD_TYPE = "urban_street"

# Curated-package count at which a region counts as fully recognizable
DENSITY_SATURATION = 10


def estimate_difficulty(
    lat: float, lng: float, seed: SeedZone, region_package_count: int
) -> Difficulty:
    """Heuristic tier for a minted location.

    Closer to the seed center and denser regions skew easier:
    score = (1 - distance/radius) * 0.6 + min(1, packages/10) * 0.4
    """
    dist_factor = min(1.0, local_distance_km(lat, lng, seed.center_lat, seed.center_lng) / seed.radius_km)
    density_factor = min(1.0, region_package_count / DENSITY_SATURATION)
    score = (1 - dist_factor) * 0.6 + density_factor * 0.4

    if score > 0.7:
        return Difficulty.EASY
    if score > 0.3:
        return Difficulty.MEDIUM
    return Difficulty.HARD


class DynamicMinter:
    """Per-session minter with its own metrics and resolver-call budget."""

    def __init__(
        self,
        seed_map: dict[str, RegionSeeds],
        history: PersistentHistory,
        rng: random.Random,
        resolver: ImageryResolver | None = None,
        directory: RegionDirectory | None = None,
        config: EngineConfig | None = None,
        anti_repeat: AntiRepeatEngine | None = None,
    ) -> None:
        self.seed_map = seed_map
        self.history = history
        self.anti_repeat = anti_repeat
        self.resolver = resolver
        self.metrics = MintMetrics()
        self._rng = rng
        self._directory = directory
        self._config = config or EngineConfig()
        self._sequence = 0
        self.session_resolver_calls = 0

    @property
    def available(self) -> bool:
        return self.resolver is not None

    def mint(self, region: str, last_region: str | None) -> MintResult:
        """Try to mint one location in ``region``.

        Args:
            region: Target region
            last_region: Region of the previous round

        Returns:
            MintResult with the new record, or a fail reason
        """
        self.metrics.total_attempts += 1

        if region == last_region:
            self.metrics.blocked_by_region += 1
            return self._fail(region, MintFailReason.BACK_TO_BACK_PROVINCE, 0)

        entry = self.seed_map.get(region)
        if entry is None or not entry.seeds:
            return self._fail(region, MintFailReason.NO_SEEDS_FOR_PROVINCE, 0)

        if self.resolver is None:
            return self._fail(region, MintFailReason.RESOLVER_UNAVAILABLE, 0)

        if self.session_resolver_calls >= self._config.max_session_resolver_calls:
            return self._fail(region, MintFailReason.SESSION_CALL_CEILING, 0)

        attempts = 0
        for _ in range(self._config.max_mint_attempts):
            if self.session_resolver_calls >= self._config.max_session_resolver_calls:
                break
            attempts += 1

            seed = entry.seeds[self._rng.randrange(len(entry.seeds))]
            lat, lng = sample_from_seed(seed, self._rng)
            if not within_bounds(lat, lng):
                self.metrics.blocked_by_envelope += 1
                continue

            resolved = self._resolve(lat, lng)
            if resolved is None:
                continue

            if not within_seed_envelope(resolved.lat, resolved.lng, seed):
                self.metrics.blocked_by_envelope += 1
                log.debug(f"MINT_REJECTED region={region} reason=envelope imagery_id={resolved.imagery_id}")
                continue

            loc_hash = location_hash(resolved.lat, resolved.lng)
            cluster = cluster_id(region, loc_hash)
            rejection = self.history.check(resolved.imagery_id, loc_hash)
            if rejection is None and self.anti_repeat is not None:
                rejection = self.anti_repeat.check_identity(resolved.imagery_id, loc_hash, cluster)
            if rejection in (PERSISTENT_IMAGERY_ID, RECENT_IMAGERY_ID):
                self.metrics.blocked_by_imagery_id += 1
            elif rejection == RECENT_CLUSTER_ID:
                self.metrics.blocked_by_cluster_id += 1
            elif rejection:
                self.metrics.blocked_by_location_hash += 1
            if rejection:
                log.debug(f"MINT_REJECTED region={region} reason={rejection} imagery_id={resolved.imagery_id}")
                continue

            difficulty = estimate_difficulty(resolved.lat, resolved.lng, seed, entry.total_static_packages)
            record = self.build_record(resolved, region, seed.district)

            now = time.time()
            self.history.record(
                LocationFingerprint(
                    imagery_id=resolved.imagery_id,
                    location_hash=loc_hash,
                    region=region,
                    cluster_id=cluster,
                    timestamp=now,
                )
            )

            self.metrics.total_success += 1
            self.metrics.attempts_used += attempts
            self.metrics.last_mint_timestamp = now
            log.info(
                f"MINT_SUCCESS region={region} id={record.id} difficulty={difficulty.value} attempts={attempts}"
            )
            return MintResult(package=record, attempts_used=attempts, difficulty=difficulty)

        return self._fail(region, MintFailReason.ALL_ATTEMPTS_EXHAUSTED, attempts)

    def _resolve(self, lat: float, lng: float) -> ResolvedImagery | None:
        self.session_resolver_calls += 1
        self.metrics.total_resolver_calls += 1
        try:
            return self.resolver.resolve(lat, lng, self._config.resolver_search_radius_m)
        except Exception as e:
            log.warning(f"RESOLVER_FAILED lat={lat:.5f} lng={lng:.5f}: {e}")
            return None

    def _fail(self, region: str, reason: MintFailReason, attempts: int) -> MintResult:
        self.metrics.total_fail += 1
        self.metrics.attempts_used += attempts
        log.info(f"MINT_FAILED region={region} reason={reason.value} attempts={attempts}")
        return MintResult(attempts_used=attempts, fail_reason=reason)

    def build_record(self, resolved: ResolvedImagery, region: str, district: str | None) -> LocationRecord:
        """Assemble a location record around one resolved panorama.

        The three branches reuse the primary imagery id at -90/+90/+180 degrees.
        """
        self._sequence += 1
        heading0 = float(self._rng.randrange(360))
        record_id = "dyn_" + deterministic_id(
            {
                "imagery_id": resolved.imagery_id,
                "lat": resolved.lat,
                "lng": resolved.lng,
                "heading": heading0,
                "seq": self._sequence,
            }
        )

        def view(offset: float) -> ImageryRef:
            return ImageryRef(
                imagery_id=resolved.imagery_id,
                lat=resolved.lat,
                lng=resolved.lng,
                heading=(heading0 + offset) % 360,
            )

        left, right, forward = (view(o) for o in BRANCH_OFFSETS)
        macro = self._directory.macro_region(region) if self._directory is not None else DEFAULT_MACRO_REGION
        return LocationRecord(
            id=record_id,
            mode=GameMode.URBAN,
            region_hint=macro,
            road_type=DYNAMIC_ROAD_TYPE,
            hint_tags=list(DYNAMIC_HINT_TAGS),
            quality_score=DYNAMIC_QUALITY_SCORE,
            banned_by_source=False,
            primary=view(0),
            left=left,
            right=right,
            forward=forward,
            place_name=f"{district or DEFAULT_DISTRICT}, {region}",
        )
