"""Per-session location engine.

One ``LocationEngine`` owns every piece of mutable selection state for one
game session: enrichment caches, anti-repeat windows, region bags, the
minter and its metrics. Constructing a new engine is how a new game starts;
engines never share state or RNG.
"""

from __future__ import annotations

import random

from pydantic import BaseModel

from guessr.clients.resolver_interface import ImageryResolver
from guessr.core.geo import cluster_id, location_hash
from guessr.core.locations import get_curated_locations
from guessr.core.logging import log
from guessr.core.models import (
    AntiRepeatState,
    Difficulty,
    EnrichedLocation,
    GameMode,
    LocationRecord,
    LocationSource,
    MintResult,
    RoundResult,
)
from guessr.core.regions import RegionDirectory, get_region_directory
from guessr.engine.anti_repeat import AntiRepeatEngine
from guessr.engine.enrichment import build_enrichment_report, eligible_regions, enrich_locations, extract_region
from guessr.engine.history import PersistentHistory
from guessr.engine.minter import DynamicMinter
from guessr.engine.profiles import MODE_PROFILES, EngineConfig
from guessr.engine.region_bag import RegionBag
from guessr.engine.seeds import build_seed_map, seed_stats
from guessr.engine.selector import StaticSelector


class EngineSnapshot(BaseModel):
    """Mutable selection state captured for a later restore."""

    anti_repeat: AntiRepeatState
    bags: dict[GameMode, tuple[list[str], str | None]]
    round_count: int


class LocationEngine:
    """Selection engine for one game session.

    Args:
        locations: Curated records per mode (defaults to the bundled dataset)
        directory: Region directory (defaults to the bundled one)
        config: Tuning snapshot (defaults to process settings)
        rng: Random source; pass a seeded ``random.Random`` for reproducible runs
        resolver: Imagery resolver for dynamic minting (None disables minting)
        history: Cross-session fingerprint buffer (loaded by the caller)
    """

    def __init__(
        self,
        locations: dict[GameMode, list[LocationRecord]] | None = None,
        directory: RegionDirectory | None = None,
        config: EngineConfig | None = None,
        rng: random.Random | None = None,
        resolver: ImageryResolver | None = None,
        history: PersistentHistory | None = None,
    ) -> None:
        if locations is None:
            locations = {mode: get_curated_locations(mode) for mode in GameMode}
        self.directory = directory if directory is not None else get_region_directory()
        self.config = config or EngineConfig.from_settings()
        self.rng = rng or random.Random()
        self.history = history if history is not None else PersistentHistory(self.config.history_capacity)

        self._enriched: dict[GameMode, list[EnrichedLocation]] = {}
        self._reports: dict[GameMode, str] = {}
        for mode in GameMode:
            enriched = enrich_locations(locations.get(mode, []), mode, self.directory, MODE_PROFILES[mode])
            self._enriched[mode] = enriched
            self._reports[mode] = build_enrichment_report(f"{mode.value} enrichment", enriched)
            log.info(f"ENRICHMENT_DONE mode={mode.value} count={len(enriched)}")
            log.debug(self._reports[mode])

        self.anti_repeat = AntiRepeatEngine(self.config)
        self._bags: dict[GameMode, RegionBag] = {}
        self._selectors: dict[GameMode, StaticSelector] = {}
        for mode, profile in MODE_PROFILES.items():
            bag = None
            if profile.enforce_rotation:
                bag = RegionBag(eligible_regions(self._enriched[mode]), self.rng)
                self._bags[mode] = bag
            self._selectors[mode] = StaticSelector(
                self._enriched[mode], profile, self.anti_repeat, self.rng, bag, self.config
            )

        dynamic_pool = [
            ep for mode, profile in MODE_PROFILES.items() if profile.allow_dynamic for ep in self._enriched[mode]
        ]
        self.seed_map = build_seed_map(dynamic_pool)
        self._resolver = resolver
        self.minter = DynamicMinter(
            self.seed_map, self.history, self.rng, resolver, self.directory, self.config,
            anti_repeat=self.anti_repeat,
        )
        self.session_round_count = 0

    # ---- static selection ----

    def select_static_location(
        self, mode: GameMode, preferred_region: str | None = None
    ) -> EnrichedLocation | None:
        """Select and record a curated location, returning its enriched form."""
        picked = self._selectors[mode].select(preferred_region)
        if picked is not None:
            self.session_round_count += 1
        return picked

    def select_static(self, mode: GameMode, preferred_region: str | None = None) -> LocationRecord | None:
        """Select and record a curated location.

        Args:
            mode: Game mode
            preferred_region: Only pick from this region (None for the full fallback ladder)

        Returns:
            Location record, or None when nothing is available
        """
        picked = self.select_static_location(mode, preferred_region)
        return picked.record if picked else None

    # ---- dynamic minting ----

    def mint_dynamic(self, region: str, last_region: str | None) -> MintResult:
        """Mint a new location in ``region``; the caller records it on success."""
        return self.minter.mint(region, last_region)

    def record_dynamic_selection(
        self, record: LocationRecord, difficulty: Difficulty = Difficulty.MEDIUM
    ) -> EnrichedLocation:
        """Record a location picked outside the static path.

        Raises:
            ValueError: If no region can be derived from the place name
        """
        region = extract_region(record.place_name, self.directory)
        if not region:
            raise ValueError(f"Cannot derive region for location {record.id}")

        loc_hash = location_hash(record.primary.lat, record.primary.lng)
        ep = EnrichedLocation(
            record=record,
            region=region,
            difficulty=difficulty,
            location_hash=loc_hash,
            cluster_id=cluster_id(region, loc_hash),
            cluster_size=1,
            imagery_group_size=1,
            easy_score=0.0,
        )
        self.anti_repeat.record(ep)
        self.session_round_count += 1
        log.debug(f"DYNAMIC_RECORDED id={record.id} region={region}")
        return ep

    def is_heavy_player(self) -> bool:
        return self.session_round_count >= self.config.heavy_player_threshold

    def should_attempt_dynamic(self, region: str, mode: GameMode = GameMode.URBAN) -> bool:
        """Heavy players mint first; others only when the region's static pool is spent."""
        if self.is_heavy_player():
            return True
        return not self._selectors[mode].has_available(region)

    # ---- round orchestration ----

    def next_round(self, mode: GameMode) -> RoundResult | None:
        """Pick the location for the next round.

        Order: dynamic mint for the bag's region (when minting applies),
        then static in that region, then static across all regions.
        """
        profile = MODE_PROFILES[mode]
        region = self.next_region(mode) if profile.enforce_rotation else None

        if (
            region is not None
            and profile.allow_dynamic
            and self.minter.available
            and self.should_attempt_dynamic(region, mode)
        ):
            result = self.mint_dynamic(region, self.get_last_region())
            if result.ok:
                ep = self.record_dynamic_selection(result.package, result.difficulty or Difficulty.MEDIUM)
                return RoundResult(
                    package=result.package, source=LocationSource.DYNAMIC, region=ep.region, difficulty=ep.difficulty
                )

        picked = None
        if region is not None:
            picked = self.select_static_location(mode, region)
        if picked is None:
            picked = self.select_static_location(mode)
        if picked is None:
            log.warning(f"ROUND_EXHAUSTED mode={mode.value} round={self.session_round_count + 1}")
            return None

        return RoundResult(
            package=picked.record, source=LocationSource.STATIC, region=picked.region, difficulty=picked.difficulty
        )

    def get_last_region(self) -> str | None:
        return self.anti_repeat.last_region

    def next_region(self, mode: GameMode = GameMode.URBAN) -> str | None:
        """Pop the next rotation region (never the live last region when avoidable)."""
        bag = self._bags.get(mode)
        if bag is None:
            return None
        return bag.pop(self.anti_repeat.last_region)

    # ---- diagnostics ----

    def get_enriched_locations(self, mode: GameMode) -> list[EnrichedLocation]:
        return list(self._enriched[mode])

    def get_eligible_region_list(self, mode: GameMode = GameMode.URBAN) -> list[str]:
        return eligible_regions(self._enriched[mode])

    def get_anti_repeat_state(self) -> AntiRepeatState:
        return self.anti_repeat.snapshot()

    def get_mint_metrics(self) -> dict:
        return self.minter.metrics.summary()

    def enrichment_report(self, mode: GameMode) -> str:
        return self._reports[mode]

    def seed_stats(self) -> dict:
        return seed_stats(self.seed_map)

    # ---- state lifecycle ----

    def snapshot(self) -> EngineSnapshot:
        return EngineSnapshot(
            anti_repeat=self.anti_repeat.snapshot(),
            bags={mode: bag.snapshot() for mode, bag in self._bags.items()},
            round_count=self.session_round_count,
        )

    def restore(self, snapshot: EngineSnapshot) -> None:
        self.anti_repeat.restore(snapshot.anti_repeat)
        for mode, state in snapshot.bags.items():
            self._bags[mode].restore(state)
        self.session_round_count = snapshot.round_count

    def clear_selection_state(self) -> None:
        """Empty the anti-repeat windows and region bags."""
        self.anti_repeat.clear()
        for bag in self._bags.values():
            bag.clear()

    def reset(self) -> None:
        """Clear every piece of session state (persistent history is kept)."""
        self.clear_selection_state()
        self.minter = DynamicMinter(
            self.seed_map, self.history, self.rng, self._resolver, self.directory, self.config,
            anti_repeat=self.anti_repeat,
        )
        self.session_round_count = 0
        log.info("ENGINE_RESET")
