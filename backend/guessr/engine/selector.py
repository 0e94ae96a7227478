"""Difficulty-mix and static selection over the enriched curated pool."""

from __future__ import annotations

import random
from collections.abc import Callable

from guessr.core.logging import log
from guessr.core.models import Difficulty, EnrichedLocation
from guessr.engine.anti_repeat import AntiRepeatEngine
from guessr.engine.profiles import DIFFICULTY_MIX, EngineConfig, ModeProfile
from guessr.engine.region_bag import RegionBag, shuffled

# Fallback preference after the target tier: adjacent tier first, then the remaining one
TIER_FALLBACKS: dict[Difficulty, list[Difficulty]] = {
    Difficulty.EASY: [Difficulty.MEDIUM, Difficulty.HARD],
    Difficulty.MEDIUM: [Difficulty.HARD, Difficulty.EASY],
    Difficulty.HARD: [Difficulty.MEDIUM, Difficulty.EASY],
}


def pick_tier(rng: random.Random, mix: dict[Difficulty, float] | None = None) -> Difficulty:
    """Weighted tier draw (15/55/30 by default) from one uniform sample."""
    mix = mix or DIFFICULTY_MIX
    r = rng.random()
    cumulative = 0.0
    for tier in (Difficulty.EASY, Difficulty.MEDIUM):
        cumulative += mix.get(tier, 0.0)
        if r < cumulative:
            return tier
    return Difficulty.HARD


def tier_order(target: Difficulty) -> list[Difficulty]:
    return [target, *TIER_FALLBACKS[target]]


class StaticSelector:
    """Picks one curated location per request for a single mode.

    Shares the session's anti-repeat engine, region bag and RNG. Every
    successful pick is recorded in the anti-repeat engine exactly once before
    it is returned.
    """

    def __init__(
        self,
        enriched: list[EnrichedLocation],
        profile: ModeProfile,
        anti_repeat: AntiRepeatEngine,
        rng: random.Random,
        region_bag: RegionBag | None = None,
        config: EngineConfig | None = None,
    ) -> None:
        self.profile = profile
        self._anti_repeat = anti_repeat
        self._rng = rng
        self._bag = region_bag
        self._config = config or EngineConfig()

        self._pool = [ep for ep in enriched if not ep.banned]
        self._by_region: dict[str, list[EnrichedLocation]] = {}
        for ep in self._pool:
            self._by_region.setdefault(ep.region, []).append(ep)

    @property
    def pool(self) -> list[EnrichedLocation]:
        """Non-banned candidates in dataset order."""
        return list(self._pool)

    def candidates(self, region: str) -> list[EnrichedLocation]:
        return list(self._by_region.get(region, []))

    def has_available(self, region: str) -> bool:
        """True if the region has a candidate outside the selection-id window."""
        return any(
            not self._anti_repeat.in_selection_window(ep.id) for ep in self._by_region.get(region, [])
        )

    def select(self, preferred_region: str | None = None) -> EnrichedLocation | None:
        """Select and record one location.

        Args:
            preferred_region: Restrict the pick to this region (no cross-region fallback)

        Returns:
            The recorded location, or None when nothing is available
        """
        if self.profile.difficulty_mix is None:
            picked = self._select_shuffled()
        elif preferred_region is not None:
            picked = self._select_in_region(preferred_region)
        else:
            picked = self._select_ladder()

        if picked is None:
            log.debug(
                f"STATIC_EXHAUSTED mode={self.profile.mode.value} preferred_region={preferred_region}"
            )
            return None

        self._anti_repeat.record(picked)
        log.debug(
            f"STATIC_SELECTED mode={self.profile.mode.value} id={picked.id} "
            f"region={picked.region} difficulty={picked.difficulty.value} score={picked.easy_score}"
        )
        return picked

    # ---- scanning helpers ----

    def _blocked_back_to_back(self, ep: EnrichedLocation) -> bool:
        return self.profile.enforce_rotation and self._anti_repeat.is_back_to_back(ep.region)

    def _scan(self, candidates: list[EnrichedLocation], relax: bool) -> EnrichedLocation | None:
        for ep in shuffled(candidates, self._rng):
            if self._blocked_back_to_back(ep):
                continue
            if self._anti_repeat.check(ep, relax_region_window=relax) is None:
                return ep
        return None

    def _scan_tier(
        self, candidates: list[EnrichedLocation], tier: Difficulty, relax: bool
    ) -> EnrichedLocation | None:
        return self._scan([ep for ep in candidates if ep.difficulty == tier], relax)

    def _scan_matching(
        self, predicate: Callable[[EnrichedLocation], bool]
    ) -> EnrichedLocation | None:
        for ep in shuffled(self._pool, self._rng):
            if not self._blocked_back_to_back(ep) and predicate(ep):
                return ep
        return None

    # ---- selection strategies ----

    def _select_in_region(self, region: str) -> EnrichedLocation | None:
        """Tier order within one region: strict windows, then relaxed region window."""
        if self.profile.enforce_rotation and self._anti_repeat.is_back_to_back(region):
            return None
        candidates = self._by_region.get(region, [])
        if not candidates:
            return None

        order = tier_order(pick_tier(self._rng, self.profile.difficulty_mix))
        for relax in (False, True):
            for tier in order:
                picked = self._scan_tier(candidates, tier, relax)
                if picked is not None:
                    return picked
        return None

    def _select_ladder(self) -> EnrichedLocation | None:
        """Difficulty-first, then region rotation, then progressive relaxation."""
        target = pick_tier(self._rng, self.profile.difficulty_mix)

        # 1. Target tier across all regions
        for relax in (False, True):
            picked = self._scan_tier(self._pool, target, relax)
            if picked is not None:
                return picked

        # 2. Region rotation with tier fallback inside each region
        if self._bag is not None:
            pops = max(self._bag.eligible_count, self._config.min_rotation_pops)
            order = tier_order(target)
            for _ in range(pops):
                region = self._bag.pop(self._anti_repeat.last_region)
                if region is None:
                    break
                if self._anti_repeat.is_back_to_back(region):
                    continue
                candidates = self._by_region.get(region, [])
                for tier in order:
                    picked = self._scan_tier(candidates, tier, relax=False)
                    if picked is not None:
                        return picked
                picked = self._scan(candidates, relax=True)
                if picked is not None:
                    return picked

        # 3. Any region, relaxed region window, full anti-repeat
        picked = self._scan(self._pool, relax=True)
        if picked is not None:
            log.debug("STATIC_FALLBACK step=any_region_relaxed")
            return picked

        # 4. Compare against the single most recent selection only
        ar = self._anti_repeat
        for step, predicate in (
            (
                "last_imagery_hash_cluster",
                lambda ep: ep.imagery_id != ar.last_imagery_id
                and ep.location_hash != ar.last_location_hash
                and ep.cluster_id != ar.last_cluster_id,
            ),
            ("last_imagery", lambda ep: ep.imagery_id != ar.last_imagery_id),
            ("back_to_back_only", lambda ep: True),
        ):
            picked = self._scan_matching(predicate)
            if picked is not None:
                log.info(f"STATIC_FALLBACK step={step} id={picked.id}")
                return picked

        return None

    def _select_shuffled(self) -> EnrichedLocation | None:
        """Plain shuffle for modes without a difficulty mix."""
        picked = self._scan(self._pool, relax=True)
        if picked is not None:
            return picked

        last_imagery = self._anti_repeat.last_imagery_id
        candidates = shuffled(self._pool, self._rng)
        for ep in candidates:
            if ep.imagery_id != last_imagery and not self._blocked_back_to_back(ep):
                return ep
        return candidates[0] if candidates else None
