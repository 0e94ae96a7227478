"""Draw simulation for validating selection invariants (not used in live rounds)."""

from __future__ import annotations

from pydantic import BaseModel, Field

from guessr.core.logging import log
from guessr.core.models import Difficulty, GameMode
from guessr.engine.session import LocationEngine


class SimulationStats(BaseModel):
    draws: int
    successful_draws: int = 0
    difficulty_distribution: dict[Difficulty, int] = Field(
        default_factory=lambda: {tier: 0 for tier in Difficulty}
    )
    unique_regions: list[str] = Field(default_factory=list)
    region_coverage: int = 0
    consecutive_same_region: int = 0
    consecutive_same_imagery_id: int = 0
    consecutive_same_location_hash: int = 0
    consecutive_same_cluster_id: int = 0
    banned_selections: int = 0
    repeated_imagery_ids: int = 0
    duplicate_returned_count: int = 0

    def proportions(self) -> dict[Difficulty, float]:
        if not self.successful_draws:
            return {tier: 0.0 for tier in Difficulty}
        return {tier: n / self.successful_draws for tier, n in self.difficulty_distribution.items()}


def run_simulation(engine: LocationEngine, draws: int = 1000, mode: GameMode = GameMode.URBAN) -> SimulationStats:
    """Run ``draws`` static selections from a clean state and tally invariants.

    The engine's state is snapshotted before the run and restored afterwards,
    so a live session is unaffected.

    Args:
        engine: Engine to draw from
        draws: Number of selections
        mode: Game mode to draw in

    Returns:
        Aggregate statistics over the run
    """
    saved = engine.snapshot()
    engine.clear_selection_state()

    stats = SimulationStats(draws=draws)
    regions: set[str] = set()
    seen_imagery: set[str] = set()
    previous = None

    try:
        for _ in range(draws):
            window = set(engine.anti_repeat.snapshot().recent_selection_ids)
            picked = engine.select_static_location(mode)
            if picked is None:
                continue

            stats.successful_draws += 1
            stats.difficulty_distribution[picked.difficulty] += 1
            regions.add(picked.region)

            if picked.banned:
                stats.banned_selections += 1
            if picked.id in window:
                stats.duplicate_returned_count += 1
            if picked.imagery_id in seen_imagery:
                stats.repeated_imagery_ids += 1
            seen_imagery.add(picked.imagery_id)

            if previous is not None:
                if picked.region == previous.region:
                    stats.consecutive_same_region += 1
                if picked.imagery_id == previous.imagery_id:
                    stats.consecutive_same_imagery_id += 1
                if picked.location_hash == previous.location_hash:
                    stats.consecutive_same_location_hash += 1
                if picked.cluster_id == previous.cluster_id:
                    stats.consecutive_same_cluster_id += 1
            previous = picked
    finally:
        engine.restore(saved)

    stats.unique_regions = sorted(regions)
    stats.region_coverage = len(regions)
    log.info(
        f"SIMULATION_DONE mode={mode.value} draws={draws} ok={stats.successful_draws} "
        f"regions={stats.region_coverage} consecutive_region={stats.consecutive_same_region}"
    )
    return stats
