#!/usr/bin/env python3
"""
Draw simulation over the bundled dataset.

Usage: run_simulation.py [draws] [mode] [seed]

Validates:
- No consecutive region / imagery / grid cell / cluster repeats
- No banned records returned
- Difficulty mix close to 15/55/30 in urban mode
"""

from __future__ import annotations

import random
import sys
from pathlib import Path

# Add backend to path
sys.path.insert(0, str(Path(__file__).parent.parent / "backend"))

from guessr.core.logging import log
from guessr.core.models import Difficulty, GameMode
from guessr.engine import LocationEngine
from guessr.engine.simulation import run_simulation


def main():
    draws = int(sys.argv[1]) if len(sys.argv) > 1 else 10_000
    mode = GameMode(sys.argv[2]) if len(sys.argv) > 2 else GameMode.URBAN
    seed = int(sys.argv[3]) if len(sys.argv) > 3 else 20240101

    log.info(f"SIMULATION_SCRIPT draws={draws} mode={mode.value} seed={seed}")
    engine = LocationEngine(rng=random.Random(seed))
    stats = run_simulation(engine, draws=draws, mode=mode)

    print("=" * 60)
    print(f"SIMULATION ({mode.value}, {draws} draws, seed {seed})")
    print("=" * 60)
    print(f"Successful draws: {stats.successful_draws}")
    print(f"Region coverage: {stats.region_coverage}")

    print("\nDifficulty mix:")
    proportions = stats.proportions()
    for tier in Difficulty:
        print(f"  {tier.value}: {stats.difficulty_distribution[tier]} ({proportions[tier]:.1%})")

    print("\nConsecutive repeats:")
    print(f"  region: {stats.consecutive_same_region}")
    print(f"  imagery id: {stats.consecutive_same_imagery_id}")
    print(f"  location hash: {stats.consecutive_same_location_hash}")
    print(f"  cluster id: {stats.consecutive_same_cluster_id}")

    print(f"\nBanned selections: {stats.banned_selections}")
    print(f"Window duplicates: {stats.duplicate_returned_count}")

    failures = (
        stats.consecutive_same_region
        + stats.consecutive_same_imagery_id
        + stats.banned_selections
        + stats.duplicate_returned_count
    )
    print("\n" + "=" * 60)
    print(f"INVARIANTS: {'PASS' if failures == 0 else 'FAIL'}")
    print("=" * 60)
    return 0 if failures == 0 else 1


if __name__ == "__main__":
    sys.exit(main())
