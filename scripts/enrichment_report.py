#!/usr/bin/env python3
"""
Print the enrichment report for the bundled curated dataset.

Shows per-mode region coverage, cluster sizes, difficulty tiers and banned
records, plus the dynamic seed map built from the urban pool.
"""

from __future__ import annotations

import sys
from pathlib import Path

# Add backend to path
sys.path.insert(0, str(Path(__file__).parent.parent / "backend"))

from guessr.core.models import GameMode
from guessr.engine import LocationEngine


def main():
    engine = LocationEngine()

    print("=" * 60)
    print("ENRICHMENT REPORT")
    print("=" * 60)
    for mode in GameMode:
        print()
        print(engine.enrichment_report(mode))
        print(f"Eligible regions: {len(engine.get_eligible_region_list(mode))}")

    stats = engine.seed_stats()
    print("\n--- seed map ---")
    print(f"Regions with seeds: {stats['regions']}")
    print(f"Total seeds: {stats['total_seeds']}")
    print(f"Avg radius: {stats['avg_radius_km']:.2f} km")
    print("=" * 60)


if __name__ == "__main__":
    main()
