"""Seed map builder: per-region sampling disks derived from the curated pool.

Regions with a single curated location get one seed at that point with a
default radius. Tight regions (max pairwise spread <= 5 km) get one centroid
seed; spread-out regions get one seed per district.
"""

from __future__ import annotations

import math
import random

from guessr.core.geo import haversine_km, offset_coordinate
from guessr.core.logging import log
from guessr.core.models import EnrichedLocation, RegionSeeds, SeedZone
from guessr.engine.enrichment import extract_district

DEFAULT_SINGLE_RADIUS_KM = 1.5
MIN_RADIUS_KM = 0.8
MAX_RADIUS_KM = 3.0
SPREAD_PADDING_KM = 0.5
DISTRICT_SPLIT_KM = 5.0
DEFAULT_DISTRICT = "Merkez"

# Samples never land exactly on the seed center
MIN_SAMPLE_OFFSET_KM = 0.1
ENVELOPE_TOLERANCE_KM = 0.5


def _clamp_radius(radius_km: float) -> float:
    return min(MAX_RADIUS_KM, max(MIN_RADIUS_KM, radius_km))


def _centroid(points: list[tuple[float, float]]) -> tuple[float, float]:
    return (
        sum(p[0] for p in points) / len(points),
        sum(p[1] for p in points) / len(points),
    )


def _max_pairwise_km(points: list[tuple[float, float]]) -> float:
    max_dist = 0.0
    for i in range(len(points)):
        for j in range(i + 1, len(points)):
            d = haversine_km(points[i][0], points[i][1], points[j][0], points[j][1])
            max_dist = max(max_dist, d)
    return max_dist


def build_seed_map(enriched: list[EnrichedLocation]) -> dict[str, RegionSeeds]:
    """Derive sampling seeds for every region of the curated pool.

    Args:
        enriched: Enriched curated locations (source-banned records are skipped)

    Returns:
        Mapping region -> RegionSeeds
    """
    by_region: dict[str, list[tuple[float, float, str | None]]] = {}
    for ep in enriched:
        if ep.record.banned_by_source:
            continue
        primary = ep.record.primary
        by_region.setdefault(ep.region, []).append(
            (primary.lat, primary.lng, extract_district(ep.record.place_name))
        )

    seed_map: dict[str, RegionSeeds] = {}
    for region, points in by_region.items():
        if len(points) == 1:
            lat, lng, district = points[0]
            seeds = [SeedZone(center_lat=lat, center_lng=lng, radius_km=DEFAULT_SINGLE_RADIUS_KM, district=district)]
            seed_map[region] = RegionSeeds(region=region, seeds=seeds, total_static_packages=1)
            continue

        coords = [(lat, lng) for lat, lng, _ in points]
        spread = _max_pairwise_km(coords)

        if spread > DISTRICT_SPLIT_KM:
            by_district: dict[str, list[tuple[float, float]]] = {}
            for lat, lng, district in points:
                by_district.setdefault(district or DEFAULT_DISTRICT, []).append((lat, lng))

            seeds = []
            for district, d_points in by_district.items():
                c_lat, c_lng = _centroid(d_points)
                radius = DEFAULT_SINGLE_RADIUS_KM
                if len(d_points) > 1:
                    max_from_center = max(haversine_km(c_lat, c_lng, lat, lng) for lat, lng in d_points)
                    radius = _clamp_radius(max_from_center + SPREAD_PADDING_KM)
                seeds.append(SeedZone(center_lat=c_lat, center_lng=c_lng, radius_km=radius, district=district))
        else:
            c_lat, c_lng = _centroid(coords)
            radius = _clamp_radius(spread / 2 + SPREAD_PADDING_KM)
            seeds = [SeedZone(center_lat=c_lat, center_lng=c_lng, radius_km=radius)]

        seed_map[region] = RegionSeeds(region=region, seeds=seeds, total_static_packages=len(points))

    log.info(f"SEED_MAP_BUILT regions={len(seed_map)} seeds={sum(len(e.seeds) for e in seed_map.values())}")
    return seed_map


def sample_from_seed(seed: SeedZone, rng: random.Random) -> tuple[float, float]:
    """Uniform-area point inside the seed disk (at least 100 m from the center)."""
    angle = rng.random() * 2 * math.pi
    distance = max(MIN_SAMPLE_OFFSET_KM, math.sqrt(rng.random()) * seed.radius_km)
    return offset_coordinate(seed.center_lat, seed.center_lng, distance, angle)


def within_seed_envelope(
    lat: float, lng: float, seed: SeedZone, tolerance_km: float = ENVELOPE_TOLERANCE_KM
) -> bool:
    return haversine_km(lat, lng, seed.center_lat, seed.center_lng) <= seed.radius_km + tolerance_km


def seed_stats(seed_map: dict[str, RegionSeeds]) -> dict:
    """Region count, seed count and mean seed radius."""
    radii = [seed.radius_km for entry in seed_map.values() for seed in entry.seeds]
    return {
        "regions": len(seed_map),
        "total_seeds": len(radii),
        "avg_radius_km": round(sum(radii) / len(radii), 2) if radii else 0.0,
    }
