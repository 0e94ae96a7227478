"""Dataset enrichment: derive region, grid cluster and difficulty tier per record.

Pure computation over the curated list. Randomness only enters later, in
selection.
"""

from __future__ import annotations

from collections import Counter

from guessr.core.geo import cluster_id, location_hash
from guessr.core.models import Difficulty, EnrichedLocation, GameMode, LocationRecord
from guessr.core.regions import RegionDirectory
from guessr.engine.profiles import MODE_PROFILES, ModeProfile

# Percentile boundaries over the easy-score ranking (top 15% easy, next 55% medium)
EASY_PERCENT = 15
MEDIUM_CUMULATIVE_PERCENT = 70

# Weight of each normalized factor in the 0-100 easy score
SCORE_WEIGHT = 25.0


def extract_region(place_name: str, directory: RegionDirectory | None = None) -> str:
    """Extract the region (province) from a free-text place name.

    Handles "District, Region" and "Region" formats. Single-token names are
    matched against the directory and returned as-is when nothing matches.

    Examples:
        "Fatih, İstanbul" → "İstanbul"
        "Merkez, Van" → "Van"
        "Toros Dağları" → "Toros Dağları" (no directory match)
    """
    parts = [p.strip() for p in place_name.split(",")]
    if len(parts) >= 2 and parts[-1]:
        return parts[-1]

    name = place_name.strip()
    if directory is not None:
        match = directory.match(name)
        if match:
            return match.name
    return name


def extract_district(place_name: str) -> str | None:
    """District fragment of "District, Region", or None for bare region names."""
    parts = [p.strip() for p in place_name.split(",")]
    if len(parts) >= 2 and parts[0]:
        return parts[0]
    return None


def _tier_boundaries(n: int) -> tuple[int, int]:
    """Index ranges [0, easy_end) easy, [easy_end, medium_end) medium, rest hard.

    With three or more records every tier gets at least one entry.
    """
    easy_end = n * EASY_PERCENT // 100
    medium_end = n * MEDIUM_CUMULATIVE_PERCENT // 100
    if n >= 3:
        easy_end = max(1, easy_end)
        medium_end = min(n - 1, max(easy_end + 1, medium_end))
    return easy_end, medium_end


def enrich_locations(
    records: list[LocationRecord],
    mode: GameMode,
    directory: RegionDirectory | None = None,
    profile: ModeProfile | None = None,
) -> list[EnrichedLocation]:
    """Enrich curated records with region, cluster, easy score and difficulty.

    Args:
        records: Curated location records (input order is preserved)
        mode: Game mode the records are enriched for
        directory: Region directory for single-token place names
        profile: Mode profile (defaults to the built-in profile for mode)

    Returns:
        Enriched locations in the same order as records
    """
    profile = profile or MODE_PROFILES[mode]
    if not records:
        return []

    regions = [extract_region(r.place_name, directory) for r in records]
    hashes = [location_hash(r.primary.lat, r.primary.lng) for r in records]
    clusters = [cluster_id(region, h) for region, h in zip(regions, hashes)]

    cluster_counts = Counter(clusters)
    imagery_counts = Counter(r.primary.imagery_id for r in records)
    region_counts = Counter(regions)

    max_cluster = max(cluster_counts.values())
    max_imagery = max(imagery_counts.values())
    max_region = max(region_counts.values())
    max_quality = max(r.quality_score for r in records)

    scores: list[float] = []
    for record, region, cid in zip(records, regions, clusters):
        score = SCORE_WEIGHT * (
            cluster_counts[cid] / max_cluster
            + region_counts[region] / max_region
            + record.quality_score / max_quality
            + imagery_counts[record.primary.imagery_id] / max_imagery
        )
        scores.append(round(score, 2))

    # Rank by score descending; ties keep input order
    ranking = sorted(range(len(records)), key=lambda i: -scores[i])
    difficulties = [Difficulty.MEDIUM] * len(records)
    if len(records) >= 3:
        easy_end, medium_end = _tier_boundaries(len(records))
        for rank, idx in enumerate(ranking):
            if rank < easy_end:
                difficulties[idx] = Difficulty.EASY
            elif rank < medium_end:
                difficulties[idx] = Difficulty.MEDIUM
            else:
                difficulties[idx] = Difficulty.HARD

    # Imagery-id hotspots stay eligible; the imagery window suppresses them instead
    return [
        EnrichedLocation(
            record=record,
            region=regions[i],
            difficulty=difficulties[i],
            banned=profile.honor_source_ban and record.banned_by_source,
            location_hash=hashes[i],
            cluster_id=clusters[i],
            cluster_size=cluster_counts[clusters[i]],
            imagery_group_size=imagery_counts[record.primary.imagery_id],
            easy_score=scores[i],
        )
        for i, record in enumerate(records)
    ]


def eligible_regions(enriched: list[EnrichedLocation]) -> list[str]:
    """Regions with at least one non-banned record, in first-seen order."""
    seen: dict[str, None] = {}
    for ep in enriched:
        if not ep.banned:
            seen.setdefault(ep.region, None)
    return list(seen)


def tier_counts(enriched: list[EnrichedLocation]) -> dict[Difficulty, int]:
    counts = {tier: 0 for tier in Difficulty}
    for ep in enriched:
        counts[ep.difficulty] += 1
    return counts


def build_enrichment_report(label: str, enriched: list[EnrichedLocation]) -> str:
    """Human-readable summary of one enriched partition.

    Lists records per region (top 10), cluster count and size spread,
    tier counts and the banned count.
    """
    lines = [f"--- {label} ({len(enriched)} packages) ---"]

    per_region = Counter(ep.region for ep in enriched).most_common()
    lines.append(f"Regions with packages: {len(per_region)}")
    for region, count in per_region[:10]:
        lines.append(f"  {region}: {count}")
    if len(per_region) > 10:
        lines.append(f"  ... and {len(per_region) - 10} more")

    cluster_sizes = sorted({ep.cluster_id: ep.cluster_size for ep in enriched}.values())
    lines.append(f"Total clusters: {len(cluster_sizes)}")
    if cluster_sizes:
        lines.append(
            f"Cluster size: min={cluster_sizes[0]} "
            f"median={cluster_sizes[len(cluster_sizes) // 2]} max={cluster_sizes[-1]}"
        )

    counts = tier_counts(enriched)
    lines.append(
        f"Difficulty: easy={counts[Difficulty.EASY]} "
        f"medium={counts[Difficulty.MEDIUM]} hard={counts[Difficulty.HARD]}"
    )
    lines.append(f"Banned: {sum(1 for ep in enriched if ep.banned)}")
    return "\n".join(lines)
