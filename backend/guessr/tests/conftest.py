"""Shared fixtures: synthetic curated datasets, seeded RNGs and fake resolvers."""

from __future__ import annotations

import random

import pytest

from guessr.clients.resolver_interface import ImageryResolver, ResolverError
from guessr.core.models import GameMode, ImageryRef, LocationRecord, ResolvedImagery
from guessr.core.regions import RegionDirectory
from guessr.engine.profiles import EngineConfig


def make_record(
    record_id: str,
    place_name: str,
    lat: float,
    lng: float,
    imagery_id: str | None = None,
    quality: int = 3,
    banned: bool = False,
    mode: GameMode = GameMode.URBAN,
) -> LocationRecord:
    """Build a location record whose branches share the primary imagery id."""
    pano_id = imagery_id or f"pano_{record_id}"
    views = [ImageryRef(imagery_id=pano_id, lat=lat, lng=lng, heading=h) for h in (0, 270, 90, 180)]
    return LocationRecord(
        id=record_id,
        mode=mode,
        quality_score=quality,
        banned_by_source=banned,
        primary=views[0],
        left=views[1],
        right=views[2],
        forward=views[3],
        place_name=place_name,
    )


def synthetic_dataset(
    directory: RegionDirectory, count: int = 150, region_count: int = 40, banned_every: int = 25
) -> list[LocationRecord]:
    """Distinct-coordinate records spread round-robin over ``region_count`` provinces.

    Every record has its own imagery id and grid cell; one in ``banned_every``
    carries the source ban flag.
    """
    regions = directory.all()[:region_count]
    records = []
    for i in range(count):
        region = regions[i % region_count]
        step = i // region_count
        records.append(
            make_record(
                f"loc_{i:04d}",
                f"District{step}, {region.name}",
                region.lat + 0.01 * step,
                region.lng + 0.01 * step,
                imagery_id=f"img_{i:04d}",
                quality=1 + (i * 3 + step) % 5,
                banned=banned_every > 0 and i % banned_every == 0,
            )
        )
    return records


class EchoResolver(ImageryResolver):
    """Returns a fresh panorama exactly at the queried coordinate."""

    def __init__(self) -> None:
        self.calls: list[tuple[float, float, int]] = []

    def resolve(self, lat: float, lng: float, radius_m: int) -> ResolvedImagery | None:
        self.calls.append((lat, lng, radius_m))
        return ResolvedImagery(imagery_id=f"echo_{len(self.calls):04d}", lat=lat, lng=lng)


class FixedResolver(ImageryResolver):
    """Always returns the same panorama."""

    def __init__(self, imagery: ResolvedImagery | None) -> None:
        self.imagery = imagery
        self.calls = 0

    def resolve(self, lat: float, lng: float, radius_m: int) -> ResolvedImagery | None:
        self.calls += 1
        return self.imagery


class RaisingResolver(ImageryResolver):
    def __init__(self) -> None:
        self.calls = 0

    def resolve(self, lat: float, lng: float, radius_m: int) -> ResolvedImagery | None:
        self.calls += 1
        raise ResolverError("provider unreachable")


@pytest.fixture(scope="session")
def directory() -> RegionDirectory:
    return RegionDirectory.from_file()


@pytest.fixture
def rng() -> random.Random:
    return random.Random(1234)


@pytest.fixture
def config() -> EngineConfig:
    return EngineConfig()


@pytest.fixture
def urban_records(directory) -> list[LocationRecord]:
    return synthetic_dataset(directory)


@pytest.fixture
def geo_records(directory) -> list[LocationRecord]:
    regions = directory.all()[:12]
    return [
        make_record(f"geo_{i:03d}", region.name, region.lat + 0.2, region.lng - 0.2, mode=GameMode.GEO)
        for i, region in enumerate(regions)
    ]


@pytest.fixture
def locations(urban_records, geo_records) -> dict[GameMode, list[LocationRecord]]:
    return {GameMode.URBAN: urban_records, GameMode.GEO: geo_records}


@pytest.fixture
def record_factory():
    return make_record


@pytest.fixture
def dataset_factory():
    return synthetic_dataset


@pytest.fixture
def echo_resolver() -> EchoResolver:
    return EchoResolver()


@pytest.fixture
def fixed_resolver():
    return FixedResolver


@pytest.fixture
def raising_resolver() -> RaisingResolver:
    return RaisingResolver()
