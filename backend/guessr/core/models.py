"""Pydantic models for curated locations, enrichment output and mint results.

Input records are validated on load so the selection engine can trust every
field; camelCase keys from the curated dataset are accepted via aliases.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator


class GameMode(str, Enum):
    """Curated dataset partition a round is played in."""

    URBAN = "urban"
    GEO = "geo"


class Difficulty(str, Enum):
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


class LocationSource(str, Enum):
    """Where a round's location came from."""

    STATIC = "static"
    DYNAMIC = "dynamic"


class MintFailReason(str, Enum):
    BACK_TO_BACK_PROVINCE = "back_to_back_province"
    NO_SEEDS_FOR_PROVINCE = "no_seeds_for_province"
    RESOLVER_UNAVAILABLE = "resolver_unavailable"
    SESSION_CALL_CEILING = "session_call_ceiling"
    ALL_ATTEMPTS_EXHAUSTED = "all_attempts_exhausted"


class ImageryRef(BaseModel):
    """Single panorama reference (imagery id + viewpoint)."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    imagery_id: str = Field(..., min_length=1, alias="panoId")
    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)
    heading: float = Field(default=0.0)

    @field_validator("heading")
    @classmethod
    def normalize_heading(cls, v: float) -> float:
        """Keep headings in [0, 360)."""
        return v % 360


class LocationRecord(BaseModel):
    """Curated (or minted) location: one primary panorama + three branches."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    id: str = Field(..., min_length=1)
    mode: GameMode = Field(default=GameMode.URBAN)
    region_hint: str = Field(default="ic_anadolu", alias="region")
    road_type: str = Field(default="urban_street", alias="roadType")
    hint_tags: list[str] = Field(default_factory=list, alias="hintTags")
    quality_score: int = Field(default=3, ge=1, le=5, alias="qualityScore")
    banned_by_source: bool = Field(default=False, alias="blacklist")
    primary: ImageryRef = Field(..., alias="pano0")
    left: ImageryRef = Field(..., alias="pano1")
    right: ImageryRef = Field(..., alias="pano2")
    forward: ImageryRef = Field(..., alias="pano3")
    place_name: str = Field(..., min_length=1, alias="locationName")


class EnrichedLocation(BaseModel):
    """Location record plus the fields derived by dataset enrichment."""

    model_config = ConfigDict(frozen=True)

    record: LocationRecord
    region: str
    difficulty: Difficulty
    banned: bool = False
    location_hash: str
    cluster_id: str
    cluster_size: int = Field(..., ge=1)
    imagery_group_size: int = Field(..., ge=1)
    easy_score: float = Field(..., ge=0, le=100)

    @property
    def id(self) -> str:
        return self.record.id

    @property
    def imagery_id(self) -> str:
        return self.record.primary.imagery_id


class AntiRepeatState(BaseModel):
    """Snapshot of the anti-repeat windows (oldest entry first)."""

    model_config = ConfigDict(frozen=True)

    recent_selection_ids: list[str] = Field(default_factory=list)
    recent_imagery_ids: list[str] = Field(default_factory=list)
    recent_location_hashes: list[str] = Field(default_factory=list)
    recent_cluster_ids: list[str] = Field(default_factory=list)
    recent_regions: list[str] = Field(default_factory=list)
    last_region: str | None = None


class Region(BaseModel):
    """Region Directory entry (province center + weight hints)."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., min_length=1)
    lat: float
    lng: float
    radius_km: float = Field(..., gt=0)
    population: int = Field(..., ge=0)
    region: str = Field(..., description="Macro-region code (e.g. marmara, ege)")
    is_urban: bool = False


class SeedZone(BaseModel):
    """Sampling disk used to mint new candidate coordinates."""

    model_config = ConfigDict(frozen=True)

    center_lat: float
    center_lng: float
    radius_km: float = Field(..., gt=0)
    district: str | None = None


class RegionSeeds(BaseModel):
    model_config = ConfigDict(frozen=True)

    region: str
    seeds: list[SeedZone] = Field(default_factory=list)
    total_static_packages: int = Field(default=0, ge=0)


class LocationFingerprint(BaseModel):
    """Minimal identity of a minted location, persisted across sessions."""

    model_config = ConfigDict(frozen=True)

    imagery_id: str
    location_hash: str
    region: str
    cluster_id: str
    timestamp: float


class ResolvedImagery(BaseModel):
    """What the external imagery resolver returns for a coordinate."""

    model_config = ConfigDict(frozen=True)

    imagery_id: str = Field(..., min_length=1)
    lat: float
    lng: float


class MintResult(BaseModel):
    package: LocationRecord | None = None
    attempts_used: int = Field(default=0, ge=0, le=2)
    fail_reason: MintFailReason | None = None
    difficulty: Difficulty | None = None

    @property
    def ok(self) -> bool:
        return self.package is not None


class RoundResult(BaseModel):
    """One round's outcome as handed to the round consumer."""

    package: LocationRecord
    source: LocationSource
    region: str
    difficulty: Difficulty | None = None
