"""Per-mode selection behaviour and per-session engine configuration."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, model_validator

from guessr.core.config import Settings, settings
from guessr.core.models import Difficulty, GameMode


class ModeProfile(BaseModel):
    """How one game mode enriches and selects.

    difficulty_mix: tier weights in easy/medium/hard order, or None for a
        plain shuffle.
    honor_source_ban: exclude records whose source ban flag is set.
    enforce_rotation: region bag rotation + non-relaxable no back-to-back
        region rule.
    allow_dynamic: mint new locations when the static pool runs dry.
    """

    model_config = ConfigDict(frozen=True)

    mode: GameMode
    difficulty_mix: dict[Difficulty, float] | None = None
    honor_source_ban: bool = True
    enforce_rotation: bool = True
    allow_dynamic: bool = False

    @model_validator(mode="after")
    def validate_mix(self) -> ModeProfile:
        if self.difficulty_mix is not None:
            total = sum(self.difficulty_mix.values())
            if abs(total - 1.0) > 1e-6:
                raise ValueError(f"difficulty_mix must sum to 1.0, got {total}")
        return self


DIFFICULTY_MIX = {Difficulty.EASY: 0.15, Difficulty.MEDIUM: 0.55, Difficulty.HARD: 0.30}

MODE_PROFILES: dict[GameMode, ModeProfile] = {
    GameMode.URBAN: ModeProfile(
        mode=GameMode.URBAN,
        difficulty_mix=DIFFICULTY_MIX,
        honor_source_ban=True,
        enforce_rotation=True,
        allow_dynamic=True,
    ),
    GameMode.GEO: ModeProfile(
        mode=GameMode.GEO,
        difficulty_mix=None,
        honor_source_ban=True,
        enforce_rotation=False,
        allow_dynamic=False,
    ),
}


class EngineConfig(BaseModel):
    """Tuning snapshot an engine is constructed with."""

    model_config = ConfigDict(frozen=True)

    recent_selection_window: int = Field(default=20, ge=1)
    recent_imagery_window: int = Field(default=20, ge=1)
    recent_hash_window: int = Field(default=20, ge=1)
    recent_cluster_window: int = Field(default=20, ge=1)
    recent_region_window: int = Field(default=5, ge=1)
    min_rotation_pops: int = Field(default=48, ge=1)
    max_mint_attempts: int = Field(default=2, ge=1, le=2)
    max_session_resolver_calls: int = Field(default=50, ge=0)
    resolver_search_radius_m: int = Field(default=200, gt=0)
    heavy_player_threshold: int = Field(default=30, ge=1)
    history_capacity: int = Field(default=200, ge=1)

    @classmethod
    def from_settings(cls, source: Settings | None = None) -> EngineConfig:
        """Snapshot the process settings into an engine config."""
        s = source or settings
        return cls(
            recent_selection_window=s.recent_selection_window,
            recent_imagery_window=s.recent_imagery_window,
            recent_hash_window=s.recent_hash_window,
            recent_cluster_window=s.recent_cluster_window,
            recent_region_window=s.recent_region_window,
            max_mint_attempts=s.max_mint_attempts,
            max_session_resolver_calls=s.max_session_resolver_calls,
            resolver_search_radius_m=s.resolver_search_radius_m,
            heavy_player_threshold=s.heavy_player_threshold,
            history_capacity=s.history_capacity,
        )
