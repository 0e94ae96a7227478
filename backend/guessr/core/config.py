"""Location engine configuration (resolver + selection tuning + data paths)."""

from __future__ import annotations

from pathlib import Path

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Project root directory (parent of backend/)
PROJECT_ROOT = Path(__file__).parent.parent.parent.parent.resolve()

# Bundled datasets and runtime files (logs, history) live next to the code
DATA_DIR = Path(__file__).parent.parent / "data"

# Load .env file into environment variables
env_path = PROJECT_ROOT / ".env"
load_dotenv(env_path)


class Settings(BaseSettings):
    """Engine configuration with fail-loud validation."""

    model_config = SettingsConfigDict(env_file=str(env_path), extra="ignore")

    # External imagery resolver (Street View metadata)
    google_maps_api_key: str | None = Field(default=None)
    resolver_base_url: str = Field(default="https://maps.googleapis.com/maps/api/streetview/metadata")
    resolver_timeout_s: float = Field(default=10.0, gt=0)
    resolver_search_radius_m: int = Field(default=200, gt=0)

    # Cost control: resolver calls per mint are hard-capped at 2
    max_mint_attempts: int = Field(default=2, ge=1, le=2)
    max_session_resolver_calls: int = Field(default=50, ge=0)

    # Rounds after which dynamic minting is tried before static selection
    heavy_player_threshold: int = Field(default=30, ge=1)

    # Anti-repeat sliding windows (must stay below the dataset's unique-value count)
    recent_selection_window: int = Field(default=20, ge=1)
    recent_imagery_window: int = Field(default=20, ge=1)
    recent_hash_window: int = Field(default=20, ge=1)
    recent_cluster_window: int = Field(default=20, ge=1)
    recent_region_window: int = Field(default=5, ge=1)

    # Cross-session ring buffer
    history_capacity: int = Field(default=200, ge=1)

    # Data paths
    locations_file: str = Field(default=str(DATA_DIR / "locations.json"))
    regions_file: str = Field(default=str(DATA_DIR / "regions.json"))
    history_file: str = Field(default=str(DATA_DIR / "history.json"))

    # Logging
    log_file: str = Field(default=str(DATA_DIR / "logs.txt"))
    log_level: str = Field(default="INFO", pattern=r"^(DEBUG|INFO|WARNING|ERROR)$")
    log_max_lines: int = Field(default=10_000, ge=100)
    log_truncate_threshold: int = Field(default=15_000, ge=100)


settings = Settings()
