"""Location selection engine package.

Exports:
    LocationEngine: Per-session engine (enrichment, selection, minting)
    EngineConfig: Tuning snapshot an engine is constructed with
"""

from .profiles import EngineConfig
from .session import LocationEngine

__all__ = ["EngineConfig", "LocationEngine"]
