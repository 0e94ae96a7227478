"""Dynamic mint counters for one session."""

from __future__ import annotations

from pydantic import BaseModel


class MintMetrics(BaseModel):
    """Counters updated by the minter; averages are derived on read.

    total_attempts counts mint requests, attempts_used the per-request
    attempts consumed, total_resolver_calls the resolver invocations actually
    made (an out-of-bounds sample consumes an attempt without a call).
    """

    total_attempts: int = 0
    total_success: int = 0
    total_fail: int = 0
    attempts_used: int = 0
    total_resolver_calls: int = 0
    blocked_by_imagery_id: int = 0
    blocked_by_location_hash: int = 0
    blocked_by_cluster_id: int = 0
    blocked_by_region: int = 0
    blocked_by_envelope: int = 0
    last_mint_timestamp: float = 0.0

    @property
    def finished(self) -> int:
        return self.total_success + self.total_fail

    @property
    def avg_attempts_per_mint(self) -> float:
        return self.attempts_used / self.finished if self.finished else 0.0

    @property
    def fallback_rate(self) -> float:
        return self.total_fail / self.finished if self.finished else 0.0

    def summary(self) -> dict:
        """Counters plus derived rates, JSON-ready."""
        data = self.model_dump()
        data["avg_attempts_per_mint"] = round(self.avg_attempts_per_mint, 3)
        data["fallback_rate"] = round(self.fallback_rate, 3)
        return data
