"""Tests for the dynamic minter: guards, attempt budget and rejections."""

from __future__ import annotations

import random

from guessr.core.geo import location_hash
from guessr.core.models import (
    Difficulty,
    GameMode,
    LocationFingerprint,
    MintFailReason,
    ResolvedImagery,
    SeedZone,
)
from guessr.engine.anti_repeat import AntiRepeatEngine
from guessr.engine.enrichment import enrich_locations
from guessr.engine.history import PersistentHistory
from guessr.engine.minter import DynamicMinter, estimate_difficulty
from guessr.engine.profiles import EngineConfig
from guessr.engine.seeds import build_seed_map, within_seed_envelope

VAN = (38.4942, 43.38)


def van_seed_map(record_factory):
    record = record_factory("v1", "Merkez, Van", *VAN)
    return build_seed_map(enrich_locations([record], GameMode.URBAN))


def build_minter(record_factory, resolver, directory=None, config=None, history=None, seed=7, anti_repeat=None):
    return DynamicMinter(
        van_seed_map(record_factory),
        history if history is not None else PersistentHistory(),
        random.Random(seed),
        resolver,
        directory,
        config or EngineConfig(),
        anti_repeat,
    )


class TestGuards:
    """Tests for checks that fail before any resolver call."""

    def test_back_to_back_region(self, record_factory, echo_resolver):
        """Verify minting the last region fails without a resolver call."""
        minter = build_minter(record_factory, echo_resolver)
        result = minter.mint("Van", "Van")
        assert not result.ok
        assert result.fail_reason == MintFailReason.BACK_TO_BACK_PROVINCE
        assert result.attempts_used == 0
        assert echo_resolver.calls == []
        assert minter.metrics.blocked_by_region == 1

    def test_no_seeds(self, record_factory, echo_resolver):
        """Verify a region without seeds fails immediately."""
        minter = build_minter(record_factory, echo_resolver)
        result = minter.mint("Bursa", "Van")
        assert result.fail_reason == MintFailReason.NO_SEEDS_FOR_PROVINCE
        assert echo_resolver.calls == []

    def test_resolver_unavailable(self, record_factory):
        """Verify minting without a resolver fails with its own reason."""
        minter = build_minter(record_factory, None)
        assert not minter.available
        result = minter.mint("Van", None)
        assert result.fail_reason == MintFailReason.RESOLVER_UNAVAILABLE
        assert minter.metrics.total_resolver_calls == 0

    def test_session_call_ceiling(self, record_factory, fixed_resolver):
        """Verify the per-session ceiling stops further calls."""
        resolver = fixed_resolver(None)
        minter = build_minter(record_factory, resolver, config=EngineConfig(max_session_resolver_calls=1))
        first = minter.mint("Van", None)
        assert first.fail_reason == MintFailReason.ALL_ATTEMPTS_EXHAUSTED
        assert first.attempts_used == 1
        second = minter.mint("Van", None)
        assert second.fail_reason == MintFailReason.SESSION_CALL_CEILING
        assert resolver.calls == 1


class TestMintSuccess:
    """Tests for the happy path."""

    def test_mints_record(self, record_factory, echo_resolver, directory):
        """Verify a minted record carries branches, place name and macro region."""
        history = PersistentHistory()
        minter = build_minter(record_factory, echo_resolver, directory=directory, history=history)
        result = minter.mint("Van", "Bursa")

        assert result.ok
        assert result.attempts_used == 1
        assert result.difficulty in set(Difficulty)
        record = result.package
        assert record.id.startswith("dyn_")
        assert record.place_name == "Merkez, Van"
        assert record.region_hint == directory.macro_region("Van")
        assert record.hint_tags == ["signage", "dynamic"]
        assert record.quality_score == 3
        assert not record.banned_by_source

        heading = record.primary.heading
        assert record.left.heading == (heading - 90) % 360
        assert record.right.heading == (heading + 90) % 360
        assert record.forward.heading == (heading + 180) % 360
        assert {record.left.imagery_id, record.right.imagery_id, record.forward.imagery_id} == {
            record.primary.imagery_id
        }

        assert len(history) == 1
        assert history.fingerprints()[0].imagery_id == record.primary.imagery_id
        assert minter.metrics.total_success == 1
        assert minter.metrics.last_mint_timestamp > 0

    def test_minted_point_inside_envelope(self, record_factory, echo_resolver):
        """Verify the minted primary view sits inside the seed envelope."""
        seed_map = van_seed_map(record_factory)
        for seed in range(20):
            minter = DynamicMinter(seed_map, PersistentHistory(), random.Random(seed), echo_resolver)
            record = minter.mint("Van", None).package
            assert within_seed_envelope(record.primary.lat, record.primary.lng, seed_map["Van"].seeds[0])

    def test_search_radius_passed(self, record_factory, echo_resolver):
        """Verify the configured search radius reaches the resolver."""
        minter = build_minter(record_factory, echo_resolver, config=EngineConfig(resolver_search_radius_m=150))
        minter.mint("Van", None)
        assert echo_resolver.calls[0][2] == 150


class TestMintFailures:
    """Tests for attempt exhaustion and rejections."""

    def test_no_imagery_exhausts_two_attempts(self, record_factory, fixed_resolver):
        """Verify two empty resolutions exhaust the mint."""
        resolver = fixed_resolver(None)
        minter = build_minter(record_factory, resolver)
        result = minter.mint("Van", None)
        assert result.fail_reason == MintFailReason.ALL_ATTEMPTS_EXHAUSTED
        assert result.attempts_used == 2
        assert resolver.calls == 2
        assert minter.metrics.fallback_rate == 1.0

    def test_single_attempt_config(self, record_factory, fixed_resolver):
        """Verify max_mint_attempts=1 caps the mint at one call."""
        resolver = fixed_resolver(None)
        minter = build_minter(record_factory, resolver, config=EngineConfig(max_mint_attempts=1))
        assert minter.mint("Van", None).attempts_used == 1
        assert resolver.calls == 1

    def test_resolver_error_is_swallowed(self, record_factory, raising_resolver):
        """Verify resolver failures become an exhausted mint, never an exception."""
        minter = build_minter(record_factory, raising_resolver)
        result = minter.mint("Van", None)
        assert result.fail_reason == MintFailReason.ALL_ATTEMPTS_EXHAUSTED
        assert raising_resolver.calls == 2

    def test_history_conflict(self, record_factory, fixed_resolver):
        """Verify imagery already in persistent history is rejected."""
        imagery = ResolvedImagery(imagery_id="seen", lat=VAN[0], lng=VAN[1])
        history = PersistentHistory()
        history.record(
            LocationFingerprint(
                imagery_id="seen",
                location_hash="0.000_0.000",
                region="Van",
                cluster_id="Van__0.000_0.000",
                timestamp=1.0,
            )
        )
        minter = build_minter(record_factory, fixed_resolver(imagery), history=history)
        result = minter.mint("Van", None)
        assert not result.ok
        assert minter.metrics.blocked_by_imagery_id == 2
        assert len(history) == 1

    def test_location_hash_conflict(self, record_factory, fixed_resolver):
        """Verify a new imagery id at a known grid cell is rejected."""
        imagery = ResolvedImagery(imagery_id="fresh", lat=VAN[0], lng=VAN[1])
        loc_hash = location_hash(*VAN)
        history = PersistentHistory()
        history.record(
            LocationFingerprint(
                imagery_id="other", location_hash=loc_hash, region="Van", cluster_id=f"Van__{loc_hash}", timestamp=1.0
            )
        )
        minter = build_minter(record_factory, fixed_resolver(imagery), history=history)
        assert not minter.mint("Van", None).ok
        assert minter.metrics.blocked_by_location_hash == 2

    def test_recently_served_imagery_rejected(self, record_factory, fixed_resolver):
        """Verify a panorama snapped to a recently served curated location is rejected."""
        served = enrich_locations([record_factory("v1", "Merkez, Van", *VAN)], GameMode.URBAN)[0]
        anti_repeat = AntiRepeatEngine()
        anti_repeat.record(served)
        history = PersistentHistory()
        snapped = ResolvedImagery(imagery_id=served.imagery_id, lat=VAN[0], lng=VAN[1])

        minter = build_minter(record_factory, fixed_resolver(snapped), history=history, anti_repeat=anti_repeat)
        result = minter.mint("Van", "Bursa")

        assert result.fail_reason == MintFailReason.ALL_ATTEMPTS_EXHAUSTED
        assert minter.metrics.blocked_by_imagery_id == 2
        assert len(history) == 0

    def test_recent_grid_cell_rejected(self, record_factory, fixed_resolver):
        """Verify a new imagery id inside a recently served grid cell is rejected."""
        served = enrich_locations([record_factory("v1", "Merkez, Van", *VAN)], GameMode.URBAN)[0]
        anti_repeat = AntiRepeatEngine()
        anti_repeat.record(served)
        fresh = ResolvedImagery(imagery_id="fresh", lat=VAN[0], lng=VAN[1])

        minter = build_minter(record_factory, fixed_resolver(fresh), anti_repeat=anti_repeat)

        assert not minter.mint("Van", "Bursa").ok
        assert minter.metrics.blocked_by_location_hash == 2

    def test_recent_cluster_rejected(self, record_factory, fixed_resolver):
        """Verify the cluster window still blocks once the grid cell has left its window."""
        config = EngineConfig(recent_hash_window=1)
        enriched = enrich_locations(
            [record_factory("v1", "Merkez, Van", *VAN), record_factory("b1", "A, Bursa", 40.10, 29.00)],
            GameMode.URBAN,
        )
        anti_repeat = AntiRepeatEngine(config)
        for ep in enriched:
            anti_repeat.record(ep)
        fresh = ResolvedImagery(imagery_id="fresh", lat=VAN[0], lng=VAN[1])

        minter = build_minter(record_factory, fixed_resolver(fresh), config=config, anti_repeat=anti_repeat)

        assert not minter.mint("Van", "Bursa").ok
        assert minter.metrics.blocked_by_cluster_id == 2
        assert minter.metrics.blocked_by_location_hash == 0

    def test_envelope_rejection(self, record_factory, fixed_resolver):
        """Verify panoramas far from the seed are rejected."""
        far_away = ResolvedImagery(imagery_id="far", lat=VAN[0] + 0.5, lng=VAN[1])
        minter = build_minter(record_factory, fixed_resolver(far_away))
        result = minter.mint("Van", None)
        assert result.fail_reason == MintFailReason.ALL_ATTEMPTS_EXHAUSTED
        assert minter.metrics.blocked_by_envelope == 2

    def test_calls_never_exceed_attempts(self, record_factory, fixed_resolver):
        """Verify resolver calls stay within the attempt budget across many mints."""
        resolver = fixed_resolver(None)
        minter = build_minter(record_factory, resolver)
        for i in range(10):
            minter.mint("Van", None if i % 2 else "Bursa")
        metrics = minter.metrics
        assert metrics.total_resolver_calls <= metrics.attempts_used
        assert metrics.total_resolver_calls <= 2 * metrics.total_attempts
        assert metrics.avg_attempts_per_mint == 2.0


class TestEstimateDifficulty:
    """Tests for the minted-location tier heuristic."""

    SEED = SeedZone(center_lat=40.0, center_lng=30.0, radius_km=2.0)

    def test_center_of_dense_region_is_easy(self):
        assert estimate_difficulty(40.0, 30.0, self.SEED, 20) == Difficulty.EASY

    def test_edge_of_empty_region_is_hard(self):
        assert estimate_difficulty(40.0 + 2.0 / 111, 30.0, self.SEED, 0) == Difficulty.HARD

    def test_midway_is_medium(self):
        assert estimate_difficulty(40.0 + 1.0 / 111, 30.0, self.SEED, 5) == Difficulty.MEDIUM
