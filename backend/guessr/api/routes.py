"""Round consumer API: sessions, rounds, diagnostics, health."""

from __future__ import annotations

import asyncio
import json

from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel, Field
from slowapi import Limiter
from slowapi.util import get_remote_address

from guessr.api.sessions import GameSession, registry
from guessr.clients.provider_selector import resolver_configured
from guessr.core.locations import get_curated_locations
from guessr.core.logging import log, truncate_log_file
from guessr.core.models import GameMode
from guessr.core.regions import get_region_directory

router = APIRouter()

# Rate limiter instance
limiter = Limiter(key_func=get_remote_address)


class SessionCreateRequest(BaseModel):
    """Request body for starting a game session."""

    mode: GameMode = GameMode.URBAN
    seed: int | None = None  # Seeded RNG for reproducible sessions
    history_key: str | None = Field(default=None, pattern=r"^[A-Za-z0-9_-]{1,64}$")


def _get_session(session_id: str) -> GameSession:
    session = registry.get(session_id)
    if session is None:
        raise HTTPException(status_code=404, detail=f"Unknown session: {session_id}")
    return session


@router.post("/sessions")
@limiter.limit("30/minute")
async def create_session(request: Request) -> dict:
    """Start a game session with its own engine.

    Persistent history for ``history_key`` is loaded from the file store.

    Returns:
        Dict with session id, mode and eligible region count

    Raises:
        HTTPException: 400 if the body is invalid
    """
    # Parse body manually to work around slowapi/FastAPI integration issue
    try:
        body_bytes = await request.body()
        body_dict = json.loads(body_bytes) if body_bytes else {}
        body = SessionCreateRequest(**body_dict)
    except Exception as e:
        raise HTTPException(status_code=400, detail=f"Invalid request body: {str(e)}")

    # Engine construction reads data and history files; keep it off the event loop
    session = await asyncio.to_thread(
        registry.create, body.mode, seed=body.seed, history_key=body.history_key
    )
    return {
        "ok": True,
        "session_id": session.id,
        "mode": session.mode.value,
        "eligible_regions": len(session.engine.get_eligible_region_list(session.mode)),
        "dynamic_minting": session.engine.minter.available,
    }


@router.post("/sessions/{session_id}/rounds")
@limiter.limit("120/minute")
def next_round(request: Request, session_id: str) -> dict:
    """Pick the next round's location.

    Returns:
        Dict with the location record, source, region and difficulty, or
        ``ok: False`` when no location is available

    Raises:
        HTTPException: 404 if the session is unknown
    """
    session = _get_session(session_id)

    # Round N must be recorded before round N+1 is requested
    with session.lock:
        result = session.engine.next_round(session.mode)
        round_number = session.engine.session_round_count

    if result is None:
        return {"ok": False, "reason": "no_location_available"}

    log.info(
        f"ROUND_SERVED session={session_id} round={round_number} id={result.package.id} "
        f"source={result.source.value} region={result.region}"
    )
    return {
        "ok": True,
        "round": round_number,
        "source": result.source.value,
        "region": result.region,
        "difficulty": result.difficulty.value if result.difficulty else None,
        "location": result.package.model_dump(mode="json", by_alias=True),
    }


@router.get("/sessions/{session_id}/diagnostics")
@limiter.limit("60/minute")
def diagnostics(request: Request, session_id: str) -> dict:
    """Anti-repeat windows, eligible regions, mint metrics and round count.

    Raises:
        HTTPException: 404 if the session is unknown
    """
    session = _get_session(session_id)
    engine = session.engine
    with session.lock:
        return {
            "ok": True,
            "mode": session.mode.value,
            "round_count": engine.session_round_count,
            "heavy_player": engine.is_heavy_player(),
            "anti_repeat": engine.get_anti_repeat_state().model_dump(),
            "eligible_regions": engine.get_eligible_region_list(session.mode),
            "mint_metrics": engine.get_mint_metrics(),
            "seed_stats": engine.seed_stats(),
            "persistent_history": len(engine.history),
        }


@router.delete("/sessions/{session_id}")
def close_session(session_id: str) -> dict:
    """Flush persistent history and drop the session.

    Raises:
        HTTPException: 404 if the session is unknown
    """
    session = registry.close(session_id)
    if session is None:
        raise HTTPException(status_code=404, detail=f"Unknown session: {session_id}")
    return {"ok": True, "session_id": session_id, "rounds": session.engine.session_round_count}


# ============================================================================
# Health & Observability
# ============================================================================


@router.get("/healthz")
def healthz() -> dict:
    """Health check with dataset sizes and resolver readiness (NO SECRETS)."""
    truncate_log_file()

    return {
        "ok": True,
        "datasets": {mode.value: len(get_curated_locations(mode)) for mode in GameMode},
        "regions": len(get_region_directory()),
        "resolver": "configured" if resolver_configured() else "key_missing",
        "sessions": len(registry),
    }
