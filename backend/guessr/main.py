from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from guessr.api.routes import limiter, router
from guessr.api.sessions import registry
from guessr.core.locations import get_curated_locations
from guessr.core.logging import log
from guessr.core.models import GameMode
from guessr.core.regions import get_region_directory


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Load reference data on startup, flush session histories on shutdown."""
    directory = get_region_directory()
    counts = {mode.value: len(get_curated_locations(mode)) for mode in GameMode}
    log.info(f"ENGINE_STARTUP regions={len(directory)} datasets={counts}")

    yield

    registry.close_all()
    log.info("ENGINE_SHUTDOWN")


app = FastAPI(lifespan=lifespan)

# Add rate limiter to app state
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# CORS middleware - restrict to localhost in development
app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000", "http://localhost:5173"],
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def security_headers_middleware(request: Request, call_next):
    """Adds security headers to all responses."""
    response: Response = await call_next(request)
    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["X-Frame-Options"] = "DENY"
    response.headers["Referrer-Policy"] = "no-referrer"
    return response


# API routes
app.include_router(router, prefix="/api")


@app.get("/")
def root() -> dict:
    """Root endpoint."""
    return {
        "name": "Location Engine API",
        "docs": "/docs",
        "health": "/api/healthz",
        "endpoints": {
            "sessions": "/api/sessions",
            "rounds": "/api/sessions/{session_id}/rounds",
            "diagnostics": "/api/sessions/{session_id}/diagnostics",
        },
    }
