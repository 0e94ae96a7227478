"""In-process registry of game sessions (one engine per session)."""

from __future__ import annotations

import random
import threading
import uuid
from dataclasses import dataclass, field
from pathlib import Path

from guessr.clients.provider_selector import resolver_client, resolver_configured
from guessr.clients.resolver_interface import ImageryResolver
from guessr.core.config import settings
from guessr.core.logging import log
from guessr.core.models import GameMode
from guessr.engine.history import JsonFileHistoryStore, PersistentHistory
from guessr.engine import LocationEngine

LOCK = threading.Lock()


@dataclass
class SharedHistory:
    """History buffer for one key, shared by every open session using that key."""

    history: PersistentHistory
    store: JsonFileHistoryStore
    sessions: int = 0

    def flush(self) -> None:
        self.store.save(self.history.fingerprints())


@dataclass
class GameSession:
    id: str
    mode: GameMode
    engine: LocationEngine
    shared: SharedHistory
    resolver: ImageryResolver | None = None
    lock: threading.Lock = field(default_factory=threading.Lock)

    @property
    def store(self) -> JsonFileHistoryStore:
        return self.shared.store

    def flush_history(self) -> None:
        with self.lock:
            self.shared.flush()


def history_path(history_key: str | None) -> str:
    """History file for a key; the default file when no key is given."""
    if not history_key:
        return settings.history_file
    base = Path(settings.history_file)
    return str(base.with_name(f"{base.stem}_{history_key}{base.suffix}"))


class SessionRegistry:
    """Lock-guarded session map. Engines are never shared; history buffers are, per key."""

    def __init__(self) -> None:
        self._sessions: dict[str, GameSession] = {}
        self._histories: dict[str, SharedHistory] = {}

    def __len__(self) -> int:
        with LOCK:
            return len(self._sessions)

    def _acquire_history(self, history_key: str | None) -> SharedHistory:
        path = history_path(history_key)
        with LOCK:
            shared = self._histories.get(path)
            if shared is None:
                store = JsonFileHistoryStore(path, capacity=settings.history_capacity)
                history = PersistentHistory(settings.history_capacity)
                history.init(store.load())
                shared = SharedHistory(history=history, store=store)
                self._histories[path] = shared
            shared.sessions += 1
            return shared

    def create(self, mode: GameMode, seed: int | None = None, history_key: str | None = None) -> GameSession:
        """Build a new engine on the history buffer for the key (loaded on first use)."""
        shared = self._acquire_history(history_key)

        resolver = resolver_client() if resolver_configured() else None
        engine = LocationEngine(rng=random.Random(seed), resolver=resolver, history=shared.history)

        session = GameSession(
            id=uuid.uuid4().hex[:16], mode=mode, engine=engine, shared=shared, resolver=resolver
        )
        with LOCK:
            self._sessions[session.id] = session

        log.info(
            f"SESSION_CREATED id={session.id} mode={mode.value} seed={seed} "
            f"history={len(shared.history)} sharing={shared.sessions} resolver={'on' if resolver else 'off'}"
        )
        return session

    def get(self, session_id: str) -> GameSession | None:
        with LOCK:
            return self._sessions.get(session_id)

    def close(self, session_id: str) -> GameSession | None:
        """Flush history, release the resolver and drop the session.

        The shared buffer for the key is dropped once its last session closes.
        """
        with LOCK:
            session = self._sessions.pop(session_id, None)
        if session is None:
            return None

        session.flush_history()
        with LOCK:
            session.shared.sessions -= 1
            if session.shared.sessions <= 0:
                self._histories.pop(session.store.path, None)

        if session.resolver is not None and hasattr(session.resolver, "close"):
            session.resolver.close()
        log.info(f"SESSION_CLOSED id={session_id} rounds={session.engine.session_round_count}")
        return session

    def close_all(self) -> None:
        with LOCK:
            ids = list(self._sessions)
        for session_id in ids:
            self.close(session_id)


registry = SessionRegistry()
