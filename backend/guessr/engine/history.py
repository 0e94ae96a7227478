"""Persistent anti-repeat history: cross-session ring buffer of minted fingerprints.

The engine only touches the in-memory buffer. Loading and flushing go through
a store (``JsonFileHistoryStore`` here) owned by the session layer.
"""

from __future__ import annotations

import json
import threading
from collections import deque

from pydantic import ValidationError

from guessr.core.config import settings
from guessr.core.logging import log
from guessr.core.models import LocationFingerprint
from guessr.core.storage import read_json, remove_json, write_json

HISTORY_CAPACITY = 200
HISTORY_VERSION = 1

PERSISTENT_IMAGERY_ID = "persistent_imagery_id"
PERSISTENT_LOCATION_HASH = "persistent_location_hash"


class PersistentHistory:
    """Fixed-capacity FIFO of location fingerprints.

    One instance may back several sessions that share a history key, so
    every access goes through an internal lock.
    """

    def __init__(self, capacity: int = HISTORY_CAPACITY) -> None:
        self.capacity = capacity
        self._buffer: deque[LocationFingerprint] = deque(maxlen=capacity)
        self._lock = threading.Lock()

    def init(self, fingerprints: list[LocationFingerprint]) -> None:
        """Replace the buffer with previously stored fingerprints (newest kept)."""
        with self._lock:
            self._buffer = deque(fingerprints, maxlen=self.capacity)

    def check(self, imagery_id: str, location_hash: str) -> str | None:
        """Return a rejection reason if either identity was seen before."""
        with self._lock:
            if any(fp.imagery_id == imagery_id for fp in self._buffer):
                return PERSISTENT_IMAGERY_ID
            if any(fp.location_hash == location_hash for fp in self._buffer):
                return PERSISTENT_LOCATION_HASH
        return None

    def record(self, fingerprint: LocationFingerprint) -> None:
        with self._lock:
            self._buffer.append(fingerprint)

    def clear(self) -> None:
        with self._lock:
            self._buffer.clear()

    def fingerprints(self) -> list[LocationFingerprint]:
        with self._lock:
            return list(self._buffer)

    def __len__(self) -> int:
        return len(self._buffer)


class JsonFileHistoryStore:
    """Versioned JSON file holding one history buffer.

    Document shape: ``{"version": 1, "fingerprints": [...]}``. A missing,
    corrupt or other-version file reads as empty history.
    """

    def __init__(self, path: str | None = None, capacity: int = HISTORY_CAPACITY) -> None:
        self.path = path or settings.history_file
        self.capacity = capacity

    def load(self) -> list[LocationFingerprint]:
        try:
            data = read_json(self.path)
        except (json.JSONDecodeError, OSError) as e:
            log.warning(f"HISTORY_LOAD_FAILED path={self.path}: {e}")
            return []

        if not isinstance(data, dict):
            return []
        if data.get("version") != HISTORY_VERSION:
            log.info(f"HISTORY_VERSION_MISMATCH path={self.path} version={data.get('version')}")
            return []

        fingerprints: list[LocationFingerprint] = []
        for entry in data.get("fingerprints", []):
            try:
                fingerprints.append(LocationFingerprint(**entry))
            except (ValidationError, TypeError):
                log.warning(f"HISTORY_ENTRY_INVALID path={self.path}")
        return fingerprints[-self.capacity:]

    def save(self, fingerprints: list[LocationFingerprint]) -> None:
        document = {
            "version": HISTORY_VERSION,
            "fingerprints": [fp.model_dump() for fp in fingerprints[-self.capacity:]],
        }
        write_json(self.path, document)
        log.info(f"HISTORY_SAVED path={self.path} count={len(document['fingerprints'])}")

    def clear(self) -> None:
        remove_json(self.path)
