from __future__ import annotations

import json
import os
import threading
from typing import Any

LOCK = threading.Lock()


def _load(path: str, default: Any) -> Any:
    """Loads JSON from file, returns default if file doesn't exist."""
    if not os.path.exists(path):
        return default
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


def _dump(path: str, data: Any) -> None:
    """Atomically writes JSON to file using temp + rename."""
    tmp = path + ".tmp"
    try:
        with open(tmp, "w", encoding="utf-8") as f:
            json.dump(data, f, ensure_ascii=False, indent=2)
        os.replace(tmp, path)
    except OSError:
        if os.path.exists(tmp):
            os.remove(tmp)
        raise


def read_json(path: str, default: Any = None) -> Any:
    """Thread-safe read of a JSON file.

    Args:
        path: Path to JSON file
        default: Value returned when the file does not exist

    Returns:
        Parsed JSON document

    Raises:
        json.JSONDecodeError: If the file exists but is not valid JSON
    """
    with LOCK:
        return _load(path, default)


def write_json(path: str, data: Any) -> None:
    """Thread-safe atomic write of a JSON document.

    Args:
        path: Path to JSON file
        data: JSON-serializable document
    """
    parent = os.path.dirname(path)
    if parent:
        os.makedirs(parent, exist_ok=True)
    with LOCK:
        _dump(path, data)


def remove_json(path: str) -> None:
    """Thread-safe removal of a JSON file (no-op if missing)."""
    with LOCK:
        if os.path.exists(path):
            os.remove(path)
