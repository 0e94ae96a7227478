from __future__ import annotations

import hashlib
import json


def deterministic_id(payload: dict) -> str:
    """Generates a deterministic 16-char hash from a payload dict.

    Minted locations get their id from the resolved imagery point plus the
    session-local mint sequence, so the same seeded session reproduces the
    same ids and two mints of one imagery point never collide.

    **Fields affecting output (must be in payload for determinism):**
    - `imagery_id`: Resolver imagery identifier
    - `lat`, `lng`: Resolved coordinate
    - `heading`: Primary viewing heading
    - `seq`: Mint sequence number within the session

    Args:
        payload: Dictionary containing all identity-affecting fields.

    Returns:
        16-character hex hash (truncated SHA256)

    Example:
        >>> payload = {"imagery_id": "abc", "lat": 41.0, "lng": 29.0, "heading": 90, "seq": 1}
        >>> assert deterministic_id(payload) == deterministic_id(payload)
    """
    s = json.dumps(payload, sort_keys=True, ensure_ascii=False)
    return hashlib.sha256(s.encode("utf-8")).hexdigest()[:16]
