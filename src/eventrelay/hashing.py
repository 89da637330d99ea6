from __future__ import annotations

import hashlib


def hash_identifier(identifier: str) -> str:
    """SHA-256 hex digest of a node identifier, used to anonymize addresses."""
    return hashlib.sha256(identifier.encode("utf-8")).hexdigest()
