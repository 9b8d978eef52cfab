from __future__ import annotations

import uuid


def generate_id() -> str:
    """Return a new opaque node identifier (random 128-bit hex token)."""

    return uuid.uuid4().hex
