"""Identifier helpers."""

from __future__ import annotations

import uuid


def new_id(prefix: str | None = None) -> str:
    """Return a random hex identifier, e.g. ``cnv_3f2a...`` for prefix ``cnv``."""
    base = uuid.uuid4().hex
    return f"{prefix}_{base}" if prefix else base


__all__ = ["new_id"]
