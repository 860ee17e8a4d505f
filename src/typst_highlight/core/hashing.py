"""Content addressing for Typst code blocks."""

from __future__ import annotations

import hashlib


def content_hash(source: str) -> str:
    """Return the SHA-256 hex digest of ``source``; used as cache key and file stem."""
    return hashlib.sha256(source.encode("utf-8")).hexdigest()


__all__ = ["content_hash"]
