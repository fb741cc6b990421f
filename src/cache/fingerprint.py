# src/cache/fingerprint.py - v3
"""Deterministic cache-key derivation for analysis results.

The key covers the normalized RFP text, the normalized capability text, the
requested model and the logic version. Bumping the logic version is the only
sanctioned way to invalidate prior entries without deleting them.
"""

from __future__ import annotations

import hashlib

_SEPARATOR = "\n\x1f\n"


def normalize_input(text: str | None) -> str:
    """Strip carriage returns and surrounding whitespace."""
    return (text or "").replace("\r", "").strip()


def derive_cache_key(
    source_text: str,
    evidence_text: str,
    model: str,
    logic_version: str,
) -> str:
    """Compute the cache key for one analysis input.

    Args:
        source_text: RFP text.
        evidence_text: Capability brief text.
        model: Requested model name.
        logic_version: Current logic version string.

    Returns:
        SHA-256 hex digest (64 characters).
    """
    parts = [
        normalize_input(source_text),
        normalize_input(evidence_text),
        model.strip(),
        logic_version.strip(),
    ]
    payload = _SEPARATOR.join(parts)
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()
