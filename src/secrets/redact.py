# src/secrets/redact.py — v1
"""Mask likely-secret values in free text before it is logged or raised."""

from __future__ import annotations

import re

REDACTED = "[REDACTED]"

_KEY_VALUE = re.compile(
    r"\b([A-Z0-9_]*(?:TOKEN|SECRET|API_KEY|KEY|PASS|PASSWORD)[A-Z0-9_]*)\b"
    r"\s*=\s*(?:\"[^\"]*\"|'[^']*'|\S+)",
    re.IGNORECASE,
)

_TOKEN_PATTERNS: tuple[tuple[re.Pattern[str], str], ...] = (
    (re.compile(r"\bxoxb-[0-9A-Za-z-]+\b"), "xoxb-"),
    (re.compile(r"\bxapp-[0-9A-Za-z-]+\b"), "xapp-"),
    (re.compile(r"\bxoxe-[0-9A-Za-z-]+\b"), "xoxe-"),
    (re.compile(r"\blin_api_[0-9A-Za-z]+\b"), "lin_api_"),
    (re.compile(r"\bghp_[0-9A-Za-z]{20,}\b"), "ghp_"),
    (re.compile(r"\bgithub_pat_[0-9A-Za-z_]{20,}\b"), "github_pat_"),
    (re.compile(r"\btskey-[a-z]+-[0-9A-Za-z-]+\b"), "tskey-"),
    (re.compile(r"\bsk-[0-9A-Za-z_-]{20,}\b"), "sk-"),
)


def redact_secrets(text: str) -> str:
    """Replace KEY=VALUE secrets and well-known token shapes with [REDACTED]."""
    if not text:
        return text
    out = _KEY_VALUE.sub(lambda m: f"{m.group(1)}={REDACTED}", text)
    for pattern, prefix in _TOKEN_PATTERNS:
        out = pattern.sub(prefix + REDACTED, out)
    return out
