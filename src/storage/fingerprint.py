# src/storage/fingerprint.py — v1
"""Project fingerprint guarding stacks against name collisions."""

from __future__ import annotations

import hashlib
from pathlib import Path


def project_fingerprint(project_root: str | Path) -> str:
    """First 16 hex chars of SHA-256 over the absolute project path."""
    absolute = str(Path(project_root).expanduser().resolve())
    return hashlib.sha256(absolute.encode("utf-8")).hexdigest()[:16]
