# src/secrets/env_source.py — v1
"""External secret source: the operator's .env file plus the process environment."""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from pathlib import Path

from dotenv import dotenv_values

logger = logging.getLogger(__name__)


def load_env_file(path: str | Path) -> dict[str, str]:
    """Parse a .env file; a missing file yields an empty mapping.

    Keys declared without a value (`KEY` or `KEY=`) are dropped.
    """
    env_path = Path(path)
    if not env_path.is_file():
        logger.debug("No env file at %s", env_path)
        return {}
    values = dotenv_values(env_path)
    return {k: v for k, v in values.items() if v}


def build_env_dict(
    path: str | Path,
    environ: Mapping[str, str] | None = None,
) -> dict[str, str]:
    """Merge the .env file with the process environment; the process wins."""
    merged = load_env_file(path)
    process_env = os.environ if environ is None else environ
    merged.update({k: v for k, v in process_env.items() if v})
    return merged
