# src/secrets/naming.py — v1
"""Name derivations between env vars, config keys and store keys."""

from __future__ import annotations

import re

_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])")


def env_var_to_camel(env_var: str) -> str:
    """`LINEAR_API_KEY` -> `linearApiKey`."""
    parts = [p for p in env_var.lower().split("_") if p]
    if not parts:
        return ""
    return parts[0] + "".join(p.capitalize() for p in parts[1:])


def camel_to_screaming_snake(key: str) -> str:
    """`linearApiKey` -> `LINEAR_API_KEY`."""
    return _CAMEL_BOUNDARY.sub("_", key).upper()


def agent_env_var(role: str, env_var: str) -> str:
    """Per-agent source variable: `pm` + `LINEAR_API_KEY` -> `PM_LINEAR_API_KEY`."""
    return f"{role.upper()}_{env_var}"


def agent_store_key(role: str, key: str) -> str:
    """Per-agent store key: `pm` + `linearApiKey` -> `pmLinearApiKey`."""
    if not key:
        return role
    return f"{role}{key[0].upper()}{key[1:]}"
