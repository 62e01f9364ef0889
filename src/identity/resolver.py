# src/identity/resolver.py — v1
"""Hydrate fleet agent definitions from their identities."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from clawup.core.errors import FleetManifestError
from clawup.core.models import (
    AgentDefinition,
    FleetManifest,
    IdentityResult,
    ResolvedAgent,
)
from clawup.identity.git_cache import GitIdentityCache
from clawup.identity.loader import fetch_identities

logger = logging.getLogger(__name__)


def merge_plugin_config(
    defaults: dict[str, dict[str, Any]] | None,
    overrides: dict[str, dict[str, Any]] | None,
) -> dict[str, dict[str, Any]]:
    """Per-plugin shallow merge; fleet manifest values win over identity defaults."""
    merged: dict[str, dict[str, Any]] = {
        name: dict(config) for name, config in (defaults or {}).items()
    }
    for name, config in (overrides or {}).items():
        merged.setdefault(name, {}).update(config)
    return merged


def resolve_agent(
    definition: AgentDefinition,
    identity: IdentityResult,
    default_volume_size: int = 30,
) -> ResolvedAgent:
    """Fill unset agent fields from the identity manifest."""
    manifest = identity.manifest
    return ResolvedAgent(
        name=definition.name or f"agent-{manifest.name}",
        display_name=definition.display_name or manifest.display_name,
        role=definition.role or manifest.role,
        volume_size=definition.volume_size or manifest.volume_size or default_volume_size,
        instance_type=definition.instance_type or manifest.instance_type,
        identity=identity,
        plugin_config=merge_plugin_config(manifest.plugin_defaults, definition.plugins),
        env_vars=dict(definition.env_vars or {}),
    )


def _check_unique(agents: list[ResolvedAgent], path: str) -> None:
    # Roles are compared upper-cased: they become env var prefixes.
    issues: list[str] = []
    for attr in ("name", "role"):
        seen: set[str] = set()
        for agent in agents:
            value = getattr(agent, attr)
            key = value.upper() if attr == "role" else value
            if key in seen:
                issues.append(f"duplicate agent {attr} {value!r}")
            seen.add(key)
    if issues:
        raise FleetManifestError(path, issues)


async def resolve_fleet_agents(
    fleet: FleetManifest,
    cache: GitIdentityCache,
    project_root: str | Path,
    default_volume_size: int = 30,
    manifest_path: str = "clawup.yaml",
) -> list[ResolvedAgent]:
    """Fetch every agent's identity concurrently and hydrate the definitions.

    Relative identity paths resolve against project_root. The first fetch
    failure aborts the run.
    """
    identities = await fetch_identities(
        [(agent.identity, agent.identity_version) for agent in fleet.agents],
        cache,
        base_dir=project_root,
    )
    agents = [
        resolve_agent(definition, identity, default_volume_size)
        for definition, identity in zip(fleet.agents, identities)
    ]
    _check_unique(agents, manifest_path)
    logger.info("Resolved %d agents: %s", len(agents), ", ".join(a.name for a in agents))
    return agents
