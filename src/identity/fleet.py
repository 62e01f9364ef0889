# src/identity/fleet.py — v1
"""Fleet manifest (clawup.yaml) loading and template-variable checks."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from pathlib import Path

import yaml
from pydantic import ValidationError

from clawup.config.constants import OWNER_TEMPLATE_VARS
from clawup.core.errors import FleetManifestError, MissingTemplateVars
from clawup.core.models import FleetManifest, ResolvedAgent

logger = logging.getLogger(__name__)


def parse_fleet_manifest(text: str, path: str) -> FleetManifest:
    """Parse clawup.yaml text.

    Raises:
        FleetManifestError: Malformed YAML or invalid fields (all listed).
    """
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise FleetManifestError(path, [f"malformed YAML: {e}"]) from e
    if not isinstance(data, dict):
        raise FleetManifestError(path, ["expected a mapping at the top level"])

    try:
        return FleetManifest.model_validate(data)
    except ValidationError as e:
        issues = []
        for error in e.errors():
            loc = ".".join(str(part) for part in error["loc"])
            issues.append(f"{loc}: {error['msg']}")
        raise FleetManifestError(path, issues) from e


def load_fleet_manifest(path: str | Path) -> FleetManifest:
    manifest_path = Path(path)
    try:
        text = manifest_path.read_text(encoding="utf-8")
    except FileNotFoundError as e:
        raise FleetManifestError(str(manifest_path), ["file not found; run `clawup init`"]) from e
    except OSError as e:
        raise FleetManifestError(str(manifest_path), [str(e)]) from e
    fleet = parse_fleet_manifest(text, str(manifest_path))
    logger.debug("Loaded fleet %s with %d agents", fleet.stack_name, len(fleet.agents))
    return fleet


def available_template_vars(fleet: FleetManifest) -> dict[str, str]:
    """templateVars plus values derived from owner metadata (explicit wins)."""
    values: dict[str, str] = {}
    for var, attr in OWNER_TEMPLATE_VARS.items():
        value = getattr(fleet, attr)
        if value:
            values[var] = value
    values.update(fleet.template_vars)
    return values


def check_template_vars(fleet: FleetManifest, agents: Iterable[ResolvedAgent]) -> dict[str, str]:
    """Return the template values; raise if any identity references an unsupplied one.

    Raises:
        MissingTemplateVars: Lists every missing name.
    """
    values = available_template_vars(fleet)
    missing: set[str] = set()
    for agent in agents:
        missing.update(v for v in agent.manifest.template_vars if v not in values)
    if missing:
        raise MissingTemplateVars(sorted(missing))
    return values
