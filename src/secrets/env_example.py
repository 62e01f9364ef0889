# src/secrets/env_example.py — v1
"""Generate the .env.example documentation artifact from a schema."""

from __future__ import annotations

import logging
from pathlib import Path

from clawup.secrets.models import SecretRequirement, SecretSchema

logger = logging.getLogger(__name__)

HEADER = (
    "# Clawup Secrets — copy to .env and fill in values",
    "# Per-agent values are prefixed with the agent role (e.g. PM_LINEAR_API_KEY)",
)


def _section(title: str) -> str:
    return f"# ── {title} " + "─" * max(4, 44 - len(title))


def _line(requirement: SecretRequirement) -> str:
    if requirement.auto_resolvable:
        return f"# {requirement.source_env_var}=  # auto-resolved by `clawup setup`"
    if not requirement.required:
        return f"# {requirement.source_env_var}=  # optional"
    return f"{requirement.source_env_var}="


def render_env_example(schema: SecretSchema) -> str:
    """Render every requirement, globals first, then one section per agent."""
    lines: list[str] = [*HEADER, ""]

    if schema.global_requirements:
        lines.append(_section("Required"))
        lines.extend(_line(r) for r in schema.global_requirements.values())

    for agent, requirements in schema.per_agent.items():
        if not requirements:
            continue
        first = next(iter(requirements.values()))
        role = first.role or agent
        lines.append("")
        lines.append(_section(f"Agent: {first.agent_label or agent} ({role})"))
        lines.extend(_line(r) for r in requirements.values())

    lines.append("")
    return "\n".join(lines)


def write_env_example(schema: SecretSchema, path: str | Path) -> Path:
    """Write the rendered example file; returns the path written."""
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(render_env_example(schema), encoding="utf-8")
    logger.info("Wrote %s (%d entries)", target, len(schema.iter_requirements()))
    return target
