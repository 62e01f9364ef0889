# src/api/models.py — v1
"""API-level models: SetupOptions and SetupResult."""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, Field

from clawup.secrets.models import AutoResolution, ValidationWarning


class SetupOptions(BaseModel):
    """Per-invocation options; unset fields fall back to Settings."""

    manifest_file: str | None = None
    env_file: Path | None = None
    skip_hooks: bool | None = None
    write_example: bool = True


class SetupResult(BaseModel):
    """Return value of facade.setup_fleet() and facade.plan_fleet()."""

    stack: str
    dry_run: bool = False
    agents: list[str] = Field(default_factory=list)
    stack_created: bool = False
    fingerprint_backfilled: bool = False
    planned_keys: dict[str, str] = Field(default_factory=dict)
    written_keys: list[str] = Field(default_factory=list)
    unchanged_keys: list[str] = Field(default_factory=list)
    removed_keys: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    validation_warnings: list[ValidationWarning] = Field(default_factory=list)
    auto_resolved: list[AutoResolution] = Field(default_factory=list)
    example_path: Path | None = None
