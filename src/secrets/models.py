# src/secrets/models.py — v1
"""Secret schema and resolution models.

A SecretRequirement is one (key, scope, agent) triple the fleet needs a
value for. The schema groups them into a global set and per-agent sets;
the pipeline turns a schema into a ResolvedSecretSet.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class SecretRequirement(BaseModel):
    """One required (or optional) configuration value."""

    model_config = ConfigDict(frozen=True)

    key: str
    scope: Literal["agent", "global"]
    agent: str | None = None
    agent_label: str | None = None
    role: str | None = None
    env_var: str
    source_env_var: str
    store_key: str
    is_secret: bool = True
    required: bool = True
    auto_resolvable: bool = False
    validator: str | None = None
    plugin: str | None = None
    config_key: str | None = None
    resolve_hook: str | None = None
    hint: str | None = None
    sources: tuple[str, ...] = ()

    @property
    def owner(self) -> str:
        """Owning agent name, or "global"."""
        return self.agent or "global"


class SecretSchema(BaseModel):
    """Deduplicated requirement sets for one fleet."""

    global_requirements: dict[str, SecretRequirement] = Field(default_factory=dict)
    per_agent: dict[str, dict[str, SecretRequirement]] = Field(default_factory=dict)
    managed_global_keys: frozenset[str] = frozenset()
    warnings: list[str] = Field(default_factory=list)

    def iter_requirements(self) -> list[SecretRequirement]:
        """Global requirements first, then every agent's, in declaration order."""
        result = list(self.global_requirements.values())
        for requirements in self.per_agent.values():
            result.extend(requirements.values())
        return result

    @property
    def required_count(self) -> int:
        return sum(1 for r in self.iter_requirements() if r.required)


class MissingSecret(BaseModel):
    """A requirement without a value after resolution."""

    model_config = ConfigDict(frozen=True)

    key: str
    env_var: str
    agent: str | None = None
    agent_label: str | None = None
    hint: str | None = None


class ValidationWarning(BaseModel):
    """A resolved value that failed its format heuristic (non-blocking)."""

    model_config = ConfigDict(frozen=True)

    key: str
    env_var: str
    agent: str | None = None
    message: str


class HookResult(BaseModel):
    """Outcome of one resolve-hook invocation."""

    model_config = ConfigDict(frozen=True)

    ok: bool
    value: str | None = None
    reason: str | None = None

    @classmethod
    def success(cls, value: str) -> HookResult:
        return cls(ok=True, value=value)

    @classmethod
    def failure(cls, reason: str) -> HookResult:
        return cls(ok=False, reason=reason)


class AutoResolution(BaseModel):
    """Record of how a deferred requirement got its value."""

    model_config = ConfigDict(frozen=True)

    agent: str
    key: str
    method: Literal["plugin-config", "env", "hook"]


class ResolvedSecretSet(BaseModel):
    """Resolved values, partitioned like the schema."""

    global_values: dict[str, str] = Field(default_factory=dict)
    agent_values: dict[str, dict[str, str]] = Field(default_factory=dict)
    pruned_keys: list[str] = Field(default_factory=list)
    warnings: list[ValidationWarning] = Field(default_factory=list)
    auto_resolved: list[AutoResolution] = Field(default_factory=list)
