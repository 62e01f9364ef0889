# src/core/models.py — v1
"""Shared Pydantic domain models: identity manifests and the fleet manifest.

Both manifests are authored as camelCase YAML; models expose snake_case
attributes and accept/emit the camelCase aliases.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_serializer
from pydantic.alias_generators import to_camel

EXTERNAL_SKILL_PREFIX = "clawhub:"


class _CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        protected_namespaces=(),
    )


# === IDENTITY ===


class SkillRef(BaseModel):
    """A skill identifier split into its origin and name."""

    name: str
    external: bool

    @classmethod
    def parse(cls, raw: str) -> SkillRef:
        if raw.startswith(EXTERNAL_SKILL_PREFIX):
            return cls(name=raw[len(EXTERNAL_SKILL_PREFIX):], external=True)
        return cls(name=raw, external=False)


class IdentityManifest(_CamelModel):
    """Parsed identity.yaml. Immutable once fetched."""

    name: str = Field(min_length=1)
    display_name: str = Field(min_length=1)
    role: str = Field(min_length=1)
    emoji: str = Field(min_length=1)
    description: str = Field(min_length=1)
    volume_size: float = Field(gt=0, strict=True)
    instance_type: str | None = None
    skills: list[str]
    plugins: list[str] | None = None
    deps: list[str] | None = None
    plugin_defaults: dict[str, dict[str, Any]] | None = None
    template_vars: list[str]
    model: str | None = None
    backup_model: str | None = None
    coding_agent: str | None = None
    required_secrets: list[str] | None = None

    @field_serializer("volume_size")
    def _serialize_volume_size(self, v: float) -> int | float:
        return int(v) if float(v).is_integer() else v

    @property
    def skill_refs(self) -> list[SkillRef]:
        return [SkillRef.parse(s) for s in self.skills]

    @property
    def bundled_skills(self) -> list[str]:
        return [s.name for s in self.skill_refs if not s.external]

    @property
    def external_skills(self) -> list[str]:
        return [s.name for s in self.skill_refs if s.external]

    def models(self, default_model: str) -> list[str]:
        """Primary model (or the default) followed by the backup model, if any."""
        result = [self.model or default_model]
        if self.backup_model:
            result.append(self.backup_model)
        return result


class IdentityResult(BaseModel):
    """Fetched identity: parsed manifest plus every workspace file."""

    model_config = ConfigDict(frozen=True)

    source: str
    directory: str
    manifest: IdentityManifest
    files: dict[str, str] = Field(default_factory=dict)


# === FLEET MANIFEST ===


class AgentDefinition(_CamelModel):
    """One agent entry in clawup.yaml; may be as small as `identity: ./pm`."""

    identity: str = Field(min_length=1)
    name: str | None = None
    display_name: str | None = None
    role: str | None = None
    identity_version: str | None = None
    volume_size: float | None = Field(default=None, gt=0)
    instance_type: str | None = None
    env_vars: dict[str, str] | None = None
    plugins: dict[str, dict[str, Any]] | None = None


class FleetManifest(_CamelModel):
    """The operator-authored clawup.yaml."""

    stack_name: str = Field(min_length=1)
    organization: str | None = None
    provider: Literal["aws", "hetzner", "local"]
    region: str = Field(min_length=1)
    instance_type: str = Field(min_length=1)
    owner_name: str = Field(min_length=1)
    timezone: str | None = None
    working_hours: str | None = None
    user_notes: str | None = None
    model_provider: str = "anthropic"
    default_model: str | None = None
    template_vars: dict[str, str] = Field(default_factory=dict)
    agents: list[AgentDefinition] = Field(min_length=1)

    @property
    def qualified_stack_name(self) -> str:
        """`org/stack` when an organization is set, else the bare stack name."""
        if self.organization:
            return f"{self.organization}/{self.stack_name}"
        return self.stack_name


class ResolvedAgent(BaseModel):
    """Agent definition hydrated from its identity; manifest values win."""

    model_config = ConfigDict(frozen=True)

    name: str
    display_name: str
    role: str
    volume_size: float
    instance_type: str | None = None
    identity: IdentityResult
    plugin_config: dict[str, dict[str, Any]] = Field(default_factory=dict)
    env_vars: dict[str, str] = Field(default_factory=dict)

    @property
    def manifest(self) -> IdentityManifest:
        return self.identity.manifest

    @property
    def role_upper(self) -> str:
        return self.role.upper()
