# src/registry/models.py — v1
"""Registry domain models: secret specs and the tagged entry variants.

Entries are frozen; a registry table never changes after it is built.
"""

from __future__ import annotations

from enum import Enum
from typing import Literal, Union

from pydantic import BaseModel, ConfigDict, Field


class RegistryKind(str, Enum):
    """The closed set of registry tables."""

    PLUGIN = "plugin"
    DEPENDENCY = "dep"
    CODING_AGENT = "coding-agent"


class SecretInstructions(BaseModel):
    """Human-readable setup steps shown next to a missing secret."""

    model_config = ConfigDict(frozen=True)

    title: str
    steps: tuple[str, ...] = ()


class SecretSpec(BaseModel):
    """How one configuration key maps onto an environment variable."""

    model_config = ConfigDict(frozen=True)

    env_var: str
    scope: Literal["agent", "global"]
    is_secret: bool = True
    required: bool = True
    auto_resolvable: bool = False
    validator: str | None = None
    instructions: SecretInstructions | None = None


class _Entry(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    display_name: str
    secrets: dict[str, SecretSpec] = Field(default_factory=dict)

    @property
    def known(self) -> bool:
        return True


class PluginEntry(_Entry):
    """An integration an identity may declare (issue tracker, chat, ...)."""

    kind: Literal[RegistryKind.PLUGIN] = RegistryKind.PLUGIN
    installable: bool = True
    needs_funnel: bool = False
    config_path: Literal["plugins.entries", "channels"] = "plugins.entries"
    internal_keys: tuple[str, ...] = ()
    default_config: dict[str, object] | None = None
    resolve_hooks: dict[str, str] = Field(default_factory=dict)


class DependencyEntry(_Entry):
    """A system tool an identity may declare."""

    kind: Literal[RegistryKind.DEPENDENCY] = RegistryKind.DEPENDENCY
    install_script: str = ""
    post_install_script: str = ""


class CliBackend(BaseModel):
    """cliBackends entry written into the agent runtime config."""

    model_config = ConfigDict(frozen=True)

    command: str
    args: tuple[str, ...] = ()
    output: str = "jsonl"
    model_arg: str = "--model"
    session_arg: str | None = None
    session_mode: str | None = None
    system_prompt_arg: str | None = None
    system_prompt_when: str | None = None


class CodingAgentEntry(_Entry):
    """A coding-agent CLI used as the agent's coding backend."""

    kind: Literal[RegistryKind.CODING_AGENT] = RegistryKind.CODING_AGENT
    install_script: str = ""
    configure_model_script: str = ""
    cli_backend: CliBackend | None = None


class UnknownEntry(_Entry):
    """Placeholder for a name the running version does not know yet."""

    kind: RegistryKind

    @property
    def known(self) -> bool:
        return False


RegistryEntry = Union[PluginEntry, DependencyEntry, CodingAgentEntry, UnknownEntry]


class ModelProvider(BaseModel):
    """An AI model provider and the credential it needs."""

    model_config = ConfigDict(frozen=True)

    key: str
    name: str
    env_var: str
    key_prefix: str = ""
    models: tuple[str, ...] = ()

    @property
    def config_key(self) -> str:
        """Config/store key for the credential, e.g. `anthropicApiKey`."""
        return f"{self.key}ApiKey"

    @property
    def secret_spec(self) -> SecretSpec:
        return SecretSpec(
            env_var=self.env_var,
            scope="global",
            is_secret=True,
            required=True,
            validator=f"prefix:{self.key_prefix}" if self.key_prefix else None,
        )
