# src/secrets/schema_builder.py — v1
"""Secret schema builder: registries + resolved agents -> SecretSchema.

For every agent, union the secret maps of its plugins, dependencies and
coding agent, its model providers' credentials and its identity's
requiredSecrets. Agent-scoped specs stay in that agent's bucket; global
specs are lifted into one global bucket, deduplicated by key.
Infrastructure credentials (base model provider, mesh, cloud) are always
global.

Two sources declaring the same key with a different validator or
secret/plaintext classification are collected and raised together as a
SchemaConflictError.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from clawup.config.constants import (
    CLOUD_SECRETS,
    DEFAULT_MODEL_PROVIDER,
    GLOBAL_STORE_KEYS,
    MESH_SECRETS,
    provider_for_model,
)
from clawup.core.errors import SchemaConflict, SchemaConflictError
from clawup.core.models import ResolvedAgent
from clawup.registry.models import PluginEntry, RegistryKind, SecretSpec
from clawup.registry.registry import Registries
from clawup.secrets.models import SecretRequirement, SecretSchema
from clawup.secrets.naming import (
    agent_env_var,
    agent_store_key,
    camel_to_screaming_snake,
    env_var_to_camel,
)
from clawup.secrets.validators import format_hint

logger = logging.getLogger(__name__)

_CONFLICT_ATTRIBUTES = ("validator", "is_secret")


class _Bucket:
    """Requirements for one scope (global, or one agent), keyed by derived key."""

    def __init__(self, agent: str | None, conflicts: list[SchemaConflict]) -> None:
        self.agent = agent
        self.items: dict[str, SecretRequirement] = {}
        self._conflicts = conflicts

    def add(self, requirement: SecretRequirement) -> None:
        existing = self.items.get(requirement.key)
        if existing is None:
            self.items[requirement.key] = requirement
            return

        for attribute in _CONFLICT_ATTRIBUTES:
            if getattr(existing, attribute) != getattr(requirement, attribute):
                self._conflicts.append(
                    SchemaConflict(
                        key=requirement.key,
                        agent=self.agent,
                        first_source=existing.sources[0],
                        second_source=requirement.sources[0],
                        attribute=attribute,
                    )
                )
                return

        sources = existing.sources + tuple(
            s for s in requirement.sources if s not in existing.sources
        )
        self.items[requirement.key] = existing.model_copy(
            update={
                "sources": sources,
                "required": existing.required or requirement.required,
                "auto_resolvable": existing.auto_resolvable and requirement.auto_resolvable,
                "plugin": existing.plugin or requirement.plugin,
                "config_key": existing.config_key or requirement.config_key,
                "resolve_hook": existing.resolve_hook or requirement.resolve_hook,
            }
        )


def _hint(spec: SecretSpec) -> str | None:
    hint = format_hint(spec.validator)
    if hint is None and spec.instructions is not None:
        return spec.instructions.title
    return hint


def _global_requirement(
    spec: SecretSpec,
    source: str,
    key: str | None = None,
) -> SecretRequirement:
    key = key or env_var_to_camel(spec.env_var)
    return SecretRequirement(
        key=key,
        scope="global",
        env_var=spec.env_var,
        source_env_var=spec.env_var,
        store_key=GLOBAL_STORE_KEYS.get(key, key),
        is_secret=spec.is_secret,
        required=spec.required,
        auto_resolvable=spec.auto_resolvable,
        validator=spec.validator,
        hint=_hint(spec),
        sources=(source,),
    )


def _agent_requirement(
    agent: ResolvedAgent,
    spec: SecretSpec,
    source: str,
    plugin: PluginEntry | None = None,
    config_key: str | None = None,
) -> SecretRequirement:
    key = env_var_to_camel(spec.env_var)
    return SecretRequirement(
        key=key,
        scope="agent",
        agent=agent.name,
        agent_label=agent.display_name,
        role=agent.role,
        env_var=spec.env_var,
        source_env_var=agent_env_var(agent.role, spec.env_var),
        store_key=agent_store_key(agent.role, key),
        is_secret=spec.is_secret,
        required=spec.required,
        auto_resolvable=spec.auto_resolvable,
        validator=spec.validator,
        plugin=plugin.name if plugin else None,
        config_key=config_key,
        resolve_hook=plugin.resolve_hooks.get(config_key) if plugin and config_key else None,
        hint=_hint(spec),
        sources=(source,),
    )


def _collect_entry_specs(
    agent: ResolvedAgent,
    registries: Registries,
    warnings: list[str],
) -> Iterable[tuple[str, str, SecretSpec, PluginEntry | None]]:
    """Yield (source, config_key, spec, plugin) for every registry entry the agent declares."""
    manifest = agent.manifest
    lookups: list[tuple[RegistryKind, list[str]]] = [
        (RegistryKind.PLUGIN, manifest.plugins or []),
        (RegistryKind.DEPENDENCY, manifest.deps or []),
        (RegistryKind.CODING_AGENT, [manifest.coding_agent] if manifest.coding_agent else []),
    ]
    tables = {
        RegistryKind.PLUGIN: registries.plugins,
        RegistryKind.DEPENDENCY: registries.deps,
        RegistryKind.CODING_AGENT: registries.coding_agents,
    }
    for kind, names in lookups:
        for name in names:
            entry = tables[kind].lookup(name)
            if not entry.known:
                warnings.append(
                    f"Agent {agent.name}: unknown {kind.value} {name!r} skipped"
                )
                continue
            plugin = entry if isinstance(entry, PluginEntry) else None
            for config_key, spec in entry.secrets.items():
                yield f"{kind.value}:{entry.name}", config_key, spec, plugin


def managed_global_keys(registries: Registries) -> frozenset[str]:
    """Every global key this tool could ever write, across all registries."""
    keys: set[str] = {p.config_key for p in registries.model_providers.values()}
    keys.update(MESH_SECRETS)
    for cloud in CLOUD_SECRETS.values():
        keys.update(cloud)
    for table in (registries.plugins, registries.deps, registries.coding_agents):
        for entry in table:
            keys.update(
                env_var_to_camel(spec.env_var)
                for spec in entry.secrets.values()
                if spec.scope == "global"
            )
    return frozenset(keys)


def build_secret_schema(
    agents: list[ResolvedAgent],
    registries: Registries,
    *,
    provider: str,
    model_provider: str = DEFAULT_MODEL_PROVIDER,
    default_model: str = "anthropic/claude-opus-4-6",
) -> SecretSchema:
    """Build the deduplicated requirement schema for a fleet.

    Args:
        agents: Hydrated agents, one per fleet entry.
        registries: Lookup tables (injected so tests can use fakes).
        provider: Infrastructure provider (aws, hetzner, local).
        model_provider: The fleet's base model provider; its credential
            is always required globally.
        default_model: Model used by identities that do not declare one.

    Raises:
        SchemaConflictError: Sources disagree on a key's metadata.
    """
    conflicts: list[SchemaConflict] = []
    warnings: list[str] = []
    global_bucket = _Bucket(None, conflicts)

    base = registries.model_provider(model_provider)
    if base is None:
        warnings.append(f"Unknown model provider {model_provider!r}; no credential required")
        logger.warning(warnings[-1])
    else:
        global_bucket.add(
            _global_requirement(base.secret_spec, f"model-provider:{base.key}", base.config_key)
        )

    if provider != "local":
        for key, spec in MESH_SECRETS.items():
            global_bucket.add(_global_requirement(spec, "mesh", key))
    for key, spec in CLOUD_SECRETS.get(provider, {}).items():
        global_bucket.add(_global_requirement(spec, f"cloud:{provider}", key))

    per_agent: dict[str, dict[str, SecretRequirement]] = {}
    for agent in agents:
        bucket = _Bucket(agent.name, conflicts)

        for model in agent.manifest.models(default_model):
            provider_key = provider_for_model(model)
            model_entry = registries.model_provider(provider_key)
            if model_entry is None:
                warnings.append(
                    f"Agent {agent.name}: unknown model provider {provider_key!r} "
                    f"for model {model!r}"
                )
                logger.warning(warnings[-1])
                continue
            global_bucket.add(
                _global_requirement(
                    model_entry.secret_spec,
                    f"model-provider:{model_entry.key}",
                    model_entry.config_key,
                )
            )

        for source, config_key, spec, plugin in _collect_entry_specs(agent, registries, warnings):
            if spec.scope == "global":
                global_bucket.add(_global_requirement(spec, source))
            else:
                bucket.add(_agent_requirement(agent, spec, source, plugin, config_key))

        for key in agent.manifest.required_secrets or []:
            if key in bucket.items:
                continue
            spec = SecretSpec(env_var=camel_to_screaming_snake(key), scope="agent")
            bucket.add(_agent_requirement(agent, spec, f"identity:{agent.manifest.name}"))

        if bucket.items:
            per_agent[agent.name] = bucket.items

    if conflicts:
        raise SchemaConflictError(conflicts)

    schema = SecretSchema(
        global_requirements=global_bucket.items,
        per_agent=per_agent,
        managed_global_keys=managed_global_keys(registries),
        warnings=warnings,
    )
    logger.info(
        "Secret schema: %d global, %d per-agent across %d agents",
        len(schema.global_requirements),
        sum(len(r) for r in per_agent.values()),
        len(per_agent),
    )
    return schema
