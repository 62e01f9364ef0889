# src/secrets/pipeline.py — v1
"""Secret resolution pipeline: schema + secret source -> ResolvedSecretSet.

Steps, in order:
  1. Prune: drop persisted managed global keys the schema no longer needs
  2. Merge: overlay secret source values on the pruned baseline
  3. Validate: format heuristics, warnings only
  4. Diff: requirements still without a value
  5. Filter: defer auto-resolvable entries; any other required gap fails here
  6. Auto-resolve: plugin config, then <ROLE>_<ENV_VAR>, then resolve hook
  7. Recompute missing: every required entry still empty fails at once
  8. Write .env.example whether or not resolution succeeded

Steps 1-5 and 7 are pure functions; only the hook call in step 6 touches
the outside world, through the HookRunner protocol.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path

from clawup.core.errors import HookResolutionFailure, MissingSecrets
from clawup.core.models import ResolvedAgent
from clawup.logging.context import set_agent_context, stage
from clawup.secrets.env_example import write_env_example
from clawup.secrets.hooks import HookRunner
from clawup.secrets.models import (
    AutoResolution,
    MissingSecret,
    ResolvedSecretSet,
    SecretRequirement,
    SecretSchema,
    ValidationWarning,
)
from clawup.secrets.validators import validate_value

logger = logging.getLogger(__name__)


@dataclass
class _WorkingSet:
    """Mutable values for one run; never escapes the pipeline."""

    global_values: dict[str, str] = field(default_factory=dict)
    agent_values: dict[str, dict[str, str]] = field(default_factory=dict)

    def get(self, requirement: SecretRequirement) -> str | None:
        if requirement.scope == "global":
            return self.global_values.get(requirement.key)
        return self.agent_values.get(requirement.agent or "", {}).get(requirement.key)

    def set(self, requirement: SecretRequirement, value: str) -> None:
        if requirement.scope == "global":
            self.global_values[requirement.key] = value
        else:
            self.agent_values.setdefault(requirement.agent or "", {})[requirement.key] = value


# --- Pure steps ---


def prune_persisted(
    persisted: Mapping[str, str],
    schema: SecretSchema,
) -> tuple[dict[str, str], list[str]]:
    """Step 1. Return (kept values, pruned keys)."""
    kept: dict[str, str] = {}
    pruned: list[str] = []
    for key, value in persisted.items():
        if key in schema.managed_global_keys and key not in schema.global_requirements:
            pruned.append(key)
        else:
            kept[key] = value
    return kept, sorted(pruned)


def merge_values(
    schema: SecretSchema,
    source: Mapping[str, str],
    baseline: Mapping[str, str],
) -> _WorkingSet:
    """Step 2. Schema keys only; source values win over the baseline."""
    working = _WorkingSet()
    for key, requirement in schema.global_requirements.items():
        value = source.get(requirement.source_env_var) or baseline.get(key)
        if value:
            working.global_values[key] = value
    for agent, requirements in schema.per_agent.items():
        values = working.agent_values.setdefault(agent, {})
        for key, requirement in requirements.items():
            value = source.get(requirement.source_env_var)
            if value:
                values[key] = value
    return working


def _missing_requirements(
    schema: SecretSchema,
    working: _WorkingSet,
) -> list[SecretRequirement]:
    """Steps 4 and 7."""
    return [r for r in schema.iter_requirements() if not working.get(r)]


def validate_values(
    schema: SecretSchema,
    working: _WorkingSet,
) -> list[ValidationWarning]:
    """Step 3. Never raises; a failed check becomes a warning."""
    warnings: list[ValidationWarning] = []
    for requirement in schema.iter_requirements():
        value = working.get(requirement)
        if not value:
            continue
        message = validate_value(requirement.validator, value)
        if message is None:
            continue
        warnings.append(
            ValidationWarning(
                key=requirement.key,
                env_var=requirement.source_env_var,
                agent=requirement.agent,
                message=message,
            )
        )
        label = requirement.agent_label or requirement.agent
        suffix = f" ({label})" if label else ""
        logger.warning("%s%s: %s", requirement.source_env_var, suffix, message)
    return warnings


def _to_missing(requirement: SecretRequirement) -> MissingSecret:
    return MissingSecret(
        key=requirement.key,
        env_var=requirement.source_env_var,
        agent=requirement.agent,
        agent_label=requirement.agent_label or requirement.agent,
        hint=requirement.hint,
    )


# --- Pipeline ---


class SecretResolutionPipeline:
    """Run the resolution steps for one fleet.

    Args:
        hook_runner: Executes plugin resolve hooks; None disables hooks.
        skip_hooks: Skip resolve hooks even when a runner is available.
        environ: Where `<ROLE>_<ENV_VAR>` overrides are looked up during
            auto-resolution. Defaults to the secret source.
        source_name: Name of the secret source used in error messages.
    """

    def __init__(
        self,
        hook_runner: HookRunner | None = None,
        skip_hooks: bool = False,
        environ: Mapping[str, str] | None = None,
        source_name: str = ".env",
    ) -> None:
        self._hook_runner = hook_runner
        self._skip_hooks = skip_hooks
        self._environ = environ
        self._source_name = source_name

    async def run(
        self,
        schema: SecretSchema,
        source: Mapping[str, str],
        agents: list[ResolvedAgent],
        persisted_global: Mapping[str, str] | None = None,
        example_path: str | Path | None = None,
    ) -> ResolvedSecretSet:
        """Resolve every requirement in the schema.

        Raises:
            MissingSecrets: Required entries remain without a value.
            HookResolutionFailure: A resolve hook failed.
        """
        start_time = time.monotonic()
        try:
            with stage("prune"):
                baseline, pruned = prune_persisted(persisted_global or {}, schema)
                if pruned:
                    logger.info("Pruning stale global keys: %s", ", ".join(pruned))

            with stage("merge"):
                working = merge_values(schema, source, baseline)

            with stage("validate"):
                warnings = validate_values(schema, working)

            with stage("diff"):
                missing = _missing_requirements(schema, working)
                deferred = [r for r in missing if r.auto_resolvable]
                blocking = [r for r in missing if r.required and not r.auto_resolvable]
                if blocking:
                    raise MissingSecrets(
                        [_to_missing(r) for r in blocking],
                        source_name=self._source_name,
                    )

            with stage("auto-resolve"):
                auto_resolved = await self._auto_resolve(
                    schema, deferred, working, agents, source
                )

            with stage("recompute"):
                still_missing = [
                    r for r in _missing_requirements(schema, working) if r.required
                ]
                if still_missing:
                    raise MissingSecrets(
                        [_to_missing(r) for r in still_missing],
                        source_name=self._source_name,
                    )
        finally:
            set_agent_context(None)
            if example_path is not None:
                write_env_example(schema, example_path)

        logger.info(
            "Resolved %d global and %d per-agent values in %.2fs",
            len(working.global_values),
            sum(len(v) for v in working.agent_values.values()),
            time.monotonic() - start_time,
        )
        return ResolvedSecretSet(
            global_values=working.global_values,
            agent_values={a: v for a, v in working.agent_values.items() if v},
            pruned_keys=pruned,
            warnings=warnings,
            auto_resolved=auto_resolved,
        )

    async def _auto_resolve(
        self,
        schema: SecretSchema,
        deferred: list[SecretRequirement],
        working: _WorkingSet,
        agents: list[ResolvedAgent],
        source: Mapping[str, str],
    ) -> list[AutoResolution]:
        """Step 6. Hooks run sequentially, in schema order."""
        by_name = {a.name: a for a in agents}
        environ = self._environ if self._environ is not None else source
        resolved: list[AutoResolution] = []
        hooks_skipped = False

        for requirement in deferred:
            agent = by_name.get(requirement.agent or "")
            if agent is None:
                logger.warning(
                    "Cannot auto-resolve %s for %s: no owning agent; set %s instead",
                    requirement.key,
                    requirement.owner,
                    requirement.source_env_var,
                )
                continue
            set_agent_context(agent.name)

            config_value = self._from_plugin_config(agent, requirement)
            if config_value:
                working.set(requirement, config_value)
                resolved.append(
                    AutoResolution(agent=agent.name, key=requirement.key, method="plugin-config")
                )
                continue

            env_value = environ.get(requirement.source_env_var)
            if env_value:
                logger.info("%s resolved from %s", requirement.key, requirement.source_env_var)
                working.set(requirement, env_value)
                resolved.append(
                    AutoResolution(agent=agent.name, key=requirement.key, method="env")
                )
                continue

            script = requirement.resolve_hook
            if script is None:
                continue
            if self._skip_hooks or self._hook_runner is None:
                hooks_skipped = True
                continue

            hook_env = _hook_env(schema, agent.name, working)
            logger.info("Running resolve hook for %s (%s)", requirement.key, requirement.plugin)
            result = await self._hook_runner.run(script, hook_env)
            if not result.ok or not result.value:
                raise HookResolutionFailure(
                    agent=agent.name,
                    plugin=requirement.plugin or "",
                    key=requirement.key,
                    reason=result.reason or "hook produced no value",
                    bypass_env_var=requirement.source_env_var,
                )
            working.set(requirement, result.value)
            resolved.append(AutoResolution(agent=agent.name, key=requirement.key, method="hook"))

        if hooks_skipped:
            logger.warning("Resolve hooks skipped; supply auto-resolvable values manually")
        return resolved

    @staticmethod
    def _from_plugin_config(agent: ResolvedAgent, requirement: SecretRequirement) -> str | None:
        if requirement.plugin is None or requirement.config_key is None:
            return None
        value = agent.plugin_config.get(requirement.plugin, {}).get(requirement.config_key)
        if value is None or value == "":
            return None
        return str(value)


def _hook_env(schema: SecretSchema, agent: str, working: _WorkingSet) -> dict[str, str]:
    """Global values plus the agent's values, under their raw env var names."""
    env: dict[str, str] = {}
    for requirement in schema.global_requirements.values():
        value = working.get(requirement)
        if value:
            env[requirement.env_var] = value
    for requirement in schema.per_agent.get(agent, {}).values():
        value = working.get(requirement)
        if value:
            env[requirement.env_var] = value
    return env
