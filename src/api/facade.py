# src/api/facade.py — v1
"""Public API facade: the full resolve-and-provision chain.

Usage:
    from clawup.api.facade import setup_fleet
    result = await setup_fleet(Path("."))

Chain: fleet manifest -> identities -> template vars -> secret schema ->
resolution pipeline (writes .env.example) -> provisioning writer.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from clawup.api.models import SetupOptions, SetupResult
from clawup.config.settings import Settings
from clawup.core.models import FleetManifest, ResolvedAgent
from clawup.identity.fleet import check_template_vars, load_fleet_manifest
from clawup.identity.git_cache import GitIdentityCache
from clawup.identity.resolver import resolve_fleet_agents
from clawup.logging.context import clear_context, set_stack_context, stage
from clawup.registry.registry import Registries, default_registries
from clawup.secrets.env_source import build_env_dict
from clawup.secrets.hooks import ShellHookRunner
from clawup.secrets.models import ResolvedSecretSet, SecretSchema
from clawup.secrets.pipeline import SecretResolutionPipeline
from clawup.secrets.schema_builder import build_secret_schema
from clawup.storage.provisioner import (
    ProvisioningWriter,
    build_provisioning_plan,
    describe_plan,
    persisted_keys,
)
from clawup.storage.store_factory import create_config_store

if TYPE_CHECKING:
    from clawup.secrets.hooks import HookRunner
    from clawup.storage.base_config_store import BaseConfigStore

logger = logging.getLogger(__name__)


@dataclass
class FleetContext:
    """Fleet manifest, hydrated agents and their secret schema."""

    fleet: FleetManifest
    agents: list[ResolvedAgent]
    schema: SecretSchema
    template_values: dict[str, str]


async def load_fleet(
    project_root: Path,
    settings: Settings | None = None,
    options: SetupOptions | None = None,
    registries: Registries | None = None,
) -> FleetContext:
    """Load clawup.yaml, fetch identities and build the secret schema.

    Raises:
        FleetManifestError, IdentityNotFound, ManifestParseError,
        ManifestValidationError, FetchError, MissingTemplateVars,
        SchemaConflictError.
    """
    settings = settings or Settings()
    options = options or SetupOptions()
    registries = registries or default_registries()
    project_root = Path(project_root).expanduser().resolve()

    manifest_name = options.manifest_file or settings.manifest_file
    with stage("manifest"):
        fleet = load_fleet_manifest(project_root / manifest_name)
    set_stack_context(fleet.qualified_stack_name)

    with stage("identities"):
        cache = GitIdentityCache(
            settings.identity_cache_path,
            git_binary=settings.git_binary,
            timeout_seconds=settings.git_timeout_seconds,
        )
        agents = await resolve_fleet_agents(
            fleet,
            cache,
            project_root,
            default_volume_size=settings.default_volume_size,
            manifest_path=manifest_name,
        )
        template_values = check_template_vars(fleet, agents)

    with stage("schema"):
        schema = build_secret_schema(
            agents,
            registries,
            provider=fleet.provider,
            model_provider=fleet.model_provider,
            default_model=fleet.default_model or settings.default_model,
        )
    return FleetContext(
        fleet=fleet, agents=agents, schema=schema, template_values=template_values
    )


async def _resolve(
    ctx: FleetContext,
    project_root: Path,
    options: SetupOptions,
    settings: Settings,
    writer: ProvisioningWriter,
    hook_runner: HookRunner | None,
) -> tuple[ResolvedSecretSet, Path | None]:
    env_path = options.env_file or project_root / settings.env_file_name
    source = build_env_dict(env_path)

    with stage("attach"):
        await writer.attach(ctx.fleet.qualified_stack_name)
        persisted = await writer.read_persisted(persisted_keys(ctx.schema))

    skip_hooks = settings.skip_hooks if options.skip_hooks is None else options.skip_hooks
    if hook_runner is None and not skip_hooks:
        hook_runner = ShellHookRunner(timeout_seconds=settings.hook_timeout_seconds)

    example_path = (
        project_root / settings.env_example_file_name if options.write_example else None
    )
    pipeline = SecretResolutionPipeline(
        hook_runner=hook_runner,
        skip_hooks=skip_hooks,
        source_name=Path(env_path).name,
    )
    resolved = await pipeline.run(
        ctx.schema,
        source,
        ctx.agents,
        persisted_global=persisted,
        example_path=example_path,
    )
    return resolved, example_path


async def _run(
    project_root: Path,
    options: SetupOptions | None,
    settings: Settings | None,
    store: BaseConfigStore | None,
    hook_runner: HookRunner | None,
    registries: Registries | None,
    dry_run: bool,
) -> SetupResult:
    settings = settings or Settings()
    options = options or SetupOptions()
    project_root = Path(project_root).expanduser().resolve()
    store = store or create_config_store(settings)

    try:
        ctx = await load_fleet(project_root, settings, options, registries)
        writer = ProvisioningWriter(store, project_root)
        resolved, example_path = await _resolve(
            ctx, project_root, options, settings, writer, hook_runner
        )

        plan = build_provisioning_plan(
            ctx.fleet,
            ctx.schema,
            resolved,
            default_model=settings.default_model,
        )
        result = SetupResult(
            stack=plan.stack,
            dry_run=dry_run,
            agents=[a.name for a in ctx.agents],
            planned_keys=dict(describe_plan(plan)),
            removed_keys=list(plan.removals) if dry_run else [],
            warnings=list(ctx.schema.warnings),
            validation_warnings=resolved.warnings,
            auto_resolved=resolved.auto_resolved,
            example_path=example_path,
        )
        if dry_run:
            logger.info("Dry run: %d keys planned for %s", len(plan.entries), plan.stack)
            return result

        with stage("provision"):
            report = await writer.provision(plan)
        return result.model_copy(
            update={
                "stack_created": report.created,
                "fingerprint_backfilled": report.fingerprint_backfilled,
                "written_keys": report.written,
                "unchanged_keys": report.unchanged,
                "removed_keys": report.removed,
            }
        )
    finally:
        clear_context()


async def setup_fleet(
    project_root: Path,
    options: SetupOptions | None = None,
    settings: Settings | None = None,
    store: BaseConfigStore | None = None,
    hook_runner: HookRunner | None = None,
    registries: Registries | None = None,
) -> SetupResult:
    """Resolve every secret for the fleet and provision the stack config.

    Args:
        project_root: Directory holding clawup.yaml and .env.
        options: Per-invocation options.
        settings: Global settings. Loaded from .env if None.
        store: Configuration store. Built from settings if None.
        hook_runner: Resolve-hook runner. A shell runner if None.
        registries: Registry tables. The built-in ones if None.

    Returns:
        SetupResult listing written, unchanged and removed keys.

    Raises:
        ClawupError: Any failure in the chain; nothing is written to the
            store unless resolution fully succeeded.
    """
    return await _run(project_root, options, settings, store, hook_runner, registries, False)


async def plan_fleet(
    project_root: Path,
    options: SetupOptions | None = None,
    settings: Settings | None = None,
    store: BaseConfigStore | None = None,
    hook_runner: HookRunner | None = None,
    registries: Registries | None = None,
) -> SetupResult:
    """Same chain as setup_fleet() without the store writes (dry run)."""
    return await _run(project_root, options, settings, store, hook_runner, registries, True)
