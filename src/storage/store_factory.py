# src/storage/store_factory.py — v1
"""Factory for configuration store instantiation."""

from __future__ import annotations

from clawup.config.settings import Settings
from clawup.core.process import CommandRunner
from clawup.storage.base_config_store import BaseConfigStore


def create_config_store(
    settings: Settings | None = None,
    runner: CommandRunner | None = None,
) -> BaseConfigStore:
    """Instantiate the configured store backend.

    Args:
        settings: Application settings. Defaults to the Pulumi backend.
        runner: Command runner handed to CLI-driven backends.

    Returns:
        Configured BaseConfigStore implementation.
    """
    backend = "pulumi" if settings is None else settings.config_store

    if backend == "json":
        from clawup.storage.json_store import JsonConfigStore

        root = "~/.clawup/stacks" if settings is None else settings.json_store_root
        if root is None:
            raise ValueError("CLAWUP_JSON_STORE_ROOT must be set when CLAWUP_CONFIG_STORE=json")
        return JsonConfigStore(root)

    if backend == "pulumi":
        from clawup.storage.pulumi_store import PulumiConfigStore

        if settings is None:
            return PulumiConfigStore("~/.clawup/workspace", runner=runner)
        return PulumiConfigStore(
            settings.pulumi_workspace_dir,
            pulumi_binary=settings.pulumi_binary,
            runner=runner,
        )

    raise ValueError(f"Unsupported config store: {backend!r}")
