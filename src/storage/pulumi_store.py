# src/storage/pulumi_store.py — v1
"""Pulumi-backed configuration store (CLAWUP_CONFIG_STORE=pulumi).

Drives the `pulumi` CLI inside the infrastructure workspace. Secret values
are passed on stdin, never on the command line.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

from clawup.core.errors import ConfigStoreError
from clawup.core.process import CommandResult, CommandRunner, run_command
from clawup.secrets.redact import redact_secrets
from clawup.storage.base_config_store import BaseConfigStore

logger = logging.getLogger(__name__)

_NOT_FOUND_MARKERS = ("not found", "no stack named", "does not exist")


class PulumiConfigStore(BaseConfigStore):
    """Configuration store backed by Pulumi stack config.

    Args:
        workspace_dir: Directory holding the Pulumi project (Pulumi.yaml).
        pulumi_binary: pulumi executable.
        runner: Command runner (injectable for tests).
        timeout_seconds: Per-command timeout for the default runner.
    """

    def __init__(
        self,
        workspace_dir: str | Path,
        pulumi_binary: str = "pulumi",
        runner: CommandRunner | None = None,
        timeout_seconds: float = 120.0,
    ) -> None:
        self._workspace = Path(workspace_dir).expanduser()
        self._binary = pulumi_binary
        self._runner = runner
        self._timeout = timeout_seconds
        self._stack: str | None = None

    async def _pulumi(self, *args: str, input_text: str | None = None) -> CommandResult:
        argv = [self._binary, *args, "--non-interactive"]
        env = {"PULUMI_SKIP_UPDATE_CHECK": "true"}
        if self._runner is not None:
            return await self._runner(argv, cwd=self._workspace, env=env, input_text=input_text)
        return await run_command(
            argv, cwd=self._workspace, env=env, input_text=input_text, timeout=self._timeout
        )

    def _require_stack(self, operation: str, key: str) -> str:
        if self._stack is None:
            raise ConfigStoreError(operation, key, "no stack selected")
        return self._stack

    @staticmethod
    def _reason(result: CommandResult) -> str:
        return redact_secrets(result.stderr.strip() or result.stdout.strip()) or (
            f"exit code {result.returncode}"
        )

    @staticmethod
    def _is_not_found(result: CommandResult) -> bool:
        text = (result.stderr + result.stdout).lower()
        return any(marker in text for marker in _NOT_FOUND_MARKERS)

    async def select(self, stack: str) -> bool:
        result = await self._pulumi("stack", "select", stack)
        if result.ok:
            self._stack = stack
            return True
        if self._is_not_found(result):
            return False
        raise ConfigStoreError("select", stack, self._reason(result))

    async def create(self, stack: str) -> None:
        result = await self._pulumi("stack", "init", stack)
        if not result.ok:
            raise ConfigStoreError("create", stack, self._reason(result))
        self._stack = stack
        logger.info("Created Pulumi stack %s", stack)

    async def get(self, key: str) -> str | None:
        stack = self._require_stack("get", key)
        result = await self._pulumi("config", "get", key, "--stack", stack)
        if result.ok:
            return result.stdout.rstrip("\n")
        if self._is_not_found(result):
            return None
        raise ConfigStoreError("get", key, self._reason(result))

    async def set(self, key: str, value: str, secret: bool = False) -> None:
        stack = self._require_stack("set", key)
        args = ["config", "set", key, "--stack", stack]
        args.append("--secret" if secret else "--plaintext")
        result = await self._pulumi(*args, input_text=value)
        if not result.ok:
            raise ConfigStoreError("set", key, self._reason(result))

    async def remove(self, key: str) -> None:
        stack = self._require_stack("remove", key)
        result = await self._pulumi("config", "rm", key, "--stack", stack)
        if not result.ok and not self._is_not_found(result):
            raise ConfigStoreError("remove", key, self._reason(result))

    async def is_secret(self, key: str) -> bool | None:
        """Classification from `pulumi config --json`.

        Keys without a namespace are stored as `<project>:<key>`.
        """
        stack = self._require_stack("is_secret", key)
        result = await self._pulumi("config", "--json", "--stack", stack)
        if not result.ok:
            raise ConfigStoreError("is_secret", key, self._reason(result))
        try:
            config = json.loads(result.stdout or "{}")
        except json.JSONDecodeError as e:
            raise ConfigStoreError("is_secret", key, f"unparseable config output: {e}") from e

        for name, entry in config.items():
            if name == key or (":" not in key and name.split(":", 1)[-1] == key):
                return bool(entry.get("secret", False))
        return None
