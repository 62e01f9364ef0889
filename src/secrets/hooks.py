# src/secrets/hooks.py — v1
"""Resolve-hook execution: the pipeline's only effectful step.

The pipeline depends on the HookRunner protocol, never on a subprocess,
so tests substitute an in-memory runner.
"""

from __future__ import annotations

import asyncio
import logging
import os
from collections.abc import Mapping
from typing import Protocol

from clawup.secrets.models import HookResult
from clawup.secrets.redact import redact_secrets

logger = logging.getLogger(__name__)

DEFAULT_SHELL = "/bin/sh"


class HookRunner(Protocol):
    """Run one resolve hook with the given environment."""

    async def run(self, script: str, env: Mapping[str, str]) -> HookResult: ...


class ShellHookRunner:
    """Run hook scripts with `/bin/sh -c`; trimmed stdout is the value.

    Args:
        timeout_seconds: Kill the hook after this many seconds.
        shell: Shell binary used to interpret the script.
        inherit_env: Start from the process environment before overlaying
            the hook environment.
    """

    def __init__(
        self,
        timeout_seconds: float = 30.0,
        shell: str = DEFAULT_SHELL,
        inherit_env: bool = True,
    ) -> None:
        self._timeout = timeout_seconds
        self._shell = shell
        self._inherit_env = inherit_env

    async def run(self, script: str, env: Mapping[str, str]) -> HookResult:
        full_env = dict(os.environ) if self._inherit_env else {}
        full_env.update(env)

        try:
            proc = await asyncio.create_subprocess_exec(
                self._shell,
                "-c",
                script,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                env=full_env,
            )
        except OSError as e:
            return HookResult.failure(f"could not start {self._shell}: {e}")

        try:
            stdout, stderr = await asyncio.wait_for(proc.communicate(), self._timeout)
        except asyncio.TimeoutError:
            proc.kill()
            await proc.wait()
            return HookResult.failure(f"timed out after {self._timeout:g}s")

        if proc.returncode != 0:
            detail = redact_secrets(stderr.decode("utf-8", errors="replace").strip())
            reason = f"exited with code {proc.returncode}"
            if detail:
                reason = f"{reason}: {detail}"
            return HookResult.failure(reason)

        value = stdout.decode("utf-8", errors="replace").strip()
        if not value:
            return HookResult.failure("produced no output")
        return HookResult.success(value)
