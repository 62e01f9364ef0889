# src/identity/git_cache.py — v1
"""Shallow-clone cache for git identity sources.

Layout: <cache_dir>/<cache_key(url, revision)>/ holds one working tree.
An existing clone is fast-forwarded (or re-fetched at the pinned
revision); when that fails the directory is discarded and cloned afresh.
"""

from __future__ import annotations

import asyncio
import logging
import shutil
from pathlib import Path

from clawup.core.errors import FetchError
from clawup.core.process import CommandResult, CommandRunner, run_command
from clawup.identity.source import cache_key
from clawup.secrets.redact import redact_secrets

logger = logging.getLogger(__name__)


class GitIdentityCache:
    """Fetch git repositories into a content-addressed cache directory.

    Args:
        cache_dir: Root of the cache.
        git_binary: git executable.
        timeout_seconds: Per-command timeout.
        runner: Command runner (injectable for tests).
    """

    def __init__(
        self,
        cache_dir: str | Path,
        git_binary: str = "git",
        timeout_seconds: float = 120.0,
        runner: CommandRunner | None = None,
    ) -> None:
        self._cache_dir = Path(cache_dir).expanduser()
        self._git_binary = git_binary
        self._timeout = timeout_seconds
        self._runner = runner
        self._locks: dict[str, asyncio.Lock] = {}

    @property
    def cache_dir(self) -> Path:
        return self._cache_dir

    def path_for(self, url: str, revision: str | None = None) -> Path:
        return self._cache_dir / cache_key(url, revision)

    async def ensure_repo(self, url: str, revision: str | None = None) -> Path:
        """Return a working tree for url at revision (or the default branch head).

        Raises:
            FetchError: Both the update and the fresh clone failed.
        """
        key = cache_key(url, revision)
        lock = self._locks.setdefault(key, asyncio.Lock())
        async with lock:
            repo_dir = self._cache_dir / key
            if (repo_dir / ".git").is_dir():
                update = await self._update(repo_dir, revision)
                if update.ok:
                    logger.debug("Updated cached identity %s", url)
                    return repo_dir
                logger.warning(
                    "Updating cached %s failed, re-cloning: %s",
                    url,
                    redact_secrets(update.stderr.strip()),
                )
                shutil.rmtree(repo_dir, ignore_errors=True)
            elif repo_dir.exists():
                shutil.rmtree(repo_dir, ignore_errors=True)

            clone = await self._clone(url, repo_dir, revision)
            if not clone.ok:
                shutil.rmtree(repo_dir, ignore_errors=True)
                raise FetchError(url, redact_secrets(clone.stderr.strip()) or "git clone failed")
            logger.info("Cloned identity %s%s", url, f"@{revision}" if revision else "")
            return repo_dir

    async def _git(self, *args: str, cwd: Path | None = None) -> CommandResult:
        argv = [self._git_binary, *args]
        env = {"GIT_TERMINAL_PROMPT": "0"}
        if self._runner is not None:
            return await self._runner(argv, cwd=cwd, env=env)
        return await run_command(argv, cwd=cwd, env=env, timeout=self._timeout)

    async def _checkout_revision(self, repo_dir: Path, revision: str) -> CommandResult:
        fetch = await self._git("fetch", "--depth", "1", "origin", revision, cwd=repo_dir)
        if not fetch.ok:
            return fetch
        return await self._git("checkout", "--detach", "FETCH_HEAD", cwd=repo_dir)

    async def _update(self, repo_dir: Path, revision: str | None) -> CommandResult:
        if revision:
            return await self._checkout_revision(repo_dir, revision)
        return await self._git("pull", "--ff-only", cwd=repo_dir)

    async def _clone(self, url: str, repo_dir: Path, revision: str | None) -> CommandResult:
        self._cache_dir.mkdir(parents=True, exist_ok=True)
        clone = await self._git("clone", "--depth", "1", url, str(repo_dir))
        if not clone.ok or not revision:
            return clone
        return await self._checkout_revision(repo_dir, revision)
