# tests/integration/conftest.py — v1
"""Shared fixtures for integration tests against a real git binary.

Identity repositories are created under tmp_path and served through
file:// URLs, so no network access is needed.
"""

from __future__ import annotations

import os
import subprocess
from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest
import yaml


_GIT_ENV = {
    "GIT_AUTHOR_NAME": "Fleet Tests",
    "GIT_AUTHOR_EMAIL": "fleet-tests@example.com",
    "GIT_COMMITTER_NAME": "Fleet Tests",
    "GIT_COMMITTER_EMAIL": "fleet-tests@example.com",
    "GIT_CONFIG_NOSYSTEM": "1",
}


def git(repo: Path, *args: str) -> str:
    env = {**os.environ, **_GIT_ENV}
    result = subprocess.run(
        ["git", *args],
        cwd=repo,
        env=env,
        check=True,
        capture_output=True,
        text=True,
    )
    return result.stdout.strip()


class IdentityRepo:
    """A git repository holding identities under `identities/<name>/`."""

    def __init__(self, path: Path) -> None:
        self.path = path

    @property
    def url(self) -> str:
        return self.path.as_uri()

    def source(self, name: str) -> str:
        return f"{self.url}#identities/{name}"

    def write_identity(self, name: str, manifest: dict[str, Any], soul: str = "") -> None:
        directory = self.path / "identities" / name
        directory.mkdir(parents=True, exist_ok=True)
        (directory / "identity.yaml").write_text(
            yaml.safe_dump(manifest, sort_keys=False), encoding="utf-8"
        )
        (directory / "SOUL.md").write_text(soul or f"# {manifest['displayName']}\n", encoding="utf-8")

    def commit(self, message: str) -> str:
        git(self.path, "add", "-A")
        git(self.path, "commit", "-q", "-m", message)
        return git(self.path, "rev-parse", "HEAD")

    def amend(self, message: str) -> str:
        git(self.path, "add", "-A")
        git(self.path, "commit", "-q", "--amend", "-m", message)
        return git(self.path, "rev-parse", "HEAD")

    def tag(self, name: str) -> None:
        git(self.path, "tag", name)


@pytest.fixture
def identity_repo(tmp_path: Path, identity_data: dict[str, Any]) -> IdentityRepo:
    """Repository with a `pm` identity committed and tagged v1."""
    path = tmp_path / "identity-repo"
    path.mkdir()
    git(path, "init", "-q", "-b", "main")
    repo = IdentityRepo(path)
    repo.write_identity("pm", dict(identity_data, plugins=["openclaw-linear"]), soul="# Juno v1\n")
    repo.commit("Add pm identity")
    repo.tag("v1")
    return repo


@pytest.fixture
def git_project(tmp_path: Path, identity_repo: IdentityRepo) -> Callable[..., Path]:
    """Project whose agents come from the git identity repository."""

    def _make(env: dict[str, str], **agent_overrides: Any) -> Path:
        project = tmp_path / "project"
        project.mkdir(exist_ok=True)
        agent = {"identity": identity_repo.source("pm"), **agent_overrides}
        fleet = {
            "stackName": "integration",
            "provider": "local",
            "region": "local",
            "instanceType": "local",
            "ownerName": "Ada",
            "agents": [agent],
        }
        (project / "clawup.yaml").write_text(yaml.safe_dump(fleet, sort_keys=False), encoding="utf-8")
        (project / ".env").write_text(
            "".join(f"{k}={v}\n" for k, v in env.items()), encoding="utf-8"
        )
        return project

    return _make
