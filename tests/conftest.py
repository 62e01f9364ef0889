# tests/conftest.py — v1
"""Shared test fixtures for all unit and integration tests.

Provides identity directories on disk, hydrated agents, a fake resolve-hook
runner and a complete project layout (clawup.yaml + identities + .env).
"""

from __future__ import annotations

import shutil
from collections.abc import Callable, Mapping
from pathlib import Path
from typing import Any

import pytest
import yaml

from clawup.core.models import IdentityManifest, IdentityResult, ResolvedAgent
from clawup.registry.registry import Registries, default_registries
from clawup.secrets.models import HookResult

BASE_IDENTITY: dict[str, Any] = {
    "name": "pm",
    "displayName": "Juno",
    "role": "pm",
    "emoji": "clipboard",
    "description": "Product manager agent",
    "volumeSize": 30,
    "skills": ["pm-queue-handler", "clawhub:web-research"],
    "templateVars": ["OWNER_NAME"],
}


# === FIXTURES: Identities ===


@pytest.fixture
def identity_data() -> dict[str, Any]:
    """Fresh copy of a valid identity manifest (camelCase keys)."""
    return {k: list(v) if isinstance(v, list) else v for k, v in BASE_IDENTITY.items()}


@pytest.fixture
def write_identity(tmp_path: Path) -> Callable[..., Path]:
    """Write an identity directory with identity.yaml and a few workspace files."""

    def _write(dirname: str = "pm", **overrides: Any) -> Path:
        directory = tmp_path / "identities" / dirname
        directory.mkdir(parents=True, exist_ok=True)
        data = dict(BASE_IDENTITY)
        data.update(overrides)
        data = {k: v for k, v in data.items() if v is not None}
        (directory / "identity.yaml").write_text(
            yaml.safe_dump(data, sort_keys=False), encoding="utf-8"
        )
        (directory / "SOUL.md").write_text(f"# {data.get('displayName', dirname)}\n", encoding="utf-8")
        skills = directory / "skills" / "pm-queue-handler"
        skills.mkdir(parents=True, exist_ok=True)
        (skills / "SKILL.md").write_text("Handle the queue.\n", encoding="utf-8")
        return directory

    return _write


@pytest.fixture
def make_agent() -> Callable[..., ResolvedAgent]:
    """Build a ResolvedAgent in memory, without touching the filesystem."""

    def _make(
        role: str = "pm",
        name: str | None = None,
        display_name: str | None = None,
        plugin_config: dict[str, dict[str, Any]] | None = None,
        **manifest_overrides: Any,
    ) -> ResolvedAgent:
        data = dict(BASE_IDENTITY)
        data.update({"name": role, "role": role, "displayName": display_name or role.title()})
        data.update(manifest_overrides)
        manifest = IdentityManifest.model_validate(data)
        identity = IdentityResult(
            source=f"./identities/{role}",
            directory=f"/tmp/identities/{role}",
            manifest=manifest,
        )
        return ResolvedAgent(
            name=name or f"agent-{role}",
            display_name=manifest.display_name,
            role=role,
            volume_size=manifest.volume_size,
            identity=identity,
            plugin_config=plugin_config or {},
        )

    return _make


@pytest.fixture
def registries() -> Registries:
    return default_registries()


# === FIXTURES: Hooks ===


class FakeHookRunner:
    """Records hook calls and answers from a script -> HookResult table."""

    def __init__(self, results: Mapping[str, HookResult] | None = None,
                 default: HookResult | None = None) -> None:
        self.results = dict(results or {})
        self.default = default or HookResult.success("resolved-value")
        self.calls: list[tuple[str, dict[str, str]]] = []

    async def run(self, script: str, env: Mapping[str, str]) -> HookResult:
        self.calls.append((script, dict(env)))
        return self.results.get(script, self.default)


@pytest.fixture
def fake_hook_runner() -> FakeHookRunner:
    return FakeHookRunner()


# === FIXTURES: Projects ===


@pytest.fixture
def make_project(tmp_path: Path, write_identity: Callable[..., Path]) -> Callable[..., Path]:
    """Create a project: identities, clawup.yaml and an optional .env.

    The default fleet has `pm` (openclaw-linear plugin) and `eng` (no plugins)
    on the local provider.
    """

    def _make(
        env: Mapping[str, str] | None = None,
        fleet_overrides: Mapping[str, Any] | None = None,
        pm_overrides: Mapping[str, Any] | None = None,
        eng_overrides: Mapping[str, Any] | None = None,
        project_name: str = "project",
    ) -> Path:
        project = tmp_path / project_name
        project.mkdir(parents=True, exist_ok=True)

        pm_dir = write_identity("pm", plugins=["openclaw-linear"], **dict(pm_overrides or {}))
        eng_dir = write_identity(
            "eng",
            name="eng",
            role="eng",
            displayName="Titus",
            **dict(eng_overrides or {}),
        )
        identities = project / "identities"
        identities.mkdir(exist_ok=True)
        for src in (pm_dir, eng_dir):
            target = identities / src.name
            if target.exists():
                shutil.rmtree(target)
            shutil.copytree(src, target)

        fleet: dict[str, Any] = {
            "stackName": "dev",
            "provider": "local",
            "region": "local",
            "instanceType": "local",
            "ownerName": "Ada",
            "agents": [
                {"identity": "./identities/pm"},
                {"identity": "./identities/eng"},
            ],
        }
        fleet.update(fleet_overrides or {})
        (project / "clawup.yaml").write_text(yaml.safe_dump(fleet, sort_keys=False), encoding="utf-8")

        if env is not None:
            lines = [f"{k}={v}" for k, v in env.items()]
            (project / ".env").write_text("\n".join(lines) + "\n", encoding="utf-8")
        return project

    return _make


@pytest.fixture
def clean_process_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Remove secret-looking variables the developer's shell may export."""
    for var in (
        "ANTHROPIC_API_KEY",
        "OPENAI_API_KEY",
        "PM_LINEAR_API_KEY",
        "PM_LINEAR_WEBHOOK_SECRET",
        "PM_LINEAR_USER_UUID",
        "TAILSCALE_AUTH_KEY",
        "TAILNET_DNS_NAME",
        "TAILSCALE_API_KEY",
        "HCLOUD_TOKEN",
        "BRAVE_API_KEY",
    ):
        monkeypatch.delenv(var, raising=False)
