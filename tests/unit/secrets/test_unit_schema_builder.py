# tests/unit/secrets/test_unit_schema_builder.py — v1
"""Tests for secrets/schema_builder.py — per-agent union, global lifting, conflicts."""

from __future__ import annotations

import pytest

from clawup.core.errors import SchemaConflictError
from clawup.registry.models import DependencyEntry, PluginEntry, SecretSpec
from clawup.registry.registry import build_registries
from clawup.secrets.schema_builder import build_secret_schema, managed_global_keys


class TestInfrastructureRequirements:
    def test_local_needs_only_base_provider(self, make_agent, registries):
        schema = build_secret_schema([make_agent("eng")], registries, provider="local")
        assert list(schema.global_requirements) == ["anthropicApiKey"]
        assert schema.per_agent == {}

    def test_aws_adds_mesh(self, make_agent, registries):
        schema = build_secret_schema([make_agent("eng")], registries, provider="aws")
        keys = set(schema.global_requirements)
        assert {"tailscaleAuthKey", "tailnetDnsName", "tailscaleApiKey"} <= keys
        assert schema.global_requirements["tailnetDnsName"].is_secret is False
        assert schema.global_requirements["tailscaleApiKey"].required is False
        assert "hcloudToken" not in keys

    def test_hetzner_adds_cloud_token(self, make_agent, registries):
        schema = build_secret_schema([make_agent("eng")], registries, provider="hetzner")
        token = schema.global_requirements["hcloudToken"]
        assert token.env_var == "HCLOUD_TOKEN"
        assert token.store_key == "hcloud:token"


class TestPerAgentRequirements:
    def test_plugin_secrets_per_agent(self, make_agent, registries):
        pm = make_agent("pm", plugins=["openclaw-linear"])
        schema = build_secret_schema([pm, make_agent("eng")], registries, provider="local")

        assert list(schema.per_agent) == ["agent-pm"]
        reqs = schema.per_agent["agent-pm"]
        api_key = reqs["linearApiKey"]
        assert api_key.source_env_var == "PM_LINEAR_API_KEY"
        assert api_key.store_key == "pmLinearApiKey"
        assert api_key.hint == "must start with lin_api_"
        assert api_key.plugin == "openclaw-linear"
        assert api_key.config_key == "apiKey"

        uuid = reqs["linearUserUuid"]
        assert uuid.auto_resolvable is True
        assert uuid.required is False
        assert uuid.resolve_hook is not None

    def test_agent_scoped_plugin_on_two_agents_appears_twice(self, make_agent, registries):
        pm = make_agent("pm", plugins=["slack"])
        eng = make_agent("eng", plugins=["slack"])
        schema = build_secret_schema([pm, eng], registries, provider="local")

        assert "slackBotToken" in schema.per_agent["agent-pm"]
        assert "slackBotToken" in schema.per_agent["agent-eng"]
        assert "slackBotToken" not in schema.global_requirements
        assert schema.per_agent["agent-eng"]["slackBotToken"].source_env_var == "ENG_SLACK_BOT_TOKEN"

    def test_global_scoped_dep_on_two_agents_appears_once(self, make_agent, registries):
        pm = make_agent("pm", deps=["brave-search"])
        eng = make_agent("eng", deps=["brave-search"])
        schema = build_secret_schema([pm, eng], registries, provider="local")

        brave = schema.global_requirements["braveApiKey"]
        assert brave.source_env_var == "BRAVE_API_KEY"
        assert brave.sources == ("dep:brave-search",)
        assert schema.per_agent == {}

    def test_secondary_model_provider_lifted_once(self, make_agent, registries):
        pm = make_agent("pm", model="openai/gpt-4o")
        eng = make_agent("eng", backupModel="openai/o3")
        schema = build_secret_schema([pm, eng], registries, provider="local")

        assert "openaiApiKey" in schema.global_requirements
        assert "anthropicApiKey" in schema.global_requirements
        assert list(schema.global_requirements).count("openaiApiKey") == 1

    def test_coding_agent_secret(self, make_agent, registries):
        eng = make_agent("eng", codingAgent="amp")
        schema = build_secret_schema([eng], registries, provider="local")
        assert schema.per_agent["agent-eng"]["ampApiKey"].source_env_var == "ENG_AMP_API_KEY"

    def test_codex_shares_openai_key(self, make_agent, registries):
        eng = make_agent("eng", codingAgent="codex", model="openai/gpt-4o")
        schema = build_secret_schema([eng], registries, provider="local")
        openai = schema.global_requirements["openaiApiKey"]
        assert set(openai.sources) == {"model-provider:openai", "coding-agent:codex"}

    def test_identity_required_secrets(self, make_agent, registries):
        pm = make_agent("pm", plugins=["openclaw-linear"], requiredSecrets=["notionApiKey", "linearApiKey"])
        schema = build_secret_schema([pm], registries, provider="local")
        reqs = schema.per_agent["agent-pm"]
        assert reqs["notionApiKey"].source_env_var == "PM_NOTION_API_KEY"
        assert reqs["linearApiKey"].sources == ("plugin:openclaw-linear",)


class TestUnknownEntries:
    def test_unknown_plugin_warns_and_skips(self, make_agent, registries):
        pm = make_agent("pm", plugins=["future-plugin"], deps=["future-dep"])
        schema = build_secret_schema([pm], registries, provider="local")
        assert schema.per_agent == {}
        assert any("future-plugin" in w for w in schema.warnings)
        assert any("future-dep" in w for w in schema.warnings)

    def test_unknown_model_provider_warns(self, make_agent, registries):
        pm = make_agent("pm", model="mystery/model-1")
        schema = build_secret_schema([pm], registries, provider="local")
        assert any("mystery" in w for w in schema.warnings)


class TestConflicts:
    def _registries(self, second_spec: SecretSpec):
        first = PluginEntry(
            name="alpha",
            display_name="Alpha",
            secrets={"token": SecretSpec(env_var="SHARED_TOKEN", scope="agent", validator="prefix:a_")},
        )
        second = PluginEntry(name="beta", display_name="Beta", secrets={"token": second_spec})
        return build_registries(plugins=[first, second])

    def test_validator_conflict_raises(self, make_agent):
        registries = self._registries(
            SecretSpec(env_var="SHARED_TOKEN", scope="agent", validator="prefix:b_")
        )
        pm = make_agent("pm", plugins=["alpha", "beta"])
        with pytest.raises(SchemaConflictError) as exc_info:
            build_secret_schema([pm], registries, provider="local")
        conflict = exc_info.value.conflicts[0]
        assert conflict.key == "sharedToken"
        assert conflict.attribute == "validator"
        assert conflict.first_source == "plugin:alpha"
        assert conflict.second_source == "plugin:beta"

    def test_all_conflicts_reported(self, make_agent):
        registries = self._registries(
            SecretSpec(env_var="SHARED_TOKEN", scope="agent", validator="prefix:a_", is_secret=False)
        )
        pm = make_agent("pm", plugins=["alpha", "beta"])
        eng = make_agent("eng", plugins=["alpha", "beta"])
        with pytest.raises(SchemaConflictError) as exc_info:
            build_secret_schema([pm, eng], registries, provider="local")
        assert {c.agent for c in exc_info.value.conflicts} == {"agent-pm", "agent-eng"}

    def test_identical_metadata_merges(self, make_agent):
        registries = self._registries(
            SecretSpec(env_var="SHARED_TOKEN", scope="agent", validator="prefix:a_")
        )
        pm = make_agent("pm", plugins=["alpha", "beta"])
        schema = build_secret_schema([pm], registries, provider="local")
        assert schema.per_agent["agent-pm"]["sharedToken"].sources == ("plugin:alpha", "plugin:beta")


class TestManagedGlobalKeys:
    def test_universe(self, registries):
        keys = managed_global_keys(registries)
        assert {"anthropicApiKey", "openaiApiKey", "tailscaleAuthKey", "hcloudToken", "braveApiKey"} <= keys
        assert "linearApiKey" not in keys

    def test_fake_registry_global_dep(self):
        dep = DependencyEntry(
            name="search",
            display_name="Search",
            secrets={"searchKey": SecretSpec(env_var="SEARCH_KEY", scope="global")},
        )
        assert "searchKey" in managed_global_keys(build_registries(deps=[dep]))
