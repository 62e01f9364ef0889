# tests/unit/secrets/test_unit_pipeline.py — v1
"""Tests for secrets/pipeline.py — prune, merge, validate, auto-resolve, report."""

from __future__ import annotations

import logging

import pytest

from clawup.core.errors import HookResolutionFailure, MissingSecrets
from clawup.registry.models import PluginEntry, SecretSpec
from clawup.registry.registry import build_registries
from clawup.secrets.models import HookResult, SecretRequirement, SecretSchema
from clawup.secrets.pipeline import SecretResolutionPipeline, prune_persisted
from clawup.secrets.schema_builder import build_secret_schema

ANTHROPIC = "sk-ant-test-key"
LINEAR = "lin_api_test"


def _linear_registries(webhook_auto: bool = False):
    linear = PluginEntry(
        name="linear",
        display_name="Linear",
        secrets={
            "apiKey": SecretSpec(env_var="LINEAR_API_KEY", scope="agent", validator="prefix:lin_api_"),
            "webhookSecret": SecretSpec(
                env_var="LINEAR_WEBHOOK_SECRET", scope="agent", auto_resolvable=webhook_auto
            ),
        },
        resolve_hooks={"webhookSecret": "echo generated"} if webhook_auto else {},
    )
    return build_registries(plugins=[linear])


@pytest.fixture
def fleet(make_agent):
    return [make_agent("pm", plugins=["linear"]), make_agent("eng")]


class TestExampleScenario:
    @pytest.mark.asyncio
    async def test_reports_only_webhook_secret(self, fleet, fake_hook_runner):
        schema = build_secret_schema(fleet, _linear_registries(), provider="local")
        pipeline = SecretResolutionPipeline(hook_runner=fake_hook_runner)
        source = {"ANTHROPIC_API_KEY": ANTHROPIC, "PM_LINEAR_API_KEY": LINEAR}

        with pytest.raises(MissingSecrets) as exc_info:
            await pipeline.run(schema, source, fleet)

        assert exc_info.value.env_vars == ["PM_LINEAR_WEBHOOK_SECRET"]
        assert fake_hook_runner.calls == []

    @pytest.mark.asyncio
    async def test_auto_resolvable_invokes_hook(self, fleet, fake_hook_runner):
        schema = build_secret_schema(fleet, _linear_registries(webhook_auto=True), provider="local")
        fake_hook_runner.default = HookResult.success("whsec_generated")
        pipeline = SecretResolutionPipeline(hook_runner=fake_hook_runner)
        source = {"ANTHROPIC_API_KEY": ANTHROPIC, "PM_LINEAR_API_KEY": LINEAR}

        resolved = await pipeline.run(schema, source, fleet)

        assert resolved.agent_values["agent-pm"]["linearWebhookSecret"] == "whsec_generated"
        assert len(fake_hook_runner.calls) == 1
        script, env = fake_hook_runner.calls[0]
        assert script == "echo generated"
        assert env["LINEAR_API_KEY"] == LINEAR
        assert env["ANTHROPIC_API_KEY"] == ANTHROPIC
        assert resolved.auto_resolved[0].method == "hook"


class TestAutoResolve:
    @pytest.mark.asyncio
    async def test_plugin_config_wins(self, make_agent, fake_hook_runner):
        pm = make_agent("pm", plugins=["linear"], plugin_config={"linear": {"webhookSecret": "from-config"}})
        schema = build_secret_schema([pm], _linear_registries(webhook_auto=True), provider="local")
        pipeline = SecretResolutionPipeline(hook_runner=fake_hook_runner)

        resolved = await pipeline.run(
            schema, {"ANTHROPIC_API_KEY": ANTHROPIC, "PM_LINEAR_API_KEY": LINEAR}, [pm]
        )

        assert resolved.agent_values["agent-pm"]["linearWebhookSecret"] == "from-config"
        assert resolved.auto_resolved[0].method == "plugin-config"
        assert fake_hook_runner.calls == []

    @pytest.mark.asyncio
    async def test_role_prefixed_environ(self, make_agent, fake_hook_runner):
        pm = make_agent("pm", plugins=["linear"])
        schema = build_secret_schema([pm], _linear_registries(webhook_auto=True), provider="local")
        pipeline = SecretResolutionPipeline(
            hook_runner=fake_hook_runner,
            environ={"PM_LINEAR_WEBHOOK_SECRET": "from-env"},
        )

        resolved = await pipeline.run(
            schema, {"ANTHROPIC_API_KEY": ANTHROPIC, "PM_LINEAR_API_KEY": LINEAR}, [pm]
        )

        assert resolved.agent_values["agent-pm"]["linearWebhookSecret"] == "from-env"
        assert resolved.auto_resolved[0].method == "env"
        assert fake_hook_runner.calls == []

    @pytest.mark.asyncio
    async def test_hook_failure_is_fatal(self, fleet, fake_hook_runner):
        schema = build_secret_schema(fleet, _linear_registries(webhook_auto=True), provider="local")
        fake_hook_runner.default = HookResult.failure("exited with code 1")
        pipeline = SecretResolutionPipeline(hook_runner=fake_hook_runner)

        with pytest.raises(HookResolutionFailure) as exc_info:
            await pipeline.run(
                schema, {"ANTHROPIC_API_KEY": ANTHROPIC, "PM_LINEAR_API_KEY": LINEAR}, fleet
            )

        err = exc_info.value
        assert err.bypass_env_var == "PM_LINEAR_WEBHOOK_SECRET"
        assert err.plugin == "linear"
        assert "PM_LINEAR_WEBHOOK_SECRET" in str(err)

    @pytest.mark.asyncio
    async def test_skip_hooks_leaves_required_missing(self, fleet, fake_hook_runner):
        schema = build_secret_schema(fleet, _linear_registries(webhook_auto=True), provider="local")
        pipeline = SecretResolutionPipeline(hook_runner=fake_hook_runner, skip_hooks=True)

        with pytest.raises(MissingSecrets) as exc_info:
            await pipeline.run(
                schema, {"ANTHROPIC_API_KEY": ANTHROPIC, "PM_LINEAR_API_KEY": LINEAR}, fleet
            )

        assert exc_info.value.env_vars == ["PM_LINEAR_WEBHOOK_SECRET"]
        assert fake_hook_runner.calls == []

    @pytest.mark.asyncio
    async def test_optional_auto_resolvable_may_stay_empty(self, make_agent, registries):
        pm = make_agent("pm", plugins=["openclaw-linear"])
        schema = build_secret_schema([pm], registries, provider="local")
        pipeline = SecretResolutionPipeline(hook_runner=None)
        source = {
            "ANTHROPIC_API_KEY": ANTHROPIC,
            "PM_LINEAR_API_KEY": LINEAR,
            "PM_LINEAR_WEBHOOK_SECRET": "whsec",
        }

        resolved = await pipeline.run(schema, source, [pm])

        assert "linearUserUuid" not in resolved.agent_values["agent-pm"]

    @pytest.mark.asyncio
    async def test_global_auto_resolvable_without_agent_warns(self, caplog):
        token = SecretRequirement(
            key="fleetToken",
            scope="global",
            env_var="FLEET_TOKEN",
            source_env_var="FLEET_TOKEN",
            store_key="fleetToken",
            required=False,
            auto_resolvable=True,
        )
        schema = SecretSchema(global_requirements={"fleetToken": token})

        with caplog.at_level(logging.WARNING):
            resolved = await SecretResolutionPipeline().run(schema, {}, [])

        assert resolved.global_values == {}
        assert resolved.auto_resolved == []
        assert "Cannot auto-resolve fleetToken for global" in caplog.text
        assert "FLEET_TOKEN" in caplog.text


class TestMissingReport:
    @pytest.mark.asyncio
    async def test_all_missing_reported_at_once(self, fleet):
        schema = build_secret_schema(fleet, _linear_registries(), provider="aws")
        pipeline = SecretResolutionPipeline()

        with pytest.raises(MissingSecrets) as exc_info:
            await pipeline.run(schema, {}, fleet)

        env_vars = exc_info.value.env_vars
        assert "ANTHROPIC_API_KEY" in env_vars
        assert "TAILSCALE_AUTH_KEY" in env_vars
        assert "PM_LINEAR_API_KEY" in env_vars
        assert "PM_LINEAR_WEBHOOK_SECRET" in env_vars
        assert "TAILSCALE_API_KEY" not in env_vars

    @pytest.mark.asyncio
    async def test_hints_from_validators(self, fleet):
        schema = build_secret_schema(fleet, _linear_registries(), provider="local")
        with pytest.raises(MissingSecrets) as exc_info:
            await SecretResolutionPipeline().run(schema, {}, fleet)
        entries = {e.env_var: e for e in exc_info.value.entries}
        assert entries["ANTHROPIC_API_KEY"].hint == "must start with sk-ant-"
        assert entries["PM_LINEAR_API_KEY"].agent_label == "Pm"


class TestValidation:
    @pytest.mark.asyncio
    async def test_bad_format_warns_not_fails(self, make_agent, caplog):
        pm = make_agent("pm", plugins=["linear"])
        schema = build_secret_schema([pm], _linear_registries(), provider="local")
        source = {
            "ANTHROPIC_API_KEY": "not-an-anthropic-key",
            "PM_LINEAR_API_KEY": "wrong",
            "PM_LINEAR_WEBHOOK_SECRET": "whsec",
        }

        resolved = await SecretResolutionPipeline().run(schema, source, [pm])

        assert resolved.global_values["anthropicApiKey"] == "not-an-anthropic-key"
        warned = {w.env_var for w in resolved.warnings}
        assert warned == {"ANTHROPIC_API_KEY", "PM_LINEAR_API_KEY"}
        assert "must start with lin_api_" in caplog.text


class TestPruneAndMerge:
    def test_prune_only_managed_absent_keys(self, make_agent, registries):
        schema = build_secret_schema([make_agent("eng")], registries, provider="local")
        kept, pruned = prune_persisted(
            {"anthropicApiKey": "a", "braveApiKey": "b", "customKey": "c"}, schema
        )
        assert pruned == ["braveApiKey"]
        assert kept == {"anthropicApiKey": "a", "customKey": "c"}

    @pytest.mark.asyncio
    async def test_persisted_value_satisfies_requirement(self, make_agent, registries):
        eng = make_agent("eng")
        schema = build_secret_schema([eng], registries, provider="local")
        resolved = await SecretResolutionPipeline().run(
            schema, {}, [eng], persisted_global={"anthropicApiKey": "sk-ant-persisted"}
        )
        assert resolved.global_values == {"anthropicApiKey": "sk-ant-persisted"}

    @pytest.mark.asyncio
    async def test_source_overrides_persisted(self, make_agent, registries):
        eng = make_agent("eng")
        schema = build_secret_schema([eng], registries, provider="local")
        resolved = await SecretResolutionPipeline().run(
            schema,
            {"ANTHROPIC_API_KEY": "sk-ant-fresh"},
            [eng],
            persisted_global={"anthropicApiKey": "sk-ant-old", "braveApiKey": "stale"},
        )
        assert resolved.global_values == {"anthropicApiKey": "sk-ant-fresh"}
        assert resolved.pruned_keys == ["braveApiKey"]

    @pytest.mark.asyncio
    async def test_idempotent(self, make_agent, registries):
        eng = make_agent("eng", deps=["brave-search"])
        schema = build_secret_schema([eng], registries, provider="local")
        source = {"ANTHROPIC_API_KEY": ANTHROPIC, "BRAVE_API_KEY": "brv"}
        pipeline = SecretResolutionPipeline()

        first = await pipeline.run(schema, source, [eng])
        second = await pipeline.run(schema, source, [eng], persisted_global=first.global_values)

        assert first.global_values == second.global_values
        assert second.pruned_keys == []

    @pytest.mark.asyncio
    async def test_shared_dependency_kept_while_another_agent_needs_it(self, make_agent, registries):
        # ops dropped brave-search, eng still declares it.
        agents = [make_agent("eng", deps=["brave-search"]), make_agent("ops")]
        schema = build_secret_schema(agents, registries, provider="local")
        resolved = await SecretResolutionPipeline().run(
            schema,
            {"ANTHROPIC_API_KEY": ANTHROPIC},
            agents,
            persisted_global={"anthropicApiKey": ANTHROPIC, "braveApiKey": "brv"},
        )
        assert resolved.pruned_keys == []
        assert resolved.global_values["braveApiKey"] == "brv"

    @pytest.mark.asyncio
    async def test_dependency_pruned_once_no_agent_needs_it(self, make_agent, registries):
        agents = [make_agent("eng"), make_agent("ops")]
        schema = build_secret_schema(agents, registries, provider="local")
        resolved = await SecretResolutionPipeline().run(
            schema,
            {"ANTHROPIC_API_KEY": ANTHROPIC},
            agents,
            persisted_global={"anthropicApiKey": ANTHROPIC, "braveApiKey": "brv"},
        )
        assert resolved.pruned_keys == ["braveApiKey"]
        assert "braveApiKey" not in resolved.global_values


class TestExampleFile:
    @pytest.mark.asyncio
    async def test_written_even_on_failure(self, fleet, tmp_path):
        schema = build_secret_schema(fleet, _linear_registries(), provider="local")
        example = tmp_path / ".env.example"

        with pytest.raises(MissingSecrets):
            await SecretResolutionPipeline().run(schema, {}, fleet, example_path=example)

        text = example.read_text(encoding="utf-8")
        assert "ANTHROPIC_API_KEY=" in text
        assert "PM_LINEAR_WEBHOOK_SECRET=" in text
