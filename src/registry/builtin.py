# src/registry/builtin.py — v1
"""Built-in registry tables: plugins, dependencies and coding agents.

Pure data. Consumers never read these dicts directly; they go through the
Registries container (registry/registry.py) so tests can inject fakes.
"""

from __future__ import annotations

from clawup.registry.models import (
    CliBackend,
    CodingAgentEntry,
    DependencyEntry,
    PluginEntry,
    SecretInstructions,
    SecretSpec,
)

_LINEAR_VIEWER_QUERY = (
    "curl -s -X POST https://api.linear.app/graphql "
    '-H "Authorization: $LINEAR_API_KEY" -H "Content-Type: application/json" '
    "-d '{\"query\":\"{ viewer { id } }\"}' | jq -r \".data.viewer.id\""
)

BUILTIN_PLUGINS: tuple[PluginEntry, ...] = (
    PluginEntry(
        name="openclaw-linear",
        display_name="Linear",
        installable=True,
        needs_funnel=True,
        config_path="plugins.entries",
        secrets={
            "apiKey": SecretSpec(
                env_var="LINEAR_API_KEY",
                scope="agent",
                validator="prefix:lin_api_",
                instructions=SecretInstructions(
                    title="Linear API Key",
                    steps=(
                        "Create a separate Linear account for each agent.",
                        "Go to Settings > Security & Access > Personal API keys > New API key.",
                        "Copy the key (starts with lin_api_).",
                    ),
                ),
            ),
            "webhookSecret": SecretSpec(
                env_var="LINEAR_WEBHOOK_SECRET",
                scope="agent",
            ),
            "linearUserUuid": SecretSpec(
                env_var="LINEAR_USER_UUID",
                scope="agent",
                is_secret=False,
                required=False,
                auto_resolvable=True,
            ),
        },
        internal_keys=("agentId", "linearUserUuid"),
        resolve_hooks={"linearUserUuid": _LINEAR_VIEWER_QUERY},
    ),
    PluginEntry(
        name="slack",
        display_name="Slack",
        installable=False,
        config_path="channels",
        secrets={
            "botToken": SecretSpec(
                env_var="SLACK_BOT_TOKEN",
                scope="agent",
                validator="prefix:xoxb-",
                instructions=SecretInstructions(
                    title="Slack App Setup",
                    steps=(
                        "Create a Slack app for each agent from the generated manifest.",
                        "Copy the Bot Token (xoxb-...) from OAuth & Permissions.",
                        "Generate an App-Level Token with connections:write (xapp-...).",
                    ),
                ),
            ),
            "appToken": SecretSpec(
                env_var="SLACK_APP_TOKEN",
                scope="agent",
                validator="prefix:xapp-",
            ),
        },
    ),
)

BUILTIN_DEPS: tuple[DependencyEntry, ...] = (
    DependencyEntry(
        name="gh",
        display_name="GitHub CLI",
        post_install_script=(
            'if echo "${GITHUB_TOKEN}" | gh auth login --with-token 2>&1; then\n'
            "  gh auth setup-git\n"
            "else\n"
            '  echo "WARNING: GitHub CLI authentication failed"\n'
            "fi\n"
        ),
        secrets={
            "githubToken": SecretSpec(
                env_var="GITHUB_TOKEN",
                scope="agent",
                validator="prefix:ghp_|github_pat_",
            ),
        },
    ),
    DependencyEntry(
        name="brave-search",
        display_name="Brave Search",
        secrets={
            "braveApiKey": SecretSpec(env_var="BRAVE_API_KEY", scope="global"),
        },
    ),
)

BUILTIN_CODING_AGENTS: tuple[CodingAgentEntry, ...] = (
    CodingAgentEntry(
        name="claude-code",
        display_name="Claude Code",
        install_script="curl -fsSL https://claude.ai/install.sh | bash",
        configure_model_script=(
            "mkdir -p ~/.claude && "
            'echo \'{"model":"${MODEL}","fastMode":true}\' > ~/.claude/settings.json'
        ),
        cli_backend=CliBackend(
            command="claude",
            args=("-p", "--output-format", "stream-json", "--verbose"),
            session_arg="--resume",
            session_mode="always",
            system_prompt_arg="--append-system-prompt",
            system_prompt_when="always",
        ),
    ),
    CodingAgentEntry(
        name="codex",
        display_name="Codex",
        install_script="npm install -g @openai/codex",
        cli_backend=CliBackend(command="codex", args=("exec", "--json")),
        secrets={
            "openaiApiKey": SecretSpec(
                env_var="OPENAI_API_KEY",
                scope="global",
                validator="prefix:sk-",
            ),
        },
    ),
    CodingAgentEntry(
        name="amp",
        display_name="Amp",
        install_script="npm install -g @sourcegraph/amp",
        cli_backend=CliBackend(command="amp", args=("-x",)),
        secrets={
            "ampApiKey": SecretSpec(env_var="AMP_API_KEY", scope="agent"),
        },
    ),
)
