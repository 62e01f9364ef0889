# src/config/constants.py — v1
"""Process-lifetime constants: file names, model providers, infrastructure secrets."""

from __future__ import annotations

from clawup.registry.models import ModelProvider, SecretSpec

MANIFEST_FILE = "clawup.yaml"

# Identity manifest file names, in lookup order.
IDENTITY_MANIFEST_FILES: tuple[str, ...] = ("identity.yaml", "identity.json")

# Store key holding the project fingerprint of the stack owner.
FINGERPRINT_KEY = "clawup:projectFingerprint"

DEFAULT_MODEL_PROVIDER = "anthropic"

MODEL_PROVIDERS: tuple[ModelProvider, ...] = (
    ModelProvider(
        key="anthropic",
        name="Anthropic",
        env_var="ANTHROPIC_API_KEY",
        key_prefix="sk-ant-",
        models=(
            "anthropic/claude-opus-4-6",
            "anthropic/claude-sonnet-4-5",
            "anthropic/claude-haiku-4-5",
        ),
    ),
    ModelProvider(
        key="openai",
        name="OpenAI",
        env_var="OPENAI_API_KEY",
        key_prefix="sk-",
        models=("openai/gpt-4o", "openai/o3", "openai/o4-mini"),
    ),
    ModelProvider(
        key="google",
        name="Google Gemini",
        env_var="GOOGLE_API_KEY",
        models=("google/gemini-2.5-pro", "google/gemini-2.5-flash"),
    ),
    ModelProvider(
        key="openrouter",
        name="OpenRouter",
        env_var="OPENROUTER_API_KEY",
        key_prefix="sk-or-",
    ),
)

# Mesh-network credentials, needed by every non-local provider.
MESH_SECRETS: dict[str, SecretSpec] = {
    "tailscaleAuthKey": SecretSpec(
        env_var="TAILSCALE_AUTH_KEY",
        scope="global",
        validator="prefix:tskey-auth-",
    ),
    "tailnetDnsName": SecretSpec(
        env_var="TAILNET_DNS_NAME",
        scope="global",
        is_secret=False,
        validator="suffix:.ts.net",
    ),
    "tailscaleApiKey": SecretSpec(
        env_var="TAILSCALE_API_KEY",
        scope="global",
        required=False,
        validator="prefix:tskey-api-",
    ),
}

# Cloud credentials, keyed by infrastructure provider.
CLOUD_SECRETS: dict[str, dict[str, SecretSpec]] = {
    "hetzner": {
        "hcloudToken": SecretSpec(env_var="HCLOUD_TOKEN", scope="global"),
    },
}

# Template variables derived from owner metadata in the fleet manifest.
OWNER_TEMPLATE_VARS: dict[str, str] = {
    "OWNER_NAME": "owner_name",
    "TIMEZONE": "timezone",
    "WORKING_HOURS": "working_hours",
    "USER_NOTES": "user_notes",
}


def provider_for_model(model: str) -> str:
    """`anthropic/claude-opus-4-6` -> `anthropic`; a bare string is its own provider."""
    provider, _, _ = model.partition("/")
    return provider

# Global requirements stored under a provider-namespaced key instead of their own.
GLOBAL_STORE_KEYS: dict[str, str] = {
    "hcloudToken": "hcloud:token",
}
