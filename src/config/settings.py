# src/config/settings.py — v1
"""Typed configuration loaded from .env via pydantic-settings.

Single source of truth for all process-level settings. Every field can be
overridden with a CLAWUP_-prefixed environment variable
(e.g. CLAWUP_CONFIG_STORE=json).
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ConfigurationError(Exception):
    """Raised when configuration is internally inconsistent."""


class Settings(BaseSettings):
    """Application settings loaded from .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="CLAWUP_",
        extra="ignore",
    )

    # === Project files ===
    manifest_file: str = "clawup.yaml"
    env_file_name: str = ".env"
    env_example_file_name: str = ".env.example"

    # === Identity fetching ===
    identity_cache_dir: Path = Path("~/.clawup/identity-cache")
    git_binary: str = "git"
    git_timeout_seconds: float = 120.0

    # === Secret resolution ===
    skip_hooks: bool = False
    hook_timeout_seconds: float = 30.0
    default_model: str = "anthropic/claude-opus-4-6"
    default_volume_size: int = 30

    # === Configuration store ===
    config_store: Literal["pulumi", "json"] = "pulumi"
    json_store_root: Path | None = Path("~/.clawup/stacks")
    pulumi_binary: str = "pulumi"
    pulumi_workspace_dir: Path = Path("~/.clawup/workspace")

    # === Logging ===
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_format: Literal["json", "text"] = "text"
    log_file: Path | None = None
    log_rotation: str = "10MB"
    log_retention: int = 5

    # --- Validators ---

    @field_validator("git_timeout_seconds", "hook_timeout_seconds")
    @classmethod
    def validate_timeout(cls, v: float, info) -> float:  # noqa: N805
        if v <= 0:
            raise ValueError(f"{info.field_name} must be > 0")
        return v

    @field_validator("default_volume_size")
    @classmethod
    def validate_volume_size(cls, v: int) -> int:  # noqa: N805
        if v <= 0:
            raise ValueError("default_volume_size must be > 0")
        return v

    @model_validator(mode="after")
    def validate_config_consistency(self) -> Settings:
        """Validate cross-field consistency rules."""
        errors: list[str] = []

        if self.config_store == "json" and self.json_store_root is None:
            errors.append("CONFIG_STORE=json requires JSON_STORE_ROOT")

        if "/" not in self.default_model:
            errors.append(
                "DEFAULT_MODEL must be provider-qualified (e.g. anthropic/claude-opus-4-6)"
            )

        if errors:
            raise ConfigurationError("; ".join(errors))

        return self

    # --- Helpers ---

    @property
    def identity_cache_path(self) -> Path:
        """Expanded identity cache directory."""
        return Path(self.identity_cache_dir).expanduser()


def load_settings(**overrides: object) -> Settings:
    """Load settings from .env with optional overrides.

    Raises:
        ConfigurationError: If configuration is internally inconsistent.
    """
    return Settings(**overrides)  # type: ignore[arg-type]
