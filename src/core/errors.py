# src/core/errors.py — v1
"""Error taxonomy for manifest resolution and secret provisioning.

Every error carries structured attributes next to its message so callers
(CLI, facade consumers, tests) can act on the details without parsing text.
Errors that batch several problems enumerate all of them in one message.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from clawup.secrets.models import MissingSecret


class ClawupError(Exception):
    """Base class for all errors raised by clawup."""


# === Identity fetching ===


class IdentityNotFound(ClawupError):
    """Identity directory or manifest file is absent."""

    def __init__(self, path: str, detail: str = "") -> None:
        self.path = path
        message = f"Identity not found: {path}"
        if detail:
            message = f"{message} ({detail})"
        super().__init__(message)


class ManifestParseError(ClawupError):
    """Manifest file exists but is not well-formed YAML/JSON."""

    def __init__(self, path: str, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"Failed to parse {path}: {reason}")


@dataclass(frozen=True)
class FieldIssue:
    """One invalid or missing field in a manifest."""

    field: str
    problem: str

    def format(self) -> str:
        return f"{self.field} ({self.problem})"


class ManifestValidationError(ClawupError):
    """Identity manifest has missing or mistyped fields (batched)."""

    def __init__(self, path: str, issues: list[FieldIssue]) -> None:
        self.path = path
        self.issues = list(issues)
        missing = [i.field for i in self.issues if i.problem == "missing"]
        invalid = [i.format() for i in self.issues if i.problem != "missing"]
        parts: list[str] = []
        if missing:
            parts.append(f"missing required fields: {', '.join(missing)}")
        if invalid:
            parts.append(f"invalid fields: {', '.join(invalid)}")
        super().__init__(f"identity manifest at {path} is invalid; {'; '.join(parts)}")

    @property
    def fields(self) -> list[str]:
        return [i.field for i in self.issues]


class FetchError(ClawupError):
    """Both the cache update and the fresh clone of a git source failed."""

    def __init__(self, url: str, reason: str) -> None:
        self.url = url
        self.reason = reason
        super().__init__(f"Failed to fetch {url}: {reason}")


# === Fleet manifest ===


class FleetManifestError(ClawupError):
    """Fleet manifest (clawup.yaml) is missing, unreadable or invalid."""

    def __init__(self, path: str, issues: list[str]) -> None:
        self.path = path
        self.issues = list(issues)
        super().__init__(f"Invalid fleet manifest at {path}: {'; '.join(self.issues)}")


class MissingTemplateVars(ClawupError):
    """Identities reference template variables the fleet manifest does not supply."""

    def __init__(self, names: list[str]) -> None:
        self.names = sorted(names)
        lines = ["Missing template variables in the fleet manifest:"]
        lines.extend(f"  {name}" for name in self.names)
        lines.append("Add them to the templateVars section of the fleet manifest.")
        super().__init__("\n".join(lines))


# === Secret schema & resolution ===


@dataclass(frozen=True)
class SchemaConflict:
    """Two sources declare incompatible metadata for the same secret key."""

    key: str
    agent: str | None
    first_source: str
    second_source: str
    attribute: str

    def format(self) -> str:
        scope = self.agent or "global"
        return (
            f"{self.key} [{scope}]: {self.first_source} and {self.second_source} "
            f"disagree on {self.attribute}"
        )


class SchemaConflictError(ClawupError):
    """Secret metadata conflicts detected while building the schema (batched)."""

    def __init__(self, conflicts: list[SchemaConflict]) -> None:
        self.conflicts = list(conflicts)
        lines = ["Conflicting secret declarations:"]
        lines.extend(f"  {c.format()}" for c in self.conflicts)
        lines.append("Namespace the secret keys per plugin so each key has one owner.")
        super().__init__("\n".join(lines))


class MissingSecrets(ClawupError):
    """Required secrets could not be resolved (batched)."""

    def __init__(self, entries: list[MissingSecret], source_name: str = ".env") -> None:
        self.entries = list(entries)
        lines = [f"Missing secrets in {source_name}:"]
        for entry in self.entries:
            owner = f"Agent: {entry.agent_label}" if entry.agent else "Required"
            hint = f" ({entry.hint})" if entry.hint else ""
            lines.append(f"  {entry.env_var:<30} {owner}{hint}")
        lines.append(f"Fill these in your {source_name} file.")
        super().__init__("\n".join(lines))

    @property
    def env_vars(self) -> list[str]:
        return [e.env_var for e in self.entries]


class HookResolutionFailure(ClawupError):
    """A plugin resolve hook failed; the whole run is aborted."""

    def __init__(
        self,
        agent: str,
        plugin: str,
        key: str,
        reason: str,
        bypass_env_var: str,
    ) -> None:
        self.agent = agent
        self.plugin = plugin
        self.key = key
        self.reason = reason
        self.bypass_env_var = bypass_env_var
        super().__init__(
            f"Failed to resolve {key} for agent {agent} ({plugin}): {reason}\n"
            f"Set {bypass_env_var} in your .env file to bypass hook resolution."
        )


# === Provisioning ===


class StackCollision(ClawupError):
    """Remote config store belongs to a different project."""

    def __init__(self, stack: str, expected: str, found: str) -> None:
        self.stack = stack
        self.expected = expected
        self.found = found
        super().__init__(
            f"Stack name collision detected: stack {stack!r} belongs to a different "
            f"project (fingerprint {found}, this project is {expected}).\n"
            "Change the stackName in your fleet manifest to a unique value and run setup again."
        )


class ConfigStoreError(ClawupError):
    """A remote configuration store operation failed."""

    def __init__(self, operation: str, key: str, reason: str) -> None:
        self.operation = operation
        self.key = key
        self.reason = reason
        super().__init__(f"Config store {operation} failed for {key!r}: {reason}")
