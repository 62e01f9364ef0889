# src/storage/provisioner.py — v1
"""Provisioning writer: resolved values -> remote configuration store.

Collision guard: the first run against a stack stamps the project
fingerprint; every later run compares it before touching any key. A stack
without a fingerprint predates the guard and is trusted, then backfilled.

Writes are strictly sequential. A key whose stored value and secret kind
already match the new entry is left alone, so an unchanged re-run issues
no writes.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from pathlib import Path

from clawup.config.constants import FINGERPRINT_KEY, GLOBAL_STORE_KEYS
from clawup.core.errors import StackCollision
from clawup.core.models import FleetManifest
from clawup.secrets.models import ResolvedSecretSet, SecretSchema
from clawup.storage.base_config_store import BaseConfigStore
from clawup.storage.fingerprint import project_fingerprint
from clawup.storage.models import ConfigEntry, ProvisioningPlan, ProvisioningReport

logger = logging.getLogger(__name__)

# Infrastructure provider -> store key for fleet.region.
REGION_KEYS: dict[str, str] = {
    "aws": "aws:region",
    "hetzner": "hetzner:location",
}


def global_store_key(key: str) -> str:
    return GLOBAL_STORE_KEYS.get(key, key)


def build_provisioning_plan(
    fleet: FleetManifest,
    schema: SecretSchema,
    resolved: ResolvedSecretSet,
    default_model: str,
) -> ProvisioningPlan:
    """Order every store write: fleet settings, globals, then each agent."""
    entries: list[ConfigEntry] = [ConfigEntry(key="provider", value=fleet.provider)]
    region_key = REGION_KEYS.get(fleet.provider)
    if region_key:
        entries.append(ConfigEntry(key=region_key, value=fleet.region))

    plaintext = {
        "modelProvider": fleet.model_provider,
        "defaultModel": fleet.default_model or default_model,
        "instanceType": fleet.instance_type,
        "ownerName": fleet.owner_name,
        "timezone": fleet.timezone,
        "workingHours": fleet.working_hours,
        "userNotes": fleet.user_notes,
    }
    entries.extend(
        ConfigEntry(key=key, value=value) for key, value in plaintext.items() if value
    )

    for key, requirement in schema.global_requirements.items():
        value = resolved.global_values.get(key)
        if value:
            entries.append(
                ConfigEntry(key=requirement.store_key, value=value, secret=requirement.is_secret)
            )

    for agent, requirements in schema.per_agent.items():
        values = resolved.agent_values.get(agent, {})
        for key, requirement in requirements.items():
            value = values.get(key)
            if value:
                entries.append(
                    ConfigEntry(
                        key=requirement.store_key, value=value, secret=requirement.is_secret
                    )
                )

    return ProvisioningPlan(
        stack=fleet.qualified_stack_name,
        entries=entries,
        removals=[global_store_key(k) for k in resolved.pruned_keys],
    )


class ProvisioningWriter:
    """Attach to a stack, verify ownership and apply a plan.

    Args:
        store: Configuration store backend.
        project_root: Root of the project writing to the stack.
    """

    def __init__(self, store: BaseConfigStore, project_root: str | Path) -> None:
        self._store = store
        self._fingerprint = project_fingerprint(project_root)
        self._stack: str | None = None
        self._exists = False
        self._needs_backfill = False

    @property
    def fingerprint(self) -> str:
        return self._fingerprint

    @property
    def stack_exists(self) -> bool:
        return self._exists

    async def attach(self, stack: str) -> bool:
        """Select the stack (if it exists) and verify its fingerprint.

        Returns whether the stack already existed. Nothing is written.

        Raises:
            StackCollision: The stack was stamped by another project.
        """
        self._stack = stack
        self._exists = await self._store.select(stack)
        self._needs_backfill = False
        if not self._exists:
            logger.info("Stack %s does not exist yet", stack)
            return False

        stored = await self._store.get(FINGERPRINT_KEY)
        if stored is None:
            logger.info("Stack %s has no project fingerprint; trusting it", stack)
            self._needs_backfill = True
        elif stored != self._fingerprint:
            raise StackCollision(stack, expected=self._fingerprint, found=stored)
        return True

    async def read_persisted(self, keys: Iterable[str]) -> dict[str, str]:
        """Current global values for requirement keys (empty for a new stack)."""
        if not self._exists:
            return {}
        values: dict[str, str] = {}
        for key in sorted(set(keys)):
            value = await self._store.get(global_store_key(key))
            if value is not None:
                values[key] = value
        return values

    async def provision(self, plan: ProvisioningPlan) -> ProvisioningReport:
        """Apply plan: create and stamp if needed, write changed keys, remove pruned ones.

        Raises:
            StackCollision: The stack was stamped by another project.
            ConfigStoreError: The backend rejected an operation.
        """
        if self._stack != plan.stack:
            await self.attach(plan.stack)

        report = ProvisioningReport(stack=plan.stack)
        if not self._exists:
            await self._store.create(plan.stack)
            await self._store.set(FINGERPRINT_KEY, self._fingerprint)
            self._exists = True
            report.created = True
        elif self._needs_backfill:
            await self._store.set(FINGERPRINT_KEY, self._fingerprint)
            self._needs_backfill = False
            report.fingerprint_backfilled = True

        for entry in plan.entries:
            if not report.created and await self._is_current(entry):
                report.unchanged.append(entry.key)
                continue
            await self._store.set(entry.key, entry.value, secret=entry.secret)
            report.written.append(entry.key)

        for key in plan.removals:
            await self._store.remove(key)
            report.removed.append(key)

        logger.info(
            "Stack %s: %d written, %d unchanged, %d removed",
            plan.stack,
            len(report.written),
            len(report.unchanged),
            len(report.removed),
        )
        return report

    async def _is_current(self, entry: ConfigEntry) -> bool:
        """Stored value and secret/plaintext kind both match the entry."""
        if await self._store.get(entry.key) != entry.value:
            return False
        stored_secret = await self._store.is_secret(entry.key)
        if stored_secret is not None and stored_secret != entry.secret:
            logger.info(
                "Re-writing %s as %s", entry.key, "secret" if entry.secret else "plaintext"
            )
            return False
        return True


def persisted_keys(schema: SecretSchema) -> list[str]:
    """Global keys whose stored values feed the next resolution run."""
    return sorted(set(schema.global_requirements) | set(schema.managed_global_keys))


def describe_plan(plan: ProvisioningPlan) -> Mapping[str, str]:
    """Key -> "secret" / "plaintext", for dry-run output."""
    return {e.key: "secret" if e.secret else "plaintext" for e in plan.entries}
