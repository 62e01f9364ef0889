# src/registry/registry.py — v1
"""Immutable registry tables with forward-compatible lookup.

Tables are built once and passed explicitly to the schema builder. Looking
up a name the running version does not know returns an UnknownEntry and
logs a warning instead of failing, so an older CLI can still process a
newer identity that references a plugin it has never heard of.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass
from functools import lru_cache
from types import MappingProxyType
from typing import Generic, TypeVar

from clawup.registry.models import (
    CodingAgentEntry,
    DependencyEntry,
    ModelProvider,
    PluginEntry,
    RegistryKind,
    UnknownEntry,
)

logger = logging.getLogger(__name__)

E = TypeVar("E", PluginEntry, DependencyEntry, CodingAgentEntry)


class RegistryError(Exception):
    """Raised when a registry table is built from inconsistent entries."""


class RegistryTable(Generic[E]):
    """Read-only name -> entry table for one registry kind."""

    def __init__(self, kind: RegistryKind, entries: Iterable[E]) -> None:
        table: dict[str, E] = {}
        for entry in entries:
            if entry.kind != kind:
                raise RegistryError(
                    f"Entry {entry.name!r} is a {entry.kind.value}, not a {kind.value}"
                )
            if entry.name in table:
                raise RegistryError(f"Duplicate {kind.value} entry: {entry.name!r}")
            table[entry.name] = entry
        self._kind = kind
        self._entries: Mapping[str, E] = MappingProxyType(table)

    @property
    def kind(self) -> RegistryKind:
        return self._kind

    @property
    def names(self) -> list[str]:
        return sorted(self._entries)

    def __contains__(self, name: object) -> bool:
        return name in self._entries

    def __iter__(self) -> Iterator[E]:
        return iter(self._entries.values())

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, name: str) -> E | None:
        return self._entries.get(name)

    def lookup(self, name: str) -> E | UnknownEntry:
        """Return the entry, or an UnknownEntry (with a warning) for unknown names."""
        entry = self._entries.get(name)
        if entry is not None:
            return entry
        logger.warning(
            "Unknown %s %r, skipping (known: %s)",
            self._kind.value,
            name,
            ", ".join(self.names) or "none",
        )
        return UnknownEntry(kind=self._kind, name=name, display_name=name)


@dataclass(frozen=True)
class Registries:
    """The full set of lookup tables handed to the schema builder."""

    plugins: RegistryTable[PluginEntry]
    deps: RegistryTable[DependencyEntry]
    coding_agents: RegistryTable[CodingAgentEntry]
    model_providers: Mapping[str, ModelProvider]

    def model_provider(self, key: str) -> ModelProvider | None:
        return self.model_providers.get(key)


def build_registries(
    plugins: Iterable[PluginEntry] = (),
    deps: Iterable[DependencyEntry] = (),
    coding_agents: Iterable[CodingAgentEntry] = (),
    model_providers: Iterable[ModelProvider] | None = None,
) -> Registries:
    """Build a Registries container; model providers default to the built-in set."""
    if model_providers is None:
        from clawup.config.constants import MODEL_PROVIDERS

        model_providers = MODEL_PROVIDERS
    return Registries(
        plugins=RegistryTable(RegistryKind.PLUGIN, plugins),
        deps=RegistryTable(RegistryKind.DEPENDENCY, deps),
        coding_agents=RegistryTable(RegistryKind.CODING_AGENT, coding_agents),
        model_providers=MappingProxyType({p.key: p for p in model_providers}),
    )


@lru_cache(maxsize=1)
def default_registries() -> Registries:
    """Registries populated with the built-in tables (built once per process)."""
    from clawup.registry.builtin import (
        BUILTIN_CODING_AGENTS,
        BUILTIN_DEPS,
        BUILTIN_PLUGINS,
    )

    return build_registries(
        plugins=BUILTIN_PLUGINS,
        deps=BUILTIN_DEPS,
        coding_agents=BUILTIN_CODING_AGENTS,
    )
