# src/storage/models.py — v1
"""Provisioning domain models: planned config entries and the write report."""

from __future__ import annotations

from pydantic import BaseModel, Field


class ConfigEntry(BaseModel):
    """One key to write into the remote configuration store."""

    key: str
    value: str
    secret: bool = False


class ProvisioningPlan(BaseModel):
    """Ordered writes and removals for one stack."""

    stack: str
    entries: list[ConfigEntry] = Field(default_factory=list)
    removals: list[str] = Field(default_factory=list)

    @property
    def keys(self) -> list[str]:
        return [e.key for e in self.entries]


class ProvisioningReport(BaseModel):
    """What the writer actually did."""

    stack: str
    created: bool = False
    fingerprint_backfilled: bool = False
    written: list[str] = Field(default_factory=list)
    unchanged: list[str] = Field(default_factory=list)
    removed: list[str] = Field(default_factory=list)
