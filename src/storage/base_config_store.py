# src/storage/base_config_store.py — v1
"""Abstract remote configuration store interface.

A store holds one key/value namespace per stack. Values are either
plaintext or encrypted secrets; callers always read them back decrypted.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


class BaseConfigStore(ABC):
    """Unified interface for configuration store backends."""

    @abstractmethod
    async def select(self, stack: str) -> bool:
        """Select an existing stack; False when it does not exist."""

    @abstractmethod
    async def create(self, stack: str) -> None:
        """Create and select a new, empty stack."""

    @abstractmethod
    async def get(self, key: str) -> str | None:
        """Read a value from the selected stack (None when unset)."""

    @abstractmethod
    async def set(self, key: str, value: str, secret: bool = False) -> None:
        """Write a value to the selected stack."""

    @abstractmethod
    async def remove(self, key: str) -> None:
        """Delete a key from the selected stack; absent keys are ignored."""

    async def is_secret(self, key: str) -> bool | None:
        """Stored classification of key: True for secret, False for plaintext.

        None when the key is unset or the backend cannot tell; callers then
        compare values only.
        """
        return None
