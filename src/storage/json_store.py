# src/storage/json_store.py — v1
"""JSON file-based configuration store (CLAWUP_CONFIG_STORE=json).

One document per stack under the store root:
    {"stack": "dev", "config": {"key": {"value": "...", "secret": true}}}
Used for the local provider and in tests.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from clawup.core.errors import ConfigStoreError
from clawup.storage.base_config_store import BaseConfigStore

logger = logging.getLogger(__name__)


class JsonConfigStore(BaseConfigStore):
    """File-based configuration store using one JSON document per stack."""

    def __init__(self, root: str | Path) -> None:
        self._root = Path(root).expanduser()
        self._stack: str | None = None

    @property
    def root(self) -> Path:
        return self._root

    def _stack_path(self, stack: str) -> Path:
        return self._root / f"{stack.replace('/', '__')}.json"

    def _require_stack(self, operation: str, key: str) -> str:
        if self._stack is None:
            raise ConfigStoreError(operation, key, "no stack selected")
        return self._stack

    def _load(self, stack: str) -> dict[str, Any]:
        path = self._stack_path(stack)
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return {"stack": stack, "config": {}}
        except (OSError, json.JSONDecodeError) as e:
            raise ConfigStoreError("read", stack, str(e)) from e
        data.setdefault("config", {})
        return data

    def _save(self, stack: str, data: dict[str, Any]) -> None:
        path = self._stack_path(stack)
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp = path.with_suffix(".json.tmp")
        tmp.write_text(json.dumps(data, indent=2, sort_keys=True), encoding="utf-8")
        tmp.replace(path)

    async def select(self, stack: str) -> bool:
        if not self._stack_path(stack).is_file():
            return False
        self._stack = stack
        return True

    async def create(self, stack: str) -> None:
        if self._stack_path(stack).exists():
            raise ConfigStoreError("create", stack, "stack already exists")
        self._save(stack, {"stack": stack, "config": {}})
        self._stack = stack
        logger.info("Created stack %s in %s", stack, self._root)

    async def get(self, key: str) -> str | None:
        stack = self._require_stack("get", key)
        entry = self._load(stack)["config"].get(key)
        return None if entry is None else str(entry["value"])

    async def set(self, key: str, value: str, secret: bool = False) -> None:
        stack = self._require_stack("set", key)
        data = self._load(stack)
        data["config"][key] = {"value": value, "secret": secret}
        self._save(stack, data)

    async def remove(self, key: str) -> None:
        stack = self._require_stack("remove", key)
        data = self._load(stack)
        if data["config"].pop(key, None) is not None:
            self._save(stack, data)

    async def is_secret(self, key: str) -> bool | None:
        """Stored classification of key in the selected stack (None when unset)."""
        if self._stack is None:
            return None
        entry = self._load(self._stack)["config"].get(key)
        return None if entry is None else bool(entry["secret"])
