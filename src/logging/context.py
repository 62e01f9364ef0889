# src/logging/context.py — v1
"""Contextual logging support: attach stack, agent and stage to log records."""

from __future__ import annotations

import contextvars
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Iterator

_stack: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "stack", default=None
)
_agent: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "agent", default=None
)
_stage: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "stage", default=None
)


@dataclass
class LogContext:
    """Snapshot of the current logging context."""

    stack: str | None = None
    agent: str | None = None
    stage: str | None = None

    def as_dict(self) -> dict[str, Any]:
        """Return non-None fields as dict for JSON log injection."""
        return {k: v for k, v in self.__dict__.items() if v is not None}


def get_context() -> LogContext:
    return LogContext(stack=_stack.get(), agent=_agent.get(), stage=_stage.get())


def set_stack_context(stack: str) -> None:
    """Set the stack for the current resolution run."""
    _stack.set(stack)


def set_agent_context(agent: str | None) -> None:
    _agent.set(agent)


@contextmanager
def stage(name: str) -> Iterator[None]:
    """Tag every record emitted inside the block with a pipeline stage."""
    token = _stage.set(name)
    try:
        yield
    finally:
        _stage.reset(token)


def clear_context() -> None:
    """Reset all context variables."""
    _stack.set(None)
    _agent.set(None)
    _stage.set(None)
