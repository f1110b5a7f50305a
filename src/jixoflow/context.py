"""Ambient execution context.

A workflow execution opens a *scope* holding an immutable snapshot of the
user preferences. Code running anywhere inside that scope - nested calls,
awaited coroutines, tasks spawned with ``asyncio.gather``/``create_task``/
``TaskGroup``, and ``asyncio.to_thread`` workers - can read the snapshot
without it being passed around.

The scope lives in a :class:`contextvars.ContextVar`. asyncio copies the
current context into every task it creates, so concurrent branches each see
the scope that was active when they were spawned, and interleaved call trees
never see each other's scope.

Usage::

    with enter_scope(store.snapshot(), workflow="coder"):
        await do_something()  # get_preferred_agent() etc. resolve here
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from jixoflow.errors import NotInContextError
from jixoflow.preferences.schema import (
    DEFAULT_AGENT,
    DEFAULT_FALLBACK_CHAIN,
    AgentConfig,
    RetryConfig,
)
from jixoflow.preferences.snapshot import ContextSnapshot
from jixoflow.preferences.store import get_preferences_store

T = TypeVar("T")
R = TypeVar("R")


class AsyncContext(Generic[T]):
    """Named wrapper around a ``ContextVar`` with scoped set/reset."""

    def __init__(self, name: str) -> None:
        self.name = name
        self._var: ContextVar[T | None] = ContextVar(name, default=None)

    @contextmanager
    def scope(self, value: T) -> Iterator[T]:
        token = self._var.set(value)
        try:
            yield value
        finally:
            self._var.reset(token)

    def run(self, value: T, fn: Callable[..., R], *args: Any, **kwargs: Any) -> R:
        """Call ``fn`` synchronously with ``value`` as the current context."""

        with self.scope(value):
            return fn(*args, **kwargs)

    def current(self) -> T:
        value = self._var.get()
        if value is None:
            raise NotInContextError(
                f"{self.name}: Not running in context. "
                f"Use {self.name}.scope() to establish context."
            )
        return value

    def try_get(self) -> T | None:
        return self._var.get()

    def get_or_default(self, default: T) -> T:
        value = self._var.get()
        return default if value is None else value

    def is_in_context(self) -> bool:
        return self._var.get() is not None


@dataclass(frozen=True, slots=True)
class ExecutionScope:
    """What code inside a workflow execution can see."""

    snapshot: ContextSnapshot
    workflow: str | None = None
    depth: int = 0


ExecutionContext: AsyncContext[ExecutionScope] = AsyncContext("ExecutionContext")


@contextmanager
def enter_scope(snapshot: ContextSnapshot, workflow: str | None = None) -> Iterator[ExecutionScope]:
    """Open a scope seeded with ``snapshot`` for the dynamic extent of the ``with`` block.

    Scopes nest; the child records its depth and the parent becomes visible
    again when the block exits, however it exits.
    """

    parent = ExecutionContext.try_get()
    scope = ExecutionScope(
        snapshot=snapshot,
        workflow=workflow,
        depth=0 if parent is None else parent.depth + 1,
    )
    with ExecutionContext.scope(scope):
        yield scope


def is_in_context() -> bool:
    return ExecutionContext.is_in_context()


def current_scope() -> ExecutionScope | None:
    return ExecutionContext.try_get()


def current_snapshot() -> ContextSnapshot | None:
    scope = ExecutionContext.try_get()
    return scope.snapshot if scope is not None else None


# Accessors. Outside a scope they return the documented defaults instead of
# raising; that path should not be hit once execute() has been entered.


def get_preferred_agent(workflow_name: str | None = None) -> str:
    """Preferred agent for ``workflow_name`` (default: the executing workflow)."""

    scope = ExecutionContext.try_get()
    if scope is None:
        return DEFAULT_AGENT
    return scope.snapshot.preferred_agent_for(workflow_name or scope.workflow)


def get_retry_config() -> RetryConfig:
    scope = ExecutionContext.try_get()
    if scope is None:
        return RetryConfig()
    return scope.snapshot.retry


def is_workflow_disabled(workflow_name: str) -> bool:
    scope = ExecutionContext.try_get()
    return scope is not None and workflow_name in scope.snapshot.disabled_workflows


def is_mcp_disabled(mcp_name: str) -> bool:
    scope = ExecutionContext.try_get()
    return scope is not None and mcp_name in scope.snapshot.disabled_mcps


def get_fallback_chain() -> list[str]:
    scope = ExecutionContext.try_get()
    if scope is None:
        return list(DEFAULT_FALLBACK_CHAIN)
    return list(scope.snapshot.preferences.ai.fallback_chain)


def get_agent_config(agent_name: str) -> AgentConfig | None:
    scope = ExecutionContext.try_get()
    if scope is None:
        return None
    return scope.snapshot.preferences.ai.agents.get(agent_name)


def get_workflow_options(workflow_name: str | None = None) -> dict[str, Any]:
    """Options configured for ``workflow_name`` (default: the executing workflow)."""

    scope = ExecutionContext.try_get()
    if scope is None:
        return {}
    name = workflow_name or scope.workflow
    cfg = scope.snapshot.workflow_config(name) if name else None
    return dict(cfg.options) if cfg is not None else {}


async def with_preferences(fn: Callable[..., Awaitable[R]], *args: Any, **kwargs: Any) -> R:
    """Await ``fn`` inside a scope seeded from the current preferences store."""

    with enter_scope(get_preferences_store().snapshot()):
        return await fn(*args, **kwargs)
