"""Unit tests for workflow definition, execution and subflow composition."""

from __future__ import annotations

import asyncio
from typing import Any

import pytest

from jixoflow.context import current_scope, get_preferred_agent, is_in_context
from jixoflow.errors import ArgValidationError, DefinitionError
from jixoflow.preferences import StaticPreferences
from jixoflow.workflow import (
    ArgSpec,
    ExecutionHandle,
    SubflowRef,
    WorkflowDefinition,
    create_router,
    define_workflow,
)


async def _noop(args: dict[str, Any], handle: ExecutionHandle) -> None:
    return None


def test_define_workflow_requires_name() -> None:
    with pytest.raises(DefinitionError):
        define_workflow("", "no name", handler=_noop)
    with pytest.raises(DefinitionError):
        define_workflow("   ", "blank name", handler=_noop)


def test_define_workflow_requires_handler_or_subflows() -> None:
    with pytest.raises(DefinitionError, match="handler or at least one subflow"):
        define_workflow("empty", "nothing to do")


def test_define_workflow_rejects_bad_arg_specs() -> None:
    with pytest.raises(DefinitionError):
        define_workflow("w", "bad type", args={"count": {"type": "integer"}}, handler=_noop)
    with pytest.raises(DefinitionError):
        define_workflow("w", "unknown key", args={"count": {"kind": "number"}}, handler=_noop)
    with pytest.raises(DefinitionError):
        define_workflow("w", "reserved", args={"help": {"type": "boolean"}}, handler=_noop)
    with pytest.raises(DefinitionError):
        define_workflow(
            "w",
            "alias clash",
            args={"name": {"alias": "n"}, "number": {"type": "number", "alias": "n"}},
            handler=_noop,
        )
    with pytest.raises(DefinitionError):
        define_workflow(
            "w", "bad default", args={"n": {"type": "number", "default": "x"}}, handler=_noop
        )


def test_definition_is_immutable() -> None:
    wf = define_workflow("w", "immutable", args={"p": ArgSpec()}, handler=_noop)

    assert isinstance(wf, WorkflowDefinition)
    assert wf.version == "1.0.0"
    with pytest.raises(AttributeError):
        wf.name = "other"  # type: ignore[misc]
    with pytest.raises(TypeError):
        wf.args["q"] = ArgSpec()  # type: ignore[index]


@pytest.mark.asyncio
async def test_execute_runs_handler_inside_scope(preferences: StaticPreferences) -> None:
    preferences.replace({"ai": {"defaultAgent": "codex"}})
    seen: dict[str, Any] = {}

    async def handler(args: dict[str, Any], handle: ExecutionHandle) -> str:
        seen["in_context"] = is_in_context()
        seen["agent"] = get_preferred_agent()
        seen["workflow"] = current_scope().workflow  # type: ignore[union-attr]
        seen["path"] = handle.path
        return "done"

    wf = define_workflow("probe", "probe", handler=handler)

    assert await wf.execute() == "done"
    assert seen == {"in_context": True, "agent": "codex", "workflow": "probe", "path": ("probe",)}
    assert is_in_context() is False


@pytest.mark.asyncio
async def test_args_are_coerced_with_defaults(preferences: StaticPreferences) -> None:
    received: dict[str, Any] = {}

    async def handler(args: dict[str, Any], handle: ExecutionHandle) -> None:
        received.update(args)

    wf = define_workflow(
        "args",
        "args",
        args={
            "prompt": {"type": "string", "alias": "p"},
            "count": {"type": "number", "default": 3},
            "ratio": {"type": "number"},
            "verbose": {"type": "boolean", "default": False},
            "dry": {"type": "boolean"},
        },
        handler=handler,
    )

    await wf.execute({"p": "hello", "ratio": "0.5", "dry": "yes", "unknown": 1, "_": ["a", 2]})

    assert received == {
        "_": ["a", "2"],
        "prompt": "hello",
        "count": 3,
        "ratio": 0.5,
        "verbose": False,
        "dry": True,
    }


@pytest.mark.asyncio
async def test_missing_arg_without_default_is_none(preferences: StaticPreferences) -> None:
    received: dict[str, Any] = {}

    async def handler(args: dict[str, Any], handle: ExecutionHandle) -> None:
        received.update(args)

    wf = define_workflow(
        "lenient",
        "required is only enforced on the command line",
        args={"name": {"type": "string", "required": True}},
        handler=handler,
    )

    await wf.execute({})

    assert received == {"_": [], "name": None}


@pytest.mark.asyncio
async def test_coercion_failure_raises_before_scope(preferences: StaticPreferences) -> None:
    calls: list[str] = []

    async def handler(args: dict[str, Any], handle: ExecutionHandle) -> None:
        calls.append("ran")

    wf = define_workflow("typed", "typed", args={"count": {"type": "number"}}, handler=handler)

    with pytest.raises(ArgValidationError) as excinfo:
        await wf.execute({"count": "many"})

    assert excinfo.value.arg_name == "count"
    assert calls == []
    assert is_in_context() is False


@pytest.mark.asyncio
async def test_handler_error_propagates_unchanged(preferences: StaticPreferences) -> None:
    class Boom(Exception):
        pass

    error = Boom("handler failed")

    async def handler(args: dict[str, Any], handle: ExecutionHandle) -> None:
        raise error

    wf = define_workflow("failing", "fails", handler=handler)

    with pytest.raises(Boom) as excinfo:
        await wf.execute()

    assert excinfo.value is error
    assert is_in_context() is False


@pytest.mark.asyncio
async def test_subflow_executes_in_its_own_scope(preferences: StaticPreferences) -> None:
    observed: dict[str, Any] = {}

    async def sub_handler(args: dict[str, Any], handle: ExecutionHandle) -> None:
        scope = current_scope()
        observed["sub_in_context"] = is_in_context()
        observed["sub_depth"] = scope.depth if scope else None
        observed["sub_workflow"] = scope.workflow if scope else None

    sub = define_workflow("sub", "child", handler=sub_handler)

    async def parent_handler(args: dict[str, Any], handle: ExecutionHandle) -> None:
        child = await handle.get_subflow("sub")
        assert child is sub
        await child.execute({})
        scope = current_scope()
        observed["parent_workflow_after"] = scope.workflow if scope else None

    parent = define_workflow("parent", "parent", subflows=[sub], handler=parent_handler)

    await parent.execute({})

    assert observed == {
        "sub_in_context": True,
        "sub_depth": 1,
        "sub_workflow": "sub",
        "parent_workflow_after": "parent",
    }


@pytest.mark.asyncio
async def test_missing_subflow_returns_none(preferences: StaticPreferences) -> None:
    results: list[Any] = []

    async def handler(args: dict[str, Any], handle: ExecutionHandle) -> None:
        results.append(await handle.get_subflow("missing"))
        results.append(await handle.get_subflow("Sub"))

    sub = define_workflow("sub", "child", handler=_noop)
    wf = define_workflow("parent", "parent", subflows=[sub], handler=handler)

    await wf.execute()

    assert results == [None, None]


@pytest.mark.asyncio
async def test_lazy_subflows_load_once_per_execution(preferences: StaticPreferences) -> None:
    loads: list[str] = []
    sub = define_workflow("lazy", "lazy child", handler=_noop)
    other = define_workflow("other", "async-loaded child", handler=_noop)

    def load_sub() -> WorkflowDefinition:
        loads.append("lazy")
        return sub

    async def load_other() -> WorkflowDefinition:
        loads.append("other")
        await asyncio.sleep(0)
        return other

    resolved: list[Any] = []

    async def handler(args: dict[str, Any], handle: ExecutionHandle) -> None:
        first = await handle.get_subflow("lazy")
        second = await handle.get_subflow("lazy")
        resolved.extend([first, second])
        resolved.append(await handle.get_subflow("other"))
        resolved.append(await handle.subflow_names())

    wf = define_workflow(
        "parent",
        "lazy parent",
        subflows=[SubflowRef(load_sub, name="lazy"), load_other],
        handler=handler,
    )

    await wf.execute()

    assert resolved[0] is sub
    assert resolved[1] is sub
    assert resolved[2] is other
    assert resolved[3] == ["lazy", "other"]
    assert loads == ["lazy", "other"]


@pytest.mark.asyncio
async def test_declared_subflow_name_must_match(preferences: StaticPreferences) -> None:
    impostor = define_workflow("impostor", "wrong name", handler=_noop)

    async def handler(args: dict[str, Any], handle: ExecutionHandle) -> None:
        await handle.get_subflow("expected")

    wf = define_workflow(
        "parent",
        "parent",
        subflows=[SubflowRef(lambda: impostor, name="expected")],
        handler=handler,
    )

    with pytest.raises(DefinitionError):
        await wf.execute()


@pytest.mark.asyncio
async def test_child_scope_is_seeded_from_current_store(preferences: StaticPreferences) -> None:
    preferences.replace({"ai": {"defaultAgent": "codex"}})
    agents: dict[str, str] = {}

    async def sub_handler(args: dict[str, Any], handle: ExecutionHandle) -> None:
        agents["sub"] = get_preferred_agent()

    sub = define_workflow("sub", "child", handler=sub_handler)

    async def parent_handler(args: dict[str, Any], handle: ExecutionHandle) -> None:
        agents["parent_before"] = get_preferred_agent()
        preferences.replace({"ai": {"defaultAgent": "claude-code"}})
        child = await handle.get_subflow("sub")
        assert child is not None
        await child.execute()
        agents["parent_after"] = get_preferred_agent()

    parent = define_workflow("parent", "parent", subflows=[sub], handler=parent_handler)

    await parent.execute()

    assert agents == {"parent_before": "codex", "sub": "claude-code", "parent_after": "codex"}


@pytest.mark.asyncio
async def test_per_workflow_agent_override(preferences: StaticPreferences) -> None:
    preferences.replace(
        {"ai": {"defaultAgent": "codex"}, "workflows": {"coder": {"preferredAgent": "claude-code"}}}
    )
    agents: list[str] = []

    async def handler(args: dict[str, Any], handle: ExecutionHandle) -> None:
        agents.append(get_preferred_agent())

    await define_workflow("coder", "coder", handler=handler).execute()
    await define_workflow("research", "research", handler=handler).execute()

    assert agents == ["claude-code", "codex"]


@pytest.mark.asyncio
async def test_concurrent_subflows_keep_context(preferences: StaticPreferences) -> None:
    flags: list[bool] = []

    async def leaf(args: dict[str, Any], handle: ExecutionHandle) -> None:
        await asyncio.sleep(0)
        flags.append(is_in_context())

    sub = define_workflow("leaf", "leaf", handler=leaf)

    async def parent_handler(args: dict[str, Any], handle: ExecutionHandle) -> None:
        child = await handle.get_subflow("leaf")
        assert child is not None
        await asyncio.gather(*(child.execute() for _ in range(4)))
        flags.append(is_in_context())

    await define_workflow("fan", "fan-out", subflows=[sub], handler=parent_handler).execute()

    assert flags == [True] * 5


@pytest.mark.asyncio
async def test_router_execute_is_a_no_op(preferences: StaticPreferences) -> None:
    sub = define_workflow("sub", "child", handler=_noop)
    router = create_router("router", "dispatch only", [sub])

    assert router.is_router is True
    assert await router.execute() is None
