"""Workflow definitions, execution and subflow composition."""

from __future__ import annotations

import asyncio
import inspect
import logging
import sys
from collections.abc import Awaitable, Callable, Mapping, Sequence
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Union

from pydantic import ValidationError

from jixoflow.config import RuntimeSettings
from jixoflow.context import enter_scope
from jixoflow.errors import ArgValidationError, DefinitionError, JixoflowError, UsageError
from jixoflow.logging import configure_logging
from jixoflow.preferences.store import get_preferences_store
from jixoflow.workflow.args import (
    POSITIONAL_KEY,
    ArgSpec,
    normalize_arg_specs,
    parse_args,
    parse_argv,
)
from jixoflow.workflow.help import render_help

logger = logging.getLogger(__name__)

Handler = Callable[[dict[str, Any], "ExecutionHandle"], Awaitable[Any]]
Loader = Callable[[], Union["WorkflowDefinition", Awaitable["WorkflowDefinition"]]]

DEFAULT_VERSION = "1.0.0"


@dataclass(frozen=True, slots=True)
class SubflowRef:
    """Deferred reference to a subflow.

    ``name`` may be declared up front so lookups by name do not need to load
    the definition; otherwise the name is only known once loaded.
    """

    loader: Loader
    name: str | None = None

    async def load(self) -> WorkflowDefinition:
        result = self.loader()
        if inspect.isawaitable(result):
            result = await result
        if not isinstance(result, WorkflowDefinition):
            raise DefinitionError(
                f"Subflow loader returned {type(result).__name__}, expected a WorkflowDefinition"
            )
        if self.name is not None and result.name != self.name:
            raise DefinitionError(
                f"Subflow declared as '{self.name}' loaded a workflow named '{result.name}'"
            )
        return result


SubflowSource = Union["WorkflowDefinition", Loader, SubflowRef]


def _to_ref(source: SubflowSource) -> SubflowRef:
    if isinstance(source, SubflowRef):
        return source
    if isinstance(source, WorkflowDefinition):
        return SubflowRef(loader=lambda: source, name=source.name)
    if callable(source):
        return SubflowRef(loader=source)
    raise DefinitionError(
        f"Subflows must be workflow definitions or loaders, got {type(source).__name__}"
    )


class SubflowResolver:
    """Resolves a definition's subflows by name, loading each ref at most once."""

    def __init__(self, refs: Sequence[SubflowRef]) -> None:
        self._refs = tuple(refs)
        self._loaded: dict[int, WorkflowDefinition] = {}
        self._lock = asyncio.Lock()

    async def _load(self, index: int) -> WorkflowDefinition:
        loaded = self._loaded.get(index)
        if loaded is None:
            loaded = await self._refs[index].load()
            self._loaded[index] = loaded
        return loaded

    async def get(self, name: str) -> WorkflowDefinition | None:
        async with self._lock:
            for index, ref in enumerate(self._refs):
                if ref.name == name:
                    return await self._load(index)
            for index, ref in enumerate(self._refs):
                if ref.name is None:
                    loaded = await self._load(index)
                    if loaded.name == name:
                        return loaded
            return None

    async def all(self) -> list[WorkflowDefinition]:
        async with self._lock:
            return [await self._load(index) for index in range(len(self._refs))]

    async def names(self) -> list[str]:
        names: list[str] = []
        for definition in await self.all():
            if definition.name not in names:
                names.append(definition.name)
        return names


class ExecutionHandle:
    """Passed to a handler; gives access to the running definition's subflows.

    Resolved subflows are cached for the lifetime of the handle, so repeated
    lookups of one name return the same definition object.
    """

    def __init__(
        self,
        definition: WorkflowDefinition,
        path: tuple[str, ...] | None = None,
        raw_argv: tuple[str, ...] = (),
    ) -> None:
        self.definition = definition
        self.path = path or (definition.name,)
        self.raw_argv = raw_argv
        self._resolver = SubflowResolver(definition.subflows)

    async def get_subflow(self, name: str) -> WorkflowDefinition | None:
        """The subflow called ``name``, or ``None`` if there is none."""

        return await self._resolver.get(name)

    async def subflow_names(self) -> list[str]:
        return await self._resolver.names()


@dataclass(frozen=True, slots=True, eq=False)
class WorkflowDefinition:
    name: str
    description: str
    version: str = DEFAULT_VERSION
    args: Mapping[str, ArgSpec] = field(default_factory=lambda: MappingProxyType({}))
    subflows: tuple[SubflowRef, ...] = ()
    handler: Handler | None = None
    examples: tuple[tuple[str, str], ...] = ()
    notes: str | None = None

    @property
    def is_router(self) -> bool:
        return self.handler is None

    async def execute(
        self,
        raw_args: Mapping[str, Any] | None = None,
        *,
        path: tuple[str, ...] | None = None,
        raw_argv: tuple[str, ...] = (),
    ) -> Any:
        """Run the handler inside a fresh context scope.

        Arguments are coerced before the scope opens, so an
        ``ArgValidationError`` leaves no scope behind. Errors raised by the
        handler propagate unchanged once the scope is closed.
        """

        parsed = parse_args(raw_args, self.args)
        if self.handler is None:
            logger.debug("Router has no handler", extra={"workflow": self.name})
            return None

        snapshot = get_preferences_store().snapshot()
        with enter_scope(snapshot, workflow=self.name):
            handle = ExecutionHandle(self, path=path, raw_argv=raw_argv)
            logger.debug(
                "Executing workflow", extra={"workflow": self.name, "path": handle.path}
            )
            result = self.handler(parsed, handle)
            if inspect.isawaitable(result):
                result = await result
            return result

    async def resolve_path(
        self, tokens: Sequence[str]
    ) -> tuple[WorkflowDefinition, tuple[str, ...], list[str]]:
        """Follow leading positional tokens through the subflow tree."""

        current: WorkflowDefinition = self
        path = [self.name]
        remaining = list(tokens)
        while remaining and not remaining[0].startswith("-"):
            sub = await SubflowResolver(current.subflows).get(remaining[0])
            if sub is None:
                break
            path.append(remaining.pop(0))
            current = sub
        return current, tuple(path), remaining

    async def run_async(self, argv: Sequence[str] | None = None) -> int:
        """Command-line entry: route, print help or version, parse, execute.

        Returns 0 on success, 1 when the handler fails and 2 on usage errors.
        """

        tokens = list(sys.argv[1:] if argv is None else argv)
        if "--" in tokens:
            split = tokens.index("--")
            head, tail = tokens[:split], tokens[split:]
        else:
            head, tail = tokens, []

        help_mode: str | None = None
        rest: list[str] = []
        for token in head:
            if token in ("--help", "-h"):
                help_mode = help_mode or "brief"
            elif token == "--help=all":
                help_mode = "all"
            elif token == "--version":
                print(self.version)
                return 0
            else:
                rest.append(token)

        try:
            target, path, rest = await self.resolve_path(rest)
        except DefinitionError:
            logger.exception("Failed to resolve subflow", extra={"workflow": self.name})
            return 1

        if help_mode is not None or target.is_router:
            print(await render_help(target, path, show_all=help_mode == "all"))
            return 0

        remaining = rest + tail
        try:
            parsed = parse_argv(rest, " ".join(path), target.args)
        except (UsageError, ArgValidationError) as e:
            print(f"Error: {e}", file=sys.stderr)
            print("Run with --help for usage information.", file=sys.stderr)
            return 2

        parsed[POSITIONAL_KEY] = parsed[POSITIONAL_KEY] + tail[1:]
        try:
            await target.execute(parsed, path=path, raw_argv=tuple(remaining))
        except JixoflowError as e:
            logger.error(
                "Workflow failed",
                extra={"workflow": target.name, "path": path, "error": str(e)},
            )
            print(f"Error: {e}", file=sys.stderr)
            return 1
        except Exception:
            logger.exception("Workflow failed", extra={"workflow": target.name, "path": path})
            return 1
        return 0

    def run(self, argv: Sequence[str] | None = None) -> int:
        return asyncio.run(self.run_async(argv))

    def main(self, argv: Sequence[str] | None = None) -> int:
        """``run()`` with logging configured from the runtime settings."""

        try:
            settings = RuntimeSettings()
        except ValidationError as e:
            print("Configuration error (check your .env):", file=sys.stderr)
            print(e, file=sys.stderr)
            return 2

        configure_logging(settings.log_level)
        return self.run(argv)


def define_workflow(
    name: str,
    description: str = "",
    *,
    args: Mapping[str, ArgSpec | Mapping[str, Any]] | None = None,
    subflows: Sequence[SubflowSource] | None = None,
    handler: Handler | None = None,
    version: str = DEFAULT_VERSION,
    examples: Sequence[tuple[str, str]] = (),
    notes: str | None = None,
    auto_start: bool = False,
) -> WorkflowDefinition:
    """Declare a workflow.

    A definition needs a handler, or at least one subflow (a router). With
    ``auto_start=True`` (idiom: ``auto_start=__name__ == "__main__"``) the
    workflow runs from ``sys.argv`` immediately and the process exits with
    its status.
    """

    if not isinstance(name, str) or not name.strip():
        raise DefinitionError("Workflow name must be a non-empty string")
    if not isinstance(description, str):
        raise DefinitionError(f"Workflow '{name}': description must be a string")
    if handler is not None and not callable(handler):
        raise DefinitionError(f"Workflow '{name}': handler must be callable")

    refs = tuple(_to_ref(source) for source in subflows or ())
    if handler is None and not refs:
        raise DefinitionError(f"Workflow '{name}' needs a handler or at least one subflow")

    declared = [ref.name for ref in refs if ref.name is not None]
    duplicates = sorted({n for n in declared if declared.count(n) > 1})
    if duplicates:
        raise DefinitionError(f"Workflow '{name}' has duplicate subflows: {', '.join(duplicates)}")

    try:
        specs = normalize_arg_specs(args)
    except DefinitionError as e:
        raise DefinitionError(f"Workflow '{name}': {e}") from e

    definition = WorkflowDefinition(
        name=name,
        description=description,
        version=version,
        args=specs,
        subflows=refs,
        handler=handler,
        examples=tuple((str(cmd), str(desc)) for cmd, desc in examples),
        notes=notes,
    )

    if auto_start:
        sys.exit(definition.main())
    return definition


def create_router(
    name: str,
    description: str,
    subflows: Sequence[SubflowSource],
    *,
    version: str = DEFAULT_VERSION,
) -> WorkflowDefinition:
    """A workflow that only dispatches to its subflows."""

    return define_workflow(name, description, subflows=subflows, version=version)
