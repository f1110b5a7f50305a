"""Tool-server declarations.

A ``*.mcp.py`` file declares a module-level ``server`` built with
:func:`define_tool_server`. Declaring a server never starts it; the
inventory only reads its name, description and tool names.
"""

from __future__ import annotations

import inspect
import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Any

from jixoflow.context import with_preferences
from jixoflow.errors import DefinitionError

logger = logging.getLogger(__name__)

ToolHandler = Callable[..., Any]


@dataclass(frozen=True, slots=True)
class ToolDefinition:
    name: str
    description: str
    handler: ToolHandler | None = None


@dataclass(frozen=True, slots=True)
class ToolServerDefinition:
    name: str
    description: str
    tools: tuple[ToolDefinition, ...] = ()

    @property
    def tool_names(self) -> list[str]:
        return [tool.name for tool in self.tools]

    def get_tool(self, name: str) -> ToolDefinition | None:
        for tool in self.tools:
            if tool.name == name:
                return tool
        return None

    async def call_tool(self, name: str, /, **arguments: Any) -> Any:
        """Invoke a tool's handler inside a preferences scope."""

        tool = self.get_tool(name)
        if tool is None:
            raise KeyError(f"Unknown tool '{name}' on server '{self.name}'")
        if tool.handler is None:
            raise DefinitionError(f"Tool '{name}' on server '{self.name}' has no handler")

        async def _invoke() -> Any:
            result = tool.handler(**arguments)
            if inspect.isawaitable(result):
                result = await result
            return result

        logger.debug("Calling tool", extra={"server": self.name, "tool": name})
        return await with_preferences(_invoke)


def define_tool(
    name: str,
    description: str = "",
    handler: ToolHandler | None = None,
) -> ToolDefinition:
    if not isinstance(name, str) or not name.strip():
        raise DefinitionError("Tool name must be a non-empty string")
    if handler is not None and not callable(handler):
        raise DefinitionError(f"Tool '{name}': handler must be callable")
    return ToolDefinition(name=name, description=description, handler=handler)


def define_tool_server(
    name: str,
    description: str = "",
    tools: Sequence[ToolDefinition] = (),
) -> ToolServerDefinition:
    if not isinstance(name, str) or not name.strip():
        raise DefinitionError("Tool-server name must be a non-empty string")
    tools = tuple(tools)
    for tool in tools:
        if not isinstance(tool, ToolDefinition):
            raise DefinitionError(
                f"Tool-server '{name}': tools must be created with define_tool()"
            )
    names = [tool.name for tool in tools]
    duplicates = sorted({n for n in names if names.count(n) > 1})
    if duplicates:
        raise DefinitionError(f"Tool-server '{name}' has duplicate tools: {', '.join(duplicates)}")
    return ToolServerDefinition(name=name, description=description, tools=tools)
