"""Meta MCP: lets an agent discover and run workflows."""

from __future__ import annotations

from jixoflow.meta.tools import list_mcps, list_workflows, run_workflow
from jixoflow.tools import define_tool, define_tool_server

server = define_tool_server(
    "meta",
    "Discover and execute JixoFlow workflows",
    tools=[
        define_tool("list_workflows", "List active workflows", list_workflows),
        define_tool("list_mcps", "List active MCP tool-servers", list_mcps),
        define_tool(
            "run_workflow",
            "Execute a workflow by name with command-line arguments",
            run_workflow,
        ),
    ],
)
