"""``meta list``: active workflows and tool-servers."""

from __future__ import annotations

import json
from typing import Any

from jixoflow.inventory import Inventory, build_inventory, get_active_mcps, get_active_workflows
from jixoflow.workflow import ExecutionHandle, define_workflow


def render_list(inventory: Inventory) -> str:
    lines = ["## Active Workflows", ""]
    for w in get_active_workflows(inventory):
        deps = ", ".join(w.mcp_dependencies) or "none"
        origin = f"{w.source}, overrides {w.overrides}" if w.overrides else w.source
        lines.append(f"- **{w.name}** ({origin}): {w.description} [deps: {deps}]")

    lines += ["", "## Active MCPs", ""]
    for m in get_active_mcps(inventory):
        tools = ", ".join(m.tools) or "no tools"
        refs = ", ".join(m.referenced_by) or "none"
        lines.append(f"- **{m.name}**: {tools} [used by: {refs}]")

    if inventory.diagnostics:
        lines += ["", "## Load Errors", ""]
        for d in inventory.diagnostics:
            lines.append(f"- {d.path}: {d.error}")
    return "\n".join(lines)


def render_list_json(inventory: Inventory) -> str:
    data = inventory.model_dump(mode="json", by_alias=True)
    return json.dumps(data, indent=2, ensure_ascii=False)


async def _handler(args: dict[str, Any], handle: ExecutionHandle) -> None:
    inventory = build_inventory()
    print(render_list_json(inventory) if args["json"] else render_list(inventory))


workflow = define_workflow(
    "list",
    "List all workflows and MCPs",
    args={"json": {"type": "boolean", "description": "Output as JSON", "default": False}},
    handler=_handler,
)
