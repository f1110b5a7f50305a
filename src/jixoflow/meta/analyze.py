"""``meta analyze``: which workflows depend on which tool-servers."""

from __future__ import annotations

from typing import Any

from jixoflow.inventory import (
    Inventory,
    build_inventory,
    get_active_mcps,
    get_active_workflows,
    get_unused_mcps,
)
from jixoflow.workflow import ExecutionHandle, define_workflow


def find_missing_dependencies(inventory: Inventory) -> dict[str, list[str]]:
    """Active workflow name -> tool-servers it references that are not active."""

    active = {m.name for m in get_active_mcps(inventory)}
    missing: dict[str, list[str]] = {}
    for w in get_active_workflows(inventory):
        absent = [dep for dep in w.mcp_dependencies if dep not in active]
        if absent:
            missing[w.name] = absent
    return missing


def render_analysis(inventory: Inventory) -> str:
    active_workflows = get_active_workflows(inventory)
    active_mcps = {m.name: m for m in get_active_mcps(inventory)}

    lines = ["## Dependency Tree", ""]
    for w in active_workflows:
        lines.append(f"### {w.name}")
        lines.append(f"> {w.description}")
        lines.append("")
        if not w.mcp_dependencies:
            lines.append("- (no dependencies)")
        for dep in w.mcp_dependencies:
            found = active_mcps.get(dep)
            if found is not None:
                lines.append(f"- ✓ {dep}: {', '.join(found.tools) or 'no tools'}")
            else:
                lines.append(f"- ✗ {dep}: **MISSING!**")
        lines.append("")

    unused = get_unused_mcps(inventory)
    lines += ["## Unused MCPs", ""]
    if not unused:
        lines.append("All MCPs are referenced by at least one workflow.")
    else:
        lines.append("The following MCPs are not referenced by any workflow:")
        lines.append("")
        lines.extend(f"- **{m.name}**: {m.description}" for m in unused)

    missing_count = sum(len(deps) for deps in find_missing_dependencies(inventory).values())
    archived_workflows = sum(1 for w in inventory.workflows if w.archived)
    archived_mcps = sum(1 for m in inventory.mcp_scripts if m.archived)
    lines += [
        "",
        "## Summary",
        "",
        f"- Active Workflows: {len(active_workflows)}",
        f"- Active MCPs: {len(active_mcps)}",
        f"- Unused MCPs: {len(unused)}",
        f"- Missing dependencies: {missing_count}",
        f"- Archived: {archived_workflows} workflows, {archived_mcps} MCPs",
    ]
    return "\n".join(lines)


async def _handler(args: dict[str, Any], handle: ExecutionHandle) -> None:
    print(render_analysis(build_inventory()))


workflow = define_workflow(
    "analyze",
    "Analyze dependencies between workflows and MCPs",
    handler=_handler,
)
