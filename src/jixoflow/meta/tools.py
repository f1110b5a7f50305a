"""Tool handlers for the builtin ``meta`` tool-server."""

from __future__ import annotations

from pathlib import Path
from typing import Any

from jixoflow.context import is_workflow_disabled
from jixoflow.errors import EntryNotFound
from jixoflow.inventory import (
    build_inventory,
    find_entry,
    get_active_mcps,
    get_active_workflows,
    load_workflow,
)
from jixoflow.output import capture_output


def list_workflows() -> list[dict[str, Any]]:
    """Active workflows as JSON-ready dicts."""

    workflows = get_active_workflows(build_inventory())
    return [w.model_dump(mode="json", by_alias=True) for w in workflows]


def list_mcps() -> list[dict[str, Any]]:
    mcps = get_active_mcps(build_inventory())
    return [m.model_dump(mode="json", by_alias=True) for m in mcps]


async def run_workflow(name: str, args: list[str] | None = None) -> dict[str, Any]:
    """Run an active workflow by name with command-line ``args``; output is captured."""

    entry = find_entry(get_active_workflows(build_inventory()), name)
    if entry is None:
        raise EntryNotFound(f"Unknown workflow: {name}")
    if is_workflow_disabled(entry.name):
        return {"exitCode": 3, "output": f"Workflow '{entry.name}' is disabled in preferences"}

    definition = load_workflow(Path(entry.path))
    with capture_output() as buffer:
        exit_code = await definition.run_async(list(args or []))
    return {"exitCode": exit_code, "output": buffer.getvalue()}
