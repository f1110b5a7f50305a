"""``meta archive`` / ``meta unarchive``: move files in and out of the archive tier.

Archiving moves the active copy (user or builtin) into the archive directory.
An archive may hold several copies of the same name; a clashing file name
gets a timestamp. Unarchiving always restores into the user tier.
"""

from __future__ import annotations

import logging
import shutil
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Literal

from jixoflow.config import RuntimeSettings
from jixoflow.errors import EntryNotFound, UsageError
from jixoflow.inventory import (
    InventoryEntry,
    build_inventory,
    find_entry,
    get_active_mcps,
    get_active_workflows,
)
from jixoflow.inventory.scanner import suffix_for
from jixoflow.workflow import ExecutionHandle, define_workflow

logger = logging.getLogger(__name__)

EntryKind = Literal["workflow", "mcp"]


@dataclass(frozen=True, slots=True)
class MoveResult:
    name: str
    kind: EntryKind
    source: Path
    destination: Path


def _kind(value: Any) -> EntryKind:
    if value not in ("workflow", "mcp"):
        raise UsageError(f"--type must be 'workflow' or 'mcp', got {value!r}")
    return value


def _free_destination(directory: Path, file_name: str, suffix: str) -> Path:
    destination = directory / file_name
    if not destination.exists():
        return destination
    stem = file_name[: -len(suffix)]
    stamp = datetime.now().strftime("%Y%m%dT%H%M%S")
    return directory / f"{stem}-{stamp}{suffix}"


def _move(entry: InventoryEntry, destination: Path, kind: EntryKind) -> MoveResult:
    destination.parent.mkdir(parents=True, exist_ok=True)
    shutil.move(str(entry.path), str(destination))
    logger.info(
        "Moved inventory file",
        extra={"entry": entry.name, "kind": kind, "from": str(entry.path), "to": str(destination)},
    )
    return MoveResult(name=entry.name, kind=kind, source=entry.path, destination=destination)


def archive_entry(
    name: str,
    kind: EntryKind = "workflow",
    settings: RuntimeSettings | None = None,
) -> MoveResult:
    settings = settings or RuntimeSettings()
    inventory = build_inventory(settings)
    active = get_active_workflows(inventory) if kind == "workflow" else get_active_mcps(inventory)
    entry = find_entry(active, name)
    if entry is None:
        raise EntryNotFound(f"Not found: {name} ({kind})")

    if kind == "workflow":
        archive_dir = settings.archive_workflows_dir
    else:
        archive_dir = settings.archive_mcps_dir
    destination = _free_destination(archive_dir, entry.file, suffix_for(kind))
    return _move(entry, destination, kind)


def unarchive_entry(
    name: str,
    kind: EntryKind = "workflow",
    settings: RuntimeSettings | None = None,
) -> MoveResult:
    settings = settings or RuntimeSettings()
    inventory = build_inventory(settings)
    entries = inventory.workflows if kind == "workflow" else inventory.mcp_scripts
    entry = find_entry(entries, name, source="archived")
    if entry is None:
        raise EntryNotFound(f"Not found in archive: {name} ({kind})")

    user_dir = settings.user_workflows_dir if kind == "workflow" else settings.user_mcps_dir
    destination = user_dir / entry.file
    if destination.exists():
        raise UsageError(f"Refusing to overwrite {destination}")
    return _move(entry, destination, kind)


def _report(verb: str, result: MoveResult) -> None:
    print(f"{verb} {result.kind}: {result.name}")
    print(f"  From: {result.source}")
    print(f"  To:   {result.destination}")


_ARGS = {
    "name": {
        "type": "string",
        "alias": "n",
        "description": "Name of workflow/MCP",
        "required": True,
    },
    "type": {
        "type": "string",
        "alias": "t",
        "description": "Type: workflow or mcp",
        "default": "workflow",
    },
}


async def _archive(args: dict[str, Any], handle: ExecutionHandle) -> None:
    if not args["name"]:
        raise UsageError("--name is required")
    _report("Archived", archive_entry(args["name"], _kind(args["type"])))


async def _unarchive(args: dict[str, Any], handle: ExecutionHandle) -> None:
    if not args["name"]:
        raise UsageError("--name is required")
    _report("Unarchived", unarchive_entry(args["name"], _kind(args["type"])))


archive_workflow = define_workflow(
    "archive", "Archive a workflow or MCP", args=_ARGS, handler=_archive
)

unarchive_workflow = define_workflow(
    "unarchive", "Restore a workflow or MCP from archive", args=_ARGS, handler=_unarchive
)
