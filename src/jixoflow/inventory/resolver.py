"""Inventory of workflows and tool-servers across source tiers.

``build_inventory()`` returns the *raw* catalog: every file found in every
tier, tagged with its tier. Reconciliation is a separate step:
``get_active_workflows()`` / ``get_active_mcps()`` keep, per name, the
highest-precedence non-archived entry.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable, Iterable, Sequence
from pathlib import Path
from typing import Literal, TypeVar

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from jixoflow.config import MCP_SUFFIX, WORKFLOW_SUFFIX, RuntimeSettings
from jixoflow.errors import LoadError
from jixoflow.inventory.loader import load_tool_server, load_workflow
from jixoflow.inventory.scanner import (
    ScannedFile,
    ScanSource,
    SourceType,
    scan_source,
    standard_mcp_sources,
    standard_workflow_sources,
)

logger = logging.getLogger(__name__)

_MCP_REFERENCE = re.compile(
    r"mcps/([a-z][a-z0-9_-]*)\.mcp|mcp__([a-z][a-z0-9_-]*)__", re.IGNORECASE
)


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class InventoryEntry(_CamelModel):
    name: str
    description: str
    source: SourceType
    archived: bool
    path: Path
    file: str
    priority: int = Field(default=0, exclude=True)
    overrides: SourceType | None = None


class WorkflowEntry(InventoryEntry):
    mcp_dependencies: list[str] = Field(default_factory=list)


class McpEntry(InventoryEntry):
    tools: list[str] = Field(default_factory=list)
    referenced_by: list[str] = Field(default_factory=list)


class LoadDiagnostic(_CamelModel):
    path: Path
    kind: Literal["workflow", "mcp"]
    source: SourceType
    error: str


class Inventory(_CamelModel):
    workflows: list[WorkflowEntry] = Field(default_factory=list)
    mcp_scripts: list[McpEntry] = Field(default_factory=list)
    diagnostics: list[LoadDiagnostic] = Field(default_factory=list)


E = TypeVar("E", bound=InventoryEntry)


def extract_mcp_dependencies(text: str) -> list[str]:
    """Tool-server names referenced as ``mcps/<name>.mcp`` paths or ``mcp__<name>__`` prefixes."""

    deps: list[str] = []
    for match in _MCP_REFERENCE.finditer(text):
        name = match.group(1) or match.group(2)
        if name and name not in deps:
            deps.append(name)
    return deps


def _scan(sources: Sequence[ScanSource], suffix: str) -> list[ScannedFile]:
    files: list[ScannedFile] = []
    for source in sources:
        files.extend(scan_source(source, suffix))
    return files


def _load_entries(
    files: Iterable[ScannedFile],
    kind: Literal["workflow", "mcp"],
    build: Callable[[ScannedFile], E],
    diagnostics: list[LoadDiagnostic],
) -> list[E]:
    entries: list[E] = []
    for scanned in files:
        try:
            entries.append(build(scanned))
        except LoadError as e:
            logger.warning(
                "Skipping file that failed to load",
                extra={"path": str(scanned.path), "kind": kind, "error": str(e)},
            )
            diagnostics.append(
                LoadDiagnostic(path=scanned.path, kind=kind, source=scanned.source, error=str(e))
            )
    return entries


def _workflow_entry(scanned: ScannedFile) -> WorkflowEntry:
    definition = load_workflow(scanned.path)
    try:
        text = scanned.path.read_text(encoding="utf-8")
    except OSError as e:
        raise LoadError(scanned.path, str(e)) from e
    return WorkflowEntry(
        name=definition.name,
        description=definition.description,
        source=scanned.source,
        archived=scanned.source == "archived",
        path=scanned.path,
        file=scanned.file,
        priority=scanned.priority,
        mcp_dependencies=extract_mcp_dependencies(text),
    )


def _mcp_entry(scanned: ScannedFile) -> McpEntry:
    server = load_tool_server(scanned.path)
    return McpEntry(
        name=server.name,
        description=server.description,
        source=scanned.source,
        archived=scanned.source == "archived",
        path=scanned.path,
        file=scanned.file,
        priority=scanned.priority,
        tools=server.tool_names,
    )


def _reconcile(entries: list[E]) -> list[E]:
    """Sort by name then precedence and record which tier each active entry overrides."""

    entries.sort(key=lambda e: (e.name, -e.priority, str(e.path)))
    winners: dict[str, E] = {}
    for entry in entries:
        if entry.archived:
            continue
        winner = winners.get(entry.name)
        if winner is None:
            winners[entry.name] = entry
        elif winner.overrides is None and entry.source != winner.source:
            winner.overrides = entry.source
    return entries


def _active(entries: Iterable[E]) -> list[E]:
    active: dict[str, E] = {}
    for entry in entries:
        if entry.archived:
            continue
        current = active.get(entry.name)
        if current is None or entry.priority > current.priority:
            active[entry.name] = entry
    return sorted(active.values(), key=lambda e: e.name)


def build_inventory(
    settings: RuntimeSettings | None = None,
    *,
    workflow_sources: Sequence[ScanSource] | None = None,
    mcp_sources: Sequence[ScanSource] | None = None,
) -> Inventory:
    """Scan every tier and return the raw catalog. Nothing is cached."""

    if workflow_sources is None or mcp_sources is None:
        settings = settings or RuntimeSettings()
        if workflow_sources is None:
            workflow_sources = standard_workflow_sources(settings)
        if mcp_sources is None:
            mcp_sources = standard_mcp_sources(settings)

    diagnostics: list[LoadDiagnostic] = []
    workflow_files = _scan(workflow_sources, WORKFLOW_SUFFIX)
    mcp_files = _scan(mcp_sources, MCP_SUFFIX)
    workflows = _reconcile(_load_entries(workflow_files, "workflow", _workflow_entry, diagnostics))
    mcps = _reconcile(_load_entries(mcp_files, "mcp", _mcp_entry, diagnostics))

    active_mcps = {m.name: m for m in _active(mcps)}
    for workflow in _active(workflows):
        for dep in workflow.mcp_dependencies:
            mcp = active_mcps.get(dep)
            if mcp is not None and workflow.name not in mcp.referenced_by:
                mcp.referenced_by.append(workflow.name)

    logger.debug(
        "Inventory built",
        extra={
            "workflows": len(workflows),
            "mcps": len(mcps),
            "diagnostics": len(diagnostics),
        },
    )
    return Inventory(workflows=workflows, mcp_scripts=mcps, diagnostics=diagnostics)


def get_active_workflows(inventory: Inventory) -> list[WorkflowEntry]:
    return _active(inventory.workflows)


def get_active_mcps(inventory: Inventory) -> list[McpEntry]:
    return _active(inventory.mcp_scripts)


def get_unused_mcps(inventory: Inventory) -> list[McpEntry]:
    """Active tool-servers that no active workflow references."""

    return [m for m in get_active_mcps(inventory) if not m.referenced_by]


def find_entry(entries: Iterable[E], name: str, source: SourceType | None = None) -> E | None:
    """First entry called ``name`` (optionally restricted to one tier), in list order."""

    for entry in entries:
        if entry.name == name and (source is None or entry.source == source):
            return entry
    return None
