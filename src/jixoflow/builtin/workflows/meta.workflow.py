"""Meta workflow: list, analyze, archive and configure workflows and MCPs.

Usage:
    meta list [--json]              List active workflows and MCPs
    meta analyze                    Analyze dependencies
    meta archive -n NAME [-t mcp]   Archive a workflow or MCP
    meta unarchive -n NAME          Restore from archive
    meta config [--json|--schema]   Show current preferences
    meta config --init [--force]    Write a starter preferences.json
"""

from __future__ import annotations

import importlib

from jixoflow.workflow import SubflowRef, define_workflow


def _lazy(name: str, module: str, attr: str = "workflow") -> SubflowRef:
    return SubflowRef(lambda: getattr(importlib.import_module(module), attr), name=name)


workflow = define_workflow(
    "meta",
    "Manage workflows/MCPs - list, analyze, archive, config",
    version="2.1.0",
    subflows=[
        _lazy("list", "jixoflow.meta.list"),
        _lazy("analyze", "jixoflow.meta.analyze"),
        _lazy("archive", "jixoflow.meta.archive", "archive_workflow"),
        _lazy("unarchive", "jixoflow.meta.archive", "unarchive_workflow"),
        _lazy("config", "jixoflow.meta.config"),
    ],
    examples=[
        ("meta list", "List all workflows and MCPs"),
        ("meta list --json", "Output as JSON"),
        ("meta analyze", "Analyze dependencies"),
        ("meta archive -n old-workflow", "Archive a workflow"),
        ("meta archive -n old-mcp -t mcp", "Archive an MCP"),
        ("meta config --init", "Write a starter preferences.json"),
    ],
    auto_start=__name__ == "__main__",
)
