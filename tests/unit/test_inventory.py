"""Unit tests for the workflow/MCP inventory and its tier precedence."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

import pytest

from jixoflow.config import RuntimeSettings
from jixoflow.errors import LoadError
from jixoflow.inventory import (
    ScanSource,
    build_inventory,
    extract_mcp_dependencies,
    find_entry,
    get_active_mcps,
    get_active_workflows,
    get_unused_mcps,
    load_workflow,
)


def test_user_tier_overrides_builtin(
    tier_dirs: dict[str, Path], write_workflow: Callable[..., Path]
) -> None:
    write_workflow(tier_dirs["builtin_workflows"], "coder", "Builtin coder")
    user_file = write_workflow(tier_dirs["user_workflows"], "coder", "User override of coder")
    write_workflow(tier_dirs["builtin_workflows"], "research", "Builtin research")

    inventory = build_inventory()

    assert [(w.name, w.source) for w in inventory.workflows] == [
        ("coder", "user"),
        ("coder", "builtin"),
        ("research", "builtin"),
    ]
    active = get_active_workflows(inventory)
    assert [(w.name, w.source) for w in active] == [("coder", "user"), ("research", "builtin")]
    coder = active[0]
    assert coder.description == "User override of coder"
    assert coder.path == user_file
    assert coder.file == "coder.workflow.py"
    assert coder.overrides == "builtin"
    assert active[1].overrides is None


def test_entries_are_keyed_by_declared_name(
    tier_dirs: dict[str, Path], write_workflow: Callable[..., Path]
) -> None:
    write_workflow(tier_dirs["builtin_workflows"], "coder", "Builtin coder")
    write_workflow(tier_dirs["user_workflows"], "coder", "Renamed file", stem="my-coder")

    active = get_active_workflows(build_inventory())

    assert len(active) == 1
    assert active[0].file == "my-coder.workflow.py"
    assert active[0].source == "user"


def test_archived_entries_are_listed_but_never_active(
    tier_dirs: dict[str, Path],
    write_workflow: Callable[..., Path],
    write_mcp: Callable[..., Path],
) -> None:
    write_workflow(tier_dirs["archived_workflows"], "old", "Parked")
    write_workflow(tier_dirs["archived_workflows"], "coder", "Old coder")
    write_workflow(tier_dirs["builtin_workflows"], "coder", "Builtin coder")
    write_mcp(tier_dirs["archived_mcps"], "legacy")

    inventory = build_inventory()

    old = find_entry(inventory.workflows, "old")
    assert old is not None
    assert old.archived is True
    assert old.source == "archived"
    assert [w.name for w in get_active_workflows(inventory)] == ["coder"]
    assert get_active_workflows(inventory)[0].overrides is None
    assert find_entry(inventory.workflows, "coder", source="archived") is not None
    assert get_active_mcps(inventory) == []
    assert [m.name for m in inventory.mcp_scripts] == ["legacy"]


def test_broken_files_become_diagnostics(
    tier_dirs: dict[str, Path], write_workflow: Callable[..., Path]
) -> None:
    write_workflow(tier_dirs["user_workflows"], "good")
    (tier_dirs["user_workflows"] / "syntax.workflow.py").write_text("def (:\n", encoding="utf-8")
    (tier_dirs["user_workflows"] / "empty.workflow.py").write_text("x = 1\n", encoding="utf-8")
    (tier_dirs["user_workflows"] / "notes.txt").write_text("ignored", encoding="utf-8")
    (tier_dirs["user_mcps"] / "exits.mcp.py").write_text(
        "import sys\nsys.exit(3)\n", encoding="utf-8"
    )

    inventory = build_inventory()

    assert [w.name for w in inventory.workflows] == ["good"]
    failed = sorted((d.path.name, d.kind, d.source) for d in inventory.diagnostics)
    assert failed == [
        ("empty.workflow.py", "workflow", "user"),
        ("exits.mcp.py", "mcp", "user"),
        ("syntax.workflow.py", "workflow", "user"),
    ]
    assert all(d.error for d in inventory.diagnostics)


def test_missing_directories_are_empty(tmp_path: Path) -> None:
    missing = tmp_path / "does-not-exist"

    inventory = build_inventory(
        workflow_sources=[ScanSource(type="user", directory=missing)],
        mcp_sources=[ScanSource(type="user", directory=missing)],
    )

    assert inventory.workflows == []
    assert inventory.mcp_scripts == []
    assert inventory.diagnostics == []


def test_disabled_and_reprioritized_sources(
    tmp_path: Path, write_workflow: Callable[..., Path]
) -> None:
    first = tmp_path / "first"
    second = tmp_path / "second"
    write_workflow(first, "coder", "From first")
    write_workflow(second, "coder", "From second")

    inventory = build_inventory(
        workflow_sources=[
            ScanSource(type="builtin", directory=first, priority=90),
            ScanSource(type="user", directory=second),
        ],
        mcp_sources=[],
    )
    assert get_active_workflows(inventory)[0].description == "From first"

    inventory = build_inventory(
        workflow_sources=[
            ScanSource(type="builtin", directory=first, priority=90, enabled=False),
            ScanSource(type="user", directory=second),
        ],
        mcp_sources=[],
    )
    assert [w.description for w in inventory.workflows] == ["From second"]


def test_default_install_ships_meta(settings: RuntimeSettings) -> None:
    inventory = build_inventory(settings)

    meta = find_entry(get_active_workflows(inventory), "meta")
    assert meta is not None
    assert meta.source == "builtin"
    assert meta.file == "meta.workflow.py"

    server = find_entry(get_active_mcps(inventory), "meta")
    assert server is not None
    assert server.tools == ["list_workflows", "list_mcps", "run_workflow"]
    assert inventory.diagnostics == []


def test_mcp_dependencies_and_usage(
    tier_dirs: dict[str, Path],
    write_workflow: Callable[..., Path],
    write_mcp: Callable[..., Path],
) -> None:
    write_mcp(tier_dirs["builtin_mcps"], "memory", tools=("store", "recall"))
    write_mcp(tier_dirs["builtin_mcps"], "search")
    write_mcp(tier_dirs["user_mcps"], "unused")
    write_workflow(
        tier_dirs["user_workflows"],
        "coder",
        extra='TOOLS = ["mcp__memory__store", "mcps/search.mcp.py", "mcp__memory__recall"]\n',
    )
    write_workflow(
        tier_dirs["archived_workflows"],
        "stale",
        extra='TOOLS = ["mcp__unused__ping"]\n',
    )

    inventory = build_inventory()

    coder = find_entry(inventory.workflows, "coder")
    assert coder is not None
    assert coder.mcp_dependencies == ["memory", "search"]

    mcps = {m.name: m for m in get_active_mcps(inventory)}
    assert mcps["memory"].tools == ["store", "recall"]
    assert mcps["memory"].referenced_by == ["coder"]
    assert mcps["search"].referenced_by == ["coder"]
    assert mcps["unused"].referenced_by == []
    assert [m.name for m in get_unused_mcps(inventory)] == ["unused"]


def test_extract_mcp_dependencies() -> None:
    text = """
    run("mcps/git-tools.mcp.py")
    allowed = ["mcp__memory__store", "mcp__git-tools__commit", "MCP__Upper__x"]
    """

    assert extract_mcp_dependencies(text) == ["git-tools", "memory", "Upper"]
    assert extract_mcp_dependencies("no references here") == []


def test_serialized_inventory_uses_camel_case_keys(
    tier_dirs: dict[str, Path],
    write_workflow: Callable[..., Path],
    write_mcp: Callable[..., Path],
) -> None:
    write_workflow(tier_dirs["user_workflows"], "coder", extra='DEP = "mcp__memory__x"\n')
    write_mcp(tier_dirs["user_mcps"], "memory")

    dumped = build_inventory().model_dump(mode="json", by_alias=True)

    assert sorted(dumped) == ["diagnostics", "mcpScripts", "workflows"]
    entry = dumped["workflows"][0]
    assert "priority" not in entry
    assert entry["mcpDependencies"] == ["memory"]
    assert dumped["mcpScripts"][0]["referencedBy"] == ["coder"]
    assert entry["source"] == "user"
    assert entry["archived"] is False


def test_inventory_reflects_file_changes(
    tier_dirs: dict[str, Path], write_workflow: Callable[..., Path]
) -> None:
    path = write_workflow(tier_dirs["user_workflows"], "coder", "First")
    assert build_inventory().workflows[0].description == "First"

    write_workflow(tier_dirs["user_workflows"], "coder", "Second")
    assert build_inventory().workflows[0].description == "Second"

    path.unlink()
    assert build_inventory().workflows == []


def test_load_workflow_reports_missing_definition(tmp_path: Path) -> None:
    path = tmp_path / "bad.workflow.py"
    path.write_text("workflow = 42\n", encoding="utf-8")

    with pytest.raises(LoadError) as excinfo:
        load_workflow(path)

    assert excinfo.value.path == path
    assert "bad.workflow.py" in str(excinfo.value)
