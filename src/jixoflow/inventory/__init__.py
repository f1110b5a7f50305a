"""Discovery of workflows and tool-servers across builtin/user/archived tiers."""

from jixoflow.inventory.loader import load_module_from_path, load_tool_server, load_workflow
from jixoflow.inventory.resolver import (
    Inventory,
    InventoryEntry,
    LoadDiagnostic,
    McpEntry,
    WorkflowEntry,
    build_inventory,
    extract_mcp_dependencies,
    find_entry,
    get_active_mcps,
    get_active_workflows,
    get_unused_mcps,
)
from jixoflow.inventory.scanner import (
    SOURCE_PRIORITY,
    ScanSource,
    SourceType,
    scan_directory,
    scan_source,
    standard_mcp_sources,
    standard_workflow_sources,
)

__all__ = [
    "SOURCE_PRIORITY",
    "Inventory",
    "InventoryEntry",
    "LoadDiagnostic",
    "McpEntry",
    "ScanSource",
    "SourceType",
    "WorkflowEntry",
    "build_inventory",
    "extract_mcp_dependencies",
    "find_entry",
    "get_active_mcps",
    "get_active_workflows",
    "get_unused_mcps",
    "load_module_from_path",
    "load_tool_server",
    "load_workflow",
    "scan_directory",
    "scan_source",
    "standard_mcp_sources",
    "standard_workflow_sources",
]
