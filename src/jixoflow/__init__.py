"""JixoFlow workflow runtime.

Provides:
- workflow definitions with lazily resolved subflows
- an ambient execution context carrying user preferences
- an inventory of workflows and tool-servers across builtin/user/archived tiers
"""

__version__ = "0.1.0"

from jixoflow.config import RuntimeSettings
from jixoflow.context import (
    get_preferred_agent,
    get_retry_config,
    get_workflow_options,
    is_in_context,
    is_workflow_disabled,
    with_preferences,
)
from jixoflow.inventory import build_inventory, get_active_mcps, get_active_workflows
from jixoflow.tools import define_tool, define_tool_server
from jixoflow.workflow import ArgSpec, SubflowRef, create_router, define_workflow

__all__ = [
    "__version__",
    "ArgSpec",
    "RuntimeSettings",
    "SubflowRef",
    "build_inventory",
    "create_router",
    "define_tool",
    "define_tool_server",
    "define_workflow",
    "get_active_mcps",
    "get_active_workflows",
    "get_preferred_agent",
    "get_retry_config",
    "get_workflow_options",
    "is_in_context",
    "is_workflow_disabled",
    "with_preferences",
]
