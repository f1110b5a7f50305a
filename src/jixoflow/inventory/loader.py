"""Loading ``*.workflow.py`` / ``*.mcp.py`` files by path.

Each load imports the file under a fresh, unique module name that is never
left in ``sys.modules``, so repeated scans always see the current file
contents and two files with the same stem never collide. The module's
``__name__`` is not ``"__main__"``, so ``auto_start`` does not fire.
"""

from __future__ import annotations

import importlib.util
import sys
import uuid
from pathlib import Path
from types import ModuleType

from jixoflow.errors import LoadError
from jixoflow.tools import ToolServerDefinition
from jixoflow.workflow.definition import WorkflowDefinition


def load_module_from_path(path: Path) -> ModuleType:
    stem = path.name.split(".", 1)[0].replace("-", "_")
    module_name = f"_jixoflow_{stem}_{uuid.uuid4().hex}"
    spec = importlib.util.spec_from_file_location(module_name, path)
    if spec is None or spec.loader is None:
        raise LoadError(path, "not an importable Python file")

    module = importlib.util.module_from_spec(spec)
    # Registered only while the module body runs.
    sys.modules[module_name] = module
    try:
        spec.loader.exec_module(module)
    except SystemExit as e:
        raise LoadError(path, f"module called sys.exit({e.code})") from e
    except Exception as e:
        raise LoadError(path, f"{type(e).__name__}: {e}") from e
    finally:
        sys.modules.pop(module_name, None)
    return module


def load_workflow(path: Path) -> WorkflowDefinition:
    """Import ``path`` and return its module-level ``workflow``."""

    module = load_module_from_path(path)
    definition = getattr(module, "workflow", None)
    if not isinstance(definition, WorkflowDefinition):
        raise LoadError(path, "no module-level 'workflow' defined with define_workflow()")
    return definition


def load_tool_server(path: Path) -> ToolServerDefinition:
    """Import ``path`` and return its module-level ``server``."""

    module = load_module_from_path(path)
    server = getattr(module, "server", None)
    if not isinstance(server, ToolServerDefinition):
        raise LoadError(path, "no module-level 'server' defined with define_tool_server()")
    return server
