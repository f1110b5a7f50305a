"""Test configuration and fixtures."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterator
from pathlib import Path

import pytest

from jixoflow.config import RuntimeSettings
from jixoflow.preferences import StaticPreferences, set_preferences_store

_ENV_VARS = (
    "JIXOFLOW_HOME",
    "LOG_LEVEL",
    "JIXOFLOW_BUILTIN_WORKFLOWS_DIR",
    "JIXOFLOW_BUILTIN_MCPS_DIR",
    "SESSIONS_DIR",
)


@pytest.fixture(autouse=True)
def runtime_home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Iterator[Path]:
    """Isolate every test in its own runtime home and reset the process-wide store."""
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)

    home = tmp_path / "jixoflow-home"
    monkeypatch.setenv("JIXOFLOW_HOME", str(home))
    monkeypatch.chdir(tmp_path)

    previous = set_preferences_store(None)
    yield home
    set_preferences_store(previous)


@pytest.fixture
def root_logging() -> Iterator[logging.Logger]:
    """Restore root logger handlers and level after tests that call configure_logging()."""
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield root
    for handler in list(root.handlers):
        root.removeHandler(handler)
    for handler in handlers:
        root.addHandler(handler)
    root.setLevel(level)


@pytest.fixture
def settings(runtime_home: Path) -> RuntimeSettings:
    """Provide settings pointing at the temporary runtime home."""
    return RuntimeSettings()


@pytest.fixture
def preferences() -> StaticPreferences:
    """Install an in-memory preferences source (defaults unless replaced)."""
    source = StaticPreferences()
    set_preferences_store(source)
    return source


@pytest.fixture
def tier_dirs(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> dict[str, Path]:
    """Empty builtin/user/archived workflow and MCP directories wired into the environment."""
    builtin = tmp_path / "builtin"
    monkeypatch.setenv("JIXOFLOW_BUILTIN_WORKFLOWS_DIR", str(builtin / "workflows"))
    monkeypatch.setenv("JIXOFLOW_BUILTIN_MCPS_DIR", str(builtin / "mcps"))
    settings = RuntimeSettings()

    dirs = {
        "builtin_workflows": builtin / "workflows",
        "builtin_mcps": builtin / "mcps",
        "user_workflows": settings.user_workflows_dir,
        "user_mcps": settings.user_mcps_dir,
        "archived_workflows": settings.archive_workflows_dir,
        "archived_mcps": settings.archive_mcps_dir,
    }
    for path in dirs.values():
        path.mkdir(parents=True, exist_ok=True)
    return dirs


WORKFLOW_TEMPLATE = '''\
from jixoflow import define_workflow


async def _handler(args, handle):
    print({message!r})


workflow = define_workflow({name!r}, {description!r}, handler=_handler)
{extra}
'''

MCP_TEMPLATE = '''\
from jixoflow import define_tool, define_tool_server

server = define_tool_server(
    {name!r},
    {description!r},
    tools=[{tools}],
)
'''


@pytest.fixture
def write_workflow() -> Callable[..., Path]:
    """Write a ``<stem>.workflow.py`` file declaring a workflow that prints a message."""

    def _write(
        directory: Path,
        name: str,
        description: str = "",
        *,
        stem: str | None = None,
        message: str | None = None,
        extra: str = "",
    ) -> Path:
        directory.mkdir(parents=True, exist_ok=True)
        path = directory / f"{stem or name}.workflow.py"
        path.write_text(
            WORKFLOW_TEMPLATE.format(
                name=name,
                description=description or f"{name} workflow",
                message=message or f"{name} ran",
                extra=extra,
            ),
            encoding="utf-8",
        )
        return path

    return _write


@pytest.fixture
def write_mcp() -> Callable[..., Path]:
    """Write a ``<name>.mcp.py`` file declaring a tool-server."""

    def _write(
        directory: Path,
        name: str,
        description: str = "",
        tools: tuple[str, ...] = ("ping",),
    ) -> Path:
        directory.mkdir(parents=True, exist_ok=True)
        path = directory / f"{name}.mcp.py"
        path.write_text(
            MCP_TEMPLATE.format(
                name=name,
                description=description or f"{name} server",
                tools=", ".join(f"define_tool({t!r})" for t in tools),
            ),
            encoding="utf-8",
        )
        return path

    return _write
