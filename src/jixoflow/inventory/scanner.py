"""Source tiers and directory scanning.

Tiers, highest precedence first:

- ``user``     (80) - the user's own workflows, overriding builtin ones by name
- ``builtin``  (40) - shipped with the package
- ``archived`` (0)  - parked copies, listed but never active
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Literal

from jixoflow.config import MCP_SUFFIX, WORKFLOW_SUFFIX, RuntimeSettings

SourceType = Literal["user", "builtin", "archived"]

SOURCE_PRIORITY: dict[str, int] = {
    "user": 80,
    "builtin": 40,
    "archived": 0,
}


@dataclass(frozen=True, slots=True)
class ScanSource:
    type: SourceType
    directory: Path
    priority: int | None = None
    enabled: bool = True

    @property
    def effective_priority(self) -> int:
        return self.priority if self.priority is not None else SOURCE_PRIORITY[self.type]


@dataclass(frozen=True, slots=True)
class ScannedFile:
    path: Path
    source: SourceType
    priority: int

    @property
    def file(self) -> str:
        return self.path.name


def scan_directory(directory: Path, suffix: str) -> list[Path]:
    """Files directly in ``directory`` ending with ``suffix``; none if it does not exist."""

    if not directory.is_dir():
        return []
    return sorted(p for p in directory.iterdir() if p.is_file() and p.name.endswith(suffix))


def scan_source(source: ScanSource, suffix: str) -> list[ScannedFile]:
    if not source.enabled:
        return []
    priority = source.effective_priority
    return [
        ScannedFile(path=path, source=source.type, priority=priority)
        for path in scan_directory(source.directory, suffix)
    ]


def standard_workflow_sources(settings: RuntimeSettings) -> list[ScanSource]:
    return [
        ScanSource(type="builtin", directory=settings.builtin_workflows_dir),
        ScanSource(type="user", directory=settings.user_workflows_dir),
        ScanSource(type="archived", directory=settings.archive_workflows_dir),
    ]


def standard_mcp_sources(settings: RuntimeSettings) -> list[ScanSource]:
    return [
        ScanSource(type="builtin", directory=settings.builtin_mcps_dir),
        ScanSource(type="user", directory=settings.user_mcps_dir),
        ScanSource(type="archived", directory=settings.archive_mcps_dir),
    ]


def suffix_for(kind: Literal["workflow", "mcp"]) -> str:
    return WORKFLOW_SUFFIX if kind == "workflow" else MCP_SUFFIX
