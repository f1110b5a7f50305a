"""Hierarchical help text for workflows (``--help`` and ``--help=all``)."""

from __future__ import annotations

from typing import TYPE_CHECKING

from jixoflow.workflow.args import ArgSpec

if TYPE_CHECKING:
    from jixoflow.workflow.definition import WorkflowDefinition


def format_arg(name: str, spec: ArgSpec) -> str:
    flag = f"  --{name}"
    if spec.alias:
        flag += f", -{spec.alias}" if len(spec.alias) == 1 else f", --{spec.alias}"
    parts = [flag, f"<{spec.type}>"]
    if spec.description:
        parts.append(spec.description)
    if spec.required:
        parts.append("(required)")
    if spec.default is not None:
        parts.append(f"[default: {spec.default}]")
    return "  ".join(parts)


async def _render(
    workflow: WorkflowDefinition,
    path: tuple[str, ...],
    *,
    show_all: bool,
    indent: int,
    printed: set[int],
    lines: list[str],
) -> None:
    # Local import: definition imports this module.
    from jixoflow.workflow.definition import SubflowResolver

    prefix = "  " * indent

    # A workflow reachable twice (or through a cycle) is only expanded once.
    if id(workflow) in printed:
        lines.append(f"{prefix}{workflow.name}: (see above)")
        return
    printed.add(id(workflow))

    if indent == 0:
        lines.append(f"{workflow.name} v{workflow.version} - {workflow.description}")
        lines.append("")
        lines.append(f"Usage: {' '.join(path)} [subflow...] [options]")
    else:
        lines.append(f"{prefix}{workflow.name} - {workflow.description}")

    if workflow.args:
        lines.append("")
        lines.append(f"{prefix}Options:")
        for name, spec in workflow.args.items():
            lines.append(f"{prefix}{format_arg(name, spec)}")

    if indent == 0:
        lines.append("")
        lines.append("Built-in:")
        lines.append("  --help, -h      Show help (use --help=all for full tree)")
        lines.append("  --version       Show version")

    subflows = await SubflowResolver(workflow.subflows).all()
    if subflows:
        lines.append("")
        lines.append(f"{prefix}Subflows:")
        for sub in subflows:
            if show_all:
                lines.append("")
                await _render(
                    sub,
                    (*path, sub.name),
                    show_all=True,
                    indent=indent + 1,
                    printed=printed,
                    lines=lines,
                )
            else:
                lines.append(f"{prefix}  {sub.name}  {sub.description}")

    if indent == 0 and workflow.examples:
        lines.append("")
        lines.append("Examples:")
        for command, description in workflow.examples:
            lines.append(f"  {command}")
            lines.append(f"    {description}")

    if indent == 0 and workflow.notes:
        lines.append("")
        lines.append(workflow.notes)


async def render_help(
    workflow: WorkflowDefinition,
    path: tuple[str, ...] | None = None,
    *,
    show_all: bool = False,
) -> str:
    """Help for ``workflow``; with ``show_all`` every subflow is expanded recursively."""

    lines: list[str] = []
    await _render(
        workflow,
        path or (workflow.name,),
        show_all=show_all,
        indent=0,
        printed=set(),
        lines=lines,
    )
    return "\n".join(lines)
