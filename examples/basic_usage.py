#!/usr/bin/env python3
"""Composing workflows programmatically.

This demonstrates the runtime pieces working together:

* a router (``review``) with two subflows, one loaded lazily
* handlers reading ambient preferences (preferred agent, workflow options)
* a flaky step wrapped in the ambient retry policy
* a parent calling a subflow with ``execute()``

Run it directly; it routes on its own arguments:

    python examples/basic_usage.py --help=all
    python examples/basic_usage.py diff --path src/ --strict
    python examples/basic_usage.py summary -p "Explain the change"

Put this file in ``~/.jixoflow/user/workflows/`` as ``review.workflow.py`` to
make it available as ``jixoflow run review``.
"""

from __future__ import annotations

import random
from typing import Any

from jixoflow import (
    define_workflow,
    get_preferred_agent,
    get_workflow_options,
)
from jixoflow.retry import with_retry
from jixoflow.workflow import ExecutionHandle, SubflowRef


async def _flaky_fetch(path: str) -> str:
    if random.random() < 0.3:
        raise ConnectionError("transient network failure")
    return f"diff of {path}"


async def _diff(args: dict[str, Any], handle: ExecutionHandle) -> str:
    diff = await with_retry(lambda: _flaky_fetch(args["path"]), "network_error")
    mode = "strict" if args["strict"] else "relaxed"
    print(f"[{get_preferred_agent()}] reviewing {diff} ({mode})")
    return diff


diff_workflow = define_workflow(
    "diff",
    "Review the changes under a path",
    args={
        "path": {"type": "string", "description": "Path to review", "default": "."},
        "strict": {"type": "boolean", "description": "Fail on warnings", "default": False},
    },
    handler=_diff,
)


async def _summary(args: dict[str, Any], handle: ExecutionHandle) -> None:
    diff = await diff_workflow.execute({"path": "."})
    options = get_workflow_options()
    style = options.get("style", "brief")
    print(f"[{get_preferred_agent()}] {style} summary of {diff}: {args['prompt'] or 'no prompt'}")


def _load_summary():  # lazy: built on first lookup
    return define_workflow(
        "summary",
        "Summarise a review",
        args={"prompt": {"type": "string", "alias": "p", "description": "Extra instructions"}},
        handler=_summary,
    )


workflow = define_workflow(
    "review",
    "Review code with the preferred agent",
    subflows=[diff_workflow, SubflowRef(_load_summary, name="summary")],
    examples=[
        ("review diff --path src/", "Review changes under src/"),
        ("review summary -p 'focus on tests'", "Summarise with extra instructions"),
    ],
    auto_start=__name__ == "__main__",
)
