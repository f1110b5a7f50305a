"""``meta config``: show, export and initialise user preferences."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from jixoflow.config import RuntimeSettings
from jixoflow.context import current_snapshot
from jixoflow.preferences import Preferences, generate_json_schema, get_preferences_store
from jixoflow.preferences.schema import DEFAULT_PREFERENCES_DATA
from jixoflow.workflow import ExecutionHandle, define_workflow

SCHEMA_FILE_NAME = "preferences.schema.json"


def _effective_preferences() -> Preferences:
    snapshot = current_snapshot() or get_preferences_store().snapshot()
    return snapshot.preferences


def render_preferences(preferences: Preferences, settings: RuntimeSettings) -> str:
    lines = ["## Preferences Configuration", ""]
    if settings.preferences_py_file.exists():
        lines.append(f"**Config file**: `{settings.preferences_py_file}` (Python)")
    elif settings.preferences_json_file.exists():
        lines.append(f"**Config file**: `{settings.preferences_json_file}` (JSON)")
    else:
        lines.append("**Config file**: Using defaults (no user config found)")

    ai = preferences.ai
    lines += [
        "",
        "### AI Settings",
        "",
        f"- Default Agent: `{ai.default_agent}`",
        f"- Fallback Chain: {' → '.join(ai.fallback_chain)}",
        f"- Retry: {ai.retry.max_attempts} attempts, "
        f"{ai.retry.initial_delay_ms}ms initial delay, x{ai.retry.backoff_multiplier:g} backoff",
    ]

    if ai.agents:
        lines += ["", "### Agent Configurations", ""]
        for name, agent in ai.agents.items():
            status = "✓" if agent.enabled else "✗"
            lines.append(f"- {status} **{name}**: model=`{agent.model or 'default'}`")

    if preferences.workflows:
        lines += ["", "### Workflow Overrides", ""]
        for name, cfg in preferences.workflows.items():
            parts = []
            if cfg.preferred_agent:
                parts.append(f"agent={cfg.preferred_agent}")
            if cfg.disabled:
                parts.append("disabled")
            lines.append(f"- **{name}**: {', '.join(parts) or '(no overrides)'}")

    if preferences.mcps:
        lines += ["", "### MCP Overrides", ""]
        for name, cfg in preferences.mcps.items():
            lines.append(f"- **{name}**: {'disabled' if cfg.disabled else '(no overrides)'}")

    lines += ["", "---", "Run `meta config --init` to create preferences.json."]
    return "\n".join(lines)


def init_preferences(settings: RuntimeSettings, *, force: bool = False) -> Path | None:
    """Write a starter ``preferences.json`` (and its schema); ``None`` if one already exists."""

    target = settings.preferences_json_file
    if target.exists() and not force:
        return None

    target.parent.mkdir(parents=True, exist_ok=True)
    schema_path = target.parent / SCHEMA_FILE_NAME
    schema_path.write_text(
        json.dumps(generate_json_schema(), indent=2, ensure_ascii=False) + "\n", encoding="utf-8"
    )
    payload = {"$schema": f"./{SCHEMA_FILE_NAME}", **DEFAULT_PREFERENCES_DATA}
    target.write_text(json.dumps(payload, indent=2, ensure_ascii=False) + "\n", encoding="utf-8")
    return target


async def _handler(args: dict[str, Any], handle: ExecutionHandle) -> None:
    settings = RuntimeSettings()

    if args["init"]:
        written = init_preferences(settings, force=args["force"])
        if written is None:
            print(f"preferences.json already exists at: {settings.preferences_json_file}")
            print("Use --force to overwrite.")
        else:
            print(f"Created: {written}")
            print("Edit this file to customize your preferences.")
        return

    if args["schema"]:
        print(json.dumps(generate_json_schema(), indent=2, ensure_ascii=False))
        return

    preferences = _effective_preferences()
    if args["json"]:
        print(json.dumps(preferences.to_json(), indent=2, ensure_ascii=False))
    else:
        print(render_preferences(preferences, settings))


workflow = define_workflow(
    "config",
    "Manage preferences configuration",
    args={
        "json": {"type": "boolean", "description": "Output as JSON", "default": False},
        "schema": {
            "type": "boolean",
            "description": "Print the JSON Schema of preferences.json",
            "default": False,
        },
        "init": {
            "type": "boolean",
            "description": "Write a starter preferences.json",
            "default": False,
        },
        "force": {
            "type": "boolean",
            "alias": "f",
            "description": "Overwrite an existing preferences.json",
            "default": False,
        },
    },
    handler=_handler,
)
