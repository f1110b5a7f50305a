"""``jixoflow`` command-line entrypoint.

Commands:
- ``list``: active workflows and tool-servers (``--all`` includes overridden
  and archived copies, ``--json`` prints the inventory)
- ``run TARGET [ARGS...]``: run a workflow by name or by ``*.workflow.py`` path
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from pydantic import ValidationError

from jixoflow import __version__
from jixoflow.config import WORKFLOW_SUFFIX, RuntimeSettings
from jixoflow.errors import LoadError
from jixoflow.inventory import (
    Inventory,
    InventoryEntry,
    build_inventory,
    find_entry,
    get_active_mcps,
    get_active_workflows,
    load_workflow,
)
from jixoflow.logging import configure_logging
from jixoflow.preferences import PreferencesStore, set_preferences_store

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_USAGE = 2
EXIT_DISABLED = 3
EXIT_NOT_FOUND = 4


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="jixoflow",
        description="Run and inspect composable JixoFlow workflows",
    )
    parser.add_argument("--version", action="version", version=f"jixoflow {__version__}")

    subparsers = parser.add_subparsers(dest="command", required=True)

    list_cmd = subparsers.add_parser("list", help="List workflows and tool-servers")
    list_cmd.add_argument("--json", action="store_true", help="Print the inventory as JSON")
    list_cmd.add_argument(
        "--all",
        action="store_true",
        help="Include overridden and archived copies, not just the active ones",
    )

    run_cmd = subparsers.add_parser("run", help="Run a workflow")
    run_cmd.add_argument("target", help="Workflow name, or path to a *.workflow.py file")
    run_cmd.add_argument(
        "args",
        nargs=argparse.REMAINDER,
        help="Arguments passed to the workflow (subflow path, options)",
    )

    return parser


def _format_entry(entry: InventoryEntry) -> str:
    tags = [entry.source]
    if entry.overrides:
        tags.append(f"overrides {entry.overrides}")
    return f"  {entry.name:<24} [{', '.join(tags)}] {entry.description}"


def _print_inventory(inventory: Inventory, *, show_all: bool) -> None:
    workflows = inventory.workflows if show_all else get_active_workflows(inventory)
    mcps = inventory.mcp_scripts if show_all else get_active_mcps(inventory)

    print("Workflows:")
    for workflow in workflows:
        print(_format_entry(workflow))
    print()
    print("MCPs:")
    for mcp in mcps:
        print(_format_entry(mcp))

    for diagnostic in inventory.diagnostics:
        print(f"warning: {diagnostic.error}", file=sys.stderr)


def _is_path_target(target: str) -> bool:
    return target.endswith(WORKFLOW_SUFFIX) or "/" in target or Path(target).is_file()


def _run(target: str, argv: list[str], settings: RuntimeSettings, store: PreferencesStore) -> int:
    if _is_path_target(target):
        path = Path(target).expanduser()
        if not path.is_file():
            print(f"No such workflow file: {path}", file=sys.stderr)
            return EXIT_NOT_FOUND
    else:
        entry = find_entry(get_active_workflows(build_inventory(settings)), target)
        if entry is None:
            print(f"Unknown workflow: {target}", file=sys.stderr)
            print("Run 'jixoflow list' to see available workflows.", file=sys.stderr)
            return EXIT_NOT_FOUND
        path = entry.path

    definition = load_workflow(path)
    if store.is_workflow_disabled(definition.name):
        print(f"Workflow '{definition.name}' is disabled in preferences", file=sys.stderr)
        return EXIT_DISABLED

    logger.debug("Running workflow", extra={"workflow": definition.name, "path": str(path)})
    return definition.run(argv)


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        settings = RuntimeSettings()
    except ValidationError as e:
        # Logging isn't configured yet; keep it simple and actionable.
        print("Configuration error (check your .env):", file=sys.stderr)
        print(e, file=sys.stderr)
        return EXIT_USAGE

    configure_logging(settings.log_level)

    store = PreferencesStore.from_settings(settings)
    set_preferences_store(store)

    try:
        if args.command == "list":
            inventory = build_inventory(settings)
            if args.json:
                if args.all:
                    print(inventory.model_dump_json(indent=2, by_alias=True))
                else:
                    active = Inventory(
                        workflows=get_active_workflows(inventory),
                        mcp_scripts=get_active_mcps(inventory),
                        diagnostics=inventory.diagnostics,
                    )
                    print(active.model_dump_json(indent=2, by_alias=True))
            else:
                _print_inventory(inventory, show_all=args.all)
            return EXIT_OK

        if args.command == "run":
            return _run(args.target, list(args.args), settings, store)

        logger.error("Unknown command", extra={"command": args.command})
        return EXIT_USAGE

    except LoadError as e:
        logger.error("Workflow failed to load", extra={"path": str(e.path), "error": str(e)})
        print(str(e), file=sys.stderr)
        return EXIT_FAILURE

    except Exception:
        logger.exception("Command failed")
        return EXIT_FAILURE


if __name__ == "__main__":
    raise SystemExit(main())
