"""Error taxonomy for the workflow runtime.

- DefinitionError: a workflow declaration is malformed.
- ArgValidationError: call-time input could not be coerced to the declared type.
- UsageError: the command line could not be parsed (unknown option, missing
  value, missing required argument).
- LoadError: an inventory candidate file failed to import. The inventory
  scan records it as a diagnostic and keeps going.
- EntryNotFound: a named workflow or tool-server is not in the inventory.
- NotInContextError: strict context access outside an execution scope.
- PreferencesNotLoaded: synchronous preferences access before the first load.

Errors raised by a workflow handler are never wrapped; they reach the caller
of ``execute()`` unchanged.
"""

from __future__ import annotations

from pathlib import Path


class JixoflowError(Exception):
    """Base class for runtime errors."""


class DefinitionError(JixoflowError, ValueError):
    pass


class ArgValidationError(JixoflowError, ValueError):
    def __init__(self, arg_name: str, message: str) -> None:
        super().__init__(f"Invalid value for --{arg_name}: {message}")
        self.arg_name = arg_name


class UsageError(JixoflowError):
    pass


class LoadError(JixoflowError):
    def __init__(self, path: Path, message: str) -> None:
        super().__init__(f"Failed to load {path}: {message}")
        self.path = path


class EntryNotFound(JixoflowError, LookupError):
    pass


class NotInContextError(JixoflowError, RuntimeError):
    pass


class PreferencesNotLoaded(JixoflowError, RuntimeError):
    pass
