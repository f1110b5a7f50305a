"""Workflow argument declarations and parsing.

Two entry points share the same declarations:

- :func:`parse_args` coerces a mapping of call-time values (``execute()``).
  It is permissive: unknown keys are ignored and missing arguments resolve to
  their default or ``None``.
- :func:`build_argument_parser` turns the declarations into an ``argparse``
  parser for the command-line path (``run()``), which is strict about
  unknown options.
"""

from __future__ import annotations

import argparse
import math
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Literal, NoReturn

from jixoflow.errors import ArgValidationError, DefinitionError, UsageError

ArgType = Literal["string", "number", "boolean"]

ARG_TYPES: frozenset[str] = frozenset({"string", "number", "boolean"})
POSITIONAL_KEY = "_"

# Consumed by run() before argument parsing.
RESERVED_NAMES: frozenset[str] = frozenset({"help", "h", "version", POSITIONAL_KEY})

_TRUE_STRINGS = frozenset({"true", "1", "yes", "on"})
_FALSE_STRINGS = frozenset({"false", "0", "no", "off", ""})


@dataclass(frozen=True, slots=True)
class ArgSpec:
    type: ArgType = "string"
    alias: str | None = None
    description: str | None = None
    default: Any = None
    required: bool = False

    @classmethod
    def from_value(cls, name: str, value: ArgSpec | Mapping[str, Any]) -> ArgSpec:
        """Accept an ``ArgSpec`` or a plain mapping like ``{"type": "string", "alias": "p"}``."""

        if isinstance(value, ArgSpec):
            spec = value
        elif isinstance(value, Mapping):
            unknown = set(value) - {"type", "alias", "description", "default", "required"}
            if unknown:
                raise DefinitionError(
                    f"Argument '{name}' has unknown keys: {', '.join(sorted(unknown))}"
                )
            spec = cls(**value)
        else:
            raise DefinitionError(
                f"Argument '{name}' must be an ArgSpec or a mapping, got {type(value).__name__}"
            )

        if spec.type not in ARG_TYPES:
            raise DefinitionError(
                f"Argument '{name}' has unsupported type {spec.type!r} "
                f"(expected one of: {', '.join(sorted(ARG_TYPES))})"
            )
        if spec.alias is not None and (not isinstance(spec.alias, str) or not spec.alias):
            raise DefinitionError(f"Argument '{name}' has an empty alias")
        if spec.default is not None:
            try:
                coerce_value(spec.type, spec.default)
            except ValueError as e:
                raise DefinitionError(f"Argument '{name}' has an invalid default: {e}") from e
        return spec

    def coerce(self, name: str, value: Any) -> Any:
        try:
            return coerce_value(self.type, value)
        except ValueError as e:
            raise ArgValidationError(name, str(e)) from e


def coerce_value(arg_type: str, value: Any) -> Any:
    """Convert ``value`` to ``arg_type``; raises ``ValueError`` when it cannot."""

    if arg_type == "boolean":
        if isinstance(value, bool):
            return value
        if isinstance(value, int) and value in (0, 1):
            return bool(value)
        if isinstance(value, str):
            lowered = value.strip().lower()
            if lowered in _TRUE_STRINGS:
                return True
            if lowered in _FALSE_STRINGS:
                return False
        raise ValueError(f"expected a boolean, got {value!r}")

    if arg_type == "number":
        if isinstance(value, bool):
            raise ValueError(f"expected a number, got {value!r}")
        if isinstance(value, (int, float)):
            number: int | float = value
        elif isinstance(value, str):
            text = value.strip()
            try:
                number = int(text)
            except ValueError:
                try:
                    number = float(text)
                except ValueError:
                    raise ValueError(f"expected a number, got {value!r}") from None
        else:
            raise ValueError(f"expected a number, got {value!r}")
        if isinstance(number, float) and math.isnan(number):
            raise ValueError(f"expected a number, got {value!r}")
        return number

    if isinstance(value, (str, int, float, bool)):
        return str(value)
    raise ValueError(f"expected a string, got {type(value).__name__}")


def normalize_arg_specs(
    args: Mapping[str, ArgSpec | Mapping[str, Any]] | None,
) -> Mapping[str, ArgSpec]:
    """Validate declarations and return them as a read-only mapping."""

    if args is None:
        return MappingProxyType({})
    if not isinstance(args, Mapping):
        raise DefinitionError("args must be a mapping of argument name to spec")

    specs: dict[str, ArgSpec] = {}
    seen_aliases: dict[str, str] = {}
    for name, value in args.items():
        if not isinstance(name, str) or not name:
            raise DefinitionError("Argument names must be non-empty strings")
        if name in RESERVED_NAMES:
            raise DefinitionError(f"Argument name '{name}' is reserved")
        spec = ArgSpec.from_value(name, value)
        if spec.alias is not None:
            if spec.alias in RESERVED_NAMES:
                raise DefinitionError(f"Alias '{spec.alias}' of argument '{name}' is reserved")
            other = seen_aliases.get(spec.alias)
            if other is not None or spec.alias in args:
                clash = other or spec.alias
                raise DefinitionError(
                    f"Alias '{spec.alias}' of argument '{name}' clashes with '{clash}'"
                )
            seen_aliases[spec.alias] = name
        specs[name] = spec
    return MappingProxyType(specs)


def _positionals(value: Any) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, Sequence):
        return [str(item) for item in value]
    raise ArgValidationError(POSITIONAL_KEY, "positional arguments must be a list")


def parse_args(
    raw: Mapping[str, Any] | None,
    specs: Mapping[str, ArgSpec],
) -> dict[str, Any]:
    """Coerce ``raw`` against ``specs``.

    Every declared argument is present in the result: the supplied value
    (looked up by name, then alias), else its default, else ``None``.
    Positional values are kept under ``"_"``.
    """

    raw = raw or {}
    result: dict[str, Any] = {POSITIONAL_KEY: _positionals(raw.get(POSITIONAL_KEY))}

    for name, spec in specs.items():
        value = raw.get(name)
        if value is None and spec.alias is not None:
            value = raw.get(spec.alias)
        if value is None:
            result[name] = spec.default
        else:
            result[name] = spec.coerce(name, value)
    return result


def missing_required(parsed: Mapping[str, Any], specs: Mapping[str, ArgSpec]) -> list[str]:
    return [name for name, spec in specs.items() if spec.required and parsed.get(name) is None]


class _ArgvParser(argparse.ArgumentParser):
    def error(self, message: str) -> NoReturn:
        raise UsageError(message)


def build_argument_parser(prog: str, specs: Mapping[str, ArgSpec]) -> argparse.ArgumentParser:
    """``argparse`` parser for ``specs``.

    Options are ``--name`` (plus ``-a`` for single-letter aliases, ``--alias``
    otherwise). Booleans also accept ``--no-name``. Values are left as strings
    and absent options as ``None`` so that :func:`parse_args` applies
    coercion and defaults exactly as ``execute()`` does.
    """

    parser = _ArgvParser(prog=prog, add_help=False, allow_abbrev=False)
    for name, spec in specs.items():
        flags = [f"--{name}"]
        if spec.alias is not None:
            flags.append(f"-{spec.alias}" if len(spec.alias) == 1 else f"--{spec.alias}")
        if spec.type == "boolean":
            parser.add_argument(
                *flags, dest=name, action=argparse.BooleanOptionalAction, default=None
            )
        else:
            parser.add_argument(*flags, dest=name, default=None, metavar=spec.type.upper())
    parser.add_argument(POSITIONAL_KEY, nargs="*", default=[])
    return parser


def parse_argv(argv: Sequence[str], prog: str, specs: Mapping[str, ArgSpec]) -> dict[str, Any]:
    """Parse command-line tokens into coerced values.

    Raises ``UsageError`` for unknown options or missing required arguments
    and ``ArgValidationError`` for values that fail coercion.
    """

    namespace = build_argument_parser(prog, specs).parse_intermixed_args(list(argv))
    raw = {key: value for key, value in vars(namespace).items() if value is not None}
    parsed = parse_args(raw, specs)

    missing = missing_required(parsed, specs)
    if missing:
        raise UsageError(f"Missing required argument: --{missing[0]}")
    return parsed
