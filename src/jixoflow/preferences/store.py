"""Process-wide preferences store.

Preferences are read from the user tier, in order:
1. ``user/preferences.py`` - a module exposing ``PREFERENCES`` (or ``preferences``)
2. ``user/preferences.json``

and deep-merged over the defaults. A source that fails to load is logged and
ignored; the store keeps serving the last good preferences (or the defaults).

The store is read-mostly. Reloads replace the cached object; snapshots that
are already in use keep the preferences they were created from.
"""

from __future__ import annotations

import asyncio
import importlib.util
import json
import logging
import sys
import uuid
from collections.abc import Callable, Mapping
from pathlib import Path
from typing import Any, Protocol

from pydantic import ValidationError

from jixoflow.config import RuntimeSettings
from jixoflow.errors import PreferencesNotLoaded
from jixoflow.preferences.schema import (
    DEFAULT_AGENT,
    DEFAULT_FALLBACK_CHAIN,
    DEFAULT_PREFERENCES_DATA,
    AgentConfig,
    Preferences,
    RetryConfig,
)
from jixoflow.preferences.snapshot import ContextSnapshot

logger = logging.getLogger(__name__)

POLL_INTERVAL_SECONDS = 10.0
RETRY_INTERVAL_SECONDS = 3.0

PreferencesListener = Callable[[Preferences], None]


class PreferencesSource(Protocol):
    """Anything that can hand out a snapshot of the current preferences."""

    def snapshot(self) -> ContextSnapshot: ...


class _SourceError(Exception):
    pass


def deep_merge(target: Mapping[str, Any], source: Mapping[str, Any]) -> dict[str, Any]:
    """Recursively merge ``source`` over ``target``; mappings merge, everything else replaces."""

    result: dict[str, Any] = dict(target)
    for key, value in source.items():
        if value is None:
            continue
        existing = result.get(key)
        if isinstance(value, Mapping) and isinstance(existing, Mapping):
            result[key] = deep_merge(existing, value)
        else:
            result[key] = value
    return result


def build_preferences(data: Mapping[str, Any] | Preferences | None) -> Preferences:
    """Validate user data merged over the defaults."""

    if data is None:
        return Preferences.model_validate(DEFAULT_PREFERENCES_DATA)
    if isinstance(data, Preferences):
        data = data.to_json()
    return Preferences.model_validate(deep_merge(DEFAULT_PREFERENCES_DATA, data))


class StaticPreferences:
    """In-memory preferences source, for tests and embedding."""

    def __init__(self, data: Mapping[str, Any] | Preferences | None = None) -> None:
        self._preferences = build_preferences(data)

    @property
    def preferences(self) -> Preferences:
        return self._preferences

    def replace(self, data: Mapping[str, Any] | Preferences | None) -> None:
        self._preferences = build_preferences(data)

    def snapshot(self) -> ContextSnapshot:
        return ContextSnapshot.from_preferences(self._preferences)


class PreferencesStore:
    """Loads, caches and (optionally) hot-reloads user preferences."""

    def __init__(self, py_path: Path, json_path: Path) -> None:
        self.py_path = py_path
        self.json_path = json_path
        self.last_error: str | None = None
        self.loaded_from: Path | None = None

        self._cached: Preferences | None = None
        self._listeners: list[PreferencesListener] = []
        self._poll_task: asyncio.Task[None] | None = None

    @classmethod
    def from_settings(cls, settings: RuntimeSettings) -> PreferencesStore:
        return cls(py_path=settings.preferences_py_file, json_path=settings.preferences_json_file)

    # -- loading ---------------------------------------------------------------

    def _load_py(self) -> Mapping[str, Any] | Preferences:
        module_name = f"_jixoflow_user_preferences_{uuid.uuid4().hex}"
        spec = importlib.util.spec_from_file_location(module_name, self.py_path)
        if spec is None or spec.loader is None:
            raise _SourceError(f"Cannot import {self.py_path}")
        module = importlib.util.module_from_spec(spec)
        sys.modules[module_name] = module
        try:
            spec.loader.exec_module(module)
        except Exception as e:
            raise _SourceError(f"{self.py_path}: {e}") from e
        finally:
            sys.modules.pop(module_name, None)

        value = getattr(module, "PREFERENCES", None)
        if value is None:
            value = getattr(module, "preferences", None)
        if not isinstance(value, (Mapping, Preferences)):
            raise _SourceError(f"{self.py_path} must define a PREFERENCES mapping")
        return value

    def _load_json(self) -> Mapping[str, Any]:
        try:
            raw = json.loads(self.json_path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            raise _SourceError(f"{self.json_path}: {e}") from e
        if raw is None:
            return {}
        if not isinstance(raw, dict):
            raise _SourceError(f"{self.json_path}: expected a JSON object")
        return raw

    def _load_once(self) -> tuple[Preferences, Path | None]:
        if self.py_path.exists():
            data: Mapping[str, Any] | Preferences | None = self._load_py()
            source: Path | None = self.py_path
        elif self.json_path.exists():
            data = self._load_json()
            source = self.json_path
        else:
            data, source = None, None

        try:
            return build_preferences(data), source
        except ValidationError as e:
            raise _SourceError(f"{source}: {e}") from e

    def _replace(self, preferences: Preferences, source: Path | None) -> None:
        previous = self._cached
        self._cached = preferences
        self.loaded_from = source
        self.last_error = None
        if previous is not None and previous != preferences:
            self._notify(preferences)

    def load(self, force_reload: bool = False) -> Preferences:
        """Return the cached preferences, loading them on first use.

        Never raises: on failure the previous (or default) preferences are kept.
        """

        if self._cached is not None and not force_reload:
            return self._cached

        try:
            preferences, source = self._load_once()
        except _SourceError as e:
            self.last_error = str(e)
            logger.warning(
                "Failed to load preferences; keeping previous values",
                extra={"error": str(e)},
            )
            if self._cached is None:
                self._cached = build_preferences(None)
            return self._cached

        self._replace(preferences, source)
        logger.debug(
            "Preferences loaded",
            extra={"source": str(source) if source else "defaults"},
        )
        return preferences

    def get(self) -> Preferences:
        """Synchronous access; ``load()`` must have been called first."""

        if self._cached is None:
            raise PreferencesNotLoaded("Preferences not loaded. Call load() first.")
        return self._cached

    def clear_cache(self) -> None:
        self._cached = None
        self.loaded_from = None

    def snapshot(self) -> ContextSnapshot:
        return ContextSnapshot.from_preferences(self.load())

    # -- change listeners -------------------------------------------------------

    def on_change(self, listener: PreferencesListener) -> None:
        if listener not in self._listeners:
            self._listeners.append(listener)

    def off_change(self, listener: PreferencesListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _notify(self, preferences: Preferences) -> None:
        for listener in list(self._listeners):
            try:
                listener(preferences)
            except Exception:
                logger.exception("Preferences listener failed")

    # -- polling ----------------------------------------------------------------

    @property
    def is_polling(self) -> bool:
        return self._poll_task is not None and not self._poll_task.done()

    def start_polling(
        self,
        interval: float = POLL_INTERVAL_SECONDS,
        retry_interval: float = RETRY_INTERVAL_SECONDS,
    ) -> None:
        """Reload every ``interval`` seconds; retry every ``retry_interval`` after a failure.

        Must be called from a running event loop.
        """

        if self.is_polling:
            return
        loop = asyncio.get_running_loop()
        self._poll_task = loop.create_task(self._poll(interval, retry_interval))

    def stop_polling(self) -> None:
        if self._poll_task is not None:
            self._poll_task.cancel()
            self._poll_task = None

    async def _poll(self, interval: float, retry_interval: float) -> None:
        while True:
            while True:
                try:
                    preferences, source = await asyncio.to_thread(self._load_once)
                except _SourceError as e:
                    self.last_error = str(e)
                    logger.warning(
                        "Preferences reload failed; retrying",
                        extra={"error": str(e), "retry_in_seconds": retry_interval},
                    )
                    await asyncio.sleep(retry_interval)
                    continue
                self._replace(preferences, source)
                break
            await asyncio.sleep(interval)

    # -- helpers ------------------------------------------------------------------

    def get_preferred_agent(self, workflow_name: str | None = None) -> str:
        return self.snapshot().preferred_agent_for(workflow_name)

    def get_agent_config(self, agent_name: str) -> AgentConfig | None:
        return self.load().ai.agents.get(agent_name)

    def get_fallback_chain(self) -> list[str]:
        return list(self.load().ai.fallback_chain or DEFAULT_FALLBACK_CHAIN)

    def get_retry_config(self) -> RetryConfig:
        return self.load().ai.retry

    def is_agent_enabled(self, agent_name: str) -> bool:
        config = self.get_agent_config(agent_name)
        return config is None or config.enabled

    def get_first_available_agent(self) -> str | None:
        for agent in self.get_fallback_chain():
            if self.is_agent_enabled(agent):
                return agent
        return None

    def is_workflow_disabled(self, workflow_name: str) -> bool:
        return workflow_name in self.snapshot().disabled_workflows

    def is_mcp_disabled(self, mcp_name: str) -> bool:
        return mcp_name in self.snapshot().disabled_mcps

    def get_workflow_options(self, workflow_name: str) -> dict[str, Any]:
        cfg = self.load().workflows.get(workflow_name)
        return dict(cfg.options) if cfg is not None else {}

    def get_mcp_options(self, mcp_name: str) -> dict[str, Any]:
        cfg = self.load().mcps.get(mcp_name)
        return dict(cfg.options) if cfg is not None else {}


_default_source: PreferencesSource | None = None


def get_preferences_store() -> PreferencesSource:
    """The process-wide preferences source (created from ``RuntimeSettings`` on first use)."""

    global _default_source
    if _default_source is None:
        _default_source = PreferencesStore.from_settings(RuntimeSettings())
    return _default_source


def set_preferences_store(source: PreferencesSource | None) -> PreferencesSource | None:
    """Swap the process-wide source; returns the previous one.

    Passing ``None`` resets to lazy creation from settings.
    """

    global _default_source
    previous = _default_source
    _default_source = source
    return previous


__all__ = [
    "DEFAULT_AGENT",
    "PreferencesSource",
    "PreferencesStore",
    "StaticPreferences",
    "build_preferences",
    "deep_merge",
    "get_preferences_store",
    "set_preferences_store",
]
