"""User preferences: schema, snapshots and the process-wide store."""

from jixoflow.preferences.schema import (
    AgentConfig,
    AiPreferences,
    McpConfig,
    Preferences,
    RetryConfig,
    WorkflowConfig,
    default_preferences,
    generate_json_schema,
)
from jixoflow.preferences.snapshot import ContextSnapshot
from jixoflow.preferences.store import (
    PreferencesSource,
    PreferencesStore,
    StaticPreferences,
    get_preferences_store,
    set_preferences_store,
)

__all__ = [
    "AgentConfig",
    "AiPreferences",
    "ContextSnapshot",
    "McpConfig",
    "Preferences",
    "PreferencesSource",
    "PreferencesStore",
    "RetryConfig",
    "StaticPreferences",
    "WorkflowConfig",
    "default_preferences",
    "generate_json_schema",
    "get_preferences_store",
    "set_preferences_store",
]
