"""Preferences schema.

The user-facing file format uses camelCase keys (``defaultAgent``,
``maxAttempts``, ...). Models accept either spelling and expose snake_case
attributes. All models are frozen: a loaded ``Preferences`` object is shared
by every snapshot taken from it.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

RetryableError = Literal["timeout", "rate_limit", "server_error", "network_error"]
PermissionMode = Literal["default", "acceptEdits", "bypassPermissions"]

DEFAULT_AGENT = "claude-code"
DEFAULT_FALLBACK_CHAIN: tuple[str, ...] = ("claude-code", "codex")
ALL_RETRYABLE_ERRORS: tuple[RetryableError, ...] = (
    "timeout",
    "rate_limit",
    "server_error",
    "network_error",
)


class _PreferencesModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
        frozen=True,
    )


class AgentOptions(_PreferencesModel):
    """Agent-specific options; unknown keys are passed through."""

    model_config = ConfigDict(extra="allow")

    max_tokens: int | None = Field(default=None, description="Maximum tokens per response")
    temperature: float | None = Field(
        default=None, ge=0.0, le=2.0, description="Sampling temperature"
    )
    permission_mode: PermissionMode | None = Field(default=None, description="Permission level")
    max_turns: int | None = Field(default=None, description="Maximum conversation turns")


class AgentConfig(_PreferencesModel):
    enabled: bool = Field(default=True, description="Whether this agent may be used")
    model: str | None = Field(default=None, description="Model name")
    options: AgentOptions = Field(default_factory=AgentOptions)


class RetryConfig(_PreferencesModel):
    """Retry policy for agent calls."""

    max_attempts: int = Field(default=3, ge=1, le=10, description="Maximum attempts")
    initial_delay_ms: int = Field(default=1000, ge=100, description="First retry delay (ms)")
    max_delay_ms: int = Field(default=30000, ge=0, description="Upper bound on retry delay (ms)")
    backoff_multiplier: float = Field(default=2.0, ge=1.0, description="Exponential backoff factor")
    retry_on: tuple[RetryableError, ...] = Field(
        default=ALL_RETRYABLE_ERRORS, description="Error kinds that trigger a retry"
    )

    def delay_seconds(self, attempt: int) -> float:
        """Backoff before retry number ``attempt + 1`` (``attempt`` is 0-based)."""

        delay_ms = min(
            self.initial_delay_ms * (self.backoff_multiplier**attempt),
            self.max_delay_ms,
        )
        return delay_ms / 1000.0


class WorkflowConfig(_PreferencesModel):
    preferred_agent: str | None = Field(
        default=None, description="Agent preferred by this workflow"
    )
    disabled: bool = Field(default=False, description="Disable this workflow")
    options: dict[str, Any] = Field(default_factory=dict, description="Workflow-specific options")


class McpConfig(_PreferencesModel):
    disabled: bool = Field(default=False, description="Disable this tool-server")
    options: dict[str, Any] = Field(default_factory=dict, description="Tool-server options")


class AiPreferences(_PreferencesModel):
    default_agent: str = Field(default=DEFAULT_AGENT, description="Default AI agent")
    agents: dict[str, AgentConfig] = Field(default_factory=dict, description="Per-agent settings")
    fallback_chain: tuple[str, ...] = Field(
        default=DEFAULT_FALLBACK_CHAIN,
        description="Agents tried in order when the preferred one is unavailable",
    )
    retry: RetryConfig = Field(default_factory=RetryConfig)


class Preferences(_PreferencesModel):
    """Root of ``user/preferences.{py,json}``."""

    schema_ref: str | None = Field(
        default=None, alias="$schema", description="JSON Schema reference"
    )
    ai: AiPreferences = Field(default_factory=AiPreferences)
    workflows: dict[str, WorkflowConfig] = Field(
        default_factory=dict, description="Per-workflow overrides"
    )
    mcps: dict[str, McpConfig] = Field(
        default_factory=dict, description="Per-tool-server overrides"
    )

    def to_json(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


# Raw (file-format) defaults. User files are deep-merged over this mapping
# before validation so partial files keep the default agents.
DEFAULT_PREFERENCES_DATA: dict[str, Any] = {
    "ai": {
        "defaultAgent": DEFAULT_AGENT,
        "agents": {
            "claude-code": {"enabled": True, "model": "claude-sonnet-4-20250514", "options": {}},
            "codex": {"enabled": True, "model": "codex-mini", "options": {}},
        },
        "fallbackChain": list(DEFAULT_FALLBACK_CHAIN),
        "retry": {
            "maxAttempts": 3,
            "initialDelayMs": 1000,
            "maxDelayMs": 30000,
            "backoffMultiplier": 2,
            "retryOn": list(ALL_RETRYABLE_ERRORS),
        },
    },
    "workflows": {},
    "mcps": {},
}


def default_preferences() -> Preferences:
    return Preferences.model_validate(DEFAULT_PREFERENCES_DATA)


def generate_json_schema() -> dict[str, Any]:
    """JSON Schema for editor completion in ``preferences.json``."""

    schema = Preferences.model_json_schema(by_alias=True)
    return {
        **schema,
        "$schema": "http://json-schema.org/draft-07/schema#",
        "title": "JixoFlow Preferences",
        "description": "JixoFlow user preferences",
    }
