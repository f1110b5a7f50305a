from __future__ import annotations

from dataclasses import dataclass

from jixoflow.preferences.schema import (
    DEFAULT_AGENT,
    Preferences,
    RetryConfig,
    WorkflowConfig,
    default_preferences,
)


@dataclass(frozen=True, slots=True)
class ContextSnapshot:
    """Immutable view of the preferences, captured when a scope is entered."""

    preferences: Preferences
    preferred_agent: str
    retry: RetryConfig
    disabled_workflows: frozenset[str]
    disabled_mcps: frozenset[str]

    @classmethod
    def from_preferences(cls, preferences: Preferences) -> ContextSnapshot:
        return cls(
            preferences=preferences,
            preferred_agent=preferences.ai.default_agent or DEFAULT_AGENT,
            retry=preferences.ai.retry,
            disabled_workflows=frozenset(
                name for name, cfg in preferences.workflows.items() if cfg.disabled
            ),
            disabled_mcps=frozenset(name for name, cfg in preferences.mcps.items() if cfg.disabled),
        )

    @classmethod
    def defaults(cls) -> ContextSnapshot:
        return cls.from_preferences(default_preferences())

    def workflow_config(self, workflow_name: str) -> WorkflowConfig | None:
        return self.preferences.workflows.get(workflow_name)

    def preferred_agent_for(self, workflow_name: str | None) -> str:
        """Per-workflow override first, then the default agent."""

        if workflow_name:
            cfg = self.workflow_config(workflow_name)
            if cfg is not None and cfg.preferred_agent:
                return cfg.preferred_agent
        return self.preferred_agent
