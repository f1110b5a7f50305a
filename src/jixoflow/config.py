"""Runtime settings.

Settings are loaded from:
- environment variables
- and a local `.env` file (if present)

They only describe *where* things live (runtime home, builtin/user/archive
directories, session files) and how noisy logging is. Agent selection, retry
policy and per-workflow switches are user preferences, handled by
:mod:`jixoflow.preferences`.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

PACKAGE_DIR = Path(__file__).resolve().parent
BUILTIN_DIR = PACKAGE_DIR / "builtin"

WORKFLOW_SUFFIX = ".workflow.py"
MCP_SUFFIX = ".mcp.py"

_LOG_LEVELS = frozenset({"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG", "NOTSET"})


class RuntimeSettings(BaseSettings):
    """Settings for the workflow runtime.

    Environment variables:
    - JIXOFLOW_HOME                   (optional)
    - LOG_LEVEL                       (optional)
    - JIXOFLOW_BUILTIN_WORKFLOWS_DIR  (optional)
    - JIXOFLOW_BUILTIN_MCPS_DIR       (optional)
    - SESSIONS_DIR                    (optional)

    Notes:
        Pydantic-settings supports overriding the env file in tests via:
        `RuntimeSettings(_env_file=path_to_env)`.
    """

    home: Path = Field(
        default=Path("~/.jixoflow"),
        validation_alias="JIXOFLOW_HOME",
        description="Runtime home; holds the user/ and archive/ tiers",
    )

    log_level: str = Field(
        default="INFO",
        validation_alias="LOG_LEVEL",
        description="Root logging level",
    )

    builtin_workflows_dir: Path = Field(
        default=BUILTIN_DIR / "workflows",
        validation_alias="JIXOFLOW_BUILTIN_WORKFLOWS_DIR",
        description="Directory scanned for builtin *.workflow.py files",
    )
    builtin_mcps_dir: Path = Field(
        default=BUILTIN_DIR / "mcps",
        validation_alias="JIXOFLOW_BUILTIN_MCPS_DIR",
        description="Directory scanned for builtin *.mcp.py files",
    )

    sessions_dir: Path | None = Field(
        default=None,
        validation_alias="SESSIONS_DIR",
        description="Base directory for persisted agent sessions (default: ./.claude/.sessions)",
    )

    model_config = SettingsConfigDict(
        env_prefix="",
        env_file=".env",
        extra="ignore",
    )

    @field_validator("home", "builtin_workflows_dir", "builtin_mcps_dir", "sessions_dir")
    @classmethod
    def _expand_user(cls, value: Path | None) -> Path | None:
        return value.expanduser() if value is not None else None

    @field_validator("log_level")
    @classmethod
    def _known_level(cls, value: str) -> str:
        level = value.strip().upper()
        if level not in _LOG_LEVELS:
            raise ValueError(f"unknown log level {value!r}")
        return level

    @property
    def user_dir(self) -> Path:
        """User customisation tier; takes priority over builtin."""

        return self.home / "user"

    @property
    def user_workflows_dir(self) -> Path:
        return self.user_dir / "workflows"

    @property
    def user_mcps_dir(self) -> Path:
        return self.user_dir / "mcps"

    @property
    def archive_dir(self) -> Path:
        return self.home / "archive"

    @property
    def archive_workflows_dir(self) -> Path:
        return self.archive_dir / "workflows"

    @property
    def archive_mcps_dir(self) -> Path:
        return self.archive_dir / "mcps"

    @property
    def preferences_py_file(self) -> Path:
        """Python preferences (preferred over JSON when both exist)."""

        return self.user_dir / "preferences.py"

    @property
    def preferences_json_file(self) -> Path:
        return self.user_dir / "preferences.json"

    @property
    def sessions_base_dir(self) -> Path:
        if self.sessions_dir is not None:
            return self.sessions_dir
        return Path.cwd() / ".claude" / ".sessions"
