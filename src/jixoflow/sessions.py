"""Agent session persistence.

Sessions are JSON files (camelCase keys) laid out per tool-server and date:

    {sessions_dir}/{mcp_name}/{YYYY}/{MM}/{DD}/{YYYY-MM-DDTHH-MM-SS}-{slug}.json
"""

from __future__ import annotations

import json
import logging
import re
from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from jixoflow.config import RuntimeSettings

logger = logging.getLogger(__name__)

SessionStatus = Literal["active", "completed", "error"]

_TITLE_MAX = 50
_SLUG_PATTERN = re.compile(r"[^a-z0-9]+")


class _SessionModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


class SessionMetadata(_SessionModel):
    session_id: str
    title: str
    model: str | None = None
    created_at: str
    updated_at: str
    working_directory: str
    turn_count: int = 0
    total_cost_usd: float | None = None
    last_prompt: str = ""
    status: SessionStatus = "active"


class SessionHistoryEntry(_SessionModel):
    timestamp: str
    prompt: str
    response: str
    cost_usd: float | None = None


class Session(_SessionModel):
    metadata: SessionMetadata
    history: list[SessionHistoryEntry] = Field(default_factory=list)


class SessionSummary(BaseModel):
    path: Path
    metadata: SessionMetadata


def get_sessions_dir(mcp_name: str, settings: RuntimeSettings | None = None) -> Path:
    settings = settings or RuntimeSettings()
    return settings.sessions_base_dir / mcp_name


def format_timestamp_for_filename(moment: datetime) -> str:
    return moment.strftime("%Y-%m-%dT%H-%M-%S")


def slugify(title: str) -> str:
    slug = _SLUG_PATTERN.sub("-", title.lower())[:_TITLE_MAX].strip("-")
    return slug or "untitled"


def generate_session_path(
    mcp_name: str,
    title: str,
    now: datetime | None = None,
    *,
    settings: RuntimeSettings | None = None,
) -> Path:
    now = now or datetime.now()
    return (
        get_sessions_dir(mcp_name, settings)
        / f"{now.year:04d}"
        / f"{now.month:02d}"
        / f"{now.day:02d}"
        / f"{format_timestamp_for_filename(now)}-{slugify(title)}.json"
    )


def extract_title(prompt: str) -> str:
    title = prompt.replace("\n", " ").strip()[:_TITLE_MAX]
    return title or "untitled"


def save_session(path: Path, session: Session) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    payload = session.model_dump(mode="json", by_alias=True, exclude_none=True)
    path.write_text(json.dumps(payload, indent=2, ensure_ascii=False) + "\n", encoding="utf-8")


def load_session(path: Path) -> Session | None:
    """The session stored at ``path``, or ``None`` if it is missing or unreadable."""

    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        return None
    except (OSError, json.JSONDecodeError) as e:
        logger.warning("Session file is not readable", extra={"path": str(path), "error": str(e)})
        return None

    try:
        return Session.model_validate(raw)
    except ValidationError as e:
        logger.warning(
            "Session file has unexpected shape",
            extra={"path": str(path), "error": str(e)},
        )
        return None


def delete_session(path: Path) -> None:
    path.unlink(missing_ok=True)


def list_all_sessions(
    mcp_name: str, settings: RuntimeSettings | None = None
) -> list[SessionSummary]:
    """Every readable session for ``mcp_name``, most recently updated first."""

    base = get_sessions_dir(mcp_name, settings)
    if not base.is_dir():
        return []

    summaries: list[SessionSummary] = []
    for path in sorted(base.rglob("*.json")):
        session = load_session(path)
        if session is not None:
            summaries.append(SessionSummary(path=path, metadata=session.metadata))

    summaries.sort(key=lambda s: s.metadata.updated_at, reverse=True)
    return summaries


def find_session_by_id(
    mcp_name: str,
    session_id: str,
    settings: RuntimeSettings | None = None,
) -> tuple[Path, Session] | None:
    for summary in list_all_sessions(mcp_name, settings):
        if summary.metadata.session_id == session_id:
            session = load_session(summary.path)
            if session is not None:
                return summary.path, session
    return None


def _parse_timestamp(value: str) -> datetime | None:
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        return None
    return parsed if parsed.tzinfo is not None else parsed.replace(tzinfo=UTC)


def delete_sessions_older_than(
    mcp_name: str,
    days: int,
    settings: RuntimeSettings | None = None,
    *,
    now: datetime | None = None,
) -> list[Path]:
    """Delete sessions last updated more than ``days`` ago; returns the deleted paths."""

    cutoff = (now or datetime.now(UTC)) - timedelta(days=days)
    if cutoff.tzinfo is None:
        cutoff = cutoff.replace(tzinfo=UTC)

    deleted: list[Path] = []
    for summary in list_all_sessions(mcp_name, settings):
        updated = _parse_timestamp(summary.metadata.updated_at)
        if updated is not None and updated < cutoff:
            delete_session(summary.path)
            deleted.append(summary.path)

    if deleted:
        logger.info(
            "Deleted old sessions",
            extra={"mcp": mcp_name, "days": days, "count": len(deleted)},
        )
    return deleted


def delete_all_sessions(mcp_name: str, settings: RuntimeSettings | None = None) -> list[Path]:
    deleted: list[Path] = []
    for summary in list_all_sessions(mcp_name, settings):
        delete_session(summary.path)
        deleted.append(summary.path)
    return deleted
