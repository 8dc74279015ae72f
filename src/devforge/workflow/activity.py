"""Per-project activity log.

Each success or failure the orchestration layer observes becomes a
``LogEntry`` tagged with the step and a severity, mirrored to structlog.
Entries are kept in memory only; they are a view for the user, not part of
the persisted aggregate.
"""

from __future__ import annotations

import uuid
from collections import defaultdict, deque
from datetime import datetime
from typing import Literal

import structlog
from pydantic import BaseModel, Field

from devforge.workflow.models import utcnow
from devforge.workflow.steps import Step

logger = structlog.get_logger(__name__)

LogLevel = Literal["info", "warn", "error", "success"]

_STRUCTLOG_METHODS: dict[str, str] = {
    "info": "info",
    "success": "info",
    "warn": "warning",
    "error": "error",
}


class LogEntry(BaseModel):
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    timestamp: datetime = Field(default_factory=utcnow)
    level: LogLevel
    step: Step
    message: str
    detail: str | None = None


class ActivityLog:
    """Bounded in-memory store of log entries keyed by project id."""

    def __init__(self, max_entries_per_project: int = 200) -> None:
        self.max_entries_per_project = max_entries_per_project
        self._entries: defaultdict[str, deque[LogEntry]] = defaultdict(
            lambda: deque(maxlen=self.max_entries_per_project)
        )

    def record(
        self,
        project_id: str,
        step: Step,
        level: LogLevel,
        message: str,
        detail: str | None = None,
    ) -> LogEntry:
        """Append an entry and emit it as a structured log line."""
        entry = LogEntry(level=level, step=step, message=message, detail=detail)
        self._entries[project_id].append(entry)

        log_method = getattr(logger, _STRUCTLOG_METHODS[level])
        log_method(
            "activity",
            project_id=project_id,
            step=step.value,
            severity=level,
            message=message,
            detail=detail,
        )
        return entry

    def entries(self, project_id: str) -> list[LogEntry]:
        return list(self._entries.get(project_id, ()))

    def clear(self, project_id: str) -> None:
        self._entries.pop(project_id, None)
