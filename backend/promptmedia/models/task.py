"""Task record: the registry's unit of record for one request."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from promptmedia.models.artifact import Artifact
from promptmedia.models.request import Mode


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TaskStatus(str, enum.Enum):
    """Task lifecycle statuses."""

    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass
class Task:
    """One request's lifecycle and outcome.

    Created ``pending`` and transitioned exactly once, to ``completed``
    (with an artifact) or ``failed`` (with error info).
    """

    id: str
    mode: Mode
    request: dict[str, Any] = field(default_factory=dict)
    status: TaskStatus = TaskStatus.PENDING
    artifact: Artifact | None = None
    result: dict[str, Any] | None = None
    error: dict[str, Any] | None = None
    created_at: datetime = field(default_factory=utcnow)
    completed_at: datetime | None = None

    @property
    def is_terminal(self) -> bool:
        return self.status is not TaskStatus.PENDING

    def complete(self, artifact: Artifact, result: dict[str, Any], *, at: datetime | None = None) -> None:
        self._ensure_pending()
        self.artifact = artifact
        self.result = result
        self.status = TaskStatus.COMPLETED
        self.completed_at = at or utcnow()

    def fail(self, error: dict[str, Any], *, at: datetime | None = None) -> None:
        self._ensure_pending()
        self.error = error
        self.status = TaskStatus.FAILED
        self.completed_at = at or utcnow()

    def _ensure_pending(self) -> None:
        if self.status is not TaskStatus.PENDING:
            raise RuntimeError(
                f"Task {self.id} already {self.status.value}; it cannot transition again"
            )

    def to_dict(self) -> dict[str, Any]:
        """Serialize for API response (camelCase, artifact bytes omitted)."""
        return {
            "taskId": self.id,
            "mode": self.mode.value,
            "status": self.status.value,
            **self.request,
            "artifact": self.artifact.describe() if self.artifact else None,
            "result": self.result,
            "error": self.error,
            "timestamp": self.created_at.isoformat(),
            "completedAt": self.completed_at.isoformat() if self.completed_at else None,
        }
