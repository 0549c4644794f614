"""Structured errors raised across the generation pipeline.

Every error carries a machine-readable ``kind`` plus a human-readable
message so callers can branch on the kind instead of matching strings.
The HTTP layer renders them with ``to_dict()`` and ``status_code``.
"""

from __future__ import annotations

import enum
from typing import Any


class ErrorKind(str, enum.Enum):
    """Machine-readable error kinds."""

    # validation (400)
    UNKNOWN_MODE = "unknown_mode"
    MISSING_PROMPT = "missing_prompt"
    MISSING_IMAGE = "missing_image"
    INVALID_FIELD = "invalid_field"
    INVALID_UPLOAD = "invalid_upload"
    FILE_TOO_LARGE = "file_too_large"
    # download (400)
    DOWNLOAD_FAILED = "download_failed"
    # backend (500)
    NO_ARTIFACT_RETURNED = "no_artifact_returned"
    EMPTY_RESULT = "empty_result"
    BACKEND_FAILURE = "backend_failure"
    TIMEOUT = "timeout"
    CANCELLED = "cancelled"
    UNSUPPORTED_MODE = "unsupported_mode"
    # lookup (404)
    NOT_FOUND = "not_found"


class MediaError(Exception):
    """Base class for all orchestrator errors."""

    status_code: int = 500
    default_kind: ErrorKind = ErrorKind.BACKEND_FAILURE
    # When set, rendered as ``error`` and the message moves to ``details``.
    headline: str | None = None

    def __init__(
        self,
        message: str,
        *,
        kind: ErrorKind | None = None,
        details: str | None = None,
        task_id: str | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.kind = kind or self.default_kind
        self.details = details
        self.task_id = task_id

    def to_dict(self) -> dict[str, Any]:
        """Render as the JSON error envelope."""
        if self.headline:
            details = f"{self.message}: {self.details}" if self.details else self.message
            body: dict[str, Any] = {"error": self.headline, "details": details}
        else:
            body = {"error": self.message}
            if self.details:
                body["details"] = self.details
        body["kind"] = self.kind.value
        if self.task_id:
            body["taskId"] = self.task_id
        return body

    def to_error_info(self) -> dict[str, Any]:
        """Compact form stored on a failed task."""
        return {
            "kind": self.kind.value,
            "message": self.message,
            "details": self.details,
        }


class ValidationError(MediaError):
    """Bad or missing input; always user-correctable."""

    status_code = 400
    default_kind = ErrorKind.INVALID_FIELD


class DownloadError(MediaError):
    """A remote source image could not be fetched."""

    status_code = 400
    default_kind = ErrorKind.DOWNLOAD_FAILED
    headline = "Failed to download image from URL"


class BackendError(MediaError):
    """The generation backend failed or returned nothing usable."""

    status_code = 500
    default_kind = ErrorKind.BACKEND_FAILURE
    headline = "Failed to process request"


class GenerationTimeoutError(BackendError):
    """A backend call or poll loop exceeded its time budget."""

    default_kind = ErrorKind.TIMEOUT


class GenerationCancelledError(BackendError):
    """An in-flight generation was cancelled by the caller."""

    default_kind = ErrorKind.CANCELLED


class UnsupportedModeError(MediaError):
    """Mode is recognised but deliberately not implemented."""

    status_code = 500
    default_kind = ErrorKind.UNSUPPORTED_MODE


class NotFoundError(MediaError):
    """Unknown task id."""

    status_code = 404
    default_kind = ErrorKind.NOT_FOUND
