"""Pydantic v2 schemas package."""

from promptmedia.schemas.generation import (
    CancelResponse,
    DeleteResponse,
    GenerationFields,
    ProcessResponse,
    TaskListResponse,
)

__all__ = [
    "GenerationFields",
    "ProcessResponse",
    "TaskListResponse",
    "DeleteResponse",
    "CancelResponse",
]
