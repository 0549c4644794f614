from __future__ import annotations
"""Pydantic v2 schemas for generation request bodies and responses."""

from typing import Any

from pydantic import BaseModel, Field, field_validator


class GenerationFields(BaseModel):
    """Text fields accepted by /process and /generate-video.

    Numeric video fields are kept as strings so that bad input surfaces as
    a ValidationError from the strategy rather than a 422.
    """

    mode: str | None = None
    prompt: str | None = None
    imageUrl: str | None = None
    # video
    resolution: str | None = None
    aspectRatio: str | None = None
    model: str | None = None
    fps: str | None = None
    durationSeconds: str | None = None
    startFrameUrl: str | None = None
    endFrameUrl: str | None = None
    referenceImageUrls: list[str] = Field(default_factory=list)
    styleImageUrl: str | None = None

    model_config = {"extra": "ignore"}

    @field_validator(
        "mode", "prompt", "imageUrl", "resolution", "aspectRatio", "model",
        "fps", "durationSeconds", "startFrameUrl", "endFrameUrl", "styleImageUrl",
        mode="before",
    )
    @classmethod
    def _stringify(cls, value: Any) -> Any:
        if value is None or isinstance(value, str):
            return value
        return str(value)

    @field_validator("referenceImageUrls", mode="before")
    @classmethod
    def _as_list(cls, value: Any) -> Any:
        if value is None:
            return []
        if isinstance(value, str):
            return [value] if value.strip() else []
        return value


class ProcessResponse(BaseModel):
    success: bool = True
    taskId: str
    status: str
    result: dict[str, Any] | None = None


class TaskListResponse(BaseModel):
    total: int
    results: list[dict[str, Any]]


class DeleteResponse(BaseModel):
    success: bool
    message: str


class CancelResponse(BaseModel):
    success: bool
    taskId: str
