"""Video generation strategies built on the long-running operation pattern.

Every video mode goes through the same path:
    validate settings against VIDEO_REGISTRY
    → backend.submit(VideoBackendRequest)
    → OperationPoller.run(handle)   # poll, then download
"""

from __future__ import annotations

import asyncio
import logging
from abc import abstractmethod
from dataclasses import replace
from typing import Any, Optional

from promptmedia.errors import ErrorKind, UnsupportedModeError, ValidationError
from promptmedia.models.request import (
    FramesToVideoRequest,
    GenerationPayload,
    Mode,
    ReferencesToVideoRequest,
    ResolvedImages,
    TextToVideoRequest,
    VideoRequest,
    VideoSettings,
)
from promptmedia.services.operation_poller import OperationPoller
from promptmedia.services.providers.base import VideoBackend, VideoBackendRequest
from promptmedia.services.video_registry import (
    GEN_TYPE_EXTEND,
    GEN_TYPE_REFERENCE,
    GEN_TYPE_SINGLE_IMAGE,
    GEN_TYPE_START_END,
    GEN_TYPE_TEXT,
    VIDEO_REGISTRY,
    VideoModelRegistry,
)
from .base import BaseStrategy, GenerationOutcome, processed_at

logger = logging.getLogger(__name__)

DEFAULT_RESOLUTION = "720p"
DEFAULT_ASPECT_RATIO = "16:9"


def parse_positive_int(value: Optional[str], field: str) -> Optional[int]:
    """Parse an optional numeric form field. Blank means not supplied."""
    if value is None:
        return None
    text = str(value).strip()
    if not text:
        return None
    try:
        number = int(text)
    except ValueError:
        raise ValidationError(
            f"{field} must be a whole number, got {value!r}",
            kind=ErrorKind.INVALID_FIELD,
        ) from None
    if number <= 0:
        raise ValidationError(f"{field} must be positive, got {number}", kind=ErrorKind.INVALID_FIELD)
    return number


def build_video_config(mode: Mode, settings: VideoSettings) -> dict[str, Any]:
    """Backend generation parameters for one video request.

    ``aspectRatio`` is omitted for ``extend_video``.
    """
    config: dict[str, Any] = {"resolution": settings.resolution}
    if mode is not Mode.EXTEND_VIDEO:
        config["aspectRatio"] = settings.aspect_ratio
    if settings.fps is not None:
        config["fps"] = settings.fps
    if settings.duration_seconds is not None:
        config["durationSeconds"] = settings.duration_seconds
    return config


class VideoStrategy(BaseStrategy[VideoRequest]):
    """Shared settings handling and the submit → poll → download pipeline."""

    def __init__(
        self,
        backend: VideoBackend,
        poller: OperationPoller,
        *,
        default_model: str,
        max_references: int = 5,
        registry: VideoModelRegistry = VIDEO_REGISTRY,
    ) -> None:
        super().__init__()
        self.backend = backend
        self.poller = poller
        self.default_model = default_model
        self.max_references = max_references
        self.registry = registry

    @abstractmethod
    def gen_type(self, payload: GenerationPayload) -> str:
        """Capability family checked against the model registry."""
        ...

    def settings_from(self, payload: GenerationPayload) -> VideoSettings:
        """Parse and capability-check the video settings of a payload."""
        settings = VideoSettings(
            model=(payload.model or "").strip() or self.default_model,
            resolution=(payload.resolution or "").strip() or DEFAULT_RESOLUTION,
            aspect_ratio=(payload.aspect_ratio or "").strip() or DEFAULT_ASPECT_RATIO,
            fps=parse_positive_int(payload.fps, "fps"),
            duration_seconds=parse_positive_int(payload.duration_seconds, "durationSeconds"),
        )
        try:
            self.registry.validate(
                settings.model,
                gen_type=self.gen_type(payload),
                duration=settings.duration_seconds,
                resolution=settings.resolution,
                aspect_ratio=None if self.mode is Mode.EXTEND_VIDEO else settings.aspect_ratio,
            )
        except ValueError as e:
            raise ValidationError(str(e), kind=ErrorKind.INVALID_FIELD) from e
        return settings

    def validate(self, payload: GenerationPayload) -> None:
        super().validate(payload)
        self.settings_from(payload)

    def summarize(self, request: VideoRequest) -> dict[str, Any]:
        s = request.settings
        return {
            "model": s.model,
            "resolution": s.resolution,
            "aspectRatio": s.aspect_ratio,
            "fps": s.fps,
            "durationSeconds": s.duration_seconds,
        }

    def backend_request(self, request: VideoRequest) -> VideoBackendRequest:
        return VideoBackendRequest(
            mode=self.mode,
            prompt=request.prompt,
            settings=request.settings,
            config=build_video_config(self.mode, request.settings),
        )

    async def _generate(
        self,
        request: VideoRequest,
        task_id: str,
        *,
        cancel_event: asyncio.Event | None = None,
    ) -> GenerationOutcome:
        settings = request.settings
        handle = await self.backend.submit(self.backend_request(request))
        logger.info(
            "Submitted %s for task=%s: operation=%s model=%s",
            self.mode.value, task_id[:8], handle.name, settings.model,
        )
        artifact = await self.poller.run(handle, task_id, cancel_event=cancel_event)
        result = {
            "mode": self.mode.value,
            "message": f'Successfully generated video from prompt: "{request.prompt}"',
            "videoUrl": f"/video/{task_id}",
            "mimeType": artifact.mime_type,
            "prompt": request.prompt,
            "model": settings.model,
            "resolution": settings.resolution,
            "aspectRatio": settings.aspect_ratio,
            "fps": settings.fps,
            "durationSeconds": settings.duration_seconds,
            "operationName": handle.name,
            "sizeBytes": artifact.size,
            "processedAt": processed_at(),
        }
        return GenerationOutcome(artifact=artifact, result=result)


class TextToVideoStrategy(VideoStrategy):
    mode = Mode.TEXT_TO_VIDEO

    def gen_type(self, payload: GenerationPayload) -> str:
        return GEN_TYPE_TEXT

    def build_request(self, payload: GenerationPayload, images: ResolvedImages) -> TextToVideoRequest:
        return TextToVideoRequest(prompt=payload.prompt.strip(), settings=self.settings_from(payload))


class FramesToVideoStrategy(VideoStrategy):
    mode = Mode.FRAMES_TO_VIDEO
    image_fields = ("start_frame", "end_frame")

    def gen_type(self, payload: GenerationPayload) -> str:
        if payload.end_frame is not None and not payload.end_frame.is_empty:
            return GEN_TYPE_START_END
        return GEN_TYPE_SINGLE_IMAGE

    def validate(self, payload: GenerationPayload) -> None:
        super().validate(payload)
        self._require_image(
            payload.start_frame,
            "Either startFrame upload or startFrameUrl is required for frames_to_video mode",
        )

    def build_request(self, payload: GenerationPayload, images: ResolvedImages) -> FramesToVideoRequest:
        return FramesToVideoRequest(
            prompt=payload.prompt.strip(),
            start_frame=images.start_frame,
            end_frame=images.end_frame,
            settings=self.settings_from(payload),
        )

    def backend_request(self, request: FramesToVideoRequest) -> VideoBackendRequest:
        return replace(
            super().backend_request(request),
            image=request.start_frame,
            last_frame=request.end_frame,
        )


class ReferencesToVideoStrategy(VideoStrategy):
    mode = Mode.REFERENCES_TO_VIDEO
    image_fields = ("reference_images", "style_image")

    def gen_type(self, payload: GenerationPayload) -> str:
        return GEN_TYPE_REFERENCE

    def validate(self, payload: GenerationPayload) -> None:
        super().validate(payload)
        refs = [r for r in payload.reference_images if not r.is_empty]
        if len(refs) > self.max_references:
            raise ValidationError(
                f"At most {self.max_references} reference images are allowed, got {len(refs)}",
                kind=ErrorKind.INVALID_FIELD,
            )
        if not refs:
            logger.warning("references_to_video called without reference images")

    def build_request(self, payload: GenerationPayload, images: ResolvedImages) -> ReferencesToVideoRequest:
        return ReferencesToVideoRequest(
            prompt=payload.prompt.strip(),
            settings=self.settings_from(payload),
            reference_images=tuple(images.reference_images),
            style_image=images.style_image,
        )

    def backend_request(self, request: ReferencesToVideoRequest) -> VideoBackendRequest:
        return replace(
            super().backend_request(request),
            reference_images=request.reference_images,
            style_image=request.style_image,
        )


class ExtendVideoStrategy(VideoStrategy):
    """Recognised but not implemented; fails before any I/O."""

    mode = Mode.EXTEND_VIDEO

    def gen_type(self, payload: GenerationPayload) -> str:
        return GEN_TYPE_EXTEND

    def _unsupported(self) -> UnsupportedModeError:
        return UnsupportedModeError("Video extension is not implemented yet")

    def validate(self, payload: GenerationPayload) -> None:
        raise self._unsupported()

    def build_request(self, payload: GenerationPayload, images: ResolvedImages) -> VideoRequest:
        raise self._unsupported()

    async def _generate(
        self,
        request: VideoRequest,
        task_id: str,
        *,
        cancel_event: asyncio.Event | None = None,
    ) -> GenerationOutcome:
        raise self._unsupported()
