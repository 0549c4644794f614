"""Domain data types."""

from promptmedia.models.artifact import Artifact, ImageInput, SourceImage, mime_to_suffix
from promptmedia.models.request import (
    IMAGE_MODES,
    VIDEO_MODES,
    FramesToVideoRequest,
    GenerationPayload,
    GenerationRequest,
    ImageToDescRequest,
    ImageToImageRequest,
    Mode,
    ReferencesToVideoRequest,
    ResolvedImages,
    TextToImageRequest,
    TextToVideoRequest,
    VideoRequest,
    VideoSettings,
)
from promptmedia.models.task import Task, TaskStatus

__all__ = [
    "Artifact",
    "ImageInput",
    "SourceImage",
    "mime_to_suffix",
    "IMAGE_MODES",
    "VIDEO_MODES",
    "FramesToVideoRequest",
    "GenerationPayload",
    "GenerationRequest",
    "ImageToDescRequest",
    "ImageToImageRequest",
    "Mode",
    "ReferencesToVideoRequest",
    "ResolvedImages",
    "TextToImageRequest",
    "TextToVideoRequest",
    "VideoRequest",
    "VideoSettings",
    "Task",
    "TaskStatus",
]
