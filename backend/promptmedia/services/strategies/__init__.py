"""Generation strategies, one per mode."""

from __future__ import annotations

from promptmedia.config import Settings
from promptmedia.models.request import Mode
from promptmedia.services.operation_poller import OperationPoller, PollPolicy
from promptmedia.services.providers.base import ImageBackend, VideoBackend
from .base import BaseStrategy, GenerationOutcome
from .describe import ImageToDescStrategy, build_description_prompt, tag_keywords
from .image import ImageToImageStrategy, TextToImageStrategy
from .video import (
    ExtendVideoStrategy,
    FramesToVideoStrategy,
    ReferencesToVideoStrategy,
    TextToVideoStrategy,
    build_video_config,
    parse_positive_int,
)


def build_strategies(
    settings: Settings,
    image_backend: ImageBackend,
    video_backend: VideoBackend,
    poller: OperationPoller | None = None,
) -> dict[Mode, BaseStrategy]:
    """Wire every mode to its strategy."""
    poller = poller or OperationPoller(video_backend, PollPolicy.from_settings(settings))
    image_kwargs = {"model": settings.IMAGE_MODEL, "aspect_ratio": settings.IMAGE_ASPECT_RATIO}
    video_kwargs = {
        "default_model": settings.VIDEO_MODEL,
        "max_references": settings.MAX_REFERENCE_IMAGES,
    }
    strategies: list[BaseStrategy] = [
        TextToImageStrategy(image_backend, **image_kwargs),
        ImageToImageStrategy(image_backend, **image_kwargs),
        ImageToDescStrategy(image_backend, model=settings.DESCRIBE_MODEL),
        TextToVideoStrategy(video_backend, poller, **video_kwargs),
        FramesToVideoStrategy(video_backend, poller, **video_kwargs),
        ReferencesToVideoStrategy(video_backend, poller, **video_kwargs),
        ExtendVideoStrategy(video_backend, poller, **video_kwargs),
    ]
    return {s.mode: s for s in strategies}


__all__ = [
    "BaseStrategy",
    "GenerationOutcome",
    "TextToImageStrategy",
    "ImageToImageStrategy",
    "ImageToDescStrategy",
    "TextToVideoStrategy",
    "FramesToVideoStrategy",
    "ReferencesToVideoStrategy",
    "ExtendVideoStrategy",
    "build_strategies",
    "build_description_prompt",
    "tag_keywords",
    "build_video_config",
    "parse_positive_int",
]
