"""Generation modes, raw caller payloads and the per-mode request union."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Union

from promptmedia.models.artifact import ImageInput, SourceImage


class Mode(str, enum.Enum):
    """Tagged selector choosing the generation strategy."""

    TEXT_TO_IMAGE = "text-to-image"
    IMAGE_TO_IMAGE = "image-to-image"
    IMAGE_TO_DESC = "image-to-desc"
    TEXT_TO_VIDEO = "text_to_video"
    FRAMES_TO_VIDEO = "frames_to_video"
    REFERENCES_TO_VIDEO = "references_to_video"
    EXTEND_VIDEO = "extend_video"


IMAGE_MODES = frozenset({Mode.TEXT_TO_IMAGE, Mode.IMAGE_TO_IMAGE, Mode.IMAGE_TO_DESC})
VIDEO_MODES = frozenset({
    Mode.TEXT_TO_VIDEO,
    Mode.FRAMES_TO_VIDEO,
    Mode.REFERENCES_TO_VIDEO,
    Mode.EXTEND_VIDEO,
})


@dataclass
class GenerationPayload:
    """Raw request fields as received from the caller.

    Numeric video fields stay strings here; strategies parse them.
    """

    prompt: str | None = None
    image: ImageInput | None = None
    # video
    resolution: str | None = None
    aspect_ratio: str | None = None
    model: str | None = None
    fps: str | None = None
    duration_seconds: str | None = None
    start_frame: ImageInput | None = None
    end_frame: ImageInput | None = None
    reference_images: list[ImageInput] = field(default_factory=list)
    style_image: ImageInput | None = None

    def image_inputs(self) -> dict[str, ImageInput | list[ImageInput]]:
        """All non-empty image references keyed by field name."""
        found: dict[str, ImageInput | list[ImageInput]] = {}
        for name in ("image", "start_frame", "end_frame", "style_image"):
            value = getattr(self, name)
            if value is not None and not value.is_empty:
                found[name] = value
        refs = [r for r in self.reference_images if not r.is_empty]
        if refs:
            found["reference_images"] = refs
        return found


@dataclass
class ResolvedImages:
    """Source images after upload/URL resolution."""

    image: SourceImage | None = None
    start_frame: SourceImage | None = None
    end_frame: SourceImage | None = None
    reference_images: list[SourceImage] = field(default_factory=list)
    style_image: SourceImage | None = None

    def primary(self) -> SourceImage | None:
        """First resolved image, used for the task's request summary."""
        return (
            self.image
            or self.start_frame
            or (self.reference_images[0] if self.reference_images else None)
            or self.style_image
        )


@dataclass(frozen=True)
class VideoSettings:
    model: str
    resolution: str = "720p"
    aspect_ratio: str = "16:9"
    fps: int | None = None
    duration_seconds: int | None = None


@dataclass(frozen=True)
class TextToImageRequest:
    prompt: str


@dataclass(frozen=True)
class ImageToImageRequest:
    prompt: str
    source_image: SourceImage


@dataclass(frozen=True)
class ImageToDescRequest:
    prompt: str | None
    source_image: SourceImage


@dataclass(frozen=True)
class TextToVideoRequest:
    prompt: str
    settings: VideoSettings


@dataclass(frozen=True)
class FramesToVideoRequest:
    prompt: str
    start_frame: SourceImage
    settings: VideoSettings
    end_frame: SourceImage | None = None


@dataclass(frozen=True)
class ReferencesToVideoRequest:
    prompt: str
    settings: VideoSettings
    reference_images: tuple[SourceImage, ...] = ()
    style_image: SourceImage | None = None


VideoRequest = Union[TextToVideoRequest, FramesToVideoRequest, ReferencesToVideoRequest]

GenerationRequest = Union[
    TextToImageRequest,
    ImageToImageRequest,
    ImageToDescRequest,
    TextToVideoRequest,
    FramesToVideoRequest,
    ReferencesToVideoRequest,
]
