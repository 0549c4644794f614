"""Backend adapter interfaces.

Strategies only talk to backends through these two protocols, so the
Gemini adapters, the mock adapters and test fakes are interchangeable.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional, Protocol, Sequence, Union

from promptmedia.models.artifact import SourceImage
from promptmedia.models.request import Mode, VideoSettings

RequestPart = Union[str, SourceImage]


@dataclass(frozen=True)
class BackendRequest:
    """Normalized image/text generation call."""

    model: str
    parts: Sequence[RequestPart]
    response_modalities: Sequence[str] = ()
    aspect_ratio: Optional[str] = None


@dataclass
class InlineImage:
    data: bytes
    mime_type: Optional[str] = None


@dataclass
class BackendResponse:
    """Parts of the first response candidate, in order."""

    images: list[InlineImage] = field(default_factory=list)
    text: Optional[str] = None
    model: Optional[str] = None
    finish_reason: Optional[str] = None


@dataclass(frozen=True)
class VideoBackendRequest:
    """Normalized video generation call.

    ``config`` is the mode-specific option set produced by
    ``build_video_config``; adapters translate it to their own schema.
    """

    mode: Mode
    prompt: str
    settings: VideoSettings
    config: dict[str, Any]
    image: Optional[SourceImage] = None
    last_frame: Optional[SourceImage] = None
    reference_images: Sequence[SourceImage] = ()
    style_image: Optional[SourceImage] = None


@dataclass
class GeneratedVideo:
    uri: Optional[str] = None
    mime_type: Optional[str] = None
    data: Optional[bytes] = None


@dataclass
class OperationHandle:
    """Backend reference to a long-running job; refreshed by ``poll``."""

    name: str
    done: bool = False
    videos: list[GeneratedVideo] = field(default_factory=list)
    error: Optional[str] = None
    raw: Any = None


class ImageBackend(Protocol):
    async def generate(self, request: BackendRequest) -> BackendResponse:
        ...


class VideoBackend(Protocol):
    async def submit(self, request: VideoBackendRequest) -> OperationHandle:
        ...

    async def poll(self, handle: OperationHandle) -> OperationHandle:
        ...

    async def download(self, video: GeneratedVideo) -> bytes:
        ...
