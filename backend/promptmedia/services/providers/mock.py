"""Offline backends used when USE_MOCK_API is enabled."""

from __future__ import annotations

import io
import logging

from PIL import Image, ImageDraw, ImageFont

from promptmedia.models.artifact import SourceImage
from .base import (
    BackendRequest,
    BackendResponse,
    GeneratedVideo,
    InlineImage,
    OperationHandle,
    VideoBackendRequest,
)

logger = logging.getLogger(__name__)

# Smallest valid MP4 header box; enough for clients that sniff the type.
_PLACEHOLDER_MP4 = (
    b"\x00\x00\x00\x18ftypmp42\x00\x00\x00\x00mp42isom"
    + b"\x00" * 1000
)


def _mock_png(prompt: str, size: tuple[int, int] = (1024, 1024)) -> bytes:
    """Solid colour PNG with the prompt written on it."""
    img = Image.new("RGB", size, color=(35, 35, 60))
    draw = ImageDraw.Draw(img)
    font = ImageFont.load_default()
    wrapped = prompt[:100] + "..." if len(prompt) > 100 else prompt
    draw.text((40, 40), wrapped, fill=(180, 180, 220), font=font)
    draw.text((40, size[1] - 60), "[MOCK IMAGE - PromptMedia]", fill=(100, 100, 140), font=font)
    buf = io.BytesIO()
    img.save(buf, "PNG")
    return buf.getvalue()


class MockImageBackend:
    name = "mock"

    async def generate(self, request: BackendRequest) -> BackendResponse:
        prompt = " ".join(p for p in request.parts if isinstance(p, str))
        has_image = any(isinstance(p, SourceImage) for p in request.parts)
        if "IMAGE" in request.response_modalities:
            logger.info("Mock image backend: rendering placeholder for model=%s", request.model)
            return BackendResponse(
                images=[InlineImage(data=_mock_png(prompt), mime_type="image/png")],
                model=request.model,
            )
        description = "A mock description of the provided image." if has_image else prompt
        return BackendResponse(text=description, model=request.model)


class MockVideoBackend:
    """Completes every operation after ``polls_until_done`` polls."""

    name = "mock"

    def __init__(self, polls_until_done: int = 1) -> None:
        self._polls_until_done = polls_until_done
        self._polls: dict[str, int] = {}
        self._counter = 0

    async def submit(self, request: VideoBackendRequest) -> OperationHandle:
        self._counter += 1
        name = f"operations/mock-{self._counter}"
        self._polls[name] = 0
        logger.info("Mock video backend: submitted %s mode=%s", name, request.mode.value)
        return OperationHandle(name=name)

    async def poll(self, handle: OperationHandle) -> OperationHandle:
        count = self._polls.get(handle.name, 0) + 1
        self._polls[handle.name] = count
        if count < self._polls_until_done:
            return OperationHandle(name=handle.name)
        self._polls.pop(handle.name, None)
        return OperationHandle(
            name=handle.name,
            done=True,
            videos=[GeneratedVideo(data=_PLACEHOLDER_MP4, mime_type="video/mp4")],
        )

    async def download(self, video: GeneratedVideo) -> bytes:
        return video.data or _PLACEHOLDER_MP4
