"""Image/text and video backend implementations.

Image backends answer in a single call; video backends follow the
long-running pattern: submit → poll → download.
"""

from __future__ import annotations

import httpx

from promptmedia.config import Settings
from .base import ImageBackend, VideoBackend


def create_image_backend(settings: Settings) -> ImageBackend:
    if settings.USE_MOCK_API:
        from .mock import MockImageBackend
        return MockImageBackend()
    from .gemini_image import GeminiImageBackend
    return GeminiImageBackend(api_key=settings.GOOGLE_API_KEY)


def create_video_backend(settings: Settings, http_client: httpx.AsyncClient | None = None) -> VideoBackend:
    if settings.USE_MOCK_API:
        from .mock import MockVideoBackend
        return MockVideoBackend()
    from .gemini_video import GeminiVideoBackend
    return GeminiVideoBackend(
        api_key=settings.GOOGLE_API_KEY,
        http_client=http_client,
        download_timeout=settings.VIDEO_DOWNLOAD_TIMEOUT,
    )
