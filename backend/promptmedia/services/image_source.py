"""Source image resolution. Uploads and URL downloads funnel through here.

Every strategy receives ``SourceImage`` objects only; whether the bytes
came from a multipart upload or a remote URL is settled before any
backend call is made.
"""

from __future__ import annotations

import io
import logging
import os
import time
from typing import Any, Collection
from urllib.parse import urlparse

import httpx
from PIL import Image, UnidentifiedImageError

from promptmedia.errors import DownloadError, ErrorKind, ValidationError
from promptmedia.models.artifact import ImageInput, SourceImage
from promptmedia.models.request import GenerationPayload, ResolvedImages

logger = logging.getLogger(__name__)

USER_AGENT = "Mozilla/5.0 (compatible; ImageProcessor/1.0)"


def probe_image_info(data: bytes) -> dict[str, Any] | None:
    """Return ``{width, height, format}`` or None if Pillow cannot read it."""
    try:
        with Image.open(io.BytesIO(data)) as img:
            return {
                "width": img.width,
                "height": img.height,
                "format": (img.format or "").lower() or None,
            }
    except (UnidentifiedImageError, OSError) as e:
        logger.debug("Could not read image metadata: %s", e)
        return None


class ImageSourceResolver:
    """Turns ``ImageInput`` references into ``SourceImage`` buffers."""

    def __init__(
        self,
        http_client: httpx.AsyncClient | None = None,
        *,
        timeout: float = 30.0,
        max_bytes: int = 10 * 1024 * 1024,
    ) -> None:
        self._client = http_client
        self._timeout = timeout
        self._max_bytes = max_bytes

    def from_upload(self, image: ImageInput) -> SourceImage:
        content_type = (image.content_type or "").split(";", 1)[0].strip().lower()
        if not content_type.startswith("image/"):
            raise ValidationError("Only image files are allowed!", kind=ErrorKind.INVALID_UPLOAD)
        data = image.data or b""
        if len(data) > self._max_bytes:
            raise ValidationError("File too large", kind=ErrorKind.FILE_TOO_LARGE)
        if not data:
            raise ValidationError("Uploaded image is empty", kind=ErrorKind.INVALID_UPLOAD)
        return SourceImage(data=data, mime_type=content_type, filename=image.filename, origin="upload")

    async def download(self, url: str, task_id: str) -> SourceImage:
        """Fetch a remote image into memory."""
        parsed = urlparse(url)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise DownloadError("Only HTTP and HTTPS URLs are supported")

        logger.info("Downloading source image for task=%s from %s", task_id[:8], parsed.netloc)
        client = self._client or httpx.AsyncClient()
        buffer = bytearray()
        try:
            async with client.stream(
                "GET",
                url,
                headers={"User-Agent": USER_AGENT},
                follow_redirects=True,
                timeout=self._timeout,
            ) as response:
                if response.status_code != 200:
                    raise DownloadError(f"HTTP {response.status_code}: {response.reason_phrase}")
                content_type = response.headers.get("content-type", "")
                if not content_type.lower().startswith("image/"):
                    raise DownloadError("URL does not point to an image file")
                async for chunk in response.aiter_bytes(chunk_size=65536):
                    buffer.extend(chunk)
                    if len(buffer) > self._max_bytes:
                        raise DownloadError("Remote image is larger than the upload limit")
        except httpx.HTTPError as exc:
            raise DownloadError(f"Failed to download image: {exc}") from exc
        finally:
            if self._client is None:
                await client.aclose()

        ext = os.path.splitext(parsed.path)[1] or ".jpg"
        filename = f"url-{task_id}-{int(time.time() * 1000)}{ext}"
        mime_type = content_type.split(";", 1)[0].strip().lower()
        return SourceImage(
            data=bytes(buffer),
            mime_type=mime_type,
            filename=filename,
            origin="url",
            url=url,
        )

    async def resolve(self, image: ImageInput, task_id: str) -> SourceImage:
        """Uploaded bytes take precedence over a URL."""
        if image.is_upload:
            return self.from_upload(image)
        if image.url:
            return await self.download(image.url, task_id)
        raise ValidationError("No image provided", kind=ErrorKind.MISSING_IMAGE)

    async def resolve_all(
        self,
        payload: GenerationPayload,
        task_id: str,
        fields: Collection[str] | None = None,
    ) -> ResolvedImages:
        """Resolve image fields of a payload, one after another.

        Only the names in ``fields`` are touched when given; anything else
        the caller sent is left unread.
        """
        resolved = ResolvedImages()
        for name, value in payload.image_inputs().items():
            if fields is not None and name not in fields:
                logger.debug("Ignoring unused image field %s for task=%s", name, task_id[:8])
                continue
            if isinstance(value, list):
                resolved.reference_images = [await self.resolve(v, task_id) for v in value]
            else:
                setattr(resolved, name, await self.resolve(value, task_id))
        return resolved
