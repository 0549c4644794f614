"""Gemini Veo video generation provider.

Long-running operation pattern over the Google AI REST API:
  POST models/{model}:predictLongRunning → operation name
  GET  {operation name}                  → poll until done
  GET  {video uri}                       → authenticated download
"""

from __future__ import annotations

import base64
import logging
from typing import Any

import httpx

from promptmedia.errors import BackendError
from promptmedia.models.artifact import SourceImage
from .base import GeneratedVideo, OperationHandle, VideoBackendRequest

logger = logging.getLogger(__name__)

_DEFAULT_ENDPOINT = "https://generativelanguage.googleapis.com/v1beta"
MAX_DOWNLOAD_REDIRECTS = 5


def _inline_image(image: SourceImage) -> dict[str, str]:
    return {
        "bytesBase64Encoded": base64.b64encode(image.data).decode("ascii"),
        "mimeType": image.mime_type,
    }


def build_predict_body(request: VideoBackendRequest) -> dict[str, Any]:
    """Translate a normalized video request into the Veo REST body."""
    instance: dict[str, Any] = {"prompt": request.prompt}
    if request.image is not None:
        instance["image"] = _inline_image(request.image)
    if request.last_frame is not None:
        instance["lastFrame"] = _inline_image(request.last_frame)

    references: list[dict[str, Any]] = [
        {"image": _inline_image(img), "referenceType": "asset"}
        for img in request.reference_images
    ]
    if request.style_image is not None:
        references.append({"image": _inline_image(request.style_image), "referenceType": "style"})
    if references:
        instance["referenceImages"] = references

    return {"instances": [instance], "parameters": dict(request.config)}


def parse_operation(data: dict[str, Any]) -> OperationHandle:
    """Build a handle from an operation resource."""
    name = data.get("name", "")
    done = bool(data.get("done"))
    error = data.get("error")
    videos: list[GeneratedVideo] = []

    if done and not error:
        response = data.get("response", {})
        samples = (
            response.get("generateVideoResponse", {}).get("generatedSamples")
            or response.get("generatedVideos")
            or []
        )
        for sample in samples:
            video = sample.get("video", {})
            inline = video.get("bytesBase64Encoded") or video.get("videoBytes")
            videos.append(GeneratedVideo(
                uri=video.get("uri"),
                mime_type=video.get("mimeType") or video.get("encoding"),
                data=base64.b64decode(inline) if inline else None,
            ))

    return OperationHandle(
        name=name,
        done=done,
        videos=videos,
        error=error.get("message", "unknown") if isinstance(error, dict) else (str(error) if error else None),
        raw=data,
    )


class GeminiVideoBackend:
    """``VideoBackend`` for Veo models."""

    name = "gemini-veo"

    def __init__(
        self,
        api_key: str,
        *,
        base_url: str | None = None,
        http_client: httpx.AsyncClient | None = None,
        request_timeout: float = 60.0,
        download_timeout: float = 300.0,
    ) -> None:
        self._api_key = api_key
        self._endpoint = (base_url or _DEFAULT_ENDPOINT).rstrip("/")
        self._client = http_client or httpx.AsyncClient(timeout=request_timeout)
        self._own_client = http_client is None
        self._download_timeout = download_timeout

    def _headers(self) -> dict[str, str]:
        if not self._api_key:
            raise BackendError("GOOGLE_API_KEY is not configured")
        return {"x-goog-api-key": self._api_key, "Content-Type": "application/json"}

    async def submit(self, request: VideoBackendRequest) -> OperationHandle:
        url = f"{self._endpoint}/models/{request.settings.model}:predictLongRunning"
        body = build_predict_body(request)
        logger.info(
            "Submitting Veo operation model=%s mode=%s params=%s",
            request.settings.model, request.mode.value, body["parameters"],
        )
        data = await self._request_json("POST", url, json=body)
        handle = parse_operation(data)
        if not handle.name:
            raise BackendError(f"Gemini Veo returned no operation name: {list(data.keys())}")
        return handle

    async def poll(self, handle: OperationHandle) -> OperationHandle:
        data = await self._request_json("GET", f"{self._endpoint}/{handle.name}")
        return parse_operation(data)

    async def download(self, video: GeneratedVideo) -> bytes:
        """Fetch the generated video into memory."""
        if video.data is not None:
            return video.data
        if not video.uri:
            raise BackendError("Gemini Veo: video has neither inline data nor a uri")

        buffer = bytearray()
        try:
            response = await self._open_download(video.uri)
            try:
                response.raise_for_status()
                async for chunk in response.aiter_bytes(chunk_size=65536):
                    buffer.extend(chunk)
            finally:
                await response.aclose()
        except httpx.HTTPError as exc:
            raise BackendError(f"Gemini Veo video download failed: {exc}") from exc

        logger.info("Downloaded Veo video (%d bytes)", len(buffer))
        return bytes(buffer)

    async def _open_download(self, uri: str) -> httpx.Response:
        """Follow redirects by hand; the API key only goes to the origin host."""
        url = httpx.URL(uri)
        headers = {"x-goog-api-key": self._api_key}
        for _ in range(MAX_DOWNLOAD_REDIRECTS + 1):
            request = self._client.build_request("GET", url, headers=headers, timeout=self._download_timeout)
            response = await self._client.send(request, stream=True, follow_redirects=False)
            if not response.is_redirect:
                return response
            await response.aclose()
            next_url = url.join(response.headers["location"])
            if next_url.host != url.host:
                headers = {}
            url = next_url
        raise BackendError(f"Gemini Veo video download exceeded {MAX_DOWNLOAD_REDIRECTS} redirects")

    async def aclose(self) -> None:
        if self._own_client:
            await self._client.aclose()

    async def _request_json(self, method: str, url: str, **kwargs: Any) -> dict[str, Any]:
        try:
            resp = await self._client.request(method, url, headers=self._headers(), **kwargs)
            resp.raise_for_status()
        except httpx.HTTPStatusError as exc:
            detail = exc.response.text[:500]
            logger.error("Gemini Veo HTTP %d: %s", exc.response.status_code, detail)
            raise BackendError(
                f"Gemini Veo HTTP error {exc.response.status_code}", details=detail,
            ) from exc
        except httpx.HTTPError as exc:
            raise BackendError(f"Gemini Veo request failed: {exc}") from exc
        return resp.json()
