"""Gemini image / text generation adapter (google-genai)."""

from __future__ import annotations

import base64
import logging
from typing import Any, List, Optional

from google import genai
from google.genai import errors as genai_errors
from google.genai import types

from promptmedia.errors import BackendError
from promptmedia.models.artifact import SourceImage
from .base import BackendRequest, BackendResponse, InlineImage, RequestPart

logger = logging.getLogger(__name__)


def _to_part(part: RequestPart) -> types.Part:
    if isinstance(part, SourceImage):
        return types.Part.from_bytes(data=part.data, mime_type=part.mime_type)
    return types.Part.from_text(text=part)


def _build_config(request: BackendRequest) -> Optional[types.GenerateContentConfig]:
    config_kwargs: dict[str, Any] = {}
    if request.response_modalities:
        config_kwargs["response_modalities"] = list(request.response_modalities)
    if request.aspect_ratio:
        config_kwargs["image_config"] = types.ImageConfig(aspect_ratio=request.aspect_ratio)
    if not config_kwargs:
        return None
    return types.GenerateContentConfig(**config_kwargs)


def unwrap_response(response: Any, model: str | None = None) -> BackendResponse:
    """Collect inline images and text from the first response candidate."""
    candidates = getattr(response, "candidates", None) or []
    if not candidates:
        return BackendResponse(model=model)

    candidate = candidates[0]
    content = getattr(candidate, "content", None)
    parts = getattr(content, "parts", None) or []
    images: List[InlineImage] = []
    texts: List[str] = []
    for part in parts:
        inline_data = getattr(part, "inline_data", None)
        if inline_data is not None and getattr(inline_data, "data", None):
            data = inline_data.data
            if isinstance(data, str):
                data = base64.b64decode(data)
            images.append(InlineImage(data=data, mime_type=getattr(inline_data, "mime_type", None)))
            continue
        text = getattr(part, "text", None)
        if text:
            texts.append(text)

    finish_reason = getattr(candidate, "finish_reason", None)
    return BackendResponse(
        images=images,
        text="".join(texts) if texts else None,
        model=model,
        finish_reason=str(finish_reason) if finish_reason is not None else None,
    )


class GeminiImageBackend:
    """``ImageBackend`` backed by ``client.aio.models.generate_content``."""

    name = "gemini"

    def __init__(self, api_key: str, client: genai.Client | None = None) -> None:
        self._api_key = api_key
        self._client = client

    def _get_client(self) -> genai.Client:
        if self._client is None:
            if not self._api_key:
                raise BackendError("GOOGLE_API_KEY is not configured")
            self._client = genai.Client(api_key=self._api_key)
        return self._client

    async def generate(self, request: BackendRequest) -> BackendResponse:
        client = self._get_client()
        contents = [types.Content(role="user", parts=[_to_part(p) for p in request.parts])]
        logger.info(
            "Calling Gemini model=%s parts=%d modalities=%s",
            request.model, len(request.parts), list(request.response_modalities),
        )
        try:
            response = await client.aio.models.generate_content(
                model=request.model,
                contents=contents,
                config=_build_config(request),
            )
        except genai_errors.APIError as exc:
            logger.error("Gemini model=%s failed: %s", request.model, exc)
            raise BackendError(f"Gemini request failed: {exc}") from exc
        return unwrap_response(response, request.model)
