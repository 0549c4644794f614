"""Image-to-description strategy and keyword tagging."""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

from promptmedia.errors import BackendError, ErrorKind
from promptmedia.models.artifact import Artifact
from promptmedia.models.request import GenerationPayload, ImageToDescRequest, Mode, ResolvedImages
from promptmedia.services.providers.base import BackendRequest, ImageBackend
from .base import BaseStrategy, GenerationOutcome, processed_at

logger = logging.getLogger(__name__)

OBJECT_KEYWORDS = (
    "person", "people", "woman", "man", "child", "building",
    "car", "tree", "flower", "animal", "cat", "dog",
)
COLOR_KEYWORDS = (
    "red", "blue", "green", "yellow", "purple", "orange",
    "pink", "brown", "black", "white", "gray",
)

DESCRIPTION_CONFIDENCE = 0.95


def build_description_prompt(prompt: Optional[str] = None) -> str:
    text = "Analyze this image in detail and provide a comprehensive description."
    if prompt and prompt.strip():
        text += f" Focus specifically on: {prompt.strip()}"
    text += (
        " Include details about objects, people, colors, lighting, composition,"
        " mood, and any text visible in the image."
    )
    return text


def _match(words: list[str], keywords: tuple[str, ...]) -> list[str]:
    # Substring match, so "man" also hits "woman" and "manhattan".
    return [kw for kw in keywords if any(kw in word for word in words)]


def tag_keywords(description: str) -> tuple[list[str], list[str]]:
    """Pull object and colour tags out of a free-text description.

    Falls back to ``["various objects"]`` / ``["multiple colors"]`` when
    nothing matches.
    """
    words = description.lower().split()
    objects = _match(words, OBJECT_KEYWORDS) or ["various objects"]
    colors = _match(words, COLOR_KEYWORDS) or ["multiple colors"]
    return objects, colors


class ImageToDescStrategy(BaseStrategy[ImageToDescRequest]):
    mode = Mode.IMAGE_TO_DESC
    prompt_required = False
    image_fields = ("image",)
    timeout = 120.0

    def __init__(self, backend: ImageBackend, *, model: str) -> None:
        super().__init__()
        self.backend = backend
        self.model = model

    def validate(self, payload: GenerationPayload) -> None:
        super().validate(payload)
        self._require_image(
            payload.image,
            "Either image file upload or imageUrl is required for image-to-desc mode",
        )

    def build_request(self, payload: GenerationPayload, images: ResolvedImages) -> ImageToDescRequest:
        prompt = (payload.prompt or "").strip() or None
        return ImageToDescRequest(prompt=prompt, source_image=images.image)

    async def _generate(
        self,
        request: ImageToDescRequest,
        task_id: str,
        *,
        cancel_event: asyncio.Event | None = None,
    ) -> GenerationOutcome:
        desc_prompt = build_description_prompt(request.prompt)
        logger.info("Describing image for task=%s model=%s", task_id[:8], self.model)
        response = await self.backend.generate(BackendRequest(
            model=self.model,
            parts=[desc_prompt, request.source_image],
        ))
        description = (response.text or "").strip()
        if not description:
            raise BackendError(
                "No description returned from Gemini API",
                kind=ErrorKind.NO_ARTIFACT_RETURNED,
            )

        objects, colors = tag_keywords(description)
        artifact = Artifact(
            data=description.encode("utf-8"),
            mime_type="text/plain; charset=utf-8",
            filename=f"description-{task_id}.txt",
        )
        result = {
            "mode": self.mode.value,
            "message": "Successfully analyzed and described the image using AI",
            "description": description,
            "originalPrompt": request.prompt,
            "detectedObjects": objects,
            "colors": colors,
            "confidence": DESCRIPTION_CONFIDENCE,
            "originalImageName": request.source_image.filename,
            "processedAt": processed_at(),
        }
        return GenerationOutcome(artifact=artifact, result=result)
