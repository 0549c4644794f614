"""Image generation strategies: text-to-image and image-to-image."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Union

from promptmedia.errors import ErrorKind, BackendError
from promptmedia.models.artifact import Artifact, mime_to_suffix
from promptmedia.models.request import (
    GenerationPayload,
    ImageToImageRequest,
    Mode,
    ResolvedImages,
    TextToImageRequest,
)
from promptmedia.services.providers.base import BackendRequest, BackendResponse, ImageBackend
from .base import BaseStrategy, GenerationOutcome, processed_at

logger = logging.getLogger(__name__)

IMAGE_MODALITIES = ("IMAGE", "TEXT")


def extract_image(response: BackendResponse) -> tuple[bytes, str]:
    """First inline image of the first candidate, or NoArtifactReturned."""
    for image in response.images:
        if image.data:
            return image.data, image.mime_type or "image/png"
    logger.warning(
        "Image model returned no image data (model=%s, finish_reason=%s, text=%r)",
        response.model, response.finish_reason, (response.text or "")[:200],
    )
    raise BackendError(
        "No image data returned from Gemini API",
        kind=ErrorKind.NO_ARTIFACT_RETURNED,
    )


class _ImageStrategy(BaseStrategy[Any]):
    timeout = 180.0

    def __init__(self, backend: ImageBackend, *, model: str, aspect_ratio: str = "1:1") -> None:
        super().__init__()
        self.backend = backend
        self.model = model
        self.aspect_ratio = aspect_ratio

    async def _call_backend(self, parts: list) -> tuple[bytes, str]:
        response = await self.backend.generate(BackendRequest(
            model=self.model,
            parts=parts,
            response_modalities=IMAGE_MODALITIES,
            aspect_ratio=self.aspect_ratio,
        ))
        return extract_image(response)

    def _base_result(self, artifact: Artifact, prompt: str, task_id: str) -> dict[str, Any]:
        return {
            "mode": self.mode.value,
            "imageUrl": f"/image/{task_id}",
            "generatedImageUrl": artifact.to_data_url(),
            "base64Data": artifact.to_base64(),
            "mimeType": artifact.mime_type,
            "prompt": prompt,
            "processedAt": processed_at(),
        }


class TextToImageStrategy(_ImageStrategy):
    mode = Mode.TEXT_TO_IMAGE

    def build_request(self, payload: GenerationPayload, images: ResolvedImages) -> TextToImageRequest:
        return TextToImageRequest(prompt=payload.prompt.strip())

    async def _generate(
        self,
        request: TextToImageRequest,
        task_id: str,
        *,
        cancel_event: asyncio.Event | None = None,
    ) -> GenerationOutcome:
        logger.info("Generating image from text prompt for task=%s", task_id[:8])
        data, mime_type = await self._call_backend([request.prompt])
        artifact = Artifact(
            data=data,
            mime_type=mime_type,
            filename=f"generated-{task_id}.{mime_to_suffix(mime_type, 'png')}",
        )
        result = self._base_result(artifact, request.prompt, task_id)
        result.update({
            "message": f'Successfully generated image from prompt: "{request.prompt}"',
            "style": "ai_generated",
            "dimensions": {"width": 1024, "height": 1024},
        })
        return GenerationOutcome(artifact=artifact, result=result)


class ImageToImageStrategy(_ImageStrategy):
    mode = Mode.IMAGE_TO_IMAGE
    image_fields = ("image",)

    def validate(self, payload: GenerationPayload) -> None:
        super().validate(payload)
        self._require_image(
            payload.image,
            "Either image file upload or imageUrl is required for image-to-image mode",
        )

    def build_request(self, payload: GenerationPayload, images: ResolvedImages) -> ImageToImageRequest:
        return ImageToImageRequest(prompt=payload.prompt.strip(), source_image=images.image)

    async def _generate(
        self,
        request: ImageToImageRequest,
        task_id: str,
        *,
        cancel_event: asyncio.Event | None = None,
    ) -> GenerationOutcome:
        logger.info("Transforming image with prompt for task=%s", task_id[:8])
        data, mime_type = await self._call_backend([request.source_image, request.prompt])
        artifact = Artifact(data=data, mime_type=mime_type, filename=f"transformed-{task_id}.png")
        result = self._base_result(artifact, request.prompt, task_id)
        result.update({
            "message": f'Successfully transformed image with prompt: "{request.prompt}"',
            "originalImageName": request.source_image.filename,
            "transformation": "ai_remix",
        })
        return GenerationOutcome(artifact=artifact, result=result)


ImageStrategy = Union[TextToImageStrategy, ImageToImageStrategy]
