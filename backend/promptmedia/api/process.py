from __future__ import annotations
"""Generation endpoints: /process (image modes) and /generate-video (video modes).

Both accept JSON, urlencoded or multipart bodies. Uploaded files take
precedence over the matching ``*Url`` field.
"""

import json
import logging
from typing import Any

from fastapi import APIRouter, Depends, Request
from pydantic import ValidationError as PydanticValidationError
from starlette.datastructures import UploadFile

from promptmedia.errors import ErrorKind, ValidationError
from promptmedia.models.artifact import ImageInput
from promptmedia.models.request import IMAGE_MODES, VIDEO_MODES, GenerationPayload
from promptmedia.models.task import Task
from promptmedia.schemas import GenerationFields, ProcessResponse
from promptmedia.services.dispatcher import ModeDispatcher
from .deps import get_dispatcher

logger = logging.getLogger(__name__)

router = APIRouter()

_LIST_FIELDS = {"referenceImageUrls", "referenceImages"}


async def _read_body(request: Request) -> tuple[dict[str, Any], dict[str, list[ImageInput]]]:
    """Split a request body into text fields and uploaded images."""
    content_type = request.headers.get("content-type", "").lower()
    if content_type.startswith("application/json"):
        try:
            body = await request.json()
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise ValidationError("Request body is not valid JSON", details=str(e)) from e
        if not isinstance(body, dict):
            raise ValidationError("Request body must be a JSON object")
        return body, {}

    fields: dict[str, Any] = {}
    files: dict[str, list[ImageInput]] = {}
    async with request.form() as form:
        for raw_key, value in form.multi_items():
            key = raw_key[:-2] if raw_key.endswith("[]") else raw_key
            if isinstance(value, UploadFile):
                if not value.filename and not value.size:
                    continue
                data = await value.read()
                files.setdefault(key, []).append(ImageInput(
                    data=data,
                    content_type=value.content_type,
                    filename=value.filename,
                ))
            elif key in _LIST_FIELDS:
                fields.setdefault(key, []).append(value)
            else:
                fields[key] = value
    return fields, files


def _image(files: dict[str, list[ImageInput]], file_key: str, url: str | None) -> ImageInput | None:
    uploads = files.get(file_key)
    if uploads:
        return uploads[0]
    if url and url.strip():
        return ImageInput(url=url.strip())
    return None


async def read_payload(request: Request) -> tuple[str | None, GenerationPayload]:
    """Parse any supported body into the mode string and a GenerationPayload."""
    raw_fields, files = await _read_body(request)
    try:
        fields = GenerationFields.model_validate(raw_fields)
    except PydanticValidationError as e:
        raise ValidationError("Invalid request fields", kind=ErrorKind.INVALID_FIELD, details=str(e)) from e

    references = list(files.get("referenceImages", []))
    references += [ImageInput(url=u.strip()) for u in fields.referenceImageUrls if u and u.strip()]

    payload = GenerationPayload(
        prompt=fields.prompt,
        image=_image(files, "image", fields.imageUrl),
        resolution=fields.resolution,
        aspect_ratio=fields.aspectRatio,
        model=fields.model,
        fps=fields.fps,
        duration_seconds=fields.durationSeconds,
        start_frame=_image(files, "startFrame", fields.startFrameUrl),
        end_frame=_image(files, "endFrame", fields.endFrameUrl),
        reference_images=references,
        style_image=_image(files, "styleImage", fields.styleImageUrl),
    )
    return fields.mode, payload


def _respond(task: Task) -> ProcessResponse:
    return ProcessResponse(success=True, taskId=task.id, status=task.status.value, result=task.result)


@router.post("/process", response_model=ProcessResponse)
async def process(request: Request, dispatcher: ModeDispatcher = Depends(get_dispatcher)):
    """Run an image mode (text-to-image, image-to-image, image-to-desc)."""
    mode, payload = await read_payload(request)
    logger.info("POST /process mode=%s", mode)
    task = await dispatcher.dispatch(mode, payload, allowed=IMAGE_MODES)
    return _respond(task)


@router.post("/generate-video", response_model=ProcessResponse)
async def generate_video(request: Request, dispatcher: ModeDispatcher = Depends(get_dispatcher)):
    """Run a video mode; blocks until the operation finishes or times out."""
    mode, payload = await read_payload(request)
    logger.info("POST /generate-video mode=%s", mode)
    task = await dispatcher.dispatch(mode, payload, allowed=VIDEO_MODES)
    return _respond(task)
