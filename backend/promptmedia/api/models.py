"""Model listing API: supported video models and their capabilities."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter

from promptmedia.services.video_registry import VIDEO_REGISTRY

router = APIRouter()


@router.get("/video")
async def list_video_models() -> dict[str, Any]:
    """List all supported video models with their capabilities."""
    models = VIDEO_REGISTRY.to_dict_list()
    return {"models": models, "total": len(models)}
