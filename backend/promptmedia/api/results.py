"""Task retrieval: records, listing, deletion, cancellation and raw artifacts."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import Response

from promptmedia.errors import NotFoundError
from promptmedia.models.task import Task
from promptmedia.schemas import CancelResponse, DeleteResponse, TaskListResponse
from promptmedia.services.dispatcher import ModeDispatcher
from promptmedia.services.task_registry import TaskRegistry
from .deps import get_dispatcher, get_registry

logger = logging.getLogger(__name__)

router = APIRouter()


def _require_task(registry: TaskRegistry, task_id: str) -> Task:
    task = registry.get(task_id)
    if task is None:
        raise NotFoundError("Task not found")
    return task


@router.get("/result/{task_id}")
async def get_result(task_id: str, registry: TaskRegistry = Depends(get_registry)):
    return _require_task(registry, task_id).to_dict()


@router.get("/results", response_model=TaskListResponse)
async def list_results(registry: TaskRegistry = Depends(get_registry)):
    tasks = registry.list()
    return TaskListResponse(total=len(tasks), results=[t.to_dict() for t in tasks])


@router.delete("/result/{task_id}", response_model=DeleteResponse)
async def delete_result(task_id: str, registry: TaskRegistry = Depends(get_registry)):
    if not registry.delete(task_id):
        raise NotFoundError("Task not found")
    logger.info("Deleted task %s", task_id[:8])
    return DeleteResponse(success=True, message="Result deleted successfully")


@router.post("/result/{task_id}/cancel", response_model=CancelResponse)
async def cancel_result(task_id: str, dispatcher: ModeDispatcher = Depends(get_dispatcher)):
    if not dispatcher.cancel(task_id):
        raise NotFoundError("No in-flight task with this id")
    return CancelResponse(success=True, taskId=task_id)


def _artifact_response(registry: TaskRegistry, task_id: str, kind: str) -> Response:
    task = _require_task(registry, task_id)
    artifact = task.artifact
    if artifact is None or artifact.kind != kind:
        raise NotFoundError(f"Task has no {kind} output")
    return Response(
        content=artifact.data,
        media_type=artifact.mime_type,
        headers={
            "Content-Length": str(artifact.size),
            "Content-Disposition": f'inline; filename="{artifact.filename}"',
        },
    )


@router.get("/image/{task_id}")
async def get_image(task_id: str, registry: TaskRegistry = Depends(get_registry)):
    """Raw bytes of a generated image."""
    return _artifact_response(registry, task_id, "image")


@router.get("/video/{task_id}")
async def get_video(task_id: str, registry: TaskRegistry = Depends(get_registry)):
    """Raw bytes of a generated video."""
    return _artifact_response(registry, task_id, "video")
