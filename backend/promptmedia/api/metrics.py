from __future__ import annotations
"""Metrics API: per-strategy generation usage statistics."""

from fastapi import APIRouter, Depends

from promptmedia.services.dispatcher import ModeDispatcher
from promptmedia.services.task_registry import TaskRegistry
from .deps import get_dispatcher, get_registry

router = APIRouter()


@router.get("/generation")
async def generation_metrics(
    dispatcher: ModeDispatcher = Depends(get_dispatcher),
    registry: TaskRegistry = Depends(get_registry),
):
    """Return usage statistics for every registered strategy."""
    return {
        "strategies": dispatcher.get_metrics(),
        "inFlight": len(dispatcher.in_flight()),
        "tasks": len(registry),
        "capacity": registry.capacity,
    }
