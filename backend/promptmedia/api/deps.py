"""FastAPI dependencies resolving the shared services from ``app.state``."""

from __future__ import annotations

from fastapi import Request

from promptmedia.services.dispatcher import ModeDispatcher
from promptmedia.services.task_registry import TaskRegistry


def get_dispatcher(request: Request) -> ModeDispatcher:
    return request.app.state.dispatcher


def get_registry(request: Request) -> TaskRegistry:
    return request.app.state.registry
