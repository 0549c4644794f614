"""Mode dispatcher: validate → resolve images → register → run strategy.

Validation and image resolution happen before anything is written to the
registry, so a rejected request leaves no trace. Once a task is registered
it always ends ``completed`` or ``failed``.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from typing import Any, Collection, Mapping

from promptmedia.errors import BackendError, ErrorKind, GenerationCancelledError, MediaError, ValidationError
from promptmedia.models.request import GenerationPayload, Mode, ResolvedImages
from promptmedia.models.task import Task
from promptmedia.services.image_source import ImageSourceResolver, probe_image_info
from promptmedia.services.strategies import BaseStrategy
from promptmedia.services.task_registry import TaskRegistry

logger = logging.getLogger(__name__)


def parse_mode(raw: str | Mode | None, allowed: Collection[Mode] | None = None) -> Mode:
    """Parse a mode string, optionally restricted to a family of modes."""
    valid = [m for m in Mode if allowed is None or m in allowed]
    if isinstance(raw, Mode):
        mode = raw
    else:
        try:
            mode = Mode((raw or "").strip())
        except ValueError:
            mode = None
    if mode is None or mode not in valid:
        listed = ", ".join(m.value for m in valid)
        raise ValidationError(f"Mode is required. Valid modes: {listed}", kind=ErrorKind.UNKNOWN_MODE)
    return mode


def summarize_request(
    payload: GenerationPayload,
    images: ResolvedImages,
    extra: Mapping[str, Any],
) -> dict[str, Any]:
    """Request fields copied onto the task record."""
    primary = images.primary()
    if primary is None:
        source, url, name, info = "none", None, None, None
    else:
        source = primary.origin
        url = primary.url
        name = primary.filename
        info = probe_image_info(primary.data)
    summary: dict[str, Any] = {
        "prompt": payload.prompt,
        "imageSource": source,
        "originalUrl": url,
        "originalImage": name,
        "imageInfo": info,
    }
    summary.update(extra)
    return summary


class ModeDispatcher:
    """Routes a payload to the strategy for its mode and records the task."""

    def __init__(
        self,
        strategies: Mapping[Mode, BaseStrategy],
        registry: TaskRegistry,
        resolver: ImageSourceResolver,
    ) -> None:
        self.strategies = dict(strategies)
        self.registry = registry
        self.resolver = resolver
        self._cancel_events: dict[str, asyncio.Event] = {}

    def strategy_for(self, mode: Mode) -> BaseStrategy:
        strategy = self.strategies.get(mode)
        if strategy is None:
            raise ValidationError(f"No strategy configured for mode {mode.value}", kind=ErrorKind.UNKNOWN_MODE)
        return strategy

    async def dispatch(
        self,
        mode: str | Mode | None,
        payload: GenerationPayload,
        *,
        allowed: Collection[Mode] | None = None,
        cancel_event: asyncio.Event | None = None,
    ) -> Task:
        """Run one request to completion and return its terminal task.

        Raises the strategy's ``MediaError`` (with ``task_id`` set once the
        task exists) on failure.
        """
        parsed = parse_mode(mode, allowed)
        strategy = self.strategy_for(parsed)
        strategy.validate(payload)

        task_id = str(uuid.uuid4())
        images = await self.resolver.resolve_all(payload, task_id, strategy.image_fields)
        request = strategy.build_request(payload, images)

        task = Task(
            id=task_id,
            mode=parsed,
            request=summarize_request(payload, images, strategy.summarize(request)),
        )
        self.registry.insert(task)
        logger.info("Task %s registered: mode=%s", task_id[:8], parsed.value)

        event = cancel_event or asyncio.Event()
        self._cancel_events[task_id] = event
        try:
            outcome = await strategy.execute(request, task_id, cancel_event=event)
        except MediaError as e:
            e.task_id = task_id
            task.fail(e.to_error_info())
            raise
        except asyncio.CancelledError:
            task.fail(GenerationCancelledError("Request cancelled").to_error_info())
            logger.warning("Task %s cancelled while in flight", task_id[:8])
            raise
        except Exception as e:
            logger.exception("Task %s failed with unexpected error", task_id[:8])
            err = BackendError(str(e) or type(e).__name__, kind=ErrorKind.BACKEND_FAILURE, task_id=task_id)
            task.fail(err.to_error_info())
            raise err from e
        finally:
            self._cancel_events.pop(task_id, None)

        task.complete(outcome.artifact, outcome.result)
        logger.info("Task %s completed: %s", task_id[:8], outcome.artifact.filename)
        return task

    def cancel(self, task_id: str) -> bool:
        """Signal an in-flight task to stop at its next suspension point."""
        event = self._cancel_events.get(task_id)
        if event is None:
            return False
        event.set()
        logger.info("Task %s cancellation requested", task_id[:8])
        return True

    def in_flight(self) -> list[str]:
        return list(self._cancel_events)

    def get_metrics(self) -> list[dict[str, Any]]:
        return [s.get_metrics() for s in self.strategies.values()]
