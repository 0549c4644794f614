"""Base generation strategy with validation hooks, timeout and usage metrics."""

from __future__ import annotations

import asyncio
import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Awaitable, Generic, TypeVar

from promptmedia.errors import (
    ErrorKind,
    GenerationCancelledError,
    GenerationTimeoutError,
    MediaError,
    ValidationError,
)
from promptmedia.models.artifact import Artifact, ImageInput
from promptmedia.models.request import GenerationPayload, Mode, ResolvedImages

logger = logging.getLogger(__name__)

R = TypeVar("R")


def processed_at() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass
class GenerationOutcome:
    """What a strategy hands back: the artifact plus the inline result body."""
    artifact: Artifact
    result: dict[str, Any]


class BaseStrategy(ABC, Generic[R]):
    """Abstract base class for all generation strategies.

    Provides:
    - Shared required-field checks
    - Optional timeout enforcement
    - Call / error / latency counters
    """

    mode: Mode
    prompt_required: bool = True
    timeout: float | None = None
    # Payload image fields this strategy reads; others are never resolved.
    image_fields: tuple[str, ...] = ()

    def __init__(self) -> None:
        self._total_calls = 0
        self._total_errors = 0
        self._total_latency_ms = 0

    # -- validation --

    def validate(self, payload: GenerationPayload) -> None:
        """Check required fields before any I/O. Raises ValidationError."""
        if self.prompt_required and not (payload.prompt or "").strip():
            raise ValidationError(
                f"Prompt is required for {self.mode.value} mode",
                kind=ErrorKind.MISSING_PROMPT,
            )

    def _require_image(self, image: ImageInput | None, message: str) -> None:
        if image is None or image.is_empty:
            raise ValidationError(message, kind=ErrorKind.MISSING_IMAGE)

    @abstractmethod
    def build_request(self, payload: GenerationPayload, images: ResolvedImages) -> R:
        """Assemble the typed request from the payload and resolved images."""
        ...

    def summarize(self, request: R) -> dict[str, Any]:
        """Extra request fields recorded on the task."""
        return {}

    # -- execution --

    async def execute(
        self,
        request: R,
        task_id: str,
        *,
        cancel_event: asyncio.Event | None = None,
    ) -> GenerationOutcome:
        """Run the strategy, recording latency and errors."""
        self._total_calls += 1
        start = time.monotonic()
        try:
            coro = self._until_cancelled(
                self._generate(request, task_id, cancel_event=cancel_event),
                cancel_event,
            )
            if self.timeout is not None:
                try:
                    outcome = await asyncio.wait_for(coro, timeout=self.timeout)
                except asyncio.TimeoutError as e:
                    raise GenerationTimeoutError(
                        f"{self.mode.value} timed out after {self.timeout:.0f}s"
                    ) from e
            else:
                outcome = await coro
        except MediaError as e:
            self._total_errors += 1
            logger.warning("%s failed for task=%s: [%s] %s", self.mode.value, task_id[:8], e.kind.value, e)
            raise
        except Exception:
            self._total_errors += 1
            raise

        latency = int((time.monotonic() - start) * 1000)
        self._total_latency_ms += latency
        logger.info(
            "%s completed for task=%s in %dms (%s, %d bytes)",
            self.mode.value, task_id[:8], latency,
            outcome.artifact.mime_type, outcome.artifact.size,
        )
        return outcome

    @staticmethod
    async def _until_cancelled(
        coro: Awaitable[GenerationOutcome],
        cancel_event: asyncio.Event | None,
    ) -> GenerationOutcome:
        """Await ``coro`` unless ``cancel_event`` fires first."""
        if cancel_event is None:
            return await coro
        work = asyncio.ensure_future(coro)
        cancelled = asyncio.ensure_future(cancel_event.wait())
        try:
            await asyncio.wait({work, cancelled}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            for fut in (work, cancelled):
                if not fut.done():
                    fut.cancel()
        if work.done() and not work.cancelled():
            return work.result()
        # Let the generation unwind before reporting.
        await asyncio.gather(work, return_exceptions=True)
        raise GenerationCancelledError("Request cancelled")

    @abstractmethod
    async def _generate(
        self,
        request: R,
        task_id: str,
        *,
        cancel_event: asyncio.Event | None = None,
    ) -> GenerationOutcome:
        """Subclass implements actual generation logic."""
        ...

    def get_metrics(self) -> dict[str, Any]:
        """Return usage statistics for this strategy."""
        succeeded = self._total_calls - self._total_errors
        return {
            "mode": self.mode.value,
            "total_calls": self._total_calls,
            "total_errors": self._total_errors,
            "error_rate": round(self._total_errors / max(self._total_calls, 1), 3),
            "avg_latency_ms": round(self._total_latency_ms / succeeded) if succeeded > 0 else 0,
        }
