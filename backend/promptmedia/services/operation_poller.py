"""Drives a long-running video operation to a terminal state.

State machine:
    submit → IN_PROGRESS ──(sleep interval, poll)──► IN_PROGRESS
                         └──(handle.done)─────────► TERMINAL

The loop is bounded by ``PollPolicy.timeout`` (seconds) and, optionally,
``PollPolicy.max_attempts``; exhausting either raises ``GenerationTimeoutError``.
"""

from __future__ import annotations

import asyncio
import enum
import logging
import time
from dataclasses import dataclass
from typing import Awaitable, Callable

from promptmedia.config import Settings
from promptmedia.errors import BackendError, ErrorKind, GenerationCancelledError, GenerationTimeoutError
from promptmedia.models.artifact import Artifact, mime_to_suffix
from promptmedia.services.providers.base import OperationHandle, VideoBackend

logger = logging.getLogger(__name__)


class PollState(str, enum.Enum):
    IN_PROGRESS = "in_progress"
    TERMINAL = "terminal"


@dataclass(frozen=True)
class PollPolicy:
    """Polling budget for one operation."""

    interval: float = 5.0
    timeout: float | None = 600.0
    max_attempts: int | None = None

    @classmethod
    def from_settings(cls, settings: Settings) -> "PollPolicy":
        return cls(
            interval=settings.VIDEO_POLL_INTERVAL,
            timeout=settings.VIDEO_POLL_TIMEOUT or None,
            max_attempts=settings.VIDEO_MAX_POLLS or None,
        )


class OperationPoller:
    """Polls a ``VideoBackend`` handle and turns the result into an artifact."""

    def __init__(
        self,
        backend: VideoBackend,
        policy: PollPolicy | None = None,
        *,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.backend = backend
        self.policy = policy or PollPolicy()
        self._sleep = sleep
        self._clock = clock

    async def wait(
        self,
        handle: OperationHandle,
        *,
        cancel_event: asyncio.Event | None = None,
    ) -> OperationHandle:
        """Poll until the handle reports ``done``; returns the terminal handle."""
        state = PollState.TERMINAL if handle.done else PollState.IN_PROGRESS
        started = self._clock()
        attempts = 0

        while state is PollState.IN_PROGRESS:
            elapsed = self._clock() - started
            if self.policy.max_attempts is not None and attempts >= self.policy.max_attempts:
                raise GenerationTimeoutError(
                    f"Operation {handle.name} still running after {attempts} polls"
                )
            if self.policy.timeout is not None and elapsed >= self.policy.timeout:
                raise GenerationTimeoutError(
                    f"Operation {handle.name} timed out after {elapsed:.0f}s"
                )

            self._check_cancelled(handle, cancel_event)
            await self._sleep(self.policy.interval)
            self._check_cancelled(handle, cancel_event)

            handle = await self.backend.poll(handle)
            attempts += 1
            logger.info(
                "Operation %s poll #%d: done=%s elapsed=%.0fs",
                handle.name, attempts, handle.done, self._clock() - started,
            )
            if handle.done:
                state = PollState.TERMINAL

        return handle

    async def collect(self, handle: OperationHandle, task_id: str) -> Artifact:
        """Extract the first video from a terminal handle and download it."""
        if handle.error:
            raise BackendError(f"Video generation failed: {handle.error}")
        if not handle.videos:
            raise BackendError(
                f"Operation {handle.name} completed with no videos",
                kind=ErrorKind.EMPTY_RESULT,
            )

        video = handle.videos[0]
        data = await self.backend.download(video)
        if not data:
            raise BackendError(
                f"Operation {handle.name} returned an empty video",
                kind=ErrorKind.EMPTY_RESULT,
            )

        mime_type = video.mime_type or "video/mp4"
        return Artifact(
            data=data,
            mime_type=mime_type,
            filename=f"video-{task_id}.{mime_to_suffix(mime_type, 'mp4')}",
        )

    async def run(
        self,
        handle: OperationHandle,
        task_id: str,
        *,
        cancel_event: asyncio.Event | None = None,
    ) -> Artifact:
        terminal = await self.wait(handle, cancel_event=cancel_event)
        return await self.collect(terminal, task_id)

    @staticmethod
    def _check_cancelled(handle: OperationHandle, cancel_event: asyncio.Event | None) -> None:
        if cancel_event is not None and cancel_event.is_set():
            raise GenerationCancelledError(f"Operation {handle.name} cancelled")
