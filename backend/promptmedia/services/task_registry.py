"""In-memory task registry with bounded retention.

Usage:
    registry = TaskRegistry(capacity=500, ttl_seconds=86400)
    registry.insert(task)
    registry.get(task.id)
    registry.list()          # insertion order
    registry.delete(task.id) # False when already gone
"""

from __future__ import annotations

import logging
import threading
from collections import OrderedDict
from datetime import datetime, timedelta
from typing import Callable

from promptmedia.models.task import Task, utcnow

logger = logging.getLogger(__name__)


class TaskRegistry:
    """Thread-safe mapping from task id to task record.

    Retention:
    - ``capacity``: once exceeded, the oldest terminal tasks are evicted.
      Pending tasks are never evicted, so the registry may briefly run
      over capacity while many requests are in flight.
    - ``ttl_seconds``: terminal tasks whose completion is older than the TTL
      are swept on insert and list. ``0`` disables the sweep.
    """

    def __init__(
        self,
        capacity: int = 500,
        ttl_seconds: float = 0.0,
        *,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self._tasks: OrderedDict[str, Task] = OrderedDict()
        self._lock = threading.Lock()
        self._capacity = capacity
        self._ttl = timedelta(seconds=ttl_seconds) if ttl_seconds > 0 else None
        self._clock = clock

    @property
    def capacity(self) -> int:
        return self._capacity

    def insert(self, task: Task) -> None:
        """Store a new task. Raises ValueError if the id is already present."""
        with self._lock:
            if task.id in self._tasks:
                raise ValueError(f"Task {task.id} already registered")
            self._sweep_expired()
            self._tasks[task.id] = task
            self._enforce_capacity()

    def get(self, task_id: str) -> Task | None:
        with self._lock:
            return self._tasks.get(task_id)

    def list(self) -> list[Task]:
        """Snapshot of all tasks in insertion order."""
        with self._lock:
            self._sweep_expired()
            return list(self._tasks.values())

    def delete(self, task_id: str) -> bool:
        """Remove a task; returns False if it was not present."""
        with self._lock:
            return self._tasks.pop(task_id, None) is not None

    def __len__(self) -> int:
        with self._lock:
            return len(self._tasks)

    def __contains__(self, task_id: object) -> bool:
        with self._lock:
            return task_id in self._tasks

    # -- retention (caller holds the lock) --

    def _sweep_expired(self) -> None:
        if self._ttl is None:
            return
        cutoff = self._clock() - self._ttl
        expired = [
            tid for tid, task in self._tasks.items()
            if task.is_terminal and task.completed_at is not None and task.completed_at < cutoff
        ]
        for tid in expired:
            del self._tasks[tid]
        if expired:
            logger.info("Task registry: expired %d task(s) past TTL", len(expired))

    def _enforce_capacity(self) -> None:
        overflow = len(self._tasks) - self._capacity
        if overflow <= 0:
            return
        victims = [tid for tid, task in self._tasks.items() if task.is_terminal][:overflow]
        for tid in victims:
            del self._tasks[tid]
        if victims:
            logger.info("Task registry: evicted %d oldest task(s) over capacity", len(victims))
        if len(victims) < overflow:
            logger.warning(
                "Task registry over capacity (%d/%d): remaining tasks are still pending",
                len(self._tasks), self._capacity,
            )
