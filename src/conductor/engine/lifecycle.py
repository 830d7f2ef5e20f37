"""Task Lifecycle - In-memory task store with a strict state machine and event fan-out."""

from __future__ import annotations

import asyncio
import logging
import threading
import uuid
from collections.abc import AsyncIterator, Callable
from dataclasses import dataclass, field, fields, replace
from datetime import datetime, timezone
from enum import StrEnum
from typing import Any

from conductor.exceptions import InvalidTransitionError

logger = logging.getLogger(__name__)


class TaskStatus(StrEnum):
    """Task execution states."""

    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class TaskKind(StrEnum):
    """What a task tracks."""

    PLAN = "plan"
    TOOL_CALL = "tool-call"
    DELEGATED = "delegated"


class TaskEventType(StrEnum):
    """Lifecycle events emitted by the store."""

    CREATED = "created"
    STARTED = "started"
    UPDATED = "updated"
    FINISHED = "finished"
    ERROR = "error"


TERMINAL_STATES = (TaskStatus.COMPLETED, TaskStatus.FAILED)


@dataclass
class Task:
    """Record of a tracked unit of work."""

    id: str
    name: str
    kind: str
    status: str
    created_at: datetime
    description: str = ""
    parent_id: str | None = None  # Enclosing plan task
    metadata: dict[str, Any] = field(default_factory=dict)
    result: Any = None
    error: str | None = None
    started_at: datetime | None = None
    completed_at: datetime | None = None

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATES

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "kind": str(self.kind),
            "status": str(self.status),
            "parent_id": self.parent_id,
            "metadata": self.metadata,
            "result": self.result,
            "error": self.error,
            "created_at": self.created_at.isoformat(),
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
        }


@dataclass(frozen=True)
class TaskEvent:
    """A lifecycle event carrying a snapshot of the task after the mutation."""

    type: TaskEventType
    task: Task
    error: str | None = None


TaskEventHandler = Callable[[TaskEvent], None]

_TASK_FIELDS = frozenset(f.name for f in fields(Task))


def _snapshot(task: Task) -> Task:
    """Copy of a stored record that callers may mutate freely."""
    return replace(task, metadata=dict(task.metadata))


class TaskStore:
    """
    Holds task records and drives them through the lifecycle.

    State machine:
        pending --start--> running --finish--> completed
                                   --error---> failed

    Mutators return None for unknown ids and raise InvalidTransitionError for
    transitions the state machine does not allow. Every returned task is a copy,
    so mutating it never changes the stored record. Events are delivered
    synchronously inside the mutating call, in subscription order; a failing
    subscriber is logged and skipped.
    """

    # Fields owned by the state machine; update() may not touch them
    PROTECTED_FIELDS = frozenset({"id", "status", "created_at", "started_at", "completed_at"})

    STREAM_QUEUE_SIZE = 256

    def __init__(self) -> None:
        self._tasks: dict[str, Task] = {}
        self._subscribers: list[TaskEventHandler] = []
        self._lock = threading.Lock()

    def subscribe(self, handler: TaskEventHandler) -> Callable[[], None]:
        """Register an event handler. Returns a function that removes it."""
        with self._lock:
            self._subscribers.append(handler)

        def unsubscribe() -> None:
            with self._lock:
                if handler in self._subscribers:
                    self._subscribers.remove(handler)

        return unsubscribe

    async def stream(self, max_queue: int = STREAM_QUEUE_SIZE) -> AsyncIterator[TaskEvent]:
        """Yield events as they are emitted, through a bounded queue."""
        queue: asyncio.Queue[TaskEvent] = asyncio.Queue(maxsize=max_queue)

        def enqueue(event: TaskEvent) -> None:
            try:
                queue.put_nowait(event)
            except asyncio.QueueFull:
                logger.warning(
                    "Event stream queue full, dropping %s event for task %s",
                    event.type,
                    event.task.id,
                )

        unsubscribe = self.subscribe(enqueue)
        try:
            while True:
                yield await queue.get()
        finally:
            unsubscribe()

    def _emit(self, event_type: TaskEventType, task: Task, error: str | None = None) -> None:
        event = TaskEvent(type=event_type, task=_snapshot(task), error=error)
        with self._lock:
            handlers = list(self._subscribers)
        for handler in handlers:
            try:
                handler(event)
            except Exception:
                logger.warning(
                    "Task event handler %r failed on %s event for task %s",
                    handler,
                    event_type,
                    task.id,
                    exc_info=True,
                )

    @staticmethod
    def _now() -> datetime:
        return datetime.now(timezone.utc)

    def create(
        self,
        name: str,
        kind: str,
        description: str = "",
        parent_id: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> Task:
        """Create a pending task."""
        task = Task(
            id=f"task-{uuid.uuid4().hex}",
            name=name,
            kind=TaskKind(kind),
            status=TaskStatus.PENDING,
            created_at=self._now(),
            description=description,
            parent_id=parent_id,
            metadata=dict(metadata or {}),
        )
        with self._lock:
            self._tasks[task.id] = task
        logger.debug("Created %s task %s (%s)", task.kind, task.id, name)
        self._emit(TaskEventType.CREATED, task)
        return _snapshot(task)

    def _apply(
        self,
        task_id: str,
        operation: str,
        allowed: tuple[TaskStatus, ...],
        **changes: Any,
    ) -> Task | None:
        with self._lock:
            task = self._tasks.get(task_id)
            if task is None:
                return None
            if task.status not in allowed:
                raise InvalidTransitionError(task_id, task.status, operation)
            # Timestamps never run backwards, even if the wall clock does
            floor = task.started_at or task.created_at
            for key in ("started_at", "completed_at"):
                if key in changes:
                    changes[key] = max(changes[key], floor)
            changes["metadata"] = dict(changes.get("metadata", task.metadata))
            updated = replace(task, **changes)
            self._tasks[task_id] = updated
        return _snapshot(updated)

    def start(self, task_id: str) -> Task | None:
        """Move a pending task to running."""
        task = self._apply(
            task_id,
            "start",
            (TaskStatus.PENDING,),
            status=TaskStatus.RUNNING,
            started_at=self._now(),
        )
        if task is not None:
            logger.debug("Started task %s", task_id)
            self._emit(TaskEventType.STARTED, task)
        return task

    def update(self, task_id: str, **progress: Any) -> Task | None:
        """Shallow-merge progress fields into a non-terminal task."""
        protected = self.PROTECTED_FIELDS.intersection(progress)
        if protected:
            current = self.get(task_id)
            if current is None:
                return None
            raise InvalidTransitionError(
                task_id,
                current.status,
                "update",
                f"fields {sorted(protected)} are managed by the lifecycle",
            )
        unknown = set(progress) - _TASK_FIELDS
        if unknown:
            raise ValueError(f"Unknown task fields: {sorted(unknown)}")

        task = self._apply(task_id, "update", (TaskStatus.PENDING, TaskStatus.RUNNING), **progress)
        if task is not None:
            self._emit(TaskEventType.UPDATED, task)
        return task

    def finish(self, task_id: str, result: Any = None) -> Task | None:
        """Mark a running task as completed."""
        task = self._apply(
            task_id,
            "finish",
            (TaskStatus.RUNNING,),
            status=TaskStatus.COMPLETED,
            completed_at=self._now(),
            result=result,
            error=None,
        )
        if task is not None:
            logger.debug("Finished task %s", task_id)
            self._emit(TaskEventType.FINISHED, task)
        return task

    def error(self, task_id: str, message: str) -> Task | None:
        """Mark a running task as failed."""
        task = self._apply(
            task_id,
            "fail",
            (TaskStatus.RUNNING,),
            status=TaskStatus.FAILED,
            completed_at=self._now(),
            result=None,
            error=message,
        )
        if task is not None:
            logger.debug("Task %s failed: %s", task_id, message)
            self._emit(TaskEventType.ERROR, task, error=message)
        return task

    def get(self, task_id: str) -> Task | None:
        """Get task by ID."""
        with self._lock:
            task = self._tasks.get(task_id)
        return _snapshot(task) if task is not None else None

    def get_all(self, status: str | None = None) -> list[Task]:
        """All tasks in creation order, optionally filtered by status."""
        with self._lock:
            tasks = [_snapshot(t) for t in self._tasks.values()]
        if status is None:
            return tasks
        return [t for t in tasks if t.status == status]

    def get_children(self, parent_id: str) -> list[Task]:
        """All tasks linked to a parent plan task."""
        return [t for t in self.get_all() if t.parent_id == parent_id]

    def summary(self) -> dict[str, int]:
        """Task counts by status."""
        tasks = self.get_all()
        counts = {"total": len(tasks)}
        for status in TaskStatus:
            counts[status.value] = sum(1 for t in tasks if t.status == status)
        return counts

    def __len__(self) -> int:
        return len(self._tasks)
