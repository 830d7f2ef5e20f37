"""Executor Backends - In-process and remote executors that track their own tasks."""

from __future__ import annotations

import json
import logging
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager
from typing import Any

import httpx

from conductor.delegation.models import ALL_CAPABILITIES, Artifact, UnitOfWork, WorkResult
from conductor.engine.lifecycle import Task, TaskKind, TaskStore
from conductor.engine.registry import ExecutorDescriptor

logger = logging.getLogger(__name__)

# Async handler for in-process executors: (work) -> output
WorkHandler = Callable[[UnitOfWork], Awaitable[Any]]

DEFAULT_REMOTE_URL = "http://localhost:3001"


@asynccontextmanager
async def http_session(
    client: httpx.AsyncClient | None, timeout: float
) -> AsyncIterator[httpx.AsyncClient]:
    """Use the injected client if there is one, otherwise a short-lived client."""
    if client is not None:
        yield client
    else:
        async with httpx.AsyncClient(timeout=timeout) as owned:
            yield owned


class TrackedExecutor:
    """
    Base for executors that record their work in the task store.

    Every execute() call creates a ``delegated`` task, starts it and leaves it
    completed or failed before returning.
    """

    def __init__(self, store: TaskStore, descriptor: ExecutorDescriptor) -> None:
        self.store = store
        self.descriptor = descriptor

    def _open_task(self, work: UnitOfWork, **metadata: Any) -> Task:
        task = self.store.create(
            name=f"{self.descriptor.name}: {work.name}",
            kind=TaskKind.DELEGATED,
            description=work.prompt,
            metadata={
                "executor_id": self.descriptor.id,
                "capabilities": list(work.required_capabilities),
                **({"work_id": work.id} if work.id else {}),
                **metadata,
            },
        )
        self.store.start(task.id)
        return task

    def _fail(self, task: Task, message: str) -> WorkResult:
        self.store.error(task.id, message)
        return WorkResult.failure(message, task_id=task.id, executor_id=self.descriptor.id)


class CallableExecutor(TrackedExecutor):
    """Runs work in-process through an async handler."""

    def __init__(self, store: TaskStore, descriptor: ExecutorDescriptor, handler: WorkHandler) -> None:
        super().__init__(store, descriptor)
        self.handler = handler

    async def execute(self, work: UnitOfWork) -> WorkResult:
        task = self._open_task(work)
        try:
            output = await self.handler(work)
        except Exception as exc:
            return self._fail(task, f"{type(exc).__name__}: {exc}")

        self.store.finish(task.id, output)
        return WorkResult(
            success=True,
            task_id=task.id,
            output=output,
            metadata={"executor_id": self.descriptor.id},
        )


class RemoteAgentExecutor(TrackedExecutor):
    """
    Long-running remote agent reached over HTTP.

    Endpoints:
    - POST {base_url}/api/execute         -> {output, artifacts, duration, tokensUsed}
    - POST {base_url}/api/execute/stream  -> newline-delimited JSON events
    """

    DEFAULT_ID = "remote-agent"
    DEFAULT_TIMEOUT = 300.0  # seconds
    STREAM_CLOSED = "Stream closed before completion"

    def __init__(
        self,
        store: TaskStore,
        descriptor: ExecutorDescriptor | None = None,
        base_url: str = DEFAULT_REMOTE_URL,
        api_key: str | None = None,
        client: httpx.AsyncClient | None = None,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        super().__init__(store, descriptor or self.default_descriptor())
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout
        self._client = client

    @classmethod
    def default_descriptor(cls) -> ExecutorDescriptor:
        return ExecutorDescriptor(
            id=cls.DEFAULT_ID,
            name="Remote Agent",
            description="Specialized agent for complex, long-horizon task execution",
            capabilities=list(ALL_CAPABILITIES),
            metadata={"provider": "remote"},
        )

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    @staticmethod
    def _payload(work: UnitOfWork, include_constraints: bool = True) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "prompt": work.prompt,
            "capabilities": list(work.required_capabilities),
            "context": work.context,
        }
        if include_constraints:
            payload["constraints"] = work.constraints.to_dict()
        return payload

    async def execute(self, work: UnitOfWork) -> WorkResult:
        task = self._open_task(work)

        try:
            async with http_session(self._client, self.timeout) as client:
                response = await client.post(
                    f"{self.base_url}/api/execute",
                    json=self._payload(work),
                    headers=self._headers(),
                )
        except httpx.HTTPError as exc:
            return self._fail(task, f"{type(exc).__name__}: {exc}")

        if response.is_error:
            return self._fail(task, f"Remote agent error: {response.text}")

        try:
            body = response.json()
            if not isinstance(body, dict):
                raise ValueError("expected a JSON object")
            raw_artifacts = body.get("artifacts") or []
            if not isinstance(raw_artifacts, list):
                raise ValueError("artifacts must be a list")
            artifacts = [Artifact.from_dict(a) for a in raw_artifacts]
        except (ValueError, TypeError) as exc:
            return self._fail(task, f"Remote agent returned an invalid response: {exc}")

        self.store.finish(task.id, body)
        return WorkResult(
            success=True,
            task_id=task.id,
            output=body.get("output"),
            artifacts=artifacts,
            metadata={
                "executor_id": self.descriptor.id,
                "duration": body.get("duration"),
                "tokens_used": body.get("tokensUsed", body.get("tokens_used")),
            },
        )

    async def execute_stream(self, work: UnitOfWork) -> AsyncIterator[WorkResult]:
        """
        Stream progress events; the task finishes when the stream ends.

        A consumer that stops iterating early leaves the task failed rather
        than running.
        """
        task = self._open_task(work, streaming=True)
        error: str | None = None
        settled = False

        try:
            try:
                async with http_session(self._client, self.timeout) as client:
                    async with client.stream(
                        "POST",
                        f"{self.base_url}/api/execute/stream",
                        json=self._payload(work, include_constraints=False),
                        headers=self._headers(),
                    ) as response:
                        if response.is_error:
                            await response.aread()
                            error = f"Remote agent error: {response.text}"
                        else:
                            async for line in response.aiter_lines():
                                result = self._stream_event(task, line)
                                if result is not None:
                                    yield result
            except httpx.HTTPError as exc:
                error = f"{type(exc).__name__}: {exc}"

            settled = True
            if error is None:
                self.store.finish(task.id)
            else:
                self.store.error(task.id, error)
                yield WorkResult.failure(error, task_id=task.id, executor_id=self.descriptor.id)
        finally:
            if not settled:
                self.store.error(task.id, self.STREAM_CLOSED)

    def _stream_event(self, task: Task, line: str) -> WorkResult | None:
        if not line.strip():
            return None
        try:
            data = json.loads(line)
        except json.JSONDecodeError:
            logger.debug("Skipping malformed stream event for task %s: %r", task.id, line)
            return None
        if not isinstance(data, dict):
            return None

        current = self.store.get(task.id)
        metadata = dict(current.metadata) if current else {}
        metadata["last_event"] = data
        self.store.update(task.id, metadata=metadata)

        return WorkResult(
            success=True,
            task_id=task.id,
            output=data.get("content"),
            metadata={"type": data.get("type")},
        )
