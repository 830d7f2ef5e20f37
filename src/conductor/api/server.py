"""FastAPI server for programmatic plan execution and task tracking."""

from __future__ import annotations

import json
import logging
import time
from collections.abc import AsyncGenerator
from typing import Any

import click
from fastapi import FastAPI
from fastapi.responses import JSONResponse, StreamingResponse

from conductor import __version__
from conductor.delegation.models import MultiActionPlan
from conductor.engine.lifecycle import TaskEvent
from conductor.exceptions import ConductorError, PlanValidationError
from conductor.service import Conductor

logger = logging.getLogger(__name__)


def format_sse(event: TaskEvent) -> str:
    """Render a lifecycle event as a server-sent event frame."""
    payload = {"type": str(event.type), "task": event.task.to_dict(), "error": event.error}
    return f"event: {event.type}\ndata: {json.dumps(payload, default=str)}\n\n"


def _parse_plan(request: dict[str, Any]) -> MultiActionPlan | JSONResponse:
    raw = request.get("plan")
    if not raw:
        return JSONResponse(status_code=400, content={"error": "plan is required"})
    try:
        return MultiActionPlan.from_dict(raw)
    except PlanValidationError as exc:
        return JSONResponse(status_code=422, content={"error": str(exc)})


def create_app(conductor: Conductor | None = None) -> FastAPI:
    """Build the API around one conductor instance."""
    conductor = conductor or Conductor()
    started = time.monotonic()

    app = FastAPI(
        title="Plan Conductor API",
        version=__version__,
        description="Dependency-ordered plan execution with capability-routed delegation",
    )
    app.state.conductor = conductor

    @app.get("/api/health")
    async def health() -> dict[str, Any]:
        """Health check."""
        uptime = time.monotonic() - started
        return {"status": "ok", "version": __version__, "uptime_seconds": round(uptime, 1)}

    @app.post("/api/workflow", response_model=None)
    async def run_workflow(request: dict[str, Any]) -> dict[str, Any] | JSONResponse:
        """Decompose a plan and delegate its units of work."""
        plan = _parse_plan(request)
        if isinstance(plan, JSONResponse):
            return plan

        options = request.get("options") or {}
        if not isinstance(options, dict):
            return JSONResponse(status_code=422, content={"error": "options must be an object"})
        results = await conductor.run_workflow(plan, parallel=bool(options.get("parallel")))
        return {
            "success": True,
            "plan": {
                "id": plan.id,
                "name": plan.name,
                "description": plan.description,
                "action_count": len(plan.actions),
            },
            "results": [r.to_dict() for r in results],
            "tasks": [
                {"id": t.id, "name": t.name, "status": str(t.status), "kind": str(t.kind)}
                for t in conductor.store.get_all()
            ],
        }

    @app.post("/api/plans", response_model=None)
    async def run_plan(request: dict[str, Any]) -> dict[str, Any] | JSONResponse:
        """Execute a plan in dependency order."""
        plan = _parse_plan(request)
        if isinstance(plan, JSONResponse):
            return plan

        try:
            parent = await conductor.run_plan(plan)
        except ConductorError as exc:
            logger.info("Plan %s failed via API: %s", plan.id, exc)
            failed = [t for t in conductor.store.get_all() if t.metadata.get("plan_id") == plan.id]
            tree = conductor.task_tree(failed[-1].id) if failed else None
            return JSONResponse(
                status_code=500,
                content=json.loads(json.dumps({"error": str(exc), **(tree or {})}, default=str)),
            )
        return conductor.task_tree(parent.id) or {}

    @app.get("/api/workflow")
    async def workflow_status() -> dict[str, Any]:
        """Current task statuses."""
        return {
            "tasks": [t.to_dict() for t in conductor.store.get_all()],
            "summary": conductor.store.summary(),
        }

    @app.get("/api/tasks/{task_id}", response_model=None)
    async def get_task(task_id: str) -> dict[str, Any] | JSONResponse:
        """One task by id."""
        task = conductor.store.get(task_id)
        if task is None:
            return JSONResponse(status_code=404, content={"error": f"Task not found: {task_id}"})
        return task.to_dict()

    @app.get("/api/stream")
    async def stream() -> StreamingResponse:
        """SSE endpoint for real-time lifecycle events."""

        async def event_generator() -> AsyncGenerator[str, None]:
            async for event in conductor.store.stream():
                yield format_sse(event)

        return StreamingResponse(event_generator(), media_type="text/event-stream")

    return app


app = create_app()


@click.command()
@click.option("--port", default=3848, help="Port to listen on")
@click.option("--host", default="127.0.0.1", help="Host to bind to")
def main(port: int, host: str) -> None:
    """Start the Plan Conductor API server."""
    import uvicorn

    from conductor.config import Settings, configure_logging

    settings = Settings.from_env()
    configure_logging(settings.log_level)
    uvicorn.run(create_app(Conductor.from_settings(settings)), host=host, port=port)
