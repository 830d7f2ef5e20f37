"""Conductor - Wires the task store, registry, delegation engine and plan executor together."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from conductor.config import (
    Settings,
    config_to_descriptor,
    load_executor_configs,
    load_tool_servers,
)
from conductor.delegation.decomposer import decompose_plan
from conductor.delegation.executor import DelegationEngine, Executor
from conductor.delegation.models import MultiActionPlan, WorkResult
from conductor.engine.executor import CallableExecutor, RemoteAgentExecutor, WorkHandler
from conductor.engine.lifecycle import Task, TaskStore
from conductor.engine.orchestrator import PlanExecutor
from conductor.engine.registry import CapabilityRegistry, ExecutorDescriptor
from conductor.engine.tools import ToolServerClient

logger = logging.getLogger(__name__)


class Conductor:
    """
    One isolated set of services: a task store, a capability registry, a
    tool-server client, the delegation engine and the plan executor.

    Build one per session (or per test) instead of sharing module globals.
    """

    def __init__(self, tool_auth_token: str | None = None) -> None:
        self.store = TaskStore()
        self.registry = CapabilityRegistry()
        self.tools = ToolServerClient(auth_token=tool_auth_token)
        self.engine = DelegationEngine(self.registry)
        self.plans = PlanExecutor(self.store, self.engine, self.tools)

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> Conductor:
        """Build a conductor with the default remote agent, configured executors and tool servers."""
        settings = settings or Settings.from_env()
        conductor = cls(tool_auth_token=settings.tool_auth_token)

        conductor.register_executor(
            RemoteAgentExecutor.default_descriptor(),
            RemoteAgentExecutor(
                conductor.store,
                base_url=settings.remote_url,
                api_key=settings.remote_api_key,
            ),
        )
        conductor.load_executors(settings.agents_dir, api_key=settings.remote_api_key)

        for server in load_tool_servers(settings.tools_file):
            conductor.tools.register_server(server)

        return conductor

    def register_executor(self, descriptor: ExecutorDescriptor, backend: Executor | None = None) -> None:
        self.engine.register_executor(descriptor, backend)

    def register_handler(
        self,
        executor_id: str,
        capabilities: list[str],
        handler: WorkHandler,
        name: str = "",
        description: str = "",
    ) -> ExecutorDescriptor:
        """Register an in-process executor backed by an async handler."""
        descriptor = ExecutorDescriptor(
            id=executor_id,
            capabilities=capabilities,
            name=name,
            description=description,
        )
        self.register_executor(descriptor, CallableExecutor(self.store, descriptor, handler))
        return descriptor

    def load_executors(self, agents_dir: Path, api_key: str | None = None) -> list[ExecutorDescriptor]:
        """
        Register every executor defined in ``agents_dir``.

        Definitions with a ``url`` get a remote backend; the rest are
        registered as descriptors only and fail when selected.
        """
        loaded: list[ExecutorDescriptor] = []
        for config in load_executor_configs(agents_dir):
            descriptor = config_to_descriptor(config)
            backend = None
            if config.get("url"):
                backend = RemoteAgentExecutor(
                    self.store,
                    descriptor=descriptor,
                    base_url=config["url"],
                    api_key=api_key,
                )
            self.register_executor(descriptor, backend)
            loaded.append(descriptor)
        if loaded:
            logger.info("Loaded %d executor(s) from %s", len(loaded), agents_dir)
        return loaded

    async def run_plan(self, plan: MultiActionPlan) -> Task:
        """Execute the whole plan in dependency order. Raises the triggering error on failure."""
        return await self.plans.execute(plan)

    async def run_workflow(self, plan: MultiActionPlan, parallel: bool = False) -> list[WorkResult]:
        """Decompose the plan and delegate its units of work directly."""
        works = decompose_plan(plan)
        if parallel:
            return await self.engine.delegate_parallel(works)
        return await self.engine.delegate_sequential(works)

    def task_tree(self, parent_id: str) -> dict[str, Any] | None:
        """A parent task with its child tasks, as plain dicts."""
        parent = self.store.get(parent_id)
        if parent is None:
            return None
        return {
            "task": parent.to_dict(),
            "children": [child.to_dict() for child in self.store.get_children(parent_id)],
        }
