"""Plan Orchestrator - Runs a multi-action plan bucket by bucket with lifecycle tracking."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from typing import TYPE_CHECKING, Any

from conductor.delegation.decomposer import action_to_work
from conductor.delegation.models import MultiActionPlan, PlanAction, TargetKind
from conductor.engine.lifecycle import Task, TaskKind, TaskStore
from conductor.engine.tools import ToolAction, ToolServerClient
from conductor.exceptions import ActionFailedError

if TYPE_CHECKING:
    from conductor.delegation.executor import DelegationEngine

logger = logging.getLogger(__name__)


def group_by_order(actions: Sequence[PlanAction]) -> list[tuple[int, list[PlanAction]]]:
    """Bucket actions by their order label, ascending. Plan order is kept inside a bucket."""
    groups: dict[int, list[PlanAction]] = {}
    for action in actions:
        groups.setdefault(action.order or 0, []).append(action)
    return sorted(groups.items())


class PlanExecutor:
    """
    Executes a plan in dependency order.

    Workflow:
    1. Create and start a ``plan`` parent task
    2. Group actions into buckets by ``order``
    3. Run each bucket concurrently, one bucket at a time, ascending
    4. Track every action as a child task of the parent
    5. Finish the parent, or fail it with the first failing action's error

    A failing bucket lets its in-flight siblings settle before the failure is
    raised, so no child task is left running; later buckets never start.
    """

    COMPLETION_MARKER = {"status": "completed"}

    def __init__(
        self,
        store: TaskStore,
        engine: DelegationEngine,
        tools: ToolServerClient,
    ) -> None:
        self.store = store
        self.engine = engine
        self.tools = tools

    async def execute(self, plan: MultiActionPlan) -> Task:
        """
        Run every action of the plan.

        Returns:
            The finished parent task

        Raises:
            The error of the first failing action, after the parent task has
            been marked failed.
        """
        parent = self.store.create(
            name=plan.name,
            description=plan.description,
            kind=TaskKind.PLAN,
            metadata={"plan_id": plan.id},
        )
        self.store.start(parent.id)

        buckets = group_by_order(plan.actions)
        logger.info("Executing plan %s: %d actions in %d buckets", plan.id, len(plan.actions), len(buckets))

        try:
            for order, bucket in buckets:
                logger.debug("Plan %s: bucket order=%d (%d actions)", plan.id, order, len(bucket))
                await self._run_bucket(bucket, parent.id)
        except Exception as exc:
            message = str(exc) or "Plan execution failed"
            self.store.error(parent.id, message)
            logger.info("Plan %s failed: %s", plan.id, message)
            raise

        finished = self.store.finish(parent.id, dict(self.COMPLETION_MARKER))
        logger.info("Plan %s completed", plan.id)
        return finished if finished is not None else parent

    async def _run_bucket(self, bucket: Sequence[PlanAction], parent_id: str) -> None:
        outcomes = await asyncio.gather(
            *(self._execute_action(action, parent_id) for action in bucket),
            return_exceptions=True,
        )
        for outcome in outcomes:
            if isinstance(outcome, BaseException):
                raise outcome

    async def _execute_action(self, action: PlanAction, parent_id: str) -> Any:
        task = self.store.create(
            name=action.name,
            description=action.description,
            kind=TaskKind(action.target.kind.value),
            parent_id=parent_id,
            metadata={"action_id": action.id, "order": action.order},
        )
        self.store.start(task.id)

        try:
            output = await self._dispatch(action)
        except Exception as exc:
            self.store.error(task.id, str(exc) or "Action execution failed")
            raise

        self.store.finish(task.id, output)
        return output

    async def _dispatch(self, action: PlanAction) -> Any:
        if action.target.kind is TargetKind.TOOL_CALL:
            response = await self.tools.execute_action(
                ToolAction(
                    server_id=action.target.executor_ref or "",
                    name=action.name,
                    parameters=action.parameters,
                )
            )
            if not response.success:
                raise ActionFailedError(action.id, response.error or f"Tool call {action.name} failed")
            return response.data

        work = action_to_work(action)
        if action.target.executor_id:
            result = await self.engine.delegate_to(action.target.executor_id, work)
        else:
            result = await self.engine.delegate_one(work)

        if not result.success:
            raise ActionFailedError(action.id, result.error or f"Delegated action {action.name} failed")
        return result.output
