"""Task lifecycle, capability registry, executor backends and plan orchestration."""

from conductor.engine.lifecycle import (
    TERMINAL_STATES,
    Task,
    TaskEvent,
    TaskEventType,
    TaskKind,
    TaskStatus,
    TaskStore,
)
from conductor.engine.registry import (
    Availability,
    CapabilityRegistry,
    ExecutorDescriptor,
    capability_score,
)
from conductor.engine.executor import CallableExecutor, RemoteAgentExecutor, TrackedExecutor
from conductor.engine.tools import ToolAction, ToolResponse, ToolServer, ToolServerClient
from conductor.engine.orchestrator import PlanExecutor, group_by_order

__all__ = [
    "TERMINAL_STATES",
    "Availability",
    "CallableExecutor",
    "CapabilityRegistry",
    "ExecutorDescriptor",
    "PlanExecutor",
    "RemoteAgentExecutor",
    "Task",
    "TaskEvent",
    "TaskEventType",
    "TaskKind",
    "TaskStatus",
    "TaskStore",
    "ToolAction",
    "ToolResponse",
    "ToolServer",
    "ToolServerClient",
    "TrackedExecutor",
    "capability_score",
    "group_by_order",
]
