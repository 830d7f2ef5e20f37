"""
Delegation — Plan Decomposition & Capability-Routed Execution

Core Components:
- models: plan, unit-of-work and result dataclasses
- decomposer: plan actions to units of work, capability inference
- executor: delegation engine (single, parallel, sequential)
"""

from .models import (
    ALL_CAPABILITIES,
    ActionTarget,
    Artifact,
    Capability,
    Constraints,
    MultiActionPlan,
    PlanAction,
    TargetKind,
    UnitOfWork,
    WorkResult,
)
from .decomposer import (
    action_to_work,
    decompose_plan,
    delegated_actions,
    infer_capabilities,
    infer_from_text,
)
from .executor import DelegationEngine, Executor

__all__ = [
    # Models
    "ALL_CAPABILITIES",
    "ActionTarget",
    "Artifact",
    "Capability",
    "Constraints",
    "MultiActionPlan",
    "PlanAction",
    "TargetKind",
    "UnitOfWork",
    "WorkResult",
    # Decomposer
    "action_to_work",
    "decompose_plan",
    "delegated_actions",
    "infer_capabilities",
    "infer_from_text",
    # Engine
    "DelegationEngine",
    "Executor",
]
