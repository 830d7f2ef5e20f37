"""
Plan Decomposer — Plan Actions to Units of Work

Walks a plan, keeps the actions meant for capability-routed delegation and
turns each into a UnitOfWork. Required capabilities come from the action's
``capabilities`` parameter when present, otherwise from keywords in its name
and description.
"""

from typing import Any, Dict, List, Sequence, Tuple

from .models import Capability, Constraints, MultiActionPlan, PlanAction, TargetKind, UnitOfWork

# Substring keywords per capability, checked in this order
CAPABILITY_KEYWORDS: Tuple[Tuple[str, Tuple[str, ...]], ...] = (
    (Capability.CODE.value, ("code", "build", "develop")),
    (Capability.TESTING.value, ("test", "verify")),
    (Capability.AESTHETICS.value, ("design", "ui", "style")),
    (Capability.RESEARCH.value, ("research", "search", "find")),
    (Capability.PRESENTATION.value, ("presentation", "slide", "ppt")),
    (Capability.MULTIMODAL.value, ("image", "video", "audio")),
)

DEFAULT_CAPABILITIES: List[str] = [Capability.CODE.value]


def infer_from_text(text: str) -> List[str]:
    """Capability tags whose keywords occur in ``text`` (case-insensitive)."""
    lowered = text.lower()
    capabilities = [
        capability
        for capability, keywords in CAPABILITY_KEYWORDS
        if any(kw in lowered for kw in keywords)
    ]
    return capabilities or list(DEFAULT_CAPABILITIES)


def infer_capabilities(action: PlanAction) -> List[str]:
    """
    Required capabilities for a plan action.

    An explicit ``capabilities`` list in the action parameters is used
    verbatim; otherwise keywords in name + description decide, defaulting
    to ``code``.
    """
    explicit = action.parameters.get("capabilities")
    if isinstance(explicit, (list, tuple)):
        return list(explicit)

    return infer_from_text(f"{action.name} {action.description}")


def _build_constraints(parameters: Dict[str, Any]) -> Constraints:
    return Constraints(
        max_duration=parameters.get("timeout"),
        max_tokens=parameters.get("max_tokens"),
        output_format=parameters.get("output_format"),
    )


def action_to_work(action: PlanAction) -> UnitOfWork:
    """Convert a plan action into a unit of work."""
    return UnitOfWork(
        id=action.id,
        name=action.name,
        prompt=action.description,
        required_capabilities=infer_capabilities(action),
        context=dict(action.parameters),
        constraints=_build_constraints(action.parameters),
    )


def delegated_actions(actions: Sequence[PlanAction]) -> List[PlanAction]:
    """Actions routed to capability-matched executors rather than tool servers."""
    return [a for a in actions if a.target.kind is TargetKind.DELEGATED]


def decompose_plan(plan: MultiActionPlan) -> List[UnitOfWork]:
    """
    Decompose a plan into units of work for the delegation engine.

    Args:
        plan: Validated plan from the plan generator

    Returns:
        One UnitOfWork per delegated action, in plan order
    """
    return [action_to_work(action) for action in delegated_actions(plan.actions)]
