"""
Delegation Data Models

Plan, unit-of-work and result dataclasses shared by the decomposer, the
delegation engine and the plan executor.

Plans arrive from the plan generator as JSON. ``from_dict`` accepts both the
generator's camelCase keys (``dependsOn``, ``executorRef``) and snake_case.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from conductor.exceptions import PlanValidationError


class Capability(str, Enum):
    """Capability tags understood by the built-in inference table."""

    CODE = "code"
    TESTING = "testing"
    AESTHETICS = "aesthetics"
    PRESENTATION = "presentation"
    RESEARCH = "research"
    MULTIMODAL = "multimodal"
    TOOLS = "tools"


ALL_CAPABILITIES: List[str] = [cap.value for cap in Capability]


class TargetKind(str, Enum):
    """Where a plan action is sent."""

    TOOL_CALL = "tool-call"
    DELEGATED = "delegated"


ARTIFACT_TYPES = ("file", "code", "image", "data")


def _require(data: Dict[str, Any], key: str, where: str) -> Any:
    if key not in data or data[key] is None:
        raise PlanValidationError(f"{where} is missing required field '{key}'")
    return data[key]


@dataclass
class ActionTarget:
    """Discriminated target of a plan action."""

    kind: TargetKind
    executor_ref: Optional[str] = None
    executor_id: Optional[str] = None

    def __post_init__(self) -> None:
        try:
            self.kind = TargetKind(self.kind)
        except ValueError:
            raise PlanValidationError(f"Unknown action target kind: {self.kind!r}") from None
        if self.kind is TargetKind.TOOL_CALL and not self.executor_ref:
            raise PlanValidationError("tool-call targets require an executor_ref")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ActionTarget":
        return cls(
            kind=_require(data, "kind", "action target"),
            executor_ref=data.get("executor_ref", data.get("executorRef")),
            executor_id=data.get("executor_id", data.get("executorId")),
        )

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"kind": self.kind.value}
        if self.executor_ref:
            data["executor_ref"] = self.executor_ref
        if self.executor_id:
            data["executor_id"] = self.executor_id
        return data


@dataclass
class PlanAction:
    """One step of a plan."""

    id: str
    name: str
    description: str
    target: ActionTarget
    parameters: Dict[str, Any] = field(default_factory=dict)
    order: int = 0
    # Declared by the plan generator, not used for scheduling.
    depends_on: List[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PlanAction":
        if not isinstance(data, dict):
            raise PlanValidationError(f"Plan action must be an object, got {type(data).__name__}")
        action_id = _require(data, "id", "plan action")
        where = f"plan action '{action_id}'"
        target = _require(data, "target", where)
        if not isinstance(target, dict):
            raise PlanValidationError(f"{where} target must be an object")
        parameters = data.get("parameters") or {}
        if not isinstance(parameters, dict):
            raise PlanValidationError(f"{where} parameters must be an object")
        order = data.get("order")
        try:
            order = int(order) if order is not None else 0
        except (TypeError, ValueError):
            raise PlanValidationError(f"{where} has a non-integer order: {order!r}") from None
        return cls(
            id=str(action_id),
            name=_require(data, "name", where),
            description=data.get("description", ""),
            target=ActionTarget.from_dict(target),
            parameters=dict(parameters),
            order=order,
            depends_on=list(data.get("depends_on", data.get("dependsOn")) or []),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "target": self.target.to_dict(),
            "parameters": self.parameters,
            "order": self.order,
            "depends_on": self.depends_on,
        }


@dataclass
class MultiActionPlan:
    """A named, ordered collection of plan actions."""

    id: str
    name: str
    description: str
    actions: List[PlanAction] = field(default_factory=list)
    metadata: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MultiActionPlan":
        if not isinstance(data, dict):
            raise PlanValidationError(f"Plan must be an object, got {type(data).__name__}")
        actions = _require(data, "actions", "plan")
        if not isinstance(actions, list):
            raise PlanValidationError("plan actions must be a list")
        return cls(
            id=str(_require(data, "id", "plan")),
            name=_require(data, "name", "plan"),
            description=data.get("description", ""),
            actions=[PlanAction.from_dict(item) for item in actions],
            metadata=dict(data.get("metadata") or {}),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "actions": [action.to_dict() for action in self.actions],
            "metadata": self.metadata,
        }


@dataclass
class Constraints:
    """Advisory limits for a unit of work. Backends may honor them; the core does not."""

    max_duration: Optional[float] = None  # seconds
    max_tokens: Optional[int] = None
    output_format: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "max_duration": self.max_duration,
            "max_tokens": self.max_tokens,
            "output_format": self.output_format,
        }


@dataclass
class UnitOfWork:
    """Capability-tagged, executor-agnostic work item."""

    name: str
    prompt: str
    required_capabilities: List[str]
    id: Optional[str] = None
    context: Dict[str, Any] = field(default_factory=dict)
    constraints: Constraints = field(default_factory=Constraints)

    def with_context(self, extra: Dict[str, Any]) -> "UnitOfWork":
        """Return a copy whose context also carries ``extra`` (``extra`` wins on conflicts)."""
        return UnitOfWork(
            name=self.name,
            prompt=self.prompt,
            required_capabilities=list(self.required_capabilities),
            id=self.id,
            context={**self.context, **extra},
            constraints=self.constraints,
        )


@dataclass
class Artifact:
    """File, code, image or data blob produced by an executor."""

    type: str
    name: str
    content: Union[str, bytes]
    mime_type: Optional[str] = None

    def __post_init__(self) -> None:
        if self.type not in ARTIFACT_TYPES:
            raise ValueError(f"artifact type must be one of {ARTIFACT_TYPES}, got {self.type!r}")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Artifact":
        if not isinstance(data, dict):
            raise ValueError(f"artifact must be an object, got {type(data).__name__}")
        return cls(
            type=data.get("type", "data"),
            name=data.get("name", ""),
            content=data.get("content", ""),
            mime_type=data.get("mime_type", data.get("mimeType")),
        )


@dataclass
class WorkResult:
    """Outcome of delegating a unit of work. ``output`` is meaningful on success, ``error`` otherwise."""

    success: bool
    task_id: str = ""
    output: Any = None
    error: Optional[str] = None
    artifacts: List[Artifact] = field(default_factory=list)
    metadata: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def failure(cls, error: str, task_id: str = "", **metadata: Any) -> "WorkResult":
        return cls(success=False, task_id=task_id, error=error, metadata=metadata)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "task_id": self.task_id,
            "output": self.output,
            "error": self.error,
            "artifacts": [
                {
                    "type": a.type,
                    "name": a.name,
                    "content": a.content if isinstance(a.content, str) else a.content.hex(),
                    "mime_type": a.mime_type,
                }
                for a in self.artifacts
            ],
            "metadata": self.metadata,
        }
