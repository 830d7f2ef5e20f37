"""Exception hierarchy for the conductor."""

from __future__ import annotations


class ConductorError(Exception):
    """Base class for all conductor errors."""


class InvalidTransitionError(ConductorError):
    """A lifecycle operation was attempted from a state that does not allow it."""

    def __init__(self, task_id: str, status: str, operation: str, detail: str = "") -> None:
        self.task_id = task_id
        self.status = status
        self.operation = operation
        message = f"Cannot {operation} task {task_id} in state '{status}'"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


class PlanValidationError(ConductorError, ValueError):
    """A plan or plan action does not have the expected shape."""


class ActionFailedError(ConductorError):
    """A plan action's backend reported a failure."""

    def __init__(self, action_id: str, message: str) -> None:
        self.action_id = action_id
        self.message = message
        super().__init__(message)
