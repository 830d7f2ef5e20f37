"""Capability Registry - Tracks executor descriptors and matches work to them by capability."""

from __future__ import annotations

import threading
from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any


class Availability(StrEnum):
    """Executor availability states."""

    AVAILABLE = "available"
    BUSY = "busy"
    OFFLINE = "offline"


@dataclass
class ExecutorDescriptor:
    """A registered capability provider."""

    id: str
    capabilities: list[str]
    name: str = ""
    description: str = ""
    availability: str = Availability.AVAILABLE
    metadata: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not self.id:
            raise ValueError("Executor id cannot be empty")
        if isinstance(self.capabilities, str):
            raise ValueError("capabilities must be a list of tags, not a string")
        self.capabilities = list(dict.fromkeys(self.capabilities))
        self.availability = Availability(self.availability)
        if not self.name:
            self.name = self.id

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "capabilities": list(self.capabilities),
            "availability": str(self.availability),
            "metadata": self.metadata,
        }


def capability_score(required: Iterable[str], offered: Iterable[str]) -> int:
    """Number of required capabilities the offered set satisfies."""
    offered_set = set(offered)
    return sum(1 for cap in required if cap in offered_set)


class CapabilityRegistry:
    """
    In-memory registry of executor descriptors, keyed by id.

    Registration order is preserved and is the tie-breaker for best-match
    queries. Re-registering an id replaces the descriptor in place.
    """

    def __init__(self) -> None:
        self._executors: dict[str, ExecutorDescriptor] = {}
        self._lock = threading.Lock()

    def register(self, descriptor: ExecutorDescriptor) -> None:
        """Register (or replace) an executor descriptor."""
        with self._lock:
            self._executors[descriptor.id] = descriptor

    def unregister(self, executor_id: str) -> bool:
        """Remove an executor. Returns False if it was not registered."""
        with self._lock:
            return self._executors.pop(executor_id, None) is not None

    def get(self, executor_id: str) -> ExecutorDescriptor | None:
        """Get executor by ID."""
        with self._lock:
            return self._executors.get(executor_id)

    def get_all(self) -> list[ExecutorDescriptor]:
        """All descriptors in registration order."""
        with self._lock:
            return list(self._executors.values())

    def find_by_capability(self, capability: str) -> list[ExecutorDescriptor]:
        """All executors offering ``capability``, in registration order."""
        return [d for d in self.get_all() if capability in d.capabilities]

    def find_best_match(self, required: Iterable[str]) -> ExecutorDescriptor | None:
        """
        Executor satisfying the most required capabilities.

        Only a strictly higher score replaces the current best, so ties go to
        the earliest registration and a score of zero never matches.
        """
        required = list(required)
        best: ExecutorDescriptor | None = None
        best_score = 0

        for descriptor in self.get_all():
            score = capability_score(required, descriptor.capabilities)
            if score > best_score:
                best = descriptor
                best_score = score

        return best

    def is_available(self, executor_id: str) -> bool:
        """True if the executor exists and is available."""
        descriptor = self.get(executor_id)
        return descriptor is not None and descriptor.availability == Availability.AVAILABLE

    def set_availability(self, executor_id: str, availability: str) -> bool:
        """Change an executor's availability. Returns False for unknown ids."""
        state = Availability(availability)
        with self._lock:
            descriptor = self._executors.get(executor_id)
            if descriptor is None:
                return False
            descriptor.availability = state
            return True

    def __len__(self) -> int:
        return len(self._executors)

    def __contains__(self, executor_id: object) -> bool:
        return executor_id in self._executors
