"""
Delegation Engine — Routes Units of Work to Capability-Matched Executors

Resolves an executor through the capability registry and invokes it through
the uniform ``execute(work) -> WorkResult`` contract. The engine itself never
touches the task store: each executor backend tracks its own task.

Usage:
    from conductor.delegation.executor import DelegationEngine

    engine = DelegationEngine(registry)
    engine.register_executor(descriptor, backend)
    result = await engine.delegate_one(work)
"""

import asyncio
import logging
from typing import Dict, List, Optional, Protocol, Sequence

from conductor.engine.registry import CapabilityRegistry, ExecutorDescriptor

from .models import UnitOfWork, WorkResult

logger = logging.getLogger(__name__)


class Executor(Protocol):
    """Uniform contract every executor backend satisfies."""

    async def execute(self, work: UnitOfWork) -> WorkResult: ...


class DelegationEngine:
    """
    Single, parallel and sequential delegation over registered executors.

    Descriptors live in the capability registry; the backend objects that
    actually run work are attached here by executor id.
    """

    def __init__(self, registry: CapabilityRegistry) -> None:
        self.registry = registry
        self._backends: Dict[str, Executor] = {}

    def register_executor(self, descriptor: ExecutorDescriptor, backend: Optional[Executor] = None) -> None:
        """Register a descriptor and, optionally, the backend that serves it."""
        self.registry.register(descriptor)
        if backend is not None:
            self._backends[descriptor.id] = backend
        else:
            self._backends.pop(descriptor.id, None)

    def unregister_executor(self, executor_id: str) -> bool:
        self._backends.pop(executor_id, None)
        return self.registry.unregister(executor_id)

    def backend_for(self, executor_id: str) -> Optional[Executor]:
        return self._backends.get(executor_id)

    async def delegate_one(self, work: UnitOfWork) -> WorkResult:
        """Run one unit of work on the best-matching executor."""
        descriptor = self.registry.find_best_match(work.required_capabilities)
        if descriptor is None:
            return WorkResult.failure(
                f"No executor found with capabilities: {', '.join(work.required_capabilities)}"
            )
        return await self._invoke(descriptor, work)

    async def delegate_to(self, executor_id: str, work: UnitOfWork) -> WorkResult:
        """Run one unit of work on a specific executor, bypassing capability matching."""
        descriptor = self.registry.get(executor_id)
        if descriptor is None:
            return WorkResult.failure(f"Executor not found: {executor_id}")
        return await self._invoke(descriptor, work)

    async def delegate_parallel(self, works: Sequence[UnitOfWork]) -> List[WorkResult]:
        """Run all units of work concurrently. Results follow input order."""
        return list(await asyncio.gather(*(self.delegate_one(work) for work in works)))

    async def delegate_sequential(
        self,
        works: Sequence[UnitOfWork],
        propagate_context: bool = True,
    ) -> List[WorkResult]:
        """
        Run units of work one after another.

        With ``propagate_context``, every successful output so far is merged
        into the next item's context as ``result_<i>``, where ``i`` is the
        producing item's position in the results list. Failures keep their
        slot but contribute nothing, and never stop the sequence.
        """
        results: List[WorkResult] = []
        accumulated: Dict[str, object] = {}

        for work in works:
            enriched = work.with_context(accumulated) if propagate_context else work
            result = await self.delegate_one(enriched)
            results.append(result)

            if result.success and result.output is not None:
                accumulated[f"result_{len(results) - 1}"] = result.output

        return results

    async def _invoke(self, descriptor: ExecutorDescriptor, work: UnitOfWork) -> WorkResult:
        backend = self._backends.get(descriptor.id)
        if backend is None:
            return WorkResult.failure(
                f"Executor {descriptor.id} execution not implemented",
                executor_id=descriptor.id,
            )

        logger.debug("Delegating %r to executor %s", work.name, descriptor.id)
        try:
            return await backend.execute(work)
        except Exception as exc:
            logger.warning("Executor %s raised on %r: %s", descriptor.id, work.name, exc)
            return WorkResult.failure(f"{type(exc).__name__}: {exc}", executor_id=descriptor.id)
