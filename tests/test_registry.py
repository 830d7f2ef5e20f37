"""Tests for the capability registry and matcher."""

from __future__ import annotations

import pytest

from conductor.engine.registry import (
    Availability,
    CapabilityRegistry,
    ExecutorDescriptor,
    capability_score,
)


def make_descriptor(executor_id: str, capabilities: list[str], **kwargs: object) -> ExecutorDescriptor:
    return ExecutorDescriptor(id=executor_id, capabilities=capabilities, name=f"{executor_id} agent", **kwargs)


@pytest.fixture
def registry() -> CapabilityRegistry:
    return CapabilityRegistry()


class TestDescriptor:
    def test_defaults(self) -> None:
        d = ExecutorDescriptor(id="solo", capabilities=["code", "code", "testing"])
        assert d.name == "solo"
        assert d.capabilities == ["code", "testing"]
        assert d.availability == Availability.AVAILABLE

    def test_validation(self) -> None:
        with pytest.raises(ValueError):
            ExecutorDescriptor(id="", capabilities=["code"])
        with pytest.raises(ValueError):
            ExecutorDescriptor(id="x", capabilities=["code"], availability="sleeping")
        with pytest.raises(ValueError):
            ExecutorDescriptor(id="x", capabilities="code")  # type: ignore[arg-type]


class TestRegistration:
    def test_register_and_get(self, registry: CapabilityRegistry) -> None:
        registry.register(make_descriptor("test-agent", ["code", "testing"]))

        retrieved = registry.get("test-agent")
        assert retrieved is not None
        assert retrieved.name == "test-agent agent"
        assert "test-agent" in registry
        assert len(registry) == 1

    def test_reregister_replaces(self, registry: CapabilityRegistry) -> None:
        registry.register(make_descriptor("a", ["code"]))
        registry.register(make_descriptor("b", ["code"]))
        registry.register(make_descriptor("a", ["research"]))

        assert len(registry) == 2
        assert registry.get("a").capabilities == ["research"]
        # Replacement keeps the original registration slot
        assert [d.id for d in registry.get_all()] == ["a", "b"]

    def test_unregister(self, registry: CapabilityRegistry) -> None:
        registry.register(make_descriptor("a", ["code"]))

        assert registry.unregister("a") is True
        assert registry.unregister("a") is False
        assert registry.get("a") is None


class TestMatching:
    def test_capability_score(self) -> None:
        assert capability_score(["code", "testing"], ["code"]) == 1
        assert capability_score(["code", "testing"], ["code", "testing", "research"]) == 2
        assert capability_score([], ["code"]) == 0

    def test_find_by_capability(self, registry: CapabilityRegistry) -> None:
        registry.register(make_descriptor("test-agent", ["code", "testing"]))
        registry.register(make_descriptor("design-agent", ["aesthetics"]))
        registry.register(make_descriptor("full-agent", ["code", "aesthetics"]))

        assert [d.id for d in registry.find_by_capability("code")] == ["test-agent", "full-agent"]
        assert [d.id for d in registry.find_by_capability("aesthetics")] == ["design-agent", "full-agent"]
        assert registry.find_by_capability("multimodal") == []

    def test_best_match_prefers_highest_overlap(self, registry: CapabilityRegistry) -> None:
        registry.register(make_descriptor("test-agent", ["code", "testing"]))
        registry.register(make_descriptor("full-agent", ["code", "testing", "aesthetics"]))

        best = registry.find_best_match(["code", "testing", "aesthetics"])
        assert best is not None
        assert best.id == "full-agent"

    def test_best_match_none_when_disjoint(self, registry: CapabilityRegistry) -> None:
        registry.register(make_descriptor("coder", ["code"]))
        registry.register(make_descriptor("tester", ["testing"]))

        assert registry.find_best_match(["research", "multimodal"]) is None
        assert registry.find_best_match([]) is None

    def test_best_match_ties_go_to_first_registered(self, registry: CapabilityRegistry) -> None:
        registry.register(make_descriptor("first", ["code", "research"]))
        registry.register(make_descriptor("second", ["code", "testing"]))

        assert registry.find_best_match(["code"]).id == "first"

    def test_best_match_on_empty_registry(self, registry: CapabilityRegistry) -> None:
        assert registry.find_best_match(["code"]) is None


class TestAvailability:
    def test_is_available(self, registry: CapabilityRegistry) -> None:
        registry.register(make_descriptor("test-agent", ["code"]))
        registry.register(make_descriptor("busy-agent", ["code"], availability="busy"))

        assert registry.is_available("test-agent") is True
        assert registry.is_available("busy-agent") is False
        assert registry.is_available("missing") is False

    def test_set_availability(self, registry: CapabilityRegistry) -> None:
        registry.register(make_descriptor("a", ["code"]))

        assert registry.set_availability("a", Availability.OFFLINE) is True
        assert registry.is_available("a") is False
        assert registry.set_availability("missing", "busy") is False
