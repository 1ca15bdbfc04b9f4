import asyncio

import pytest

from a11yscan.heuristics.base import AccessMode, HeuristicTest, ScanContext
from a11yscan.heuristics.registry import TEST_CLASSES, HeuristicTestRegistry, default_registry
from a11yscan.models import TestStatus

from fakes import FakeSession


class StubTest(HeuristicTest):
    """Reports one violation and remembers the order it ran in."""

    def __init__(self, test_id, log, access=AccessMode.READ_ONLY, **kwargs):
        super().__init__(**kwargs)
        self.test_id = test_id
        self.access = access
        self.log = log

    async def run(self, session, context):
        self.log.append(self.test_id)
        return [self.make_violation([], title=self.test_id)]


class BrokenTest(StubTest):
    async def run(self, session, context):
        self.log.append(self.test_id)
        raise RuntimeError("script blew up")


class SlowTest(StubTest):
    async def run(self, session, context):
        await asyncio.sleep(5)
        return []


def run_suite(registry):
    context = ScanContext(url="https://example.com/")
    return asyncio.run(registry.run_detailed(FakeSession(), context))


def test_one_failing_test_does_not_affect_the_others():
    log = []
    tests = [StubTest(f"t{i}", log) for i in range(9)]
    tests.insert(4, BrokenTest("broken", log))
    result = run_suite(HeuristicTestRegistry(tests))

    assert len(result.violations) == 9
    assert len(result.outcomes) == 10
    broken = [o for o in result.outcomes if o.test_id == "broken"][0]
    assert broken.status is TestStatus.FAILED
    assert "script blew up" in broken.error
    assert result.failed == [broken]


def test_slow_test_times_out():
    log = []
    registry = HeuristicTestRegistry([StubTest("fast", log), SlowTest("slow", log, timeout=0.05)])
    result = run_suite(registry)
    assert [v.id for v in result.violations] == ["fast"]
    slow = result.outcomes[1]
    assert slow.status is TestStatus.TIMEOUT
    assert "timed out" in slow.error


def test_read_only_tests_run_before_mutating_ones():
    log = []
    registry = HeuristicTestRegistry([
        StubTest("mutate-a", log, AccessMode.MUTATING),
        StubTest("read-a", log),
        StubTest("mutate-b", log, AccessMode.MUTATING),
        StubTest("read-b", log),
    ])
    result = run_suite(registry)
    assert log[:2] == ["read-a", "read-b"]
    assert log[2:] == ["mutate-a", "mutate-b"]
    # results still follow registration order
    assert [o.test_id for o in result.outcomes] == ["mutate-a", "read-a", "mutate-b", "read-b"]


def test_duplicate_ids_are_rejected():
    log = []
    with pytest.raises(ValueError):
        HeuristicTestRegistry([StubTest("same", log), StubTest("same", log)])


def test_select_keeps_known_ids_in_order():
    log = []
    registry = HeuristicTestRegistry([StubTest("a", log), StubTest("b", log), StubTest("c", log)])
    assert registry.select(None) is registry
    assert registry.select(["c", "a", "nope"]).ids() == ["a", "c"]
    assert len(registry.select([])) == 0


def test_default_registry_has_every_test():
    registry = default_registry()
    assert registry.ids() == [cls.test_id for cls in TEST_CLASSES]
    assert len(registry) == 10
    assert registry.get("focus-order").mutating


def test_default_registry_applies_overrides():
    registry = default_registry(
        {"default_timeout": 7, "tests": {
            "carousel-autoplay": {"enabled": False},
            "landmarks": {"severity": "minor", "timeout": 3},
            "focus-order": {"timeout": 40},
        }},
        {"max_steps": 30},
    )
    assert "carousel-autoplay" not in registry.ids()
    assert registry.get("landmarks").severity == "minor"
    assert registry.get("landmarks").timeout == 3
    assert registry.get("focus-order").timeout == 40
    assert registry.get("focus-order").max_steps == 30
    assert registry.default_timeout == 7
