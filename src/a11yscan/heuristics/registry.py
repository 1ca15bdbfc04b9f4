# -*- coding: utf-8 -*-
"""
Heuristic test registry and suite runner.

The registry is an ordered, immutable tuple of tests built once. Read-only
tests run concurrently on the shared tab; mutating tests run afterwards one
at a time, in registration order. Every test is isolated: an exception or a
timeout costs that test its results and nothing else.
"""

import asyncio
import time
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Iterator, List, Optional, Tuple

from ..errors import TestExecutionError
from ..models import AccessibilityViolation, TestOutcome, TestStatus
from ..utils.logging_config import get_logger
from .alt_text import SuspiciousAltTextCheck
from .base import HeuristicTest, ScanContext
from .carousel import CarouselAutoplayCheck
from .focus_order import FocusOrderAnalyzer
from .form_errors import FormErrorCheck
from .landmarks import LandmarkCheck
from .media_autoplay import MediaAutoplayCheck
from .modal_focus import ModalFocusCheck
from .orientation_lock import OrientationLockCheck
from .skip_link import SkipLinkCheck
from .viewport_lock import ViewportLockCheck

DEFAULT_TEST_TIMEOUT = 20.0


@dataclass
class SuiteResult:
    violations: List[AccessibilityViolation] = field(default_factory=list)
    outcomes: List[TestOutcome] = field(default_factory=list)

    @property
    def failed(self) -> List[TestOutcome]:
        return [o for o in self.outcomes if o.status in (TestStatus.FAILED, TestStatus.TIMEOUT)]


class HeuristicTestRegistry:

    def __init__(self, tests: Iterable[HeuristicTest], default_timeout: float = DEFAULT_TEST_TIMEOUT,
                 logger=None):
        self.logger = logger or get_logger("heuristics")
        tests = tuple(tests)
        seen = set()
        for test in tests:
            if test.test_id in seen:
                raise ValueError(f"Duplicate heuristic test id: {test.test_id}")
            seen.add(test.test_id)
        self._tests: Tuple[HeuristicTest, ...] = tests
        self.default_timeout = default_timeout

    @property
    def tests(self) -> Tuple[HeuristicTest, ...]:
        return self._tests

    def __iter__(self) -> Iterator[HeuristicTest]:
        return iter(self._tests)

    def __len__(self) -> int:
        return len(self._tests)

    def ids(self) -> List[str]:
        return [test.test_id for test in self._tests]

    def get(self, test_id: str) -> Optional[HeuristicTest]:
        for test in self._tests:
            if test.test_id == test_id:
                return test
        return None

    def select(self, enabled_ids: Optional[Iterable[str]]) -> "HeuristicTestRegistry":
        """Registry restricted to ``enabled_ids`` (None keeps every test)."""
        if enabled_ids is None:
            return self
        wanted = set(enabled_ids)
        unknown = wanted - set(self.ids())
        if unknown:
            self.logger.warning(f"Ignoring unknown heuristic test ids: {sorted(unknown)}")
        return HeuristicTestRegistry(
            [test for test in self._tests if test.test_id in wanted],
            self.default_timeout,
            self.logger,
        )

    async def _run_one(self, test: HeuristicTest, session,
                       context: ScanContext) -> Tuple[List[AccessibilityViolation], TestOutcome]:
        timeout = test.timeout or self.default_timeout
        started = time.monotonic()
        try:
            violations = await asyncio.wait_for(test.run(session, context), timeout)
        except asyncio.TimeoutError:
            error = TestExecutionError(test.test_id, f"timed out after {timeout}s", context.url, timed_out=True)
            self.logger.warning(str(error))
            return [], TestOutcome(test.test_id, TestStatus.TIMEOUT, error=str(error),
                                   duration=time.monotonic() - started)
        except Exception as e:
            error = TestExecutionError(test.test_id, f"{type(e).__name__}: {e}", context.url)
            self.logger.error(str(error), exc_info=True)
            return [], TestOutcome(test.test_id, TestStatus.FAILED, error=str(error),
                                   duration=time.monotonic() - started)

        violations = list(violations or [])
        duration = time.monotonic() - started
        self.logger.debug(f"[{test.test_id}] {len(violations)} violations in {duration:.2f}s")
        return violations, TestOutcome(test.test_id, TestStatus.OK, violations=len(violations),
                                       duration=duration)

    async def run_detailed(self, session, context: Optional[ScanContext] = None) -> SuiteResult:
        if context is None:
            context = ScanContext(url=await session.current_url(), profile=session.profile)

        read_only = [test for test in self._tests if not test.mutating]
        mutating = [test for test in self._tests if test.mutating]

        results: Dict[str, Tuple[List[AccessibilityViolation], TestOutcome]] = {}
        gathered = await asyncio.gather(*(self._run_one(test, session, context) for test in read_only))
        for test, result in zip(read_only, gathered):
            results[test.test_id] = result
        for test in mutating:
            results[test.test_id] = await self._run_one(test, session, context)

        suite = SuiteResult()
        # report in registration order regardless of scheduling
        for test in self._tests:
            violations, outcome = results[test.test_id]
            suite.violations.extend(violations)
            suite.outcomes.append(outcome)

        if suite.failed:
            self.logger.info(f"{len(suite.failed)}/{len(self._tests)} heuristic tests did not complete on "
                             f"{context.url}")
        return suite

    async def run(self, session, context: Optional[ScanContext] = None) -> List[AccessibilityViolation]:
        return (await self.run_detailed(session, context)).violations


TEST_CLASSES = (
    SkipLinkCheck,
    LandmarkCheck,
    ViewportLockCheck,
    MediaAutoplayCheck,
    CarouselAutoplayCheck,
    SuspiciousAltTextCheck,
    FocusOrderAnalyzer,
    ModalFocusCheck,
    OrientationLockCheck,
    FormErrorCheck,
)


def default_registry(heuristics_config: Optional[Dict[str, Any]] = None,
                     focus_config: Optional[Dict[str, Any]] = None) -> HeuristicTestRegistry:
    """Build the standard suite, applying per-test overrides from configuration."""
    heuristics_config = heuristics_config or {}
    overrides = heuristics_config.get("tests", {})
    default_timeout = heuristics_config.get("default_timeout") or DEFAULT_TEST_TIMEOUT

    tests = []
    for test_class in TEST_CLASSES:
        settings = overrides.get(test_class.test_id, {})
        if settings.get("enabled", True) is False:
            continue
        severity = settings.get("severity")
        timeout = settings.get("timeout")
        if test_class is FocusOrderAnalyzer:
            test = FocusOrderAnalyzer.from_config(focus_config or {}, severity=severity)
            if timeout is not None:
                test.timeout = timeout
        else:
            test = test_class(severity=severity, timeout=timeout)
        tests.append(test)
    return HeuristicTestRegistry(tests, default_timeout=default_timeout)
