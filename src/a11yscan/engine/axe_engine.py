# -*- coding: utf-8 -*-
"""
Static rule engine adapters.

``AxeSeleniumEngine`` injects axe-core through axe-selenium-python and maps its
result dictionary onto ``RawViolation`` objects.
"""

import asyncio
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from axe_selenium_python import Axe
from selenium.common.exceptions import TimeoutException, WebDriverException
from tenacity import (
    RetryError, AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_exponential,
)

from ..browser.session import BrowserSession
from ..errors import AuditEngineError
from ..models import RawViolation, ViolationNode
from ..utils.logging_config import get_logger

logger = get_logger("audit_engine")


class AuditEngineAdapter(ABC):
    """Runs a static DOM rule engine against the session's current page."""

    name = "engine"
    version: Optional[str] = None

    @abstractmethod
    async def run(self, session: BrowserSession) -> List[RawViolation]:
        """Return raw rule failures; raise ``AuditEngineError`` when the engine cannot run."""


def _flatten_target(target: Any) -> List[str]:
    # axe nests selectors for iframes and shadow roots
    selectors = []
    for item in target or []:
        if isinstance(item, list):
            selectors.append(" >>> ".join(str(x) for x in item))
        else:
            selectors.append(str(item))
    return selectors


def parse_axe_results(results: Dict[str, Any]) -> List[RawViolation]:
    """Map an axe ``run()`` result dictionary onto raw violations."""
    raw = []
    for violation in results.get("violations", []) or []:
        nodes = []
        for node in violation.get("nodes", []) or []:
            nodes.append(ViolationNode(
                html=node.get("html", "") or "",
                target=_flatten_target(node.get("target")) or ["html"],
                failure_summary=node.get("failureSummary", "") or "",
            ))
        raw.append(RawViolation(
            rule_id=violation.get("id", ""),
            description=violation.get("description", ""),
            help=violation.get("help", ""),
            help_url=violation.get("helpUrl", ""),
            impact=violation.get("impact"),
            tags=list(violation.get("tags", []) or []),
            nodes=nodes,
        ))
    return raw


class AxeSeleniumEngine(AuditEngineAdapter):
    """axe-core through axe-selenium-python.

    Needs a ``SeleniumBrowserSession`` (the library drives the WebDriver
    directly). Injection and run are retried with tenacity; the retries only
    touch the local engine, never the audited site.
    """

    name = "axe-core"

    def __init__(self, attempts: int = 3, run_options: Optional[Dict[str, Any]] = None,
                 timeout: float = 25.0):
        self.attempts = attempts
        self.timeout = timeout
        self.run_options = run_options

    def _inject_and_run(self, driver) -> Dict[str, Any]:
        axe = Axe(driver)
        axe.inject()
        results = axe.run(options=self.run_options) if self.run_options else axe.run()
        self.version = (results.get("testEngine") or {}).get("version", self.version)
        return results

    async def run(self, session: BrowserSession) -> List[RawViolation]:
        if not hasattr(session, "run_with_driver"):
            raise AuditEngineError(f"{self.name} needs a Selenium-backed session")

        url = await session.current_url()
        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(self.attempts),
                wait=wait_exponential(multiplier=1, min=1, max=5),
                retry=retry_if_exception_type((TimeoutException, WebDriverException)),
                reraise=False,
            ):
                with attempt:
                    if attempt.retry_state.attempt_number > 1:
                        logger.warning(f"Retrying axe on {url}, attempt {attempt.retry_state.attempt_number}")
                    results = await session.run_with_driver(self._inject_and_run, timeout=self.timeout)
        except RetryError as e:
            cause = e.last_attempt.exception()
            raise AuditEngineError(f"axe failed after {self.attempts} attempts: {cause}", url) from cause
        except asyncio.TimeoutError as e:
            raise AuditEngineError("axe run timed out", url) from e

        violations = parse_axe_results(results)
        logger.info(f"{url}: axe reported {len(violations)} failing rules.")
        return violations
