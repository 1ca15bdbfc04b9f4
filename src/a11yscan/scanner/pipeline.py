# -*- coding: utf-8 -*-
"""
Single-page scan pipeline.

``ScanPipeline.scan`` drives one page through a fixed sequence of states:
session, navigation, consent, viewport, static engine, heuristic suite,
artifacts, link check and aggregation. Only a failure to acquire the session
or to load the page aborts the scan; every later step degrades into an
omitted report section or a diagnostic flag.
"""

import asyncio
from dataclasses import dataclass, fields
from enum import Enum
from typing import Any, Dict, List, Optional

from ..analysis.aggregator import ViolationAggregator
from ..browser.selenium_session import SeleniumBrowserSession
from ..browser.session import FreshSessionProvider, SessionProvider, get_device_profile
from ..engine.axe_engine import AuditEngineAdapter, AxeSeleniumEngine
from ..errors import AuditEngineError, InvalidStateTransition, NavigationError
from ..heuristics.base import ScanContext
from ..heuristics.registry import HeuristicTestRegistry, default_registry
from ..models import AuditReport, PageArtifacts, ScanDiagnostics, StepOutcome, utc_timestamp
from ..utils.config_manager import get_config_manager
from ..utils.decorators import log_method
from ..utils.logging_config import get_logger
from ..utils.output_manager import OutputManager
from .consent import dismiss_consent
from .link_checker import AiohttpLinkProbe, BrokenLinkChecker
from .page_insights import (
    PERFORMANCE_OBSERVER_SCRIPT, collect_performance, discover_links, extract_heading_structure,
    page_dimensions,
)


class PipelineState(Enum):
    CREATED = 0
    SESSION_ACQUIRED = 1
    NAVIGATED = 2
    CONSENT_DISMISSED = 3
    VIEWPORT_CONFIGURED = 4
    AUDIT_ENGINE_RUN = 5
    HEURISTIC_SUITE_RUN = 6
    ARTIFACTS_CAPTURED = 7
    LINKS_CHECKED = 8
    AGGREGATED = 9
    FAILED = -1


FAILABLE_FROM = (PipelineState.SESSION_ACQUIRED, PipelineState.NAVIGATED)


class StateTracker:
    """Forward-only record of the states one scan went through."""

    def __init__(self):
        self.state = PipelineState.CREATED
        self.history: List[PipelineState] = [PipelineState.CREATED]

    def advance(self, target: PipelineState) -> None:
        if self.state is PipelineState.FAILED:
            raise InvalidStateTransition(f"Cannot leave FAILED for {target.name}")
        if target is PipelineState.FAILED:
            if self.state not in FAILABLE_FROM:
                raise InvalidStateTransition(f"FAILED is not reachable from {self.state.name}")
        elif target.value <= self.state.value:
            raise InvalidStateTransition(f"{self.state.name} -> {target.name} moves backwards")
        self.state = target
        self.history.append(target)

    @property
    def names(self) -> List[str]:
        return [state.name for state in self.history]


@dataclass
class ScanOptions:
    device: str = "desktop"
    capture_screenshot: bool = True
    capture_html: bool = False
    check_links: bool = True
    dismiss_consent: bool = True
    collect_performance: bool = True
    analyze_headings: bool = True
    enabled_tests: Optional[List[str]] = None
    settle_time: float = 1.0
    navigation_timeout: float = 30.0
    audit_engine_timeout: float = 25.0
    screenshot_timeout: float = 10.0
    consent_timeout: float = 5.0

    @classmethod
    def from_config(cls, config_manager=None, **overrides) -> "ScanOptions":
        """Options defaulted from ``get_scan_config()``; keyword overrides win."""
        config_manager = config_manager or get_config_manager()
        scan = config_manager.get_scan_config()
        timeouts = scan.get("timeouts", {})
        values: Dict[str, Any] = {
            "device": scan.get("device"),
            "capture_screenshot": scan.get("capture_screenshot"),
            "capture_html": scan.get("capture_html"),
            "check_links": scan.get("check_links"),
            "dismiss_consent": scan.get("dismiss_consent"),
            "collect_performance": scan.get("collect_performance"),
            "analyze_headings": scan.get("analyze_headings"),
            "settle_time": scan.get("settle_time"),
            "navigation_timeout": timeouts.get("navigation"),
            "audit_engine_timeout": timeouts.get("audit_engine"),
            "screenshot_timeout": timeouts.get("screenshot"),
            "consent_timeout": timeouts.get("consent"),
        }
        values = {key: value for key, value in values.items() if value is not None}
        known = {f.name for f in fields(cls)}
        values.update({key: value for key, value in overrides.items() if key in known and value is not None})
        return cls(**values)


class ScanPipeline:
    """Runs the scan of one URL with injected collaborators.

    Collaborators left as None are built from the configuration: a fresh
    Selenium session per scan, axe-core, the default heuristic registry, the
    default aggregator and an aiohttp link checker.
    """

    def __init__(
        self,
        session_provider: Optional[SessionProvider] = None,
        engine: Optional[AuditEngineAdapter] = None,
        registry: Optional[HeuristicTestRegistry] = None,
        aggregator: Optional[ViolationAggregator] = None,
        link_checker: Optional[BrokenLinkChecker] = None,
        artifact_store=None,
        config_manager=None,
        logger=None,
    ):
        self.config_manager = config_manager or get_config_manager()
        self.logger = logger or get_logger("pipeline")

        scan_config = self.config_manager.get_scan_config()
        timeouts = scan_config.get("timeouts", {})
        heuristics_config = self.config_manager.get_heuristics_config()

        self.session_provider = session_provider or FreshSessionProvider(
            SeleniumBrowserSession.factory(
                headless=scan_config.get("headless", True),
                step_timeout=timeouts.get("heuristic_step") or 3.0,
            )
        )
        self.engine = engine or AxeSeleniumEngine(timeout=timeouts.get("audit_engine") or 25.0)
        if registry is None:
            registry = default_registry(heuristics_config, self.config_manager.get_focus_config())
        self.registry = registry
        self.aggregator = aggregator or ViolationAggregator(self.config_manager.get_scoring_config())
        if link_checker is None:
            links = self.config_manager.get_link_check_config()
            link_checker = BrokenLinkChecker(
                AiohttpLinkProbe(timeout=links.get("timeout") or 5.0),
                max_links=links.get("max_links") or 40,
                include_external=links.get("include_external", True),
                concurrency=links.get("concurrency") or 8,
            )
        self.link_checker = link_checker
        self.artifact_store = artifact_store
        self.test_settings = {
            key: value for key, value in heuristics_config.items() if key != "tests" and value is not None
        }

    async def close(self) -> None:
        if self.link_checker is not None:
            await self.link_checker.probe.close()

    @log_method
    async def scan(self, url: str, options: Optional[ScanOptions] = None) -> AuditReport:
        options = options or ScanOptions.from_config(self.config_manager)
        profile = get_device_profile(options.device)
        tracker = StateTracker()
        diagnostics = ScanDiagnostics()

        self.logger.info(f"Scanning {url} ({profile.name})")
        async with self.session_provider.acquire(profile) as session:
            tracker.advance(PipelineState.SESSION_ACQUIRED)

            if options.collect_performance:
                try:
                    await session.add_init_script(PERFORMANCE_OBSERVER_SCRIPT)
                except Exception as e:
                    self.logger.warning(f"Performance observers not installed: {e}")

            try:
                await session.navigate(url, options.navigation_timeout)
            except NavigationError as e:
                tracker.advance(PipelineState.FAILED)
                self.logger.error(f"Navigation failed for {url}: {e}")
                raise
            tracker.advance(PipelineState.NAVIGATED)

            try:
                final_url = await session.current_url()
            except Exception as e:
                tracker.advance(PipelineState.FAILED)
                raise NavigationError(f"Page unusable after load: {e}", url) from e
            if final_url != url:
                self.logger.debug(f"{url} resolved to {final_url}")
            await session.sleep(options.settle_time)

            if options.dismiss_consent:
                diagnostics.consent = await dismiss_consent(session, options.consent_timeout)
            else:
                diagnostics.consent = StepOutcome.absent("disabled")
            tracker.advance(PipelineState.CONSENT_DISMISSED)

            try:
                await session.set_viewport(profile)
            except Exception as e:
                self.logger.warning(f"Could not apply the {profile.name} viewport on {url}: {e}")
            tracker.advance(PipelineState.VIEWPORT_CONFIGURED)

            performance = None
            if options.collect_performance:
                try:
                    performance = await collect_performance(session)
                except Exception as e:
                    self.logger.warning(f"Performance metrics unavailable for {url}: {e}")

            headings = None
            if options.analyze_headings:
                try:
                    headings = await extract_heading_structure(session)
                except Exception as e:
                    self.logger.warning(f"Heading analysis failed for {url}: {e}")

            engine_violations = await self._run_engine(session, url, options, diagnostics)
            tracker.advance(PipelineState.AUDIT_ENGINE_RUN)

            context = ScanContext(url=url, profile=profile, settings=dict(self.test_settings))
            suite = await self.registry.select(options.enabled_tests).run_detailed(session, context)
            diagnostics.test_outcomes = suite.outcomes
            tracker.advance(PipelineState.HEURISTIC_SUITE_RUN)

            artifacts = await self._capture_artifacts(session, url, options)
            tracker.advance(PipelineState.ARTIFACTS_CAPTURED)

            discovered: List[str] = []
            try:
                discovered = await discover_links(session)
            except Exception as e:
                self.logger.warning(f"Link discovery failed on {url}: {e}")

            broken_links = None
            if options.check_links and self.link_checker is not None:
                try:
                    broken_links = await self.link_checker.check(url, discovered)
                    diagnostics.links_checked = True
                except Exception as e:
                    self.logger.warning(f"Link check failed on {url}: {e}")
            tracker.advance(PipelineState.LINKS_CHECKED)

        result = self.aggregator.aggregate(engine_violations, suite.violations)
        tracker.advance(PipelineState.AGGREGATED)
        diagnostics.states = tracker.names

        report = AuditReport(
            url=url,
            timestamp=utc_timestamp(),
            score=result.score,
            violations=result.violations_by_severity,
            stats=result.stats,
            device=profile.name,
            action_items=result.action_items,
            artifacts=artifacts,
            broken_links=broken_links,
            performance=performance,
            heading_structure=headings,
            keyboard_navigation=context.keyboard_report,
            diagnostics=diagnostics,
            discovered_links=discovered,
        )
        self.logger.info(
            f"{url}: score {report.score}, {report.stats.total_violations} violations "
            f"({report.stats.critical} critical, {report.stats.serious} serious)"
        )
        return report

    async def _run_engine(self, session, url: str, options: ScanOptions, diagnostics: ScanDiagnostics):
        try:
            return await asyncio.wait_for(self.engine.run(session), options.audit_engine_timeout)
        except asyncio.TimeoutError:
            diagnostics.engine_error = f"timed out after {options.audit_engine_timeout}s"
        except AuditEngineError as e:
            diagnostics.engine_error = e.message
        except Exception as e:
            diagnostics.engine_error = f"{type(e).__name__}: {e}"
        diagnostics.engine_available = False
        self.logger.error(f"Audit engine unavailable on {url}: {diagnostics.engine_error}")
        return []

    async def _capture_artifacts(self, session, url: str, options: ScanOptions) -> PageArtifacts:
        artifacts = PageArtifacts()
        slug = OutputManager.page_slug(url)

        if options.capture_screenshot:
            try:
                png = await asyncio.wait_for(
                    session.screenshot(timeout=options.screenshot_timeout), options.screenshot_timeout
                )
                artifacts.screenshot = StepOutcome.ok(self._store(f"{slug}.png", png))
            except asyncio.TimeoutError:
                self.logger.warning(f"Screenshot of {url} timed out")
                artifacts.screenshot = StepOutcome.absent("timed out")
            except Exception as e:
                self.logger.warning(f"Screenshot of {url} failed: {e}")
                artifacts.screenshot = StepOutcome.absent(f"error: {e}")

        if options.capture_html:
            try:
                html = await session.page_source()
                artifacts.html_snapshot = StepOutcome.ok(self._store(f"{slug}.html", html))
            except Exception as e:
                self.logger.warning(f"HTML snapshot of {url} failed: {e}")
                artifacts.html_snapshot = StepOutcome.absent(f"error: {e}")

        try:
            artifacts.dimensions = await page_dimensions(session)
        except Exception as e:
            self.logger.debug(f"Page dimensions unavailable for {url}: {e}")
        return artifacts

    def _store(self, key: str, data):
        if self.artifact_store is None:
            return data
        return self.artifact_store.put(key, data)
