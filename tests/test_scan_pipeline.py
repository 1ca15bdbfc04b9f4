import asyncio

import pytest

from a11yscan.api import scan_page
from a11yscan.browser.session import FreshSessionProvider, ReusableSessionProvider
from a11yscan.errors import InvalidStateTransition, NavigationError
from a11yscan.heuristics import landmarks, skip_link
from a11yscan.models import TestStatus
from a11yscan.scanner.link_checker import BrokenLinkChecker
from a11yscan.scanner.page_insights import LINKS_SCRIPT, PERFORMANCE_OBSERVER_SCRIPT
from a11yscan.scanner.pipeline import PipelineState, ScanOptions, ScanPipeline, StateTracker

from fakes import (
    FakeEngine, FakeProbe, FakeSession, engine_failure, image_alt_violation, navigation_failure,
    session_factory, unreachable,
)

URL = "https://example.com/"

# Enough landmark structure for the landmark check to pass on the fake page.
PAGE_RESPONSES = {
    landmarks.COLLECT_SCRIPT: {
        "main": [{"selector": "main", "html": "<main>"}],
        "navigation": [{"selector": "nav", "html": "<nav>"}],
    },
}

QUIET = dict(settle_time=0, check_links=False)


def make_pipeline(session, engine=None, **kwargs):
    return ScanPipeline(
        session_provider=FreshSessionProvider(session_factory(session)),
        engine=engine or FakeEngine([image_alt_violation()]),
        link_checker=kwargs.pop("link_checker", BrokenLinkChecker(FakeProbe())),
        **kwargs,
    )


def scan(session, options=None, **kwargs):
    pipeline = make_pipeline(session, **kwargs)
    return asyncio.run(pipeline.scan(URL, options or ScanOptions(**QUIET)))


def test_end_to_end_scan():
    session = FakeSession(dict(PAGE_RESPONSES))
    report = scan(session)

    ids = sorted(v.id for v in report.all_violations())
    assert ids == ["image-alt", "skip-link"]
    assert report.score == 92
    assert report.stats.total_violations == 2
    assert report.stats.engine_violations == 1
    assert report.ok
    assert report.diagnostics.engine_available
    assert len(report.diagnostics.test_outcomes) == 10
    assert all(o.status is TestStatus.OK for o in report.diagnostics.test_outcomes)
    assert report.artifacts.screenshot.value == b"\x89PNG fake"
    assert report.heading_structure.issues[0].type == "missing-h1"
    assert session.navigations == [URL]
    assert session.init_scripts == [PERFORMANCE_OBSERVER_SCRIPT]
    assert session.closed


def test_states_are_recorded_in_order():
    report = scan(FakeSession(dict(PAGE_RESPONSES)))
    assert report.diagnostics.states == [
        "CREATED", "SESSION_ACQUIRED", "NAVIGATED", "CONSENT_DISMISSED", "VIEWPORT_CONFIGURED",
        "AUDIT_ENGINE_RUN", "HEURISTIC_SUITE_RUN", "ARTIFACTS_CAPTURED", "LINKS_CHECKED", "AGGREGATED",
    ]


def test_navigation_failure_propagates():
    session = FakeSession(navigate_error=navigation_failure(URL))
    engine = FakeEngine()
    with pytest.raises(NavigationError):
        scan(session, engine=engine)
    assert engine.calls == 0
    assert session.closed


def test_unavailable_browser_is_a_navigation_error():
    async def broken_factory(profile):
        raise RuntimeError("chromedriver not found")

    pipeline = ScanPipeline(session_provider=FreshSessionProvider(broken_factory), engine=FakeEngine(),
                            link_checker=BrokenLinkChecker(FakeProbe()))
    with pytest.raises(NavigationError, match="Browser session unavailable"):
        asyncio.run(pipeline.scan(URL, ScanOptions(**QUIET)))


def test_engine_failure_keeps_heuristic_results():
    report = scan(FakeSession(dict(PAGE_RESPONSES)), engine=FakeEngine(error=engine_failure()))
    assert not report.diagnostics.engine_available
    assert "chrome not reachable" in report.diagnostics.engine_error
    assert [v.id for v in report.all_violations()] == ["skip-link"]
    assert report.stats.engine_violations == 0
    assert "AUDIT_ENGINE_RUN" in report.diagnostics.states


class SlowEngine(FakeEngine):
    async def run(self, session):
        await asyncio.sleep(5)
        return []


def test_engine_timeout_is_reported():
    options = ScanOptions(audit_engine_timeout=0.05, **QUIET)
    report = scan(FakeSession(dict(PAGE_RESPONSES)), options, engine=SlowEngine())
    assert not report.diagnostics.engine_available
    assert report.diagnostics.engine_error == "timed out after 0.05s"


def test_failing_heuristic_does_not_abort_the_scan():
    responses = dict(PAGE_RESPONSES)
    responses[skip_link.COLLECT_SCRIPT] = RuntimeError("stale element")
    report = scan(FakeSession(responses))
    outcome = [o for o in report.diagnostics.test_outcomes if o.test_id == "skip-link"][0]
    assert outcome.status is TestStatus.FAILED
    assert [v.id for v in report.all_violations()] == ["image-alt"]


class MemoryStore:
    def __init__(self):
        self.items = {}

    def put(self, key, data):
        self.items[key] = data
        return f"memory://{key}"


def test_artifacts_go_to_the_store():
    store = MemoryStore()
    session = FakeSession(dict(PAGE_RESPONSES), html="<html><body><h1>Hi</h1></body></html>")
    report = scan(session, ScanOptions(capture_html=True, **QUIET), artifact_store=store)

    assert report.artifacts.screenshot.value.startswith("memory://")
    assert report.artifacts.screenshot.value.endswith(".png")
    assert report.artifacts.html_snapshot.value.endswith(".html")
    assert {type(v) for v in store.items.values()} == {bytes, str}


class NoScreenshotSession(FakeSession):
    async def screenshot(self, timeout=None):
        raise RuntimeError("tab crashed")


def test_screenshot_failure_is_an_absent_artifact():
    report = scan(NoScreenshotSession(dict(PAGE_RESPONSES)))
    assert not report.artifacts.screenshot
    assert report.artifacts.screenshot.reason == "error: tab crashed"
    assert report.score == 92


def test_links_are_discovered_and_checked():
    responses = dict(PAGE_RESPONSES)
    responses[LINKS_SCRIPT] = [
        f"{URL}about", f"{URL}missing", "https://gone.example/", f"{URL}about",
    ]
    probe = FakeProbe({f"{URL}missing": 404, "https://gone.example/": unreachable("https://gone.example/")})
    report = scan(FakeSession(responses), ScanOptions(settle_time=0),
                  link_checker=BrokenLinkChecker(probe))

    assert report.discovered_links == [f"{URL}about", f"{URL}missing", "https://gone.example/"]
    assert report.diagnostics.links_checked
    assert report.broken_links.checked == 3
    assert sorted(link.url for link in report.broken_links.broken) == [
        "https://gone.example/", f"{URL}missing",
    ]


def test_link_check_can_be_disabled():
    probe = FakeProbe()
    responses = dict(PAGE_RESPONSES)
    responses[LINKS_SCRIPT] = [f"{URL}about"]
    report = scan(FakeSession(responses), link_checker=BrokenLinkChecker(probe))
    assert report.broken_links is None
    assert probe.checked == []
    assert report.discovered_links == [f"{URL}about"]


def test_unparseable_link_does_not_abort_the_scan():
    responses = dict(PAGE_RESPONSES)
    responses[LINKS_SCRIPT] = ["https://[broken/x", f"{URL}missing"]
    probe = FakeProbe({f"{URL}missing": 404})
    report = scan(FakeSession(responses), ScanOptions(settle_time=0), link_checker=BrokenLinkChecker(probe))

    assert report.ok
    assert report.discovered_links == ["https://[broken/x", f"{URL}missing"]
    assert report.broken_links.checked == 1
    assert [link.url for link in report.broken_links.broken] == [f"{URL}missing"]


class ExplodingChecker(BrokenLinkChecker):
    async def check(self, page_url, links):
        raise RuntimeError("resolver gone")


def test_link_check_failure_leaves_links_unchecked():
    responses = dict(PAGE_RESPONSES)
    responses[LINKS_SCRIPT] = [f"{URL}about"]
    report = scan(FakeSession(responses), ScanOptions(settle_time=0), link_checker=ExplodingChecker(FakeProbe()))

    assert report.ok
    assert report.broken_links is None
    assert not report.diagnostics.links_checked
    assert "LINKS_CHECKED" in report.diagnostics.states


def test_enabled_tests_restrict_the_suite():
    report = scan(FakeSession(dict(PAGE_RESPONSES)), ScanOptions(enabled_tests=["skip-link"], **QUIET))
    assert [o.test_id for o in report.diagnostics.test_outcomes] == ["skip-link"]


def test_consent_is_skipped_when_disabled():
    report = scan(FakeSession(dict(PAGE_RESPONSES)), ScanOptions(dismiss_consent=False, **QUIET))
    assert report.diagnostics.consent.reason == "disabled"


def test_device_profile_is_applied():
    session = FakeSession(dict(PAGE_RESPONSES))
    report = scan(session, ScanOptions(device="mobile", enabled_tests=[], **QUIET))
    assert report.device == "mobile"
    assert session.viewports[0].name == "mobile"


def test_scan_page_closes_the_link_probe():
    probe = FakeProbe()
    session = FakeSession(dict(PAGE_RESPONSES))
    report = asyncio.run(scan_page(
        URL, ScanOptions(**QUIET),
        session_provider=FreshSessionProvider(session_factory(session)),
        engine=FakeEngine(),
        link_checker=BrokenLinkChecker(probe),
    ))
    assert report.url == URL
    assert probe.closed


def test_reused_session_registers_performance_observers_once():
    session = FakeSession(dict(PAGE_RESPONSES))
    pipeline = ScanPipeline(
        session_provider=ReusableSessionProvider(session_factory(session)),
        engine=FakeEngine(),
        link_checker=BrokenLinkChecker(FakeProbe()),
    )

    async def scan_twice():
        first = await pipeline.scan(URL, ScanOptions(**QUIET))
        second = await pipeline.scan(f"{URL}about", ScanOptions(**QUIET))
        await pipeline.session_provider.close()
        return first, second

    first, second = asyncio.run(scan_twice())
    assert first.ok and second.ok
    assert session.navigations == [URL, f"{URL}about"]
    assert session.init_scripts == [PERFORMANCE_OBSERVER_SCRIPT]


def test_state_tracker_is_forward_only():
    tracker = StateTracker()
    tracker.advance(PipelineState.SESSION_ACQUIRED)
    tracker.advance(PipelineState.NAVIGATED)
    with pytest.raises(InvalidStateTransition):
        tracker.advance(PipelineState.SESSION_ACQUIRED)
    tracker.advance(PipelineState.CONSENT_DISMISSED)
    with pytest.raises(InvalidStateTransition):
        tracker.advance(PipelineState.FAILED)


def test_failed_state_is_terminal():
    tracker = StateTracker()
    tracker.advance(PipelineState.SESSION_ACQUIRED)
    tracker.advance(PipelineState.FAILED)
    with pytest.raises(InvalidStateTransition):
        tracker.advance(PipelineState.NAVIGATED)
    assert tracker.names == ["CREATED", "SESSION_ACQUIRED", "FAILED"]


def test_options_from_config_with_overrides(config_manager):
    options = ScanOptions.from_config(config_manager, device="tablet", settle_time=None, unknown=1)
    assert options.device == "tablet"
    assert options.settle_time == ScanOptions.from_config(config_manager).settle_time
