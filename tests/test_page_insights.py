import asyncio

from a11yscan.models import HeadingInfo
from a11yscan.scanner.consent import DISMISS_SCRIPT, dismiss_consent
from a11yscan.scanner.page_insights import (
    DIMENSIONS_SCRIPT, LINKS_SCRIPT, PERFORMANCE_SCRIPT, analyze_headings, collect_performance,
    discover_links, page_dimensions,
)

from fakes import FakeSession


def issue_types(headings):
    return [issue.type for issue in analyze_headings(headings).issues]


def test_well_formed_outline_has_no_issues():
    structure = analyze_headings([
        HeadingInfo(1, "Annual report"), HeadingInfo(2, "Results"), HeadingInfo(3, "Europe"),
        HeadingInfo(2, "Outlook"),
    ])
    assert structure.issues == []
    assert structure.summary["h2"] == 2
    assert structure.summary["total"] == 4


def test_missing_h1_and_skipped_level():
    assert issue_types([HeadingInfo(2, "Products"), HeadingInfo(4, "Shoes")]) == [
        "missing-h1", "first-not-h1", "skipped-level",
    ]


def test_text_problems():
    types = issue_types([
        HeadingInfo(1, "Welcome"), HeadingInfo(2, ""), HeadingInfo(2, "Read more"),
        HeadingInfo(2, "Ok"), HeadingInfo(2, "x" * 120), HeadingInfo(3, "News"), HeadingInfo(3, "news"),
    ])
    assert types == [
        "empty-heading", "generic-heading", "very-short-heading", "very-long-heading", "duplicate-headings",
    ]


def test_multiple_h1_reported_per_heading():
    types = issue_types([HeadingInfo(1, "Home"), HeadingInfo(1, "Shop")])
    assert types == ["multiple-h1", "multiple-h1"]


def test_performance_metrics_are_rounded_and_optional():
    session = FakeSession({PERFORMANCE_SCRIPT: {"ttfb": 120.12345, "largest_contentful_paint": None}})
    report = asyncio.run(collect_performance(session))
    assert report.ttfb == 120.123
    assert report.largest_contentful_paint is None
    assert asyncio.run(collect_performance(FakeSession({PERFORMANCE_SCRIPT: {}}))) is None


def test_dimensions_and_links():
    session = FakeSession({
        DIMENSIONS_SCRIPT: {"width": 1280.0, "height": 4000, "viewport_width": None},
        LINKS_SCRIPT: ["https://example.com/a", "https://example.com/b", "https://example.com/a"],
    })
    assert asyncio.run(page_dimensions(session)) == {"width": 1280, "height": 4000}
    assert asyncio.run(discover_links(session)) == ["https://example.com/a", "https://example.com/b"]


def test_consent_banner_dismissed():
    session = FakeSession({DISMISS_SCRIPT: {"method": "selector", "match": "#onetrust-accept-btn-handler"}})
    outcome = asyncio.run(dismiss_consent(session, timeout=1))
    assert outcome
    assert outcome.value["method"] == "selector"


def test_no_consent_banner():
    outcome = asyncio.run(dismiss_consent(FakeSession(), timeout=1))
    assert not outcome
    assert outcome.reason == "no consent banner matched"


def test_consent_script_error_never_raises():
    session = FakeSession({DISMISS_SCRIPT: RuntimeError("detached frame")})
    outcome = asyncio.run(dismiss_consent(session, timeout=1))
    assert not outcome
    assert outcome.reason == "error: detached frame"
