import asyncio

from a11yscan.api import crawl_site
from a11yscan.browser.session import ReusableSessionProvider
from a11yscan.crawler.site_crawler import SiteCrawler
from a11yscan.heuristics.registry import HeuristicTestRegistry
from a11yscan.models import AuditReport, PageArtifacts, ReportStats, StepOutcome, empty_buckets
from a11yscan.scanner.page_insights import LINKS_SCRIPT
from a11yscan.scanner.pipeline import ScanOptions

from fakes import FakeEngine, FakeSession, navigation_failure, session_factory

ROOT = "https://example.com/"


def page(url, links=(), html=None):
    artifacts = PageArtifacts(html_snapshot=StepOutcome.ok(html)) if html else None
    return AuditReport(url=url, timestamp="2024-01-01T00:00:00+00:00", score=100,
                       violations=empty_buckets(), stats=ReportStats(),
                       discovered_links=list(links), artifacts=artifacts)


class FakeProvider:
    closed = False

    async def close(self):
        self.closed = True


class FakePipeline:
    """Serves reports from a ``{url: links}`` site graph."""

    def __init__(self, graph, failing=(), broken=(), snapshots=None):
        self.graph = graph
        self.failing = set(failing)
        self.broken = set(broken)
        self.snapshots = snapshots or {}
        self.scanned = []
        self.session_provider = FakeProvider()
        self.config_manager = None

    async def scan(self, url, options):
        self.scanned.append(url)
        if url in self.failing:
            raise navigation_failure(url)
        if url in self.broken:
            raise RuntimeError("tab crashed")
        return page(url, self.graph.get(url, []), self.snapshots.get(url))


class FakeSitemap:
    def __init__(self, urls):
        self.urls = urls

    async def fetch_urls(self, root_url):
        return list(self.urls)


def crawl(pipeline, max_pages=10, **kwargs):
    crawler = SiteCrawler(pipeline, options=ScanOptions(), max_pages=max_pages, **kwargs)
    return crawler, asyncio.run(crawler.crawl(ROOT))


def test_budget_stops_the_crawl_without_error():
    links = [f"{ROOT}page-{i}" for i in range(10)]
    pipeline = FakePipeline({ROOT: links})
    crawler, summary = crawl(pipeline, max_pages=1)

    assert pipeline.scanned == [ROOT]
    assert summary.pages_scanned == 1
    assert summary.frontier_discarded == 10
    assert not summary.interrupted
    assert summary.finished_at is not None
    assert len(crawler.frontier) == 0
    assert pipeline.session_provider.closed


def test_every_page_is_scanned_once():
    pipeline = FakePipeline({
        ROOT: [f"{ROOT}a", f"{ROOT}b"],
        f"{ROOT}a": [f"{ROOT}c", f"{ROOT}c?ref=a", ROOT],
        f"{ROOT}b": [f"{ROOT}c/", f"{ROOT}#top", "HTTPS://EXAMPLE.COM/a"],
        f"{ROOT}c": [ROOT],
    })
    _, summary = crawl(pipeline)
    assert pipeline.scanned == [ROOT, f"{ROOT}a", f"{ROOT}b", f"{ROOT}c"]
    assert summary.pages_scanned == 4
    assert summary.frontier_discarded == 0


def test_breadth_first_order():
    pipeline = FakePipeline({
        ROOT: [f"{ROOT}a", f"{ROOT}b"],
        f"{ROOT}a": [f"{ROOT}a/deep"],
        f"{ROOT}b": [f"{ROOT}b/deep"],
    })
    crawl(pipeline)
    assert pipeline.scanned == [ROOT, f"{ROOT}a", f"{ROOT}b", f"{ROOT}a/deep", f"{ROOT}b/deep"]


def test_failed_pages_are_recorded_and_the_crawl_continues():
    pipeline = FakePipeline({
        ROOT: [f"{ROOT}down", f"{ROOT}crash", f"{ROOT}ok"],
        f"{ROOT}ok": [f"{ROOT}ok/child"],
    }, failing=[f"{ROOT}down"], broken=[f"{ROOT}crash"])
    _, summary = crawl(pipeline)

    assert summary.pages_scanned == 5
    assert summary.pages_failed == 2
    assert summary.average_score == 100
    failed = {report.url: report.error for report in summary.pages if not report.ok}
    assert "Navigation timed out" in failed[f"{ROOT}down"]
    assert failed[f"{ROOT}crash"] == "RuntimeError: tab crashed"
    assert f"{ROOT}ok/child" in summary.urls


def test_only_same_site_pages_are_followed():
    pipeline = FakePipeline({ROOT: [
        "https://other.org/", "https://www.example.com/team", "mailto:info@example.com",
        f"{ROOT}brochure.pdf", "/relative",
    ]})
    crawl(pipeline)
    assert pipeline.scanned == [ROOT, "https://www.example.com/team", f"{ROOT}relative"]


def test_links_fall_back_to_the_html_snapshot():
    pipeline = FakePipeline({}, snapshots={
        ROOT: '<html><body><a href="/from-snapshot">x</a></body></html>',
    })
    crawl(pipeline)
    assert pipeline.scanned == [ROOT, f"{ROOT}from-snapshot"]


def test_sitemap_seeds_the_frontier():
    pipeline = FakePipeline({})
    sitemap = FakeSitemap([f"{ROOT}contact", "https://other.org/x", ROOT, f"{ROOT}news"])
    crawl(pipeline, sitemap_fetcher=sitemap)
    assert pipeline.scanned == [ROOT, f"{ROOT}contact", f"{ROOT}news"]


def test_unparseable_links_are_skipped():
    pipeline = FakePipeline({ROOT: [
        f"{ROOT}ok", "https://example.com:99999/x", "https://[broken/x", f"{ROOT}next",
    ]})
    _, summary = crawl(pipeline)
    assert pipeline.scanned == [ROOT, f"{ROOT}ok", f"{ROOT}next"]
    assert summary.pages_failed == 0


def test_unparseable_sitemap_entries_are_skipped():
    pipeline = FakePipeline({})
    sitemap = FakeSitemap(["https://example.com:99999/x", "https://[broken/x", f"{ROOT}contact"])
    crawl(pipeline, sitemap_fetcher=sitemap)
    assert pipeline.scanned == [ROOT, f"{ROOT}contact"]


def test_invalid_root_is_recorded_as_a_failed_page():
    pipeline = FakePipeline({})
    crawler = SiteCrawler(pipeline, options=ScanOptions(), sitemap_fetcher=FakeSitemap([ROOT]))
    summary = asyncio.run(crawler.crawl("https://[broken/"))

    assert pipeline.scanned == []
    assert summary.pages_scanned == 1
    assert summary.pages_failed == 1
    assert summary.pages[0].error == "Invalid URL"
    assert pipeline.session_provider.closed


def test_summary_is_readable_while_running():
    seen = []

    class WatchingPipeline(FakePipeline):
        async def scan(self, url, options):
            seen.append(crawler.summary.pages_scanned)
            return await super().scan(url, options)

    pipeline = WatchingPipeline({ROOT: [f"{ROOT}a"]})
    crawler = SiteCrawler(pipeline, options=ScanOptions())
    asyncio.run(crawler.crawl(ROOT))
    assert seen == [0, 1]


class SlowSession(FakeSession):
    async def navigate(self, url, timeout):
        if url != ROOT:
            await asyncio.sleep(10)
        await super().navigate(url, timeout)


def test_deadline_returns_partial_summary(config_manager):
    session = SlowSession({LINKS_SCRIPT: [f"{ROOT}slow"]})
    options = ScanOptions(settle_time=0, capture_screenshot=False, check_links=False,
                          collect_performance=False, analyze_headings=False, dismiss_consent=False)
    summary = asyncio.run(crawl_site(
        ROOT,
        options=options,
        deadline=0.5,
        session_provider=ReusableSessionProvider(session_factory(session)),
        engine=FakeEngine(),
        registry=HeuristicTestRegistry([]),
        config_manager=config_manager,
        sitemap_fetcher=FakeSitemap([]),
    ))
    assert summary.interrupted
    assert summary.urls == [ROOT]
    assert summary.finished_at is not None
    assert session.closed
