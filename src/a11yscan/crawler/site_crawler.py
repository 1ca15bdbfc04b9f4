# -*- coding: utf-8 -*-
"""
Breadth-first site crawler.

Pages are scanned one at a time through a ``ScanPipeline``; links reported
by each successful scan feed a FIFO frontier restricted to the root's domain.
The running ``CrawlSummary`` is kept on the crawler so that a caller with a
deadline can still read the partial result.
"""

from collections import deque
from dataclasses import replace
from typing import Deque, List, Optional, Set

from ..errors import CrawlBudgetExceeded, NavigationError
from ..models import AuditReport, CrawlSummary
from ..scanner.pipeline import ScanOptions, ScanPipeline
from ..utils.decorators import log_method
from ..utils.logging_config import get_logger
from .link_extractor import PageLinkExtractor
from .sitemap import SitemapFetcher
from .url_filters import URLFilters

DEFAULT_MAX_PAGES = 10


class SiteCrawler:

    def __init__(
        self,
        pipeline: ScanPipeline,
        options: Optional[ScanOptions] = None,
        max_pages: int = DEFAULT_MAX_PAGES,
        filters=URLFilters,
        sitemap_fetcher: Optional[SitemapFetcher] = None,
        link_extractor: Optional[PageLinkExtractor] = None,
        logger=None,
    ):
        self.pipeline = pipeline
        self.options = options
        self.max_pages = max_pages
        self.filters = filters
        self.sitemap_fetcher = sitemap_fetcher
        self.link_extractor = link_extractor or PageLinkExtractor()
        self.logger = logger or get_logger("crawler")

        self.summary: Optional[CrawlSummary] = None
        self.frontier: Deque[str] = deque()
        self.visited: Set[str] = set()
        self.queued: Set[str] = set()

    def _reset(self, root_url: str, device: str) -> None:
        self.summary = CrawlSummary(root_url=root_url, device=device)
        self.frontier = deque()
        self.visited = set()
        self.queued = set()

    def enqueue(self, url: str) -> bool:
        """Add ``url`` to the frontier unless it was already visited or queued."""
        key = self.filters.visit_key(url)
        if key in self.visited or key in self.queued:
            return False
        self.queued.add(key)
        self.frontier.append(url)
        return True

    def _page_links(self, report: AuditReport) -> List[str]:
        if report.discovered_links:
            return report.discovered_links
        snapshot = report.artifacts.html_snapshot if report.artifacts else None
        if snapshot and isinstance(snapshot.value, str) and snapshot.value.lstrip().startswith("<"):
            return self.link_extractor.extract_links(snapshot.value, report.url)
        return []

    def _follow_links(self, root_url: str, report: AuditReport) -> int:
        added = 0
        for link in self._page_links(report):
            url = self.filters.normalize_url(link, report.url)
            if not self.filters.is_valid_url(url) or not self.filters.is_same_domain(url, root_url):
                continue
            if self.enqueue(url):
                added += 1
        return added

    async def _seed_from_sitemap(self, root: str) -> None:
        seeded = 0
        for url in await self.sitemap_fetcher.fetch_urls(root):
            if not self.filters.is_parseable(url):
                continue
            if self.filters.is_same_domain(url, root) and self.enqueue(url):
                seeded += 1
        self.logger.info(f"Seeded {seeded} URLs from the sitemap")

    async def _scan(self, url: str, options: ScanOptions) -> AuditReport:
        try:
            return await self.pipeline.scan(url, options)
        except NavigationError as e:
            self.logger.warning(f"Skipping {url}: {e}")
            return AuditReport.failed(url, str(e), device=options.device)
        except Exception as e:
            self.logger.exception(f"Unexpected error scanning {url}: {e}")
            return AuditReport.failed(url, f"{type(e).__name__}: {e}", device=options.device)

    @log_method
    async def crawl(self, root_url: str, max_pages: Optional[int] = None,
                    device: Optional[str] = None) -> CrawlSummary:
        options = self.options or ScanOptions.from_config(self.pipeline.config_manager)
        if device:
            options = replace(options, device=device)
        budget = self.max_pages if max_pages is None else max_pages
        budget = max(0, budget)

        root = self.filters.normalize_url(root_url)
        self._reset(root or root_url, options.device)
        try:
            if root is None:
                self.logger.error(f"Cannot crawl {root_url}: not a valid URL")
                self.summary.add_report(AuditReport.failed(root_url, "Invalid URL", device=options.device))
            else:
                self.enqueue(root)
                if self.sitemap_fetcher is not None:
                    await self._seed_from_sitemap(root)
                self.logger.info(f"Starting crawl of {root} (max {budget} pages, {options.device})")

            while self.frontier:
                if len(self.visited) >= budget:
                    raise CrawlBudgetExceeded(budget, len(self.frontier))

                url = self.frontier.popleft()
                key = self.filters.visit_key(url)
                self.queued.discard(key)
                if key in self.visited:
                    continue
                self.visited.add(key)

                self.logger.info(f"Scanning ({len(self.visited)}/{budget}) [queue={len(self.frontier)}]: {url}")
                report = await self._scan(url, options)
                self.summary.add_report(report)

                if report.ok:
                    added = self._follow_links(root, report)
                    self.logger.debug(f"{url}: {added} new links queued")
        except CrawlBudgetExceeded as e:
            self.logger.info(str(e))
            self.summary.frontier_discarded = e.discarded
            self.frontier.clear()
            self.queued.clear()
        finally:
            await self.pipeline.session_provider.close()

        self.summary.finalize()
        self.logger.info(
            f"Crawl finished: {self.summary.pages_scanned} pages "
            f"({self.summary.pages_failed} failed), average score {self.summary.average_score}"
        )
        return self.summary
