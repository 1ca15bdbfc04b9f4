# -*- coding: utf-8 -*-
"""
Public entry points.

Both functions are pure data in, data out: everything with side effects
(browser, engine, link probe, artifact store) is an injectable collaborator,
built from the configuration when omitted.
"""

import asyncio
from typing import Optional

from .browser.selenium_session import SeleniumBrowserSession
from .browser.session import ReusableSessionProvider
from .crawler.site_crawler import DEFAULT_MAX_PAGES, SiteCrawler
from .crawler.sitemap import SitemapFetcher
from .models import AuditReport, CrawlSummary
from .scanner.pipeline import ScanOptions, ScanPipeline
from .utils.config_manager import get_config_manager
from .utils.logging_config import get_logger

logger = get_logger("pipeline")


async def scan_page(url: str, options: Optional[ScanOptions] = None, **collaborators) -> AuditReport:
    """
    Scan a single page.

    Raises:
        NavigationError: the browser session could not be acquired or the page did not load
    """
    pipeline = ScanPipeline(**collaborators)
    try:
        return await pipeline.scan(url, options)
    finally:
        await pipeline.close()


async def crawl_site(url: str, options: Optional[ScanOptions] = None, max_pages: Optional[int] = None,
                     deadline: Optional[float] = None, **collaborators) -> CrawlSummary:
    """
    Crawl and scan up to ``max_pages`` pages of the site rooted at ``url``.

    ``deadline`` is a budget in seconds; when it expires the pages scanned so
    far are returned with ``interrupted`` set. Never raises for page-level
    failures.
    """
    sitemap_fetcher = collaborators.pop("sitemap_fetcher", None)
    config_manager = collaborators.get("config_manager") or get_config_manager()
    crawler_config = config_manager.get_crawler_config()

    if collaborators.get("session_provider") is None:
        scan_config = config_manager.get_scan_config()
        collaborators["session_provider"] = ReusableSessionProvider(
            SeleniumBrowserSession.factory(
                headless=scan_config.get("headless", True),
                step_timeout=scan_config["timeouts"].get("heuristic_step") or 3.0,
            )
        )
    if sitemap_fetcher is None and crawler_config.get("use_sitemap"):
        sitemap_fetcher = SitemapFetcher(keywords=crawler_config.get("sitemap_keywords"))

    pipeline = ScanPipeline(**collaborators)
    crawler = SiteCrawler(
        pipeline,
        options=options,
        max_pages=crawler_config.get("max_pages") or DEFAULT_MAX_PAGES,
        sitemap_fetcher=sitemap_fetcher,
    )
    try:
        if deadline is None:
            return await crawler.crawl(url, max_pages=max_pages)
        return await asyncio.wait_for(crawler.crawl(url, max_pages=max_pages), deadline)
    except asyncio.TimeoutError:
        logger.warning(f"Crawl of {url} interrupted after {deadline}s")
        summary = crawler.summary or CrawlSummary(root_url=url)
        return summary.finalize(interrupted=True)
    finally:
        await pipeline.close()
