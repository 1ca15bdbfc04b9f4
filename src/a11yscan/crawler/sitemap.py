# -*- coding: utf-8 -*-
"""Frontier seeding from ``/sitemap.xml``."""

import asyncio
from typing import Iterable, List, Optional
from urllib.parse import urljoin, urlparse

import aiohttp
from bs4 import BeautifulSoup

from ..utils.logging_config import get_logger
from .url_filters import URLFilters

logger = get_logger("crawler")

MAX_NESTED_SITEMAPS = 5


def parse_sitemap(xml: str):
    """Return ``(page_urls, nested_sitemap_urls)`` from a sitemap or sitemap index."""
    soup = BeautifulSoup(xml, "html.parser")
    pages: List[str] = []
    nested: List[str] = []
    for loc in soup.find_all("loc"):
        value = loc.get_text(strip=True)
        if not value:
            continue
        if loc.parent is not None and loc.parent.name == "sitemap":
            nested.append(value)
        else:
            pages.append(value)
    return pages, nested


def prioritize(urls: Iterable[str], keywords: Iterable[str]) -> List[str]:
    """Stable sort putting URLs that contain any keyword first."""
    keywords = [k.lower() for k in keywords if k]

    def rank(url: str) -> int:
        lowered = url.lower()
        return 0 if any(keyword in lowered for keyword in keywords) else 1

    return sorted(urls, key=rank)


class SitemapFetcher:

    def __init__(self, timeout: float = 10.0, keywords: Optional[List[str]] = None,
                 session: Optional[aiohttp.ClientSession] = None):
        self.timeout = timeout
        self.keywords = keywords or []
        self._session = session

    async def _fetch(self, session: aiohttp.ClientSession, url: str) -> Optional[str]:
        try:
            async with session.get(url) as response:
                if response.status != 200:
                    logger.debug(f"Sitemap {url} answered {response.status}")
                    return None
                return await response.text()
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.debug(f"Sitemap {url} unavailable: {e}")
            return None

    async def fetch_urls(self, root_url: str) -> List[str]:
        """Same-host page URLs listed in the root's sitemap, keyword matches first."""
        host = (urlparse(root_url).hostname or "").lower()
        sitemap_url = urljoin(root_url, "/sitemap.xml")
        logger.info(f"Checking sitemap at {sitemap_url}")

        owns_session = self._session is None
        session = self._session or aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=self.timeout))
        try:
            xml = await self._fetch(session, sitemap_url)
            if not xml:
                return []
            pages, nested = parse_sitemap(xml)
            nested = [child for child in nested if URLFilters.is_parseable(child)]
            for child in nested[:MAX_NESTED_SITEMAPS]:
                child_xml = await self._fetch(session, child)
                if child_xml:
                    pages.extend(parse_sitemap(child_xml)[0])
        finally:
            if owns_session:
                await session.close()

        urls = []
        seen = set()
        for url in pages:
            if not URLFilters.is_valid_url(url):
                logger.debug(f"Ignoring sitemap entry {url}")
                continue
            if (urlparse(url).hostname or "").lower() != host:
                continue
            key = URLFilters.visit_key(url)
            if key not in seen:
                seen.add(key)
                urls.append(url)
        logger.info(f"Found {len(urls)} same-host URLs in sitemap")
        return prioritize(urls, self.keywords)
