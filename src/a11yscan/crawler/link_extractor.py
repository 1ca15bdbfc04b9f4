# -*- coding: utf-8 -*-
"""
Link extraction from an HTML snapshot.

Used when the live page did not report its links (for example when the
in-page script failed). Combines Scrapy's ``LinkExtractor`` with
BeautifulSoup passes for frames and meta refresh.
"""

import html
import re
from typing import List, Optional

from bs4 import BeautifulSoup
from scrapy.http import HtmlResponse
from scrapy.linkextractors import LinkExtractor as ScrapyLinkExtractor

from ..utils.logging_config import get_logger
from .url_filters import URLFilters

logger = get_logger("crawler")

META_REFRESH_URL = re.compile(r'url\s*=\s*([^;]+)', re.IGNORECASE)


class PageLinkExtractor:
    """
    Extracts same-site page links from raw HTML.

    Strategies:
    1. Scrapy ``LinkExtractor`` over ``a``/``area`` tags
    2. BeautifulSoup for ``iframe``/``frame`` sources
    3. BeautifulSoup for ``<meta http-equiv="refresh">`` targets
    """

    def __init__(self, allowed_domains: Optional[List[str]] = None):
        self.allowed_domains = [d.lower() for d in (allowed_domains or [])]
        self.scrapy_extractor = ScrapyLinkExtractor(
            allow_domains=self.allowed_domains,
            deny_extensions=[ext.lstrip('.') for ext in URLFilters.EXCLUDED_EXTENSIONS],
            unique=True,
        )

    def extract_links(self, page_html: str, base_url: str) -> List[str]:
        """
        Args:
            page_html: Page source
            base_url: URL the source was loaded from

        Returns:
            list: Unique, normalized, valid URLs in document order
        """
        if not page_html:
            return []

        response = HtmlResponse(url=base_url, body=page_html, encoding="utf-8")
        found: List[str] = []
        found.extend(self._extract_with_scrapy(response))

        soup = BeautifulSoup(page_html, "html.parser")
        found.extend(self._extract_with_bs4(soup, base_url, "iframe", "src"))
        found.extend(self._extract_with_bs4(soup, base_url, "frame", "src"))
        found.extend(self._extract_meta_refresh(soup, base_url))

        links: List[str] = []
        seen = set()
        for link in found:
            if link in seen or not URLFilters.is_valid_url(link):
                continue
            if self.allowed_domains and URLFilters.get_domain(link) not in self.allowed_domains:
                continue
            seen.add(link)
            links.append(link)
        logger.debug(f"Extracted {len(links)} links from the snapshot of {base_url}")
        return links

    def _extract_with_scrapy(self, response: HtmlResponse) -> List[str]:
        return [URLFilters.normalize_url(link.url) for link in self.scrapy_extractor.extract_links(response)]

    @staticmethod
    def _extract_with_bs4(soup: BeautifulSoup, base_url: str, tag: str, attr: str) -> List[str]:
        links = []
        for element in soup.find_all(tag, attrs={attr: True}):
            value = html.unescape(element.get(attr) or "").strip()
            if value:
                links.append(URLFilters.normalize_url(value, base_url))
        return links

    @staticmethod
    def _extract_meta_refresh(soup: BeautifulSoup, base_url: str) -> List[str]:
        links = []
        for meta in soup.find_all("meta", attrs={"http-equiv": re.compile("refresh", re.I)}):
            match = META_REFRESH_URL.search(meta.get("content", ""))
            if match:
                target = match.group(1).strip().strip("'\"")
                links.append(URLFilters.normalize_url(target, base_url))
        return links
