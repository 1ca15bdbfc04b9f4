# -*- coding: utf-8 -*-
"""
Broken-link probing for links discovered on a scanned page.

``AiohttpLinkProbe`` issues HEAD requests (falling back to GET when the
server refuses HEAD) and ``BrokenLinkChecker`` classifies the answers.
"""

import asyncio
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple
from urllib.parse import urldefrag, urlparse

import aiohttp

from ..errors import LinkProbeError
from ..models import BrokenLink, BrokenLinkKind, BrokenLinksSummary
from ..utils.logging_config import get_logger

DEFAULT_USER_AGENT = "Mozilla/5.0 (compatible; a11yscan link checker)"

# Servers answering these to HEAD are retried with GET
HEAD_UNSUPPORTED = (405, 501)


@dataclass(frozen=True)
class LinkStatus:
    status: int
    ok: bool


class LinkProbe(ABC):

    @abstractmethod
    async def check(self, url: str) -> LinkStatus:
        """Probe ``url``; raise ``LinkProbeError`` when no HTTP status was obtained."""

    async def close(self) -> None:
        return None


class AiohttpLinkProbe(LinkProbe):

    def __init__(self, timeout: float = 5.0, user_agent: str = DEFAULT_USER_AGENT,
                 max_redirects: int = 10, session: Optional[aiohttp.ClientSession] = None):
        self.timeout = timeout
        self.user_agent = user_agent
        self.max_redirects = max_redirects
        self._session = session
        self._owns_session = session is None

    def _ensure_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout),
                headers={"User-Agent": self.user_agent},
            )
            self._owns_session = True
        return self._session

    async def _status(self, method: str, url: str) -> int:
        session = self._ensure_session()
        async with session.request(method, url, allow_redirects=True, max_redirects=self.max_redirects) as response:
            return response.status

    async def check(self, url: str) -> LinkStatus:
        try:
            status = await self._status("HEAD", url)
            if status in HEAD_UNSUPPORTED:
                status = await self._status("GET", url)
        except asyncio.TimeoutError as e:
            raise LinkProbeError(f"No response within {self.timeout}s", url, unreachable=True) from e
        except aiohttp.ClientConnectorError as e:
            raise LinkProbeError(f"Cannot connect: {e}", url, unreachable=True) from e
        except aiohttp.ClientError as e:
            raise LinkProbeError(f"{type(e).__name__}: {e}", url) from e
        return LinkStatus(status, 200 <= status < 400)

    async def close(self) -> None:
        if self._owns_session and self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None


def classify(status: int) -> Optional[BrokenLinkKind]:
    if 400 <= status < 500:
        return BrokenLinkKind.CLIENT_ERROR
    if status >= 500:
        return BrokenLinkKind.SERVER_ERROR
    return None


class BrokenLinkChecker:

    def __init__(self, probe: LinkProbe, max_links: int = 40, include_external: bool = True,
                 concurrency: int = 8, logger=None):
        self.probe = probe
        self.max_links = max_links
        self.include_external = include_external
        self.concurrency = max(1, concurrency)
        self.logger = logger or get_logger("link_checker")

    def select_links(self, page_url: str, links: Iterable[str]) -> Tuple[List[str], int]:
        """Unique http(s) links to probe, and how many were left out."""
        page_host = urlparse(page_url).netloc.lower()
        page_base = urldefrag(page_url)[0]
        selected: List[str] = []
        seen = set()
        skipped = 0
        for link in links:
            try:
                url = urldefrag(link)[0]
                parsed = urlparse(url)
                parsed.port
            except ValueError as e:
                self.logger.debug(f"Not checking unparseable link {link!r}: {e}")
                continue
            if parsed.scheme not in ("http", "https") or url == page_base or url in seen:
                continue
            seen.add(url)
            if not self.include_external and parsed.netloc.lower() != page_host:
                skipped += 1
                continue
            if len(selected) >= self.max_links:
                skipped += 1
                continue
            selected.append(url)
        return selected, skipped

    async def _probe_one(self, url: str, semaphore: asyncio.Semaphore) -> Optional[BrokenLink]:
        async with semaphore:
            try:
                result = await self.probe.check(url)
            except LinkProbeError as e:
                if e.unreachable:
                    return BrokenLink(url, BrokenLinkKind.UNREACHABLE, error=e.message)
                self.logger.debug(f"Probe error on {url}: {e.message}")
                return None
        kind = classify(result.status)
        if kind is None:
            return None
        return BrokenLink(url, kind, status=result.status)

    async def check(self, page_url: str, links: Iterable[str]) -> BrokenLinksSummary:
        candidates, skipped = self.select_links(page_url, links)
        self.logger.info(f"Checking {len(candidates)} links from {page_url} ({skipped} skipped)")

        semaphore = asyncio.Semaphore(self.concurrency)
        results = await asyncio.gather(
            *(self._probe_one(url, semaphore) for url in candidates),
            return_exceptions=True,
        )

        summary = BrokenLinksSummary(checked=len(candidates), skipped=skipped)
        for url, result in zip(candidates, results):
            if isinstance(result, Exception):
                self.logger.warning(f"Unexpected error probing {url}: {result}")
                continue
            if result is not None:
                summary.broken.append(result)

        if summary.broken:
            self.logger.info(f"{summary.broken_count} broken links on {page_url}")
        return summary
