# -*- coding: utf-8 -*-
"""
Error taxonomy for the scan pipeline.

Only ``NavigationError`` is allowed to escape a single-page scan. Every other
error is caught by the component that owns the failing step and converted into
an omitted report section or an explicit "did not run" marker.
"""

from typing import Optional


class ScanError(Exception):
    """Base class for all scanner errors."""

    def __init__(self, message: str, url: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.url = url

    def __str__(self) -> str:
        if self.url:
            return f"{self.message} ({self.url})"
        return self.message


class NavigationError(ScanError):
    """The page could not be loaded within the navigation timeout."""

    def __init__(self, message: str, url: Optional[str] = None, timed_out: bool = False):
        super().__init__(message, url)
        self.timed_out = timed_out


class TestExecutionError(ScanError):
    """A heuristic test raised or timed out."""

    __test__ = False  # not a pytest test class

    def __init__(self, test_id: str, message: str, url: Optional[str] = None, timed_out: bool = False):
        super().__init__(f"[{test_id}] {message}", url)
        self.test_id = test_id
        self.timed_out = timed_out


class AuditEngineError(ScanError):
    """The static rule engine could not be injected or run."""


class LinkProbeError(ScanError):
    """A single link probe failed.

    ``unreachable`` marks DNS/connection failures, as opposed to
    protocol-level errors on a host that answered.
    """

    def __init__(self, message: str, url: Optional[str] = None, unreachable: bool = False):
        super().__init__(message, url)
        self.unreachable = unreachable


class CrawlBudgetExceeded(ScanError):
    """Raised internally when the crawl reaches its page budget.

    This is a normal termination condition and never reaches callers.
    """

    def __init__(self, max_pages: int, discarded: int = 0):
        super().__init__(f"Page budget of {max_pages} reached, {discarded} URLs left in frontier")
        self.max_pages = max_pages
        self.discarded = discarded


class InvalidStateTransition(ScanError):
    """The pipeline tried to move backwards or skip to a foreign terminal state."""
