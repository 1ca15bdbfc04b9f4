# -*- coding: utf-8 -*-
"""
Base class for heuristic tests.

A heuristic test collects facts from the page with one or more in-page
scripts and decides in Python whether they amount to violations. Each test
declares whether it only reads the page or mutates it (focus, viewport, open
dialogs, submitted forms); the registry schedules on that flag.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from ..browser.session import BrowserSession, DeviceProfile, DEVICE_PROFILES
from ..models import AccessibilityViolation, KeyboardNavigationReport, ViolationNode, ViolationSource


class AccessMode(str, Enum):
    READ_ONLY = "read_only"
    MUTATING = "mutating"


# Shared in-page helpers, prepended to every test script.
DOM_HELPERS = r"""
const cssPath = (el) => {
  if (!el || el.nodeType !== 1) return '';
  const esc = (v) => (window.CSS && CSS.escape) ? CSS.escape(v) : v;
  if (el.id && document.querySelectorAll('#' + esc(el.id)).length === 1) {
    return el.tagName.toLowerCase() + '#' + esc(el.id);
  }
  const parts = [];
  let node = el;
  while (node && node.nodeType === 1 && node !== document.documentElement) {
    let part = node.tagName.toLowerCase();
    if (node.id && document.querySelectorAll('#' + esc(node.id)).length === 1) {
      parts.unshift(part + '#' + esc(node.id));
      break;
    }
    const parent = node.parentElement;
    if (parent) {
      const same = Array.from(parent.children).filter((c) => c.tagName === node.tagName);
      if (same.length > 1) part += ':nth-of-type(' + (same.indexOf(node) + 1) + ')';
    }
    parts.unshift(part);
    node = parent;
  }
  return parts.join(' > ') || 'html';
};
const snippet = (el, max) => {
  const limit = max || 300;
  const outer = (el && el.outerHTML) || '';
  return outer.length > limit ? outer.slice(0, limit) + '...' : outer;
};
const isVisible = (el) => {
  if (!el || !el.getBoundingClientRect) return false;
  const style = window.getComputedStyle(el);
  if (style.display === 'none' || style.visibility === 'hidden') return false;
  const rect = el.getBoundingClientRect();
  return rect.width > 0 && rect.height > 0;
};
const FOCUSABLE = 'a[href], area[href], button:not([disabled]), input:not([disabled]):not([type="hidden"]), ' +
  'select:not([disabled]), textarea:not([disabled]), iframe, summary, [contenteditable="true"], ' +
  '[tabindex]:not([tabindex="-1"])';
"""


def page_script(body: str) -> str:
    """Wrap a script body with the shared DOM helpers."""
    return DOM_HELPERS + body


@dataclass
class ScanContext:
    """Per-scan inputs handed to every test alongside the session."""
    url: str
    profile: DeviceProfile = DEVICE_PROFILES["desktop"]
    settings: Dict[str, Any] = field(default_factory=dict)
    keyboard_report: Optional[KeyboardNavigationReport] = None

    def setting(self, key: str, default: Any = None) -> Any:
        return self.settings.get(key, default)


class HeuristicTest(ABC):
    """One custom check run against a live session."""

    test_id: str = ""
    title: str = ""
    description: str = ""
    default_severity: str = "moderate"
    access: AccessMode = AccessMode.READ_ONLY
    timeout: Optional[float] = None

    def __init__(self, severity: Optional[str] = None, timeout: Optional[float] = None):
        self.severity = severity or self.default_severity
        if timeout is not None:
            self.timeout = timeout

    @property
    def mutating(self) -> bool:
        return self.access is AccessMode.MUTATING

    @abstractmethod
    async def run(self, session: BrowserSession, context: ScanContext) -> List[AccessibilityViolation]:
        """Return the violations found; an empty list means the check passed."""

    def make_violation(
        self,
        nodes: List[ViolationNode],
        rule_id: Optional[str] = None,
        title: Optional[str] = None,
        description: Optional[str] = None,
        severity: Optional[str] = None,
        suggestion: Optional[str] = None,
        help_url: str = "",
    ) -> AccessibilityViolation:
        return AccessibilityViolation(
            id=rule_id or self.test_id,
            title=title or self.title,
            description=description or self.description,
            severity=severity or self.severity,
            help_url=help_url,
            count=len(nodes),
            suggestion=suggestion,
            nodes=nodes,
            source=ViolationSource.HEURISTIC,
        )

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} {self.test_id} ({self.access.value})>"


def node_from(item: Dict[str, Any], summary: str, fallback_target: str = "body") -> ViolationNode:
    """Build a node from an in-page fact dict carrying ``selector`` and ``html``."""
    selector = item.get("selector") or fallback_target
    return ViolationNode(
        html=item.get("html", "") or "",
        target=[selector],
        failure_summary=summary,
        label=item.get("label") or None,
    )
