# -*- coding: utf-8 -*-
"""Bypass-blocks check: a working "skip to content" link near the top of the page."""

from typing import Any, Dict, List

from ..models import AccessibilityViolation
from .base import HeuristicTest, ScanContext, node_from, page_script

SKIP_PATTERNS = (
    "skip to main",
    "skip to content",
    "skip main content",
    "skip navigation",
    "skip to navigation",
    "jump to content",
    "jump to main",
    "go to content",
    "vai al contenuto",
    "salta al contenuto",
    "passa al contenuto",
    "aller au contenu",
    "zum inhalt",
    "ir al contenido",
    "přeskočit na obsah",
    "přeskočit obsah",
)

# Only links among the first focusable elements count as skip links.
LEADING_FOCUSABLES = 5

COLLECT_SCRIPT = page_script(r"""
const limit = arguments[0];
const focusables = Array.from(document.querySelectorAll(FOCUSABLE)).slice(0, limit);
const candidates = focusables.filter((el) => ['a', 'button'].includes(el.tagName.toLowerCase())).map((el) => {
  const href = el.getAttribute('href') || '';
  const info = {
    selector: cssPath(el),
    html: snippet(el, 300),
    label: ((el.getAttribute('aria-label') || el.textContent || '')).trim().toLowerCase(),
    href: href,
    target_exists: false,
    target_main_like: false,
    target_focusable: false,
  };
  if (href.startsWith('#') && href.length > 1) {
    const target = document.getElementById(decodeURIComponent(href.slice(1)));
    if (target) {
      const tag = target.tagName.toLowerCase();
      const role = (target.getAttribute('role') || '').toLowerCase();
      const hint = ((target.id || '') + ' ' + (typeof target.className === 'string' ? target.className : '')).toLowerCase();
      info.target_exists = true;
      info.target_main_like = tag === 'main' || role === 'main' || /main|content|primary/.test(hint);
      info.target_focusable = target.matches(FOCUSABLE) || target.hasAttribute('tabindex');
    }
  }
  return info;
});
return {candidates: candidates, body: snippet(document.body, 300)};
""")


def is_skip_label(label: str) -> bool:
    label = label.strip().lower()
    return any(pattern in label for pattern in SKIP_PATTERNS)


def is_working(candidate: Dict[str, Any]) -> bool:
    """A skip link points at an existing in-page target that is main-like or focusable."""
    href = candidate.get("href") or ""
    if not href.startswith("#") or len(href) < 2:
        return False
    return bool(candidate.get("target_exists")) and bool(
        candidate.get("target_main_like") or candidate.get("target_focusable"))


class SkipLinkCheck(HeuristicTest):

    test_id = "skip-link"
    title = "Missing or broken skip link"
    description = ("Keyboard users have no way to skip the repeated header and navigation and jump "
                   "straight to the main content.")
    default_severity = "serious"

    async def run(self, session, context: ScanContext) -> List[AccessibilityViolation]:
        info = await session.evaluate(COLLECT_SCRIPT, LEADING_FOCUSABLES) or {}
        candidates = [c for c in info.get("candidates", []) if is_skip_label(c.get("label", ""))]

        if any(is_working(c) for c in candidates):
            return []

        if candidates:
            nodes = [node_from(c, "Skip link target is missing or is neither the main content nor focusable.")
                     for c in candidates]
            return [self.make_violation(nodes, title="Skip link does not reach the main content")]

        body = {"selector": "body", "html": info.get("body", "")}
        return [self.make_violation([node_from(body, "No skip link among the first focusable elements.")])]
