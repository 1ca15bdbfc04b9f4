# -*- coding: utf-8 -*-
"""
Page facts gathered alongside the accessibility audit: heading outline,
performance timings, page dimensions and outgoing links.
"""

from collections import OrderedDict
from typing import Any, Dict, List, Optional

from ..models import HeadingInfo, HeadingIssue, HeadingStructure, PerformanceReport
from ..heuristics.base import page_script

GENERIC_HEADINGS = (
    "click here", "read more", "more", "here", "next", "previous", "learn more",
    "leggi di più", "scopri di più", "clicca qui", "altro",
    "klikněte zde", "více", "číst více", "zde", "další", "předchozí",
)
MAX_HEADING_LENGTH = 100
MIN_HEADING_LENGTH = 2

HEADINGS_SCRIPT = page_script(r"""
return Array.from(document.querySelectorAll('h1, h2, h3, h4, h5, h6, [role="heading"][aria-level]'))
  .filter((el) => el.getAttribute('aria-hidden') !== 'true')
  .map((el) => ({
    level: /^h[1-6]$/i.test(el.tagName) ? parseInt(el.tagName.substring(1), 10)
                                        : parseInt(el.getAttribute('aria-level'), 10) || 2,
    text: (el.textContent || '').replace(/\s+/g, ' ').trim(),
    selector: cssPath(el),
  }));
""")

# Installed before page scripts so that LCP, CLS and long tasks are observed from the start
PERFORMANCE_OBSERVER_SCRIPT = r"""
(() => {
  if (window.__a11yscanMetrics) return;
  const store = window.__a11yscanMetrics = {lcp: null, cls: 0, tbt: 0};
  const observe = (type, handler) => {
    try { new PerformanceObserver((list) => handler(list.getEntries())).observe({type: type, buffered: true}); }
    catch (e) { /* entry type unsupported */ }
  };
  observe('largest-contentful-paint', (entries) => {
    const last = entries[entries.length - 1];
    if (last) store.lcp = last.renderTime || last.loadTime || last.startTime || null;
  });
  observe('layout-shift', (entries) => {
    for (const entry of entries) if (!entry.hadRecentInput) store.cls += entry.value || 0;
  });
  observe('longtask', (entries) => {
    for (const entry of entries) if (entry.duration > 50) store.tbt += entry.duration - 50;
  });
})();
"""

PERFORMANCE_SCRIPT = r"""
const nav = (performance.getEntriesByType('navigation') || [])[0];
const fcp = performance.getEntriesByName('first-contentful-paint')[0];
const store = window.__a11yscanMetrics || {};
const num = (v) => (typeof v === 'number' && v >= 0) ? v : null;
return {
  ttfb: nav ? num(nav.responseStart) : null,
  dom_content_loaded: nav ? num(nav.domContentLoadedEventEnd) : null,
  load: nav ? num(nav.loadEventEnd) : null,
  first_contentful_paint: fcp ? num(fcp.startTime) : null,
  largest_contentful_paint: num(store.lcp),
  cumulative_layout_shift: num(store.cls),
  total_blocking_time: num(store.tbt),
};
"""

DIMENSIONS_SCRIPT = r"""
const doc = document.documentElement;
const body = document.body || doc;
return {
  width: Math.max(doc.scrollWidth, body.scrollWidth, doc.clientWidth),
  height: Math.max(doc.scrollHeight, body.scrollHeight, doc.clientHeight),
  viewport_width: window.innerWidth,
  viewport_height: window.innerHeight,
};
"""

LINKS_SCRIPT = r"""
return Array.from(document.querySelectorAll('a[href], area[href]'))
  .map((a) => a.href)
  .filter((href) => /^https?:/i.test(href));
"""


def analyze_headings(headings: List[HeadingInfo]) -> HeadingStructure:
    """Outline problems of a page's heading sequence."""
    issues: List[HeadingIssue] = []

    h1s = [h for h in headings if h.level == 1]
    if not h1s:
        issues.append(HeadingIssue("missing-h1", "The page has no <h1>.", "serious"))
    elif len(h1s) > 1:
        for heading in h1s:
            issues.append(HeadingIssue("multiple-h1", f"The page has {len(h1s)} <h1> headings.", "moderate", heading))

    if headings and headings[0].level != 1:
        issues.append(HeadingIssue(
            "first-not-h1", f"The first heading is h{headings[0].level}, not h1.", "minor", headings[0]))

    for previous, current in zip(headings, headings[1:]):
        if current.level > previous.level + 1:
            issues.append(HeadingIssue(
                "skipped-level", f"Heading level jumps from h{previous.level} to h{current.level}.",
                "moderate", current))

    groups: "OrderedDict[str, List[HeadingInfo]]" = OrderedDict()
    for heading in headings:
        text = heading.text.strip()
        if not text:
            issues.append(HeadingIssue("empty-heading", "Heading has no text.", "serious", heading))
            continue
        groups.setdefault(f"{heading.level}:{text.lower()}", []).append(heading)

        lowered = text.lower()
        if lowered in GENERIC_HEADINGS:
            issues.append(HeadingIssue("generic-heading", f"Heading \"{text}\" does not describe its section.",
                                       "minor", heading))
        if len(text) > MAX_HEADING_LENGTH:
            issues.append(HeadingIssue("very-long-heading",
                                       f"Heading is {len(text)} characters long.", "minor", heading))
        elif len(text) <= MIN_HEADING_LENGTH:
            issues.append(HeadingIssue("very-short-heading", f"Heading \"{text}\" is too short to be descriptive.",
                                       "minor", heading))

    for group in groups.values():
        if len(group) > 1:
            issues.append(HeadingIssue(
                "duplicate-headings",
                f"{len(group)} h{group[0].level} headings share the text \"{group[0].text}\".",
                "minor", group[0]))

    summary = {f"h{level}": sum(1 for h in headings if h.level == level) for level in range(1, 7)}
    summary["total"] = len(headings)
    summary["issues"] = len(issues)
    return HeadingStructure(headings=list(headings), issues=issues, summary=summary)


async def extract_heading_structure(session) -> HeadingStructure:
    raw = await session.evaluate(HEADINGS_SCRIPT) or []
    headings = [HeadingInfo(int(h.get("level", 2)), h.get("text", ""), h.get("selector", "")) for h in raw]
    return analyze_headings(headings)


async def collect_performance(session) -> Optional[PerformanceReport]:
    raw: Dict[str, Any] = await session.evaluate(PERFORMANCE_SCRIPT) or {}
    values = {metric: raw.get(metric) for metric in PerformanceReport.METRICS}
    if all(value is None for value in values.values()):
        return None
    return PerformanceReport(**{k: (round(float(v), 3) if v is not None else None) for k, v in values.items()})


async def page_dimensions(session) -> Dict[str, int]:
    raw = await session.evaluate(DIMENSIONS_SCRIPT) or {}
    return {key: int(value) for key, value in raw.items() if isinstance(value, (int, float))}


async def discover_links(session) -> List[str]:
    links = await session.evaluate(LINKS_SCRIPT) or []
    return list(OrderedDict.fromkeys(links))
