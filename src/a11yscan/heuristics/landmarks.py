# -*- coding: utf-8 -*-
"""Landmark structure: one main region, navigation present, no duplicated banner/contentinfo."""

from typing import List

from ..models import AccessibilityViolation, ViolationNode
from .base import HeuristicTest, ScanContext, page_script

COLLECT_SCRIPT = page_script(r"""
const describe = (els) => els.map((el) => ({selector: cssPath(el), html: snippet(el, 200)}));
const topLevel = (el) => !el.parentElement || !el.parentElement.closest('article, aside, main, nav, section, ' +
  '[role="article"], [role="complementary"], [role="main"], [role="navigation"], [role="region"]');
const mains = Array.from(document.querySelectorAll('main, [role="main"]')).filter(isVisible);
const navs = Array.from(document.querySelectorAll('nav, [role="navigation"]'));
const banners = Array.from(document.querySelectorAll('header, [role="banner"]'))
  .filter((el) => el.getAttribute('role') === 'banner' || topLevel(el));
const footers = Array.from(document.querySelectorAll('footer, [role="contentinfo"]'))
  .filter((el) => el.getAttribute('role') === 'contentinfo' || topLevel(el));
return {
  main: describe(mains),
  navigation: describe(navs),
  banner: describe(banners),
  contentinfo: describe(footers),
};
""")


class LandmarkCheck(HeuristicTest):

    test_id = "landmarks"
    title = "Landmark regions missing or duplicated"
    description = ("Screen reader users navigate by landmarks; the page should have exactly one main "
                   "region, a navigation region and at most one page-level banner and footer.")
    default_severity = "moderate"

    async def run(self, session, context: ScanContext) -> List[AccessibilityViolation]:
        found = await session.evaluate(COLLECT_SCRIPT) or {}
        nodes = self.problems(found)
        return [self.make_violation(nodes)] if nodes else []

    @staticmethod
    def problems(found) -> List[ViolationNode]:
        nodes: List[ViolationNode] = []
        mains = found.get("main", [])
        if not mains:
            nodes.append(ViolationNode(target=["body"], failure_summary="No visible main landmark."))
        elif len(mains) > 1:
            for item in mains:
                nodes.append(ViolationNode(html=item.get("html", ""), target=[item.get("selector", "main")],
                                           failure_summary=f"{len(mains)} main landmarks, expected one."))
        if not found.get("navigation"):
            nodes.append(ViolationNode(target=["body"], failure_summary="No navigation landmark."))
        for role in ("banner", "contentinfo"):
            items = found.get(role, [])
            if len(items) > 1:
                for item in items[1:]:
                    nodes.append(ViolationNode(html=item.get("html", ""), target=[item.get("selector", role)],
                                               failure_summary=f"More than one top-level {role} landmark."))
        return nodes
