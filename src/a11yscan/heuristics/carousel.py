# -*- coding: utf-8 -*-
"""Auto-rotating carousels without a pause control."""

from typing import List

from ..models import AccessibilityViolation
from .base import HeuristicTest, ScanContext, node_from, page_script

CAROUSEL_SELECTORS = (
    '[aria-roledescription="carousel"]',
    ".carousel",
    ".slider",
    ".swiper",
    ".slick-slider",
)

SNAPSHOT_SCRIPT = page_script(r"""
const selectors = arguments[0];
const seen = new Set();
const result = [];
for (const el of document.querySelectorAll(selectors.join(', '))) {
  if (seen.has(el) || !isVisible(el)) continue;
  // nested matches (e.g. .swiper inside .carousel) count once
  if (result.some((r) => r.el.contains(el))) continue;
  seen.add(el);
  const slides = Array.from(el.querySelectorAll(
    '[aria-roledescription="slide"], .carousel-item, .swiper-slide, .slick-slide, .slide'));
  const active = slides.find((s) => s.matches('.active, .swiper-slide-active, .slick-current, [aria-current="true"]'))
    || slides.find((s) => s.getAttribute('aria-hidden') !== 'true' && isVisible(s));
  const track = el.querySelector('.swiper-wrapper, .slick-track, .carousel-inner') || el;
  const controls = Array.from(el.querySelectorAll('button, [role="button"], a'))
    .concat(Array.from(el.parentElement ? el.parentElement.querySelectorAll('button, [role="button"]') : []));
  const pause = controls.some((c) => /pause|stop|pausa|arr[eê]t|anhalten/i.test(
    (c.getAttribute('aria-label') || '') + ' ' + (c.textContent || '') + ' ' + (c.className || '')));
  result.push({
    el: el,
    selector: cssPath(el),
    html: snippet(el, 200),
    active: active ? (slides.indexOf(active) + ':' + (active.textContent || '').trim().slice(0, 40)) : '',
    transform: window.getComputedStyle(track).transform,
    has_pause: pause,
  });
}
return result.map((r) => { delete r.el; return r; });
""")


class CarouselAutoplayCheck(HeuristicTest):

    test_id = "carousel-autoplay"
    title = "Carousel rotates automatically without a pause control"
    description = ("Content moves on its own for more than five seconds with no mechanism to pause, "
                   "stop or hide it.")
    default_severity = "moderate"

    async def run(self, session, context: ScanContext) -> List[AccessibilityViolation]:
        before = await session.evaluate(SNAPSHOT_SCRIPT, list(CAROUSEL_SELECTORS)) or []
        if not before:
            return []

        await session.sleep(float(context.setting("carousel_sample_delay", 3.5)))
        after = {item["selector"]: item for item in await session.evaluate(
            SNAPSHOT_SCRIPT, list(CAROUSEL_SELECTORS)) or []}

        nodes = []
        for item in before:
            later = after.get(item["selector"])
            if later is None or later.get("has_pause"):
                continue
            rotated = (later.get("active") != item.get("active")
                       or later.get("transform") != item.get("transform"))
            if rotated:
                nodes.append(node_from(item, "Slides changed without user action and no pause control was found."))
        return [self.make_violation(nodes)] if nodes else []
