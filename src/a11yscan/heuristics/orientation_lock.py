# -*- coding: utf-8 -*-
"""Content forced into one display orientation by CSS rotation or hiding."""

import dataclasses
from typing import Any, Dict, List, Optional

from ..models import AccessibilityViolation, ViolationNode
from .base import AccessMode, HeuristicTest, ScanContext, page_script

PORTRAIT = (375, 812)
LANDSCAPE = (812, 375)

INSPECT_SCRIPT = page_script(r"""
const candidates = [document.documentElement, document.body, document.querySelector('main'),
  document.querySelector('#app'), document.querySelector('#root')].filter(Boolean);
const rotations = [];
for (const el of candidates) {
  const transform = window.getComputedStyle(el).transform;
  if (!transform || transform === 'none') continue;
  const match = transform.match(/matrix\(([^)]+)\)/);
  if (!match) continue;
  const values = match[1].split(',').map(parseFloat);
  const angle = Math.round(Math.atan2(values[1], values[0]) * (180 / Math.PI));
  rotations.push({selector: cssPath(el) || el.tagName.toLowerCase(), angle: angle, html: snippet(el, 150)});
}
const main = document.querySelector('main, [role="main"]') || document.body;
const text = (main && main.innerText) ? main.innerText.trim().length : 0;
return {rotations: rotations, content_visible: isVisible(main) && text > 0};
""")


def quarter_turn(angle: float, tolerance: float = 1.0) -> bool:
    return abs(abs(angle) - 90) <= tolerance


class OrientationLockCheck(HeuristicTest):

    test_id = "orientation-lock"
    title = "Content locked to one orientation"
    description = ("The page rotates or hides its content depending on device orientation, forcing "
                   "users to turn a device that may be mounted in a fixed position.")
    default_severity = "serious"
    access = AccessMode.MUTATING

    async def run(self, session, context: ScanContext) -> List[AccessibilityViolation]:
        profile = session.profile
        states: Dict[str, Optional[Dict[str, Any]]] = {}
        try:
            for name, (width, height) in (("portrait", PORTRAIT), ("landscape", LANDSCAPE)):
                await session.set_viewport(dataclasses.replace(
                    profile, name=name, width=width, height=height, mobile=True, touch=True))
                await session.sleep(float(context.setting("interaction_settle_seconds", 0.5)))
                states[name] = await session.evaluate(INSPECT_SCRIPT) or {}
        finally:
            await session.set_viewport(profile)

        nodes = []
        for name, state in states.items():
            for rotation in state.get("rotations", []):
                if quarter_turn(rotation.get("angle", 0)):
                    nodes.append(ViolationNode(
                        html=rotation.get("html", ""),
                        target=[rotation.get("selector") or "body"],
                        failure_summary=f"In {name} orientation the content is rotated by "
                                        f"{rotation['angle']} degrees.",
                    ))

        visible = {name: state.get("content_visible", True) for name, state in states.items()}
        if len(set(visible.values())) > 1:
            hidden_in = [name for name, shown in visible.items() if not shown][0]
            nodes.append(ViolationNode(
                target=["body"],
                failure_summary=f"Main content is hidden in {hidden_in} orientation only.",
            ))
        return [self.make_violation(nodes)] if nodes else []
