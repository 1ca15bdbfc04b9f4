# -*- coding: utf-8 -*-
"""Meta viewport must not disable pinch zoom."""

from typing import Dict, List, Optional

from ..models import AccessibilityViolation, ViolationNode
from .base import HeuristicTest, ScanContext

COLLECT_SCRIPT = r"""
const meta = document.querySelector('meta[name="viewport" i]');
if (!meta) return null;
return {content: meta.getAttribute('content') || '', html: meta.outerHTML};
"""

MIN_MAXIMUM_SCALE = 2.0


def parse_viewport(content: str) -> Dict[str, str]:
    properties = {}
    for part in content.replace(";", ",").split(","):
        if "=" not in part:
            continue
        key, value = part.split("=", 1)
        properties[key.strip().lower()] = value.strip().lower()
    return properties


def zoom_blocker(content: str) -> Optional[str]:
    """Return the directive that disables zooming, if any."""
    properties = parse_viewport(content)
    scalable = properties.get("user-scalable")
    if scalable in ("no", "0"):
        return f"user-scalable={scalable}"
    maximum = properties.get("maximum-scale")
    if maximum is not None:
        try:
            scale = float(maximum)
        except ValueError:
            return None
        if scale < MIN_MAXIMUM_SCALE:
            return f"maximum-scale={maximum}"
    return None


class ViewportLockCheck(HeuristicTest):

    test_id = "meta-viewport-zoom"
    title = "Viewport meta tag disables zoom"
    description = "The viewport meta tag prevents users from zooming the page, which low-vision users rely on."
    default_severity = "critical"

    async def run(self, session, context: ScanContext) -> List[AccessibilityViolation]:
        meta = await session.evaluate(COLLECT_SCRIPT)
        if not meta:
            return []
        blocker = zoom_blocker(meta.get("content", ""))
        if blocker is None:
            return []
        node = ViolationNode(
            html=meta.get("html", ""),
            target=['meta[name="viewport"]'],
            failure_summary=f"Viewport sets '{blocker}', which prevents zooming.",
        )
        return [self.make_violation([node])]
