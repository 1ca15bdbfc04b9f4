# -*- coding: utf-8 -*-
"""Audio that starts by itself and keeps playing with sound."""

from typing import Any, Dict, List

from ..models import AccessibilityViolation
from .base import HeuristicTest, ScanContext, node_from, page_script

SAMPLE_SCRIPT = page_script(r"""
return Array.from(document.querySelectorAll('audio, video')).map((el) => ({
  selector: cssPath(el),
  html: snippet(el, 250),
  tag: el.tagName.toLowerCase(),
  autoplay: !!el.autoplay,
  paused: !!el.paused,
  ended: !!el.ended,
  muted: !!el.muted,
  volume: typeof el.volume === 'number' ? el.volume : 1,
  current_time: el.currentTime || 0,
  controls: !!el.controls,
}));
""")


def audible(sample: Dict[str, Any]) -> bool:
    return (not sample.get("paused") and not sample.get("ended")
            and not sample.get("muted") and sample.get("volume", 1) > 0)


class MediaAutoplayCheck(HeuristicTest):

    test_id = "media-autoplay"
    title = "Audio plays automatically"
    description = ("Media starts playing sound without user action and keeps playing, which drowns out "
                   "screen reader speech.")
    default_severity = "critical"

    async def run(self, session, context: ScanContext) -> List[AccessibilityViolation]:
        first = await session.evaluate(SAMPLE_SCRIPT) or []
        playing = {s["selector"]: s for s in first if audible(s)}
        if not playing:
            return []

        min_seconds = float(context.setting("autoplay_min_seconds", 3.0))
        await session.sleep(min_seconds)

        nodes = []
        for sample in await session.evaluate(SAMPLE_SCRIPT) or []:
            if sample["selector"] not in playing or not audible(sample):
                continue
            if sample.get("controls"):
                continue
            if sample.get("current_time", 0) < min_seconds:
                continue
            nodes.append(node_from(
                sample,
                f"<{sample.get('tag', 'media')}> plays sound for more than {min_seconds:g}s "
                f"and has no controls to stop it.",
            ))
        return [self.make_violation(nodes)] if nodes else []
