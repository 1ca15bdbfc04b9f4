# -*- coding: utf-8 -*-
"""Alt text that is present but useless: file names, placeholders, redundant prefixes."""

import re
from typing import List, Optional

from ..models import AccessibilityViolation
from .base import HeuristicTest, ScanContext, node_from, page_script

FILENAME_PATTERNS = [
    re.compile(r"\.(jpe?g|png|gif|svg|webp|avif|bmp|ico|tiff?)$", re.I),
    re.compile(r"^(IMG|DSC|DCIM|PXL)[_-]?\d+", re.I),
    re.compile(r"^(screenshot|untitled)", re.I),
    re.compile(r"^\d{6,}$"),
]

PLACEHOLDER_WORDS = {
    "alt", "image", "img", "photo", "picture", "pic", "graphic", "spacer", "placeholder",
    "banner", "logo", "icon", "here", "immagine", "foto", "bild", "obrázek", "ikona",
}

REDUNDANT_PREFIX = re.compile(
    r"^(image|photo|picture|graphic|icon|immagine|foto|obrázek)\s+(of|di|von)\s+", re.I)

COLLECT_SCRIPT = page_script(r"""
return Array.from(document.querySelectorAll('img[alt], input[type="image"][alt], area[alt]'))
  .filter((el) => (el.getAttribute('alt') || '').trim().length > 0)
  .map((el) => ({selector: cssPath(el), html: snippet(el, 300), alt: el.getAttribute('alt').trim()}));
""")


def alt_text_issue(alt: str) -> Optional[str]:
    """Classify a non-empty alt text; None means it looks fine."""
    text = alt.strip()
    if not text:
        return None
    for pattern in FILENAME_PATTERNS:
        if pattern.search(text):
            return "filename"
    normalized = re.sub(r"[\s\d_.-]+$", "", text.lower()).strip()
    if normalized in PLACEHOLDER_WORDS or re.fullmatch(r"\.+", text):
        return "placeholder"
    if len(text) == 1:
        return "too-short"
    if REDUNDANT_PREFIX.match(text):
        return "redundant"
    return None


SUMMARIES = {
    "filename": "Alt text \"{alt}\" looks like a file name.",
    "placeholder": "Alt text \"{alt}\" is a generic placeholder.",
    "too-short": "Alt text \"{alt}\" is a single character.",
    "redundant": "Alt text \"{alt}\" starts with a redundant \"image of\" phrase.",
}


class SuspiciousAltTextCheck(HeuristicTest):

    test_id = "suspicious-alt"
    title = "Suspicious image alt text"
    description = "Images have alt text that does not describe them, such as file names or placeholder words."
    default_severity = "moderate"

    async def run(self, session, context: ScanContext) -> List[AccessibilityViolation]:
        images = await session.evaluate(COLLECT_SCRIPT) or []
        nodes = []
        for image in images:
            issue = alt_text_issue(image.get("alt", ""))
            if issue:
                preview = image["alt"] if len(image["alt"]) <= 50 else image["alt"][:47] + "..."
                nodes.append(node_from(image, SUMMARIES[issue].format(alt=preview)))
        return [self.make_violation(nodes)] if nodes else []
