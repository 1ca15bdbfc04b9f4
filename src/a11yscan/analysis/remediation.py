# -*- coding: utf-8 -*-
"""
Per-rule remediation lookup used to build human-oriented action items.
"""

from typing import Dict, NamedTuple

CATEGORIES = ("forms", "navigation", "images", "structure", "color", "aria")


class Remediation(NamedTuple):
    category: str
    what: str
    fix: str


GENERIC_FIX = (
    "Review the rule documentation linked in the violation and correct the "
    "HTML or ARIA attributes of the listed elements."
)

REMEDIATIONS: Dict[str, Remediation] = {
    'color-contrast': Remediation(
        'color', 'Low contrast between text and background.',
        'Raise the contrast ratio to at least 4.5:1 for normal text (3:1 for large text) '
        'by darkening the text or lightening the background.'),
    'image-alt': Remediation(
        'images', 'Images have no text alternative.',
        'Give every <img> an alt attribute. Describe informative images; use alt="" for decorative ones.'),
    'suspicious-alt': Remediation(
        'images', 'Image alt text looks like a file name or a placeholder.',
        'Replace the alt text with a short description of what the image conveys, '
        'or use alt="" if it is decorative.'),
    'label': Remediation(
        'forms', 'Form fields have no programmatic label.',
        'Associate each field with a <label for="..."> or give it aria-label/aria-labelledby.'),
    'aria-input-field-name': Remediation(
        'forms', 'An ARIA input widget has no accessible name.',
        'Name the widget with aria-label, aria-labelledby or a visible <label>.'),
    'form-errors': Remediation(
        'forms', 'Submitting an invalid form gives no programmatic error feedback.',
        'Set aria-invalid="true" on failing fields, describe the error in text linked with '
        'aria-describedby, announce it in a role="alert" region and move focus to the first invalid field.'),
    'link-name': Remediation(
        'navigation', 'Links have no discernible text.',
        'Give links descriptive text. Icon-only links need aria-label or visually hidden text.'),
    'skip-link': Remediation(
        'navigation', 'Keyboard users cannot skip repeated navigation.',
        'Add a "Skip to main content" link as the first focusable element, visible on focus, '
        'pointing at the main landmark.'),
    'bypass': Remediation(
        'navigation', 'The page offers no way to bypass repeated blocks.',
        'Add a skip link or landmark regions (<main>, <nav>) so repeated content can be skipped.'),
    'keyboard-trap': Remediation(
        'navigation', 'Keyboard focus gets stuck inside a group of elements.',
        'Make sure Tab and Shift+Tab can always leave every component. Custom widgets that '
        'manage focus must release it at their edges.'),
    'focus-order-jump': Remediation(
        'navigation', 'Keyboard focus jumps backwards up the page.',
        'Match DOM order to visual order and avoid positive tabindex values.'),
    'modal-focus-bleed': Remediation(
        'navigation', 'Focus leaves an open modal dialog.',
        'Keep focus inside open modals (focus trap) and make the rest of the page inert.'),
    'modal-focus': Remediation(
        'aria', 'Modal dialogs are not announced or managed correctly.',
        'Give dialogs role="dialog" with aria-modal="true", an accessible name and a close button. '
        'Move focus into the dialog on open and back to the trigger on close.'),
    'button-name': Remediation(
        'aria', 'Buttons have no accessible name.',
        'Add text to the button or an aria-label describing the action.'),
    'html-has-lang': Remediation(
        'structure', 'The page language is not set.',
        'Add a lang attribute to <html>, e.g. <html lang="en">.'),
    'list': Remediation(
        'structure', 'Lists are not built from <ul>/<ol> and <li>.',
        '<ul> and <ol> may only contain <li> elements (and script/template).'),
    'heading-order': Remediation(
        'structure', 'Heading levels are skipped.',
        'Use headings in sequence (h1, h2, h3) without skipping levels.'),
    'landmarks': Remediation(
        'structure', 'Landmark regions are missing or duplicated.',
        'Use exactly one <main>, wrap navigation in <nav>, and keep a single page-level header and footer.'),
    'frame-title': Remediation(
        'structure', 'Frames have no title.',
        'Give every <iframe> a title attribute describing its content.'),
    'meta-viewport': Remediation(
        'structure', 'The viewport meta tag disables zooming.',
        'Remove user-scalable=no and keep maximum-scale at 2 or more (or omit it).'),
    'meta-viewport-zoom': Remediation(
        'structure', 'The viewport meta tag disables zooming.',
        'Remove user-scalable=no and keep maximum-scale at 2 or more (or omit it).'),
    'orientation-lock': Remediation(
        'structure', 'Content is locked to one display orientation.',
        'Let the layout adapt to portrait and landscape instead of rotating the page with CSS.'),
    'media-autoplay': Remediation(
        'structure', 'Audio starts playing automatically.',
        'Do not autoplay sound. Start media muted or provide a pause control reachable first.'),
    'carousel-autoplay': Remediation(
        'structure', 'A carousel rotates automatically without a pause control.',
        'Add a visible, keyboard-operable pause/stop button, or stop rotation on focus and hover.'),
    'aria-hidden-focus': Remediation(
        'aria', 'Focusable elements are hidden from assistive technology.',
        'Remove aria-hidden="true" from containers with focusable content or make the content unfocusable.'),
    'aria-required-children': Remediation(
        'aria', 'An ARIA role is missing its required children.',
        'Add the owned roles the parent requires, e.g. role="listitem" inside role="list".'),
    'target-size': Remediation(
        'navigation', 'Click targets are too small.',
        'Make targets at least 24x24 CSS pixels or space them apart.'),
}


def _category_from_id(rule_id: str) -> str:
    rule = rule_id.lower()
    if rule.startswith("aria"):
        return "aria"
    if "contrast" in rule or "color" in rule:
        return "color"
    if any(token in rule for token in ("label", "form", "input", "select", "autocomplete")):
        return "forms"
    if any(token in rule for token in ("image", "img", "alt", "svg")):
        return "images"
    if any(token in rule for token in ("link", "skip", "focus", "keyboard", "tabindex", "bypass")):
        return "navigation"
    return "structure"


def get_remediation(rule_id: str) -> Remediation:
    """Remediation for ``rule_id``, falling back to a generic suggestion."""
    known = REMEDIATIONS.get(rule_id)
    if known:
        return known
    return Remediation(
        _category_from_id(rule_id),
        f"Accessibility issue reported by rule '{rule_id}'.",
        GENERIC_FIX,
    )
