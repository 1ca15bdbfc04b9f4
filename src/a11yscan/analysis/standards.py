# -*- coding: utf-8 -*-
"""
Static cross-reference registry: rule id -> WCAG success criteria and ACT rules.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional

ACT_RULE_URL = "https://www.w3.org/WAI/standards-guidelines/act/rules/{rule_id}/"
AXE_RULE_URL = "https://dequeuniversity.com/rules/axe/4.10/{rule_id}"


WCAG_CATEGORIES = {
    # --- Principle 1: Perceivable ---
    'image-alt': {'category': 'Perceivable', 'criterion': '1.1.1', 'name': 'Non-text Content'},
    'input-image-alt': {'category': 'Perceivable', 'criterion': '1.1.1', 'name': 'Non-text Content'},
    'role-img-alt': {'category': 'Perceivable', 'criterion': '1.1.1', 'name': 'Non-text Content'},
    'svg-img-alt': {'category': 'Perceivable', 'criterion': '1.1.1', 'name': 'Non-text Content'},
    'suspicious-alt': {'category': 'Perceivable', 'criterion': '1.1.1', 'name': 'Non-text Content'},
    'video-caption': {'category': 'Perceivable', 'criterion': '1.2.2', 'name': 'Captions (Prerecorded)'},
    'list': {'category': 'Perceivable', 'criterion': '1.3.1', 'name': 'Info and Relationships'},
    'listitem': {'category': 'Perceivable', 'criterion': '1.3.1', 'name': 'Info and Relationships'},
    'heading-order': {'category': 'Perceivable', 'criterion': '1.3.1', 'name': 'Info and Relationships'},
    'td-headers-attr': {'category': 'Perceivable', 'criterion': '1.3.1', 'name': 'Info and Relationships'},
    'landmarks': {'category': 'Perceivable', 'criterion': '1.3.1', 'name': 'Info and Relationships'},
    'focus-order-jump': {'category': 'Operable', 'criterion': '2.4.3', 'name': 'Focus Order'},
    'orientation-lock': {'category': 'Perceivable', 'criterion': '1.3.4', 'name': 'Orientation'},
    'autocomplete-valid': {'category': 'Perceivable', 'criterion': '1.3.5', 'name': 'Identify Input Purpose'},
    'media-autoplay': {'category': 'Perceivable', 'criterion': '1.4.2', 'name': 'Audio Control'},
    'color-contrast': {'category': 'Perceivable', 'criterion': '1.4.3', 'name': 'Contrast (Minimum)'},
    'meta-viewport': {'category': 'Perceivable', 'criterion': '1.4.4', 'name': 'Resize Text'},
    'meta-viewport-zoom': {'category': 'Perceivable', 'criterion': '1.4.4', 'name': 'Resize Text'},

    # --- Principle 2: Operable ---
    'scrollable-region-focusable': {'category': 'Operable', 'criterion': '2.1.1', 'name': 'Keyboard'},
    'keyboard-trap': {'category': 'Operable', 'criterion': '2.1.2', 'name': 'No Keyboard Trap'},
    'modal-focus-bleed': {'category': 'Operable', 'criterion': '2.4.3', 'name': 'Focus Order'},
    'modal-focus': {'category': 'Operable', 'criterion': '2.4.3', 'name': 'Focus Order'},
    'carousel-autoplay': {'category': 'Operable', 'criterion': '2.2.2', 'name': 'Pause, Stop, Hide'},
    'blink': {'category': 'Operable', 'criterion': '2.2.2', 'name': 'Pause, Stop, Hide'},
    'bypass': {'category': 'Operable', 'criterion': '2.4.1', 'name': 'Bypass Blocks'},
    'skip-link': {'category': 'Operable', 'criterion': '2.4.1', 'name': 'Bypass Blocks'},
    'document-title': {'category': 'Operable', 'criterion': '2.4.2', 'name': 'Page Titled'},
    'link-name': {'category': 'Operable', 'criterion': '2.4.4', 'name': 'Link Purpose (In Context)'},
    'empty-heading': {'category': 'Operable', 'criterion': '2.4.6', 'name': 'Headings and Labels'},
    'target-size': {'category': 'Operable', 'criterion': '2.5.8', 'name': 'Target Size (Minimum)'},

    # --- Principle 3: Understandable ---
    'html-has-lang': {'category': 'Understandable', 'criterion': '3.1.1', 'name': 'Language of Page'},
    'html-lang-valid': {'category': 'Understandable', 'criterion': '3.1.1', 'name': 'Language of Page'},
    'valid-lang': {'category': 'Understandable', 'criterion': '3.1.2', 'name': 'Language of Parts'},
    'form-errors': {'category': 'Understandable', 'criterion': '3.3.1', 'name': 'Error Identification'},
    'label': {'category': 'Understandable', 'criterion': '3.3.2', 'name': 'Labels or Instructions'},
    'form-field-multiple-labels': {'category': 'Understandable', 'criterion': '3.3.2', 'name': 'Labels or Instructions'},

    # --- Principle 4: Robust ---
    'aria-roles': {'category': 'Robust', 'criterion': '4.1.2', 'name': 'Name, Role, Value'},
    'aria-allowed-attr': {'category': 'Robust', 'criterion': '4.1.2', 'name': 'Name, Role, Value'},
    'aria-hidden-focus': {'category': 'Robust', 'criterion': '4.1.2', 'name': 'Name, Role, Value'},
    'aria-input-field-name': {'category': 'Robust', 'criterion': '4.1.2', 'name': 'Name, Role, Value'},
    'aria-required-attr': {'category': 'Robust', 'criterion': '4.1.2', 'name': 'Name, Role, Value'},
    'button-name': {'category': 'Robust', 'criterion': '4.1.2', 'name': 'Name, Role, Value'},
    'frame-title': {'category': 'Robust', 'criterion': '4.1.2', 'name': 'Name, Role, Value'},
    'aria-required-children': {'category': 'Robust', 'criterion': '4.1.2', 'name': 'Name, Role, Value'},
    'aria-required-parent': {'category': 'Robust', 'criterion': '4.1.2', 'name': 'Name, Role, Value'},
    'duplicate-id-aria': {'category': 'Robust', 'criterion': '4.1.2', 'name': 'Name, Role, Value'},
}

# Rules with a published ACT counterpart
ACT_RULES = {
    'meta-viewport': ['b4f0c3'],
    'meta-viewport-zoom': ['b4f0c3'],
    'orientation-lock': ['b33eff'],
    'css-orientation-lock': ['b33eff'],
    'media-autoplay': ['80f0bf'],
    'image-alt': ['23a2a8'],
    'button-name': ['97a4e1'],
    'link-name': ['c487ae'],
    'document-title': ['2779a5'],
    'html-has-lang': ['b5c3f8'],
    'frame-title': ['cae760'],
    'aria-hidden-focus': ['6cfa84'],
    'color-contrast': ['afw4f7'],
    'bypass': ['cf77f2'],
    'skip-link': ['cf77f2'],
}


@dataclass
class StandardReference:
    wcag: List[str] = field(default_factory=list)
    wcag_name: Optional[str] = None
    principle: Optional[str] = None
    act_rules: List[str] = field(default_factory=list)
    urls: List[str] = field(default_factory=list)


class StandardsRegistry:
    """Lookup of external standard references by rule id.

    Unknown ids yield ``None``; callers keep the violation and leave its
    cross-reference fields empty.
    """

    def __init__(self, wcag_categories: Optional[Dict[str, Dict[str, str]]] = None,
                 act_rules: Optional[Dict[str, List[str]]] = None):
        self.wcag_categories = WCAG_CATEGORIES if wcag_categories is None else wcag_categories
        self.act_rules = ACT_RULES if act_rules is None else act_rules

    def lookup(self, rule_id: str) -> Optional[StandardReference]:
        wcag_info = self.wcag_categories.get(rule_id)
        act_ids = list(self.act_rules.get(rule_id, []))
        if wcag_info is None and not act_ids:
            return None

        reference = StandardReference(act_rules=act_ids)
        if wcag_info:
            reference.wcag = [wcag_info['criterion']]
            reference.wcag_name = wcag_info['name']
            reference.principle = wcag_info['category']
        reference.urls = [ACT_RULE_URL.format(rule_id=act_id) for act_id in act_ids]
        return reference

    def __contains__(self, rule_id: str) -> bool:
        return self.lookup(rule_id) is not None

    def coverage(self, rule_ids: List[str]) -> Dict[str, int]:
        """How many of ``rule_ids`` map to WCAG and to ACT rules."""
        mapped = [self.lookup(rule_id) for rule_id in rule_ids]
        return {
            "total": len(rule_ids),
            "wcag_mapped": sum(1 for ref in mapped if ref and ref.wcag),
            "act_mapped": sum(1 for ref in mapped if ref and ref.act_rules),
        }
