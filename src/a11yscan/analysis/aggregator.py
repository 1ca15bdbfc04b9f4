# -*- coding: utf-8 -*-
"""
Merges engine and heuristic output into severity buckets, a 0-100 score and a
ranked list of action items.
"""

import hashlib
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence, Union

from ..models import (
    SEVERITY_LEVELS, SEVERITY_RANK, AccessibilityViolation, ActionItem, RawViolation,
    ReportStats, ViolationSource, empty_buckets, normalize_severity,
)
from ..utils.logging_config import get_logger
from .remediation import get_remediation
from .standards import AXE_RULE_URL, StandardsRegistry

DEFAULT_WEIGHTS = {
    "critical": 5.0,
    "serious": 3.0,
    "moderate": 1.0,
    "minor": 0.5,
}


@dataclass
class AggregationResult:
    violations_by_severity: Dict[str, List[AccessibilityViolation]]
    score: int
    action_items: List[ActionItem]
    stats: ReportStats


def node_fingerprint(rule_id: str, target: Sequence[str], html: str) -> str:
    """Stable identity of an affected element, used to diff scans over time."""
    first = target[0] if target else ""
    digest = hashlib.sha1(f"{rule_id}|{first}|{' '.join(html.split())[:200]}".encode("utf-8"))
    return digest.hexdigest()[:16]


class ViolationAggregator:

    def __init__(self, weights: Optional[Dict[str, float]] = None,
                 standards: Optional[StandardsRegistry] = None, logger=None):
        self.logger = logger or get_logger("aggregator")
        self.weights = dict(DEFAULT_WEIGHTS)
        for level, value in (weights or {}).items():
            level = normalize_severity(level)
            if not isinstance(value, (int, float)) or value <= 0:
                self.logger.warning(f"Ignoring invalid score weight for {level}: {value}")
                continue
            self.weights[level] = float(value)
        self.standards = standards or StandardsRegistry()

    def from_raw(self, raw: RawViolation) -> AccessibilityViolation:
        """Convert an engine rule failure into a violation."""
        return AccessibilityViolation(
            id=raw.rule_id,
            title=raw.help or raw.rule_id,
            description=raw.description,
            severity=normalize_severity(raw.impact),
            help_url=raw.help_url or AXE_RULE_URL.format(rule_id=raw.rule_id),
            count=len(raw.nodes),
            nodes=list(raw.nodes),
            source=ViolationSource.ENGINE,
        )

    def _enrich(self, violation: AccessibilityViolation) -> AccessibilityViolation:
        violation.severity = normalize_severity(violation.severity)

        reference = self.standards.lookup(violation.id)
        if reference is not None:
            violation.wcag = _merge(violation.wcag, reference.wcag)
            violation.act_rules = _merge(violation.act_rules, reference.act_rules)
            violation.reference_urls = _merge(violation.reference_urls, reference.urls)
        else:
            self.logger.debug(f"No standard cross-reference for rule '{violation.id}'")

        remediation = get_remediation(violation.id)
        violation.category = violation.category or remediation.category
        if not violation.suggestion:
            violation.suggestion = remediation.fix

        for node in violation.nodes:
            if not node.fingerprint:
                node.fingerprint = node_fingerprint(violation.id, node.target, node.html)
        violation.count = violation.affected_count
        return violation

    def compute_score(self, violations: Iterable[AccessibilityViolation]) -> int:
        """100 minus a severity-weighted penalty per affected node, clamped to [0, 100]."""
        penalty = 0.0
        for violation in violations:
            weight = self.weights.get(normalize_severity(violation.severity), 0.0)
            penalty += weight * max(1, violation.affected_count)
        return int(max(0, min(100, round(100 - penalty))))

    def build_action_items(self, violations: Iterable[AccessibilityViolation]) -> List[ActionItem]:
        items = []
        for violation in violations:
            remediation = get_remediation(violation.id)
            example = None
            for node in violation.nodes:
                if node.target:
                    example = node.target[0]
                    break
            items.append(ActionItem(
                rule_id=violation.id,
                title=violation.title,
                category=violation.category or remediation.category,
                severity=violation.severity,
                affected_count=violation.affected_count,
                suggestion=violation.suggestion or remediation.fix,
                what=remediation.what,
                wcag=list(violation.wcag),
                example_target=example,
            ))
        items.sort(key=lambda item: (SEVERITY_RANK[item.severity], -item.affected_count, item.rule_id))
        return items

    @staticmethod
    def group_by_category(items: Iterable[ActionItem]) -> Dict[str, List[ActionItem]]:
        """Action items grouped by functional category, keeping their rank order."""
        grouped: Dict[str, List[ActionItem]] = {}
        for item in items:
            grouped.setdefault(item.category, []).append(item)
        return grouped

    def aggregate(
        self,
        engine_violations: Iterable[Union[RawViolation, AccessibilityViolation]],
        heuristic_violations: Iterable[AccessibilityViolation],
    ) -> AggregationResult:
        engine = [self.from_raw(v) if isinstance(v, RawViolation) else v for v in engine_violations]
        for violation in engine:
            violation.source = ViolationSource.ENGINE
        heuristic = list(heuristic_violations)

        buckets = empty_buckets()
        for violation in engine + heuristic:
            self._enrich(violation)
            buckets[violation.severity].append(violation)

        merged = [v for level in SEVERITY_LEVELS for v in buckets[level]]
        score = self.compute_score(merged)
        action_items = self.build_action_items(merged)

        counts = {level: len(buckets[level]) for level in SEVERITY_LEVELS}
        stats = ReportStats(
            total_violations=sum(counts.values()),
            affected_nodes=sum(v.affected_count for v in merged),
            engine_violations=len(engine),
            heuristic_violations=len(heuristic),
            **counts,
        )
        self.logger.debug(
            f"Aggregated {stats.total_violations} violations "
            f"({stats.engine_violations} engine, {stats.heuristic_violations} heuristic), score {score}"
        )
        return AggregationResult(buckets, score, action_items, stats)


def _merge(existing: List[str], extra: List[str]) -> List[str]:
    merged = list(existing)
    for value in extra:
        if value not in merged:
            merged.append(value)
    return merged
