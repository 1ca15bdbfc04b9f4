from a11yscan.analysis.aggregator import ViolationAggregator, node_fingerprint
from a11yscan.analysis.standards import StandardsRegistry
from a11yscan.models import (
    SEVERITY_LEVELS, AccessibilityViolation, RawViolation, ViolationNode, ViolationSource,
)

from fakes import image_alt_violation


def heuristic(rule_id, severity, nodes=1):
    return AccessibilityViolation(
        id=rule_id,
        title=rule_id,
        severity=severity,
        nodes=[ViolationNode(html=f"<div id='n{i}'></div>", target=[f"#n{i}"]) for i in range(nodes)],
    )


def test_stats_total_equals_sum_of_buckets():
    aggregator = ViolationAggregator()
    result = aggregator.aggregate(
        [image_alt_violation(2)],
        [heuristic("skip-link", "serious"), heuristic("landmarks", "moderate"), heuristic("x", "minor")],
    )
    bucket_total = sum(len(result.violations_by_severity[level]) for level in SEVERITY_LEVELS)
    assert result.stats.total_violations == bucket_total == 4
    assert result.stats.engine_violations == 1
    assert result.stats.heuristic_violations == 3
    assert result.stats.affected_nodes == 5


def test_severity_bucketing_is_case_insensitive_and_unknown_is_minor():
    aggregator = ViolationAggregator()
    raw = [
        RawViolation(rule_id="color-contrast", impact="SERIOUS", nodes=[ViolationNode(target=["p"])]),
        RawViolation(rule_id="region", impact="whatever", nodes=[ViolationNode(target=["div"])]),
        RawViolation(rule_id="list", impact=None, nodes=[ViolationNode(target=["ul"])]),
    ]
    result = aggregator.aggregate(raw, [])
    assert [v.id for v in result.violations_by_severity["serious"]] == ["color-contrast"]
    assert sorted(v.id for v in result.violations_by_severity["minor"]) == ["list", "region"]
    assert all(v.source is ViolationSource.ENGINE for v in result.violations_by_severity["minor"])


def test_score_is_bounded():
    aggregator = ViolationAggregator()
    assert aggregator.aggregate([], []).score == 100
    flood = [heuristic(f"rule-{i}", "critical", nodes=10) for i in range(10)]
    assert aggregator.aggregate([], flood).score == 0


def test_score_uses_default_weights_per_node():
    aggregator = ViolationAggregator()
    result = aggregator.aggregate([image_alt_violation(2)], [heuristic("skip-link", "serious")])
    # 100 - (5 * 2) - (3 * 1)
    assert result.score == 87


def test_score_is_monotonic():
    aggregator = ViolationAggregator()
    violations = []
    previous = aggregator.compute_score(violations)
    for severity in ["minor", "moderate", "serious", "critical", "minor", "critical"]:
        violations.append(heuristic(f"r-{len(violations)}", severity))
        score = aggregator.compute_score(violations)
        assert score <= previous
        previous = score


def test_zero_node_violation_still_costs_one_unit():
    aggregator = ViolationAggregator()
    violation = AccessibilityViolation(id="document-title", title="Missing title", severity="serious")
    assert aggregator.compute_score([violation]) == 97


def test_custom_weights_and_invalid_weight_ignored():
    aggregator = ViolationAggregator({"critical": 10, "Minor": -1, "serious": 0, "moderate": "heavy"})
    assert aggregator.weights["critical"] == 10.0
    assert aggregator.weights["minor"] == 0.5
    assert aggregator.weights["serious"] == 3.0
    assert aggregator.weights["moderate"] == 1.0


def test_unmapped_rule_id_keeps_empty_cross_references():
    aggregator = ViolationAggregator()
    result = aggregator.aggregate([], [heuristic("totally-custom-rule", "moderate")])
    violation = result.violations_by_severity["moderate"][0]
    assert violation.id == "totally-custom-rule"
    assert violation.wcag == []
    assert violation.act_rules == []
    assert violation.reference_urls == []
    assert result.action_items[0].rule_id == "totally-custom-rule"


def test_known_rule_gets_wcag_and_act_references():
    aggregator = ViolationAggregator()
    result = aggregator.aggregate([], [heuristic("meta-viewport-zoom", "critical")])
    violation = result.violations_by_severity["critical"][0]
    assert violation.wcag == ["1.4.4"]
    assert violation.act_rules == ["b4f0c3"]
    assert violation.reference_urls == ["https://www.w3.org/WAI/standards-guidelines/act/rules/b4f0c3/"]


def test_engine_violation_gets_default_help_url():
    aggregator = ViolationAggregator()
    raw = RawViolation(rule_id="region", impact="moderate", nodes=[ViolationNode(target=["div"])])
    violation = aggregator.aggregate([raw], []).violations_by_severity["moderate"][0]
    assert violation.help_url.endswith("/region")


def test_action_items_sorted_by_severity_then_affected_count():
    aggregator = ViolationAggregator()
    result = aggregator.aggregate([], [
        heuristic("landmarks", "moderate", nodes=5),
        heuristic("skip-link", "serious", nodes=1),
        heuristic("form-errors", "serious", nodes=3),
        heuristic("keyboard-trap", "critical", nodes=1),
    ])
    assert [item.rule_id for item in result.action_items] == [
        "keyboard-trap", "form-errors", "skip-link", "landmarks",
    ]
    form_item = result.action_items[1]
    assert form_item.category == "forms"
    assert "aria-invalid" in form_item.suggestion
    assert form_item.example_target == "#n0"


def test_group_by_category_keeps_rank_order():
    aggregator = ViolationAggregator()
    items = aggregator.aggregate([image_alt_violation()], [
        heuristic("suspicious-alt", "moderate"), heuristic("skip-link", "serious"),
    ]).action_items
    grouped = ViolationAggregator.group_by_category(items)
    assert [item.rule_id for item in grouped["images"]] == ["image-alt", "suspicious-alt"]
    assert [item.rule_id for item in grouped["navigation"]] == ["skip-link"]


def test_nodes_get_stable_fingerprints():
    aggregator = ViolationAggregator()
    first = aggregator.aggregate([image_alt_violation()], []).violations_by_severity["critical"][0]
    second = aggregator.aggregate([image_alt_violation()], []).violations_by_severity["critical"][0]
    assert first.nodes[0].fingerprint == second.nodes[0].fingerprint
    assert first.nodes[0].fingerprint == node_fingerprint(
        "image-alt", first.nodes[0].target, first.nodes[0].html)


def test_supplied_fingerprint_is_kept():
    aggregator = ViolationAggregator()
    violation = heuristic("keyboard-trap", "critical")
    violation.nodes[0].fingerprint = "button#menu"
    result = aggregator.aggregate([], [violation])
    assert result.violations_by_severity["critical"][0].nodes[0].fingerprint == "button#menu"


def test_standards_registry_coverage():
    registry = StandardsRegistry()
    coverage = registry.coverage(["image-alt", "keyboard-trap", "unknown-rule"])
    assert coverage == {"total": 3, "wcag_mapped": 2, "act_mapped": 1}
    assert "skip-link" in registry
    assert "unknown-rule" not in registry
