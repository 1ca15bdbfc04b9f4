# -*- coding: utf-8 -*-
"""
Data model shared by the scan pipeline, the heuristic suite and the crawler.
"""

import base64
import datetime
from dataclasses import dataclass, field, asdict
from enum import Enum
from typing import Any, Dict, List, Optional


SEVERITY_LEVELS = ("critical", "serious", "moderate", "minor")
SEVERITY_RANK = {level: index for index, level in enumerate(SEVERITY_LEVELS)}


def normalize_severity(value: Any) -> str:
    """Map any impact value onto one of the four severity buckets.

    Matching is case-insensitive; anything unrecognized becomes ``minor``.
    """
    if isinstance(value, str):
        candidate = value.strip().lower()
        if candidate in SEVERITY_RANK:
            return candidate
    return "minor"


def utc_timestamp() -> str:
    return datetime.datetime.now(datetime.timezone.utc).isoformat()


def _jsonable(value: Any) -> Any:
    if isinstance(value, bytes):
        return base64.b64encode(value).decode("ascii")
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, dict):
        return {k: _jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    return value


class ViolationSource(str, Enum):
    ENGINE = "engine"
    HEURISTIC = "heuristic"


@dataclass
class ViolationNode:
    """One affected DOM element."""
    html: str = ""
    target: List[str] = field(default_factory=list)
    failure_summary: str = ""
    fingerprint: Optional[str] = None
    label: Optional[str] = None


@dataclass
class AccessibilityViolation:
    id: str
    title: str
    description: str = ""
    severity: str = "minor"
    help_url: str = ""
    count: int = 0
    suggestion: Optional[str] = None
    wcag: List[str] = field(default_factory=list)
    act_rules: List[str] = field(default_factory=list)
    reference_urls: List[str] = field(default_factory=list)
    nodes: List[ViolationNode] = field(default_factory=list)
    source: ViolationSource = ViolationSource.HEURISTIC
    category: Optional[str] = None

    def __post_init__(self):
        self.severity = normalize_severity(self.severity)
        if not self.count:
            self.count = len(self.nodes)

    @property
    def affected_count(self) -> int:
        return max(self.count, len(self.nodes))


@dataclass
class RawViolation:
    """A rule failure as returned by the static audit engine."""
    rule_id: str
    description: str = ""
    help: str = ""
    help_url: str = ""
    impact: Optional[str] = None
    tags: List[str] = field(default_factory=list)
    nodes: List[ViolationNode] = field(default_factory=list)

    @property
    def selectors(self) -> List[str]:
        return [selector for node in self.nodes for selector in node.target]


@dataclass(frozen=True)
class ReportStats:
    total_violations: int = 0
    critical: int = 0
    serious: int = 0
    moderate: int = 0
    minor: int = 0
    affected_nodes: int = 0
    engine_violations: int = 0
    heuristic_violations: int = 0


@dataclass
class ActionItem:
    rule_id: str
    title: str
    category: str
    severity: str
    affected_count: int
    suggestion: str
    what: str = ""
    wcag: List[str] = field(default_factory=list)
    example_target: Optional[str] = None


@dataclass(frozen=True)
class StepOutcome:
    """Result of a best-effort step: either a value or the reason it is missing."""
    present: bool
    value: Any = None
    reason: Optional[str] = None

    @classmethod
    def ok(cls, value: Any = None) -> "StepOutcome":
        return cls(present=True, value=value)

    @classmethod
    def absent(cls, reason: str) -> "StepOutcome":
        return cls(present=False, reason=reason)

    def __bool__(self) -> bool:
        return self.present


@dataclass
class PageArtifacts:
    screenshot: StepOutcome = field(default_factory=lambda: StepOutcome.absent("not requested"))
    html_snapshot: StepOutcome = field(default_factory=lambda: StepOutcome.absent("not requested"))
    dimensions: Dict[str, int] = field(default_factory=dict)


class BrokenLinkKind(str, Enum):
    CLIENT_ERROR = "client_error"
    SERVER_ERROR = "server_error"
    UNREACHABLE = "unreachable"


@dataclass
class BrokenLink:
    url: str
    kind: BrokenLinkKind
    status: Optional[int] = None
    error: Optional[str] = None


@dataclass
class BrokenLinksSummary:
    checked: int = 0
    broken: List[BrokenLink] = field(default_factory=list)
    skipped: int = 0

    @property
    def broken_count(self) -> int:
        return len(self.broken)


@dataclass
class PerformanceReport:
    ttfb: Optional[float] = None
    dom_content_loaded: Optional[float] = None
    load: Optional[float] = None
    first_contentful_paint: Optional[float] = None
    largest_contentful_paint: Optional[float] = None
    cumulative_layout_shift: Optional[float] = None
    total_blocking_time: Optional[float] = None

    METRICS = (
        "ttfb", "dom_content_loaded", "load", "first_contentful_paint",
        "largest_contentful_paint", "cumulative_layout_shift", "total_blocking_time",
    )


@dataclass
class HeadingInfo:
    level: int
    text: str
    selector: str = ""


@dataclass
class HeadingIssue:
    type: str
    message: str
    severity: str = "moderate"
    heading: Optional[HeadingInfo] = None


@dataclass
class HeadingStructure:
    headings: List[HeadingInfo] = field(default_factory=list)
    issues: List[HeadingIssue] = field(default_factory=list)
    summary: Dict[str, int] = field(default_factory=dict)


@dataclass
class KeyboardNavigationReport:
    focusable_count: int = 0
    visible_focusable_count: int = 0
    steps: int = 0
    trap_detected: bool = False
    trap_elements: List[str] = field(default_factory=list)
    visual_jumps: int = 0
    modal_bleeds: int = 0


@dataclass
class FocusTraceEntry:
    step: int
    fingerprint: str
    x: float = 0.0
    y: float = 0.0
    in_modal: Optional[str] = None
    open_modals: List[str] = field(default_factory=list)
    visible: bool = True
    html: str = ""
    is_document: bool = False


class TestStatus(str, Enum):
    OK = "ok"
    FAILED = "failed"
    TIMEOUT = "timeout"
    SKIPPED = "skipped"


@dataclass
class TestOutcome:
    __test__ = False  # not a pytest test class

    test_id: str
    status: TestStatus
    violations: int = 0
    error: Optional[str] = None
    duration: float = 0.0


@dataclass
class ScanDiagnostics:
    engine_available: bool = True
    engine_error: Optional[str] = None
    test_outcomes: List[TestOutcome] = field(default_factory=list)
    consent: StepOutcome = field(default_factory=lambda: StepOutcome.absent("not attempted"))
    states: List[str] = field(default_factory=list)
    links_checked: bool = False


def empty_buckets() -> Dict[str, List[AccessibilityViolation]]:
    return {level: [] for level in SEVERITY_LEVELS}


@dataclass(frozen=True)
class AuditReport:
    url: str
    timestamp: str
    score: int
    violations: Dict[str, List[AccessibilityViolation]]
    stats: ReportStats
    device: str = "desktop"
    action_items: List[ActionItem] = field(default_factory=list)
    artifacts: Optional[PageArtifacts] = None
    broken_links: Optional[BrokenLinksSummary] = None
    performance: Optional[PerformanceReport] = None
    heading_structure: Optional[HeadingStructure] = None
    keyboard_navigation: Optional[KeyboardNavigationReport] = None
    diagnostics: ScanDiagnostics = field(default_factory=ScanDiagnostics)
    discovered_links: List[str] = field(default_factory=list)
    error: Optional[str] = None

    @classmethod
    def failed(cls, url: str, error: str, device: str = "desktop") -> "AuditReport":
        """Marker report for a page that could not be scanned."""
        return cls(
            url=url,
            timestamp=utc_timestamp(),
            score=0,
            violations=empty_buckets(),
            stats=ReportStats(),
            device=device,
            error=error,
        )

    @property
    def ok(self) -> bool:
        return self.error is None

    def all_violations(self) -> List[AccessibilityViolation]:
        return [v for level in SEVERITY_LEVELS for v in self.violations.get(level, [])]

    def to_dict(self) -> Dict[str, Any]:
        return _jsonable(asdict(self))


@dataclass
class CrawlSummary:
    """Running result of a crawl. Every ``add_report`` leaves it consistent."""
    root_url: str
    device: str = "desktop"
    pages: List[AuditReport] = field(default_factory=list)
    pages_scanned: int = 0
    pages_failed: int = 0
    violations_by_severity: Dict[str, int] = field(default_factory=lambda: {level: 0 for level in SEVERITY_LEVELS})
    total_violations: int = 0
    average_score: Optional[float] = None
    performance: Optional[Dict[str, Optional[float]]] = None
    frontier_discarded: int = 0
    interrupted: bool = False
    started_at: str = field(default_factory=utc_timestamp)
    finished_at: Optional[str] = None
    _score_total: float = field(default=0.0, repr=False)
    _perf_totals: Dict[str, List[float]] = field(default_factory=dict, repr=False)

    def add_report(self, report: AuditReport) -> None:
        self.pages.append(report)
        self.pages_scanned += 1
        if not report.ok:
            self.pages_failed += 1
            return

        for level in SEVERITY_LEVELS:
            self.violations_by_severity[level] += len(report.violations.get(level, []))
        self.total_violations = sum(self.violations_by_severity.values())

        succeeded = self.pages_scanned - self.pages_failed
        self._score_total += report.score
        self.average_score = round(self._score_total / succeeded, 2)

        if report.performance is not None:
            self._fold_performance(report.performance)

    def _fold_performance(self, perf: PerformanceReport) -> None:
        for metric in PerformanceReport.METRICS:
            value = getattr(perf, metric)
            if value is None:
                continue
            bucket = self._perf_totals.setdefault(metric, [0.0, 0])
            bucket[0] += value
            bucket[1] += 1
        self.performance = {
            metric: round(total / count, 3)
            for metric, (total, count) in self._perf_totals.items()
        }

    def finalize(self, interrupted: bool = False) -> "CrawlSummary":
        self.interrupted = self.interrupted or interrupted
        self.finished_at = utc_timestamp()
        return self

    @property
    def urls(self) -> List[str]:
        return [page.url for page in self.pages]

    def to_dict(self) -> Dict[str, Any]:
        data = _jsonable(asdict(self))
        data.pop("_score_total", None)
        data.pop("_perf_totals", None)
        return data
