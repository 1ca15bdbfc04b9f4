# -*- coding: utf-8 -*-
"""
Keyboard focus-order simulation.

Presses Tab repeatedly, records where focus lands and derives three kinds of
violation from the trace: keyboard traps, upward visual jumps and focus
leaving an open modal dialog.
"""

from typing import Dict, List, Optional

from ..models import AccessibilityViolation, FocusTraceEntry, KeyboardNavigationReport, ViolationNode
from ..utils.logging_config import get_logger
from .base import AccessMode, HeuristicTest, ScanContext, page_script

logger = get_logger("heuristics")

DEFAULT_MAX_STEPS = 200
DEFAULT_TRAP_LOOKBACK = 5
DEFAULT_JUMP_THRESHOLD = 100

OPEN_MODALS_JS = r"""
const openModals = () => Array.from(document.querySelectorAll(
  '[role="dialog"], [role="alertdialog"], dialog[open], [aria-modal="true"]'
)).filter((m) => (m.tagName.toLowerCase() !== 'dialog' || m.open) && isVisible(m));
"""

COUNT_FOCUSABLE_SCRIPT = page_script(r"""
const unoccluded = (el) => {
  const rect = el.getBoundingClientRect();
  const x = rect.left + rect.width / 2;
  const y = rect.top + rect.height / 2;
  if (x < 0 || y < 0 || x > window.innerWidth || y > window.innerHeight) return true;
  const hit = document.elementFromPoint(x, y);
  return !hit || hit === el || el.contains(hit) || hit.contains(el);
};
const all = Array.from(document.querySelectorAll(FOCUSABLE));
const visible = all.filter((el) => isVisible(el) && unoccluded(el));
return {total: all.length, visible: visible.length};
""")

RESET_FOCUS_SCRIPT = r"""
if (document.activeElement && document.activeElement.blur) document.activeElement.blur();
window.scrollTo(0, 0);
if (document.body) {
  document.body.setAttribute('tabindex', '-1');
  document.body.focus();
  document.body.removeAttribute('tabindex');
}
return true;
"""

ACTIVE_ELEMENT_SCRIPT = page_script(OPEN_MODALS_JS + r"""
const el = document.activeElement;
const modals = openModals();
const modalPaths = modals.map((m) => cssPath(m));
if (!el || el === document.body || el === document.documentElement) {
  return {fingerprint: 'document', is_document: true, open_modals: modalPaths};
}
const rect = el.getBoundingClientRect();
const container = modals.find((m) => m.contains(el));
return {
  fingerprint: cssPath(el),
  x: rect.left + window.scrollX,
  y: rect.top + window.scrollY,
  in_modal: container ? cssPath(container) : null,
  open_modals: modalPaths,
  visible: isVisible(el),
  html: snippet(el, 300),
  is_document: false,
};
""")


class FocusTrace:
    """Incremental analysis of a Tab-key trace.

    ``add`` returns True once a keyboard trap is confirmed; the caller stops
    pressing keys at that point.
    """

    def __init__(self, lookback: int = DEFAULT_TRAP_LOOKBACK,
                 jump_threshold: float = DEFAULT_JUMP_THRESHOLD, universe: int = 0, visible: int = 0):
        self.lookback = lookback
        self.jump_threshold = jump_threshold
        self.universe = universe
        self.visible = visible
        self.entries: List[FocusTraceEntry] = []
        self.trap: List[FocusTraceEntry] = []
        self.jumps: List[FocusTraceEntry] = []
        self.bleeds: List[FocusTraceEntry] = []
        self.completed = False
        self._last_seen: Dict[str, int] = {}
        self._last_wrap = -1
        self._previous: Optional[FocusTraceEntry] = None

    def add(self, entry: FocusTraceEntry) -> bool:
        index = len(self.entries)
        self.entries.append(entry)

        if entry.is_document:
            self._last_wrap = index
            self._previous = None
            return False

        seen_at = self._last_seen.get(entry.fingerprint)
        if seen_at is not None:
            if self._is_trap(seen_at, index):
                self.trap = self._cycle(seen_at, index)
                return True
            if entry.fingerprint == self._first_fingerprint() and (
                    self._last_wrap > seen_at or len(self._last_seen) >= self.universe):
                # back at the start after a pass through the whole page
                self.completed = True

        previous = self._previous
        if previous is not None:
            if seen_at is None and previous.y - entry.y > self.jump_threshold:
                self.jumps.append(entry)
            if previous.in_modal and previous.in_modal != entry.in_modal \
                    and previous.in_modal in entry.open_modals:
                self.bleeds.append(entry)

        self._last_seen[entry.fingerprint] = index
        self._previous = entry
        return False

    def _first_fingerprint(self) -> Optional[str]:
        for entry in self.entries:
            if not entry.is_document:
                return entry.fingerprint
        return None

    def _is_trap(self, seen_at: int, index: int) -> bool:
        if index - seen_at > self.lookback:
            return False
        # an ordinary tab cycle passes through the document before coming back
        return self._last_wrap <= seen_at

    def _cycle(self, start: int, end: int) -> List[FocusTraceEntry]:
        cycle: List[FocusTraceEntry] = []
        seen = set()
        for entry in self.entries[start:end]:
            if entry.fingerprint not in seen:
                seen.add(entry.fingerprint)
                cycle.append(entry)
        return cycle

    @property
    def steps(self) -> int:
        return len(self.entries)


def _node(entry: FocusTraceEntry, summary: str) -> ViolationNode:
    return ViolationNode(html=entry.html, target=[entry.fingerprint], failure_summary=summary)


class FocusOrderAnalyzer(HeuristicTest):
    """Simulates Tab navigation and reports traps, jumps and modal bleed."""

    test_id = "focus-order"
    title = "Keyboard focus order"
    default_severity = "critical"
    access = AccessMode.MUTATING

    def __init__(self, max_steps: int = DEFAULT_MAX_STEPS, trap_lookback: int = DEFAULT_TRAP_LOOKBACK,
                 jump_threshold: float = DEFAULT_JUMP_THRESHOLD, severity: Optional[str] = None,
                 timeout: Optional[float] = None):
        super().__init__(severity, timeout)
        self.max_steps = max_steps
        self.trap_lookback = trap_lookback
        self.jump_threshold = jump_threshold

    @classmethod
    def from_config(cls, focus_config: Dict, severity: Optional[str] = None) -> "FocusOrderAnalyzer":
        return cls(
            max_steps=focus_config.get("max_steps", DEFAULT_MAX_STEPS),
            trap_lookback=focus_config.get("trap_lookback", DEFAULT_TRAP_LOOKBACK),
            jump_threshold=focus_config.get("jump_threshold", DEFAULT_JUMP_THRESHOLD),
            severity=severity,
            timeout=focus_config.get("timeout"),
        )

    async def trace(self, session) -> Optional[FocusTrace]:
        """Run the simulation. Returns None when the page has nothing focusable."""
        counts = await session.evaluate(COUNT_FOCUSABLE_SCRIPT) or {}
        total = int(counts.get("total", 0))
        if total == 0:
            logger.debug("No focusable elements, skipping focus simulation")
            return None

        trace = FocusTrace(self.trap_lookback, self.jump_threshold, universe=total,
                           visible=int(counts.get("visible", 0)))
        await session.evaluate(RESET_FOCUS_SCRIPT)

        for step in range(1, self.max_steps + 1):
            await session.simulate_key_press("Tab")
            data = await session.evaluate(ACTIVE_ELEMENT_SCRIPT) or {}
            entry = FocusTraceEntry(
                step=step,
                fingerprint=data.get("fingerprint") or "document",
                x=float(data.get("x") or 0.0),
                y=float(data.get("y") or 0.0),
                in_modal=data.get("in_modal"),
                open_modals=list(data.get("open_modals") or []),
                visible=bool(data.get("visible", True)),
                html=data.get("html") or "",
                is_document=bool(data.get("is_document", not data)),
            )
            if trace.add(entry):
                logger.info(f"Keyboard trap confirmed at step {step}: "
                            f"{[e.fingerprint for e in trace.trap]}")
                break
            if trace.completed:
                logger.debug(f"Focus wrapped to the first element after {step} steps")
                break
        return trace

    async def run(self, session, context: ScanContext) -> List[AccessibilityViolation]:
        trace = await self.trace(session)
        if trace is None:
            context.keyboard_report = KeyboardNavigationReport()
            return []

        context.keyboard_report = KeyboardNavigationReport(
            focusable_count=trace.universe,
            visible_focusable_count=trace.visible,
            steps=trace.steps,
            trap_detected=bool(trace.trap),
            trap_elements=[e.fingerprint for e in trace.trap],
            visual_jumps=len(trace.jumps),
            modal_bleeds=len(trace.bleeds),
        )
        return self.violations_from(trace)

    def violations_from(self, trace: FocusTrace) -> List[AccessibilityViolation]:
        violations = []
        if trace.trap:
            violations.append(self.make_violation(
                [_node(e, "Focus cycles between these elements and cannot leave with Tab.") for e in trace.trap],
                rule_id="keyboard-trap",
                title="Keyboard focus is trapped",
                description="Tabbing through the page cycles between a few elements without reaching the rest "
                            "of the content.",
                severity=self.severity,
            ))
        if trace.jumps:
            violations.append(self.make_violation(
                [_node(e, f"Focus moved up the page by more than {self.jump_threshold}px.") for e in trace.jumps],
                rule_id="focus-order-jump",
                title="Focus order does not follow the visual order",
                description="Keyboard focus jumps backwards up the page while tabbing forward.",
                severity="moderate",
            ))
        if trace.bleeds:
            violations.append(self.make_violation(
                [_node(e, "Focus left an open modal dialog.") for e in trace.bleeds],
                rule_id="modal-focus-bleed",
                title="Focus escapes an open modal dialog",
                description="While a modal dialog is open, Tab moves focus to content behind it.",
                severity="critical",
            ))
        return violations
