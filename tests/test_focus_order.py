import asyncio

from a11yscan.heuristics.base import ScanContext
from a11yscan.heuristics.focus_order import (
    ACTIVE_ELEMENT_SCRIPT, COUNT_FOCUSABLE_SCRIPT, FocusOrderAnalyzer, FocusTrace,
)
from a11yscan.models import FocusTraceEntry

from fakes import FakeSession, Replies


def focused(fingerprint, y=0, in_modal=None, open_modals=()):
    return {
        "fingerprint": fingerprint,
        "x": 10,
        "y": y,
        "in_modal": in_modal,
        "open_modals": list(open_modals),
        "visible": True,
        "html": f'<a id="{fingerprint}" href="#">',
        "is_document": False,
    }


DOCUMENT = {"fingerprint": "document", "is_document": True, "open_modals": []}


def run_analyzer(entries, total=10, analyzer=None):
    session = FakeSession({
        COUNT_FOCUSABLE_SCRIPT: {"total": total, "visible": total},
        ACTIVE_ELEMENT_SCRIPT: Replies(*entries),
    })
    context = ScanContext(url="https://example.com/")
    analyzer = analyzer or FocusOrderAnalyzer()
    violations = asyncio.run(analyzer.run(session, context))
    return violations, session, context


def test_three_element_cycle_is_a_keyboard_trap():
    violations, session, context = run_analyzer(
        [focused("a#one"), focused("a#two"), focused("a#three"), focused("a#one"), focused("a#four")])

    assert [v.id for v in violations] == ["keyboard-trap"]
    trap = violations[0]
    assert trap.severity == "critical"
    assert [node.target[0] for node in trap.nodes] == ["a#one", "a#two", "a#three"]
    # simulation stops as soon as the trap is confirmed
    assert session.keys == ["Tab"] * 4
    assert context.keyboard_report.trap_detected
    assert context.keyboard_report.trap_elements == ["a#one", "a#two", "a#three"]


def test_no_focusable_elements_yields_nothing():
    violations, session, context = run_analyzer([], total=0)
    assert violations == []
    assert session.keys == []
    assert context.keyboard_report.focusable_count == 0
    assert context.keyboard_report.steps == 0


def test_wrap_through_document_is_not_a_trap():
    violations, session, context = run_analyzer(
        [focused("a#one"), focused("a#two"), focused("a#three"), DOCUMENT, focused("a#one")], total=3)
    assert violations == []
    assert len(session.keys) == 5
    assert context.keyboard_report.steps == 5
    assert not context.keyboard_report.trap_detected


def test_cycle_over_every_focusable_element_is_a_trap():
    violations, session, context = run_analyzer(
        [focused("a#one"), focused("a#two"), focused("a#three"), focused("a#one")], total=3)
    assert [v.id for v in violations] == ["keyboard-trap"]
    assert len(session.keys) == 4
    assert context.keyboard_report.trap_elements == ["a#one", "a#two", "a#three"]


def test_revisit_outside_lookback_is_not_a_trap():
    entries = [focused(f"a#e{i}") for i in range(7)] + [focused("a#e0")]
    violations, session, _ = run_analyzer(entries, total=20, analyzer=FocusOrderAnalyzer(max_steps=8))
    assert violations == []
    assert len(session.keys) == 8


def test_upward_jump_is_reported_once_per_jump():
    violations, _, context = run_analyzer([
        focused("a#top", y=50),
        focused("a#footer", y=1200),
        focused("a#header", y=80),
        focused("a#main", y=400),
        DOCUMENT,
        focused("a#top", y=50),
    ])
    assert [v.id for v in violations] == ["focus-order-jump"]
    jump = violations[0]
    assert jump.severity == "moderate"
    assert [node.target[0] for node in jump.nodes] == ["a#header"]
    assert context.keyboard_report.visual_jumps == 1


def test_small_upward_move_is_not_a_jump():
    violations, _, _ = run_analyzer([
        focused("a#one", y=300), focused("a#two", y=220), DOCUMENT, focused("a#one", y=300),
    ])
    assert violations == []


def test_focus_leaving_open_modal_is_reported():
    modal = "div#dialog"
    violations, _, context = run_analyzer([
        focused("button#close", y=100, in_modal=modal, open_modals=[modal]),
        focused("a#behind", y=500, open_modals=[modal]),
        DOCUMENT,
        focused("button#close", y=100, in_modal=modal, open_modals=[modal]),
    ])
    assert [v.id for v in violations] == ["modal-focus-bleed"]
    assert violations[0].severity == "critical"
    assert violations[0].nodes[0].target == ["a#behind"]
    assert context.keyboard_report.modal_bleeds == 1


def test_leaving_a_closed_modal_is_not_a_bleed():
    modal = "div#dialog"
    violations, _, _ = run_analyzer([
        focused("button#close", in_modal=modal, open_modals=[modal]),
        focused("a#behind", y=0, open_modals=[]),
        DOCUMENT,
        focused("button#close", in_modal=modal, open_modals=[modal]),
    ])
    assert violations == []


def test_step_ceiling_bounds_the_simulation():
    session = FakeSession({
        COUNT_FOCUSABLE_SCRIPT: {"total": 500, "visible": 500},
        ACTIVE_ELEMENT_SCRIPT: lambda s: focused(f"a#e{len(s.keys)}", y=len(s.keys) * 20),
    })
    context = ScanContext(url="https://example.com/")
    violations = asyncio.run(FocusOrderAnalyzer(max_steps=20).run(session, context))
    assert violations == []
    assert len(session.keys) == 20
    assert context.keyboard_report.steps == 20
    assert context.keyboard_report.focusable_count == 500


def test_trace_entries_outside_the_universe_are_kept():
    trace = FocusTrace(lookback=5, jump_threshold=100, universe=2)
    results = [trace.add(FocusTraceEntry(step=step, fingerprint=fingerprint))
               for step, fingerprint in enumerate(["a", "b", "iframe-inner", "a"], start=1)]
    assert results == [False, False, False, True]
    assert trace.steps == 4
    assert [entry.fingerprint for entry in trace.trap] == ["a", "b", "iframe-inner"]


def test_return_to_start_after_a_full_pass_completes_the_trace():
    trace = FocusTrace(lookback=2, jump_threshold=100, universe=3)
    for step, fingerprint in enumerate(["a", "b", "c", "a"], start=1):
        trapped = trace.add(FocusTraceEntry(step=step, fingerprint=fingerprint))
    assert not trapped
    assert trace.completed


def test_from_config_reads_focus_settings():
    analyzer = FocusOrderAnalyzer.from_config(
        {"max_steps": 50, "trap_lookback": 3, "jump_threshold": 250, "timeout": 12.0}, severity="serious")
    assert analyzer.max_steps == 50
    assert analyzer.trap_lookback == 3
    assert analyzer.jump_threshold == 250
    assert analyzer.timeout == 12.0
    assert analyzer.severity == "serious"
    assert analyzer.mutating


def test_no_active_element_counts_as_the_document():
    violations, session, context = run_analyzer([None, None, None], total=3, analyzer=FocusOrderAnalyzer(max_steps=3))
    assert violations == []
    assert len(session.keys) == 3
    assert not context.keyboard_report.trap_detected
