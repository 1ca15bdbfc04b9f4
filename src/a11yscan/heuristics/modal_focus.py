# -*- coding: utf-8 -*-
"""
Modal dialog semantics and focus management.

Open dialogs are checked for ``aria-modal``, focusable content and a close
control. When no dialog is open, the first dialog trigger is clicked to check
that focus moves into the dialog and returns to the trigger on Escape.
"""

from typing import Any, Dict, List

from ..models import AccessibilityViolation, ViolationNode
from ..utils.logging_config import get_logger
from .base import AccessMode, HeuristicTest, ScanContext, page_script

logger = get_logger("heuristics")

TRIGGER_MARK = "data-a11yscan-trigger"

DIALOG_FACTS_JS = r"""
const dialogFacts = (el) => {
  const close = el.querySelector('[data-dismiss="modal"], [data-bs-dismiss="modal"], .modal-close, .close, ' +
    'button[aria-label*="close" i], button[aria-label*="chiudi" i], button[aria-label*="schließen" i]') ||
    Array.from(el.querySelectorAll('button, [role="button"]')).find((b) =>
      /^(close|chiudi|schließen|fermer|cerrar|zavřít|x|×)$/i.test((b.textContent || '').trim()));
  return {
    selector: cssPath(el),
    html: snippet(el, 300),
    aria_modal: (el.getAttribute('aria-modal') || '').toLowerCase() === 'true' ||
      (el.tagName.toLowerCase() === 'dialog' && el.matches(':modal')),
    has_focusable: el.querySelectorAll(FOCUSABLE).length > 0,
    has_close: !!close,
    has_name: !!(el.getAttribute('aria-label') || el.getAttribute('aria-labelledby')),
    contains_focus: el.contains(document.activeElement),
  };
};
const openDialogs = () => Array.from(document.querySelectorAll(
  '[role="dialog"], [role="alertdialog"], dialog[open]'
)).filter((el) => (el.tagName.toLowerCase() !== 'dialog' || el.open) && isVisible(el));
"""

OPEN_DIALOGS_SCRIPT = page_script(DIALOG_FACTS_JS + r"""
return openDialogs().map(dialogFacts);
""")

OPEN_TRIGGER_SCRIPT = page_script(r"""
const mark = arguments[0];
const trigger = Array.from(document.querySelectorAll(
  '[aria-haspopup="dialog"], [data-toggle="modal"], [data-bs-toggle="modal"]'
)).find(isVisible);
if (!trigger) return null;
trigger.setAttribute(mark, '1');
trigger.focus();
trigger.click();
return {selector: cssPath(trigger), html: snippet(trigger, 200)};
""")

AFTER_OPEN_SCRIPT = page_script(DIALOG_FACTS_JS + r"""
const dialogs = openDialogs();
return dialogs.length ? dialogFacts(dialogs[0]) : null;
""")

AFTER_CLOSE_SCRIPT = page_script(DIALOG_FACTS_JS + r"""
const mark = arguments[0];
const trigger = document.querySelector('[' + mark + ']');
const result = {
  closed: openDialogs().length === 0,
  focus_returned: !!trigger && document.activeElement === trigger,
};
if (trigger) trigger.removeAttribute(mark);
return result;
""")


def structural_issues(dialog: Dict[str, Any]) -> List[str]:
    issues = []
    if not dialog.get("aria_modal"):
        issues.append('aria-modal="true" is missing')
    if not dialog.get("has_focusable"):
        issues.append("no focusable element inside")
    if not dialog.get("has_close"):
        issues.append("no close control")
    return issues


class ModalFocusCheck(HeuristicTest):

    test_id = "modal-focus"
    title = "Modal dialog is not accessible"
    description = ("Modal dialogs must be announced as modal, be operable by keyboard and manage focus "
                   "when they open and close.")
    default_severity = "serious"
    access = AccessMode.MUTATING

    async def run(self, session, context: ScanContext) -> List[AccessibilityViolation]:
        dialogs = await session.evaluate(OPEN_DIALOGS_SCRIPT) or []
        nodes = []
        for dialog in dialogs:
            issues = structural_issues(dialog)
            if issues:
                nodes.append(self._node(dialog, issues))
        if not dialogs:
            nodes.extend(await self._exercise_trigger(session, context))
        return [self.make_violation(nodes)] if nodes else []

    async def _exercise_trigger(self, session, context: ScanContext) -> List[ViolationNode]:
        trigger = await session.evaluate(OPEN_TRIGGER_SCRIPT, TRIGGER_MARK)
        if not trigger:
            return []
        settle = float(context.setting("interaction_settle_seconds", 0.5))
        await session.sleep(settle)

        dialog = await session.evaluate(AFTER_OPEN_SCRIPT)
        if not dialog:
            logger.debug(f"Trigger {trigger['selector']} opened no dialog")
            await session.evaluate(AFTER_CLOSE_SCRIPT, TRIGGER_MARK)
            return []

        issues = structural_issues(dialog)
        if not dialog.get("contains_focus"):
            issues.append("focus did not move into the dialog when it opened")

        await session.simulate_key_press("Escape")
        await session.sleep(settle)
        closed = await session.evaluate(AFTER_CLOSE_SCRIPT, TRIGGER_MARK) or {}
        if not closed.get("closed"):
            issues.append("Escape does not close the dialog")
        elif not closed.get("focus_returned"):
            issues.append("focus did not return to the trigger after closing")

        return [self._node(dialog, issues)] if issues else []

    @staticmethod
    def _node(dialog: Dict[str, Any], issues: List[str]) -> ViolationNode:
        return ViolationNode(
            html=dialog.get("html", ""),
            target=[dialog.get("selector") or "[role=dialog]"],
            failure_summary="Modal dialog problems: " + "; ".join(issues) + ".",
        )
