# -*- coding: utf-8 -*-
"""
Error identification on form submission.

The first form with required fields is submitted empty while a capturing
``submit`` listener blocks the actual navigation. The form state before and
after is compared: a form that reports nothing programmatically, or that
leaves focus where it was, is reported.
"""

from typing import Any, Dict, List

from ..models import AccessibilityViolation, ViolationNode
from ..utils.logging_config import get_logger
from .base import AccessMode, HeuristicTest, ScanContext, page_script

logger = get_logger("heuristics")

ERROR_TOKENS = (
    "error", "required", "invalid", "please fill", "must", "cannot be empty",
    "errore", "obbligatorio", "non valido",
    "fehler", "pflichtfeld", "ungültig", "erforderlich",
    "chyba", "povinné", "vyplňte", "neplatné",
)

REQUIRED_FIELDS = ('input[required], textarea[required], select[required], '
                   'input[aria-required="true"], textarea[aria-required="true"], select[aria-required="true"]')

STATE_JS = r"""
const formState = (form, tokens) => {
  const text = (form.innerText || '').toLowerCase();
  const active = document.activeElement;
  return {
    aria_invalid: form.querySelectorAll('[aria-invalid="true"]').length,
    alert_regions: Array.from(form.querySelectorAll('[role="alert"], [aria-live="polite"], [aria-live="assertive"]'))
      .filter((el) => (el.textContent || '').trim().length > 0).length,
    error_text: tokens.reduce((n, t) => n + (text.split(t).length - 1), 0),
    focus_on_invalid: !!active && form.contains(active) &&
      (active.getAttribute('aria-invalid') === 'true' || (active.matches && active.matches(':invalid'))),
  };
};
"""

SUBMIT_SCRIPT = page_script(STATE_JS + r"""
const required = arguments[0];
const tokens = arguments[1];
const form = Array.from(document.querySelectorAll('form')).find((f) => f.querySelector(required));
if (!form) return null;
form.setAttribute('data-a11yscan-form', '1');
const before = formState(form, tokens);
window.__a11yscanBlockSubmit = (event) => { event.preventDefault(); };
window.addEventListener('submit', window.__a11yscanBlockSubmit, true);
form.querySelectorAll(required).forEach((field) => {
  if ('value' in field && field.type !== 'checkbox' && field.type !== 'radio') field.value = '';
});
const native = !form.noValidate && form.checkValidity && form.checkValidity() === false;
const button = form.querySelector('button[type="submit"], input[type="submit"], button:not([type])');
if (button) { button.click(); } else if (form.requestSubmit) { form.requestSubmit(); }
return {selector: cssPath(form), html: snippet(form, 300), before: before, native_validation: native};
""")

AFTER_SCRIPT = page_script(STATE_JS + r"""
const tokens = arguments[0];
const form = document.querySelector('[data-a11yscan-form]');
if (window.__a11yscanBlockSubmit) {
  window.removeEventListener('submit', window.__a11yscanBlockSubmit, true);
  delete window.__a11yscanBlockSubmit;
}
if (!form) return null;
form.removeAttribute('data-a11yscan-form');
return formState(form, tokens);
""")


def compare_states(before: Dict[str, Any], after: Dict[str, Any]) -> List[str]:
    """Problems visible in the before/after form snapshots."""
    invalid_added = after.get("aria_invalid", 0) > before.get("aria_invalid", 0)
    alert_added = after.get("alert_regions", 0) > before.get("alert_regions", 0)
    text_added = after.get("error_text", 0) > before.get("error_text", 0)

    issues = []
    if not (invalid_added or alert_added or text_added):
        issues.append("submitting the empty form shows no error")
    elif not (invalid_added or alert_added):
        issues.append("errors are shown as text only, without aria-invalid or a live region")
    if (invalid_added or text_added) and not after.get("focus_on_invalid"):
        issues.append("focus is not moved to the first invalid field")
    return issues


class FormErrorCheck(HeuristicTest):

    test_id = "form-errors"
    title = "Form errors are not identified"
    description = ("After an invalid submission, errors must be identified in text and exposed to "
                   "assistive technology, with focus moved to the problem.")
    default_severity = "serious"
    access = AccessMode.MUTATING

    async def run(self, session, context: ScanContext) -> List[AccessibilityViolation]:
        submitted = await session.evaluate(SUBMIT_SCRIPT, REQUIRED_FIELDS, list(ERROR_TOKENS))
        if not submitted:
            return []

        await session.sleep(float(context.setting("interaction_settle_seconds", 0.5)))
        after = await session.evaluate(AFTER_SCRIPT, list(ERROR_TOKENS))

        if submitted.get("native_validation"):
            # the browser blocks submission and announces the first invalid field itself
            logger.debug(f"Form {submitted['selector']} relies on native constraint validation")
            return []
        if after is None:
            logger.debug(f"Form {submitted['selector']} disappeared after submit")
            return []

        issues = compare_states(submitted.get("before") or {}, after)
        if not issues:
            return []
        node = ViolationNode(
            html=submitted.get("html", ""),
            target=[submitted.get("selector") or "form"],
            failure_summary="Form error handling: " + "; ".join(issues) + ".",
        )
        return [self.make_violation([node])]
