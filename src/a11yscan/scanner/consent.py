# -*- coding: utf-8 -*-
"""Best-effort dismissal of cookie consent banners."""

import asyncio
from typing import Optional

from ..models import StepOutcome
from ..utils.logging_config import get_logger

logger = get_logger("pipeline")

# Known consent-management platforms, tried in order
CMP_SELECTORS = (
    "#onetrust-accept-btn-handler",
    "#CybotCookiebotDialogBodyLevelButtonLevelOptinAllowAll",
    "#CybotCookiebotDialogBodyButtonAccept",
    ".iubenda-cs-accept-btn",
    "#didomi-notice-agree-button",
    ".cc-btn.cc-allow",
    ".cky-btn-accept",
    "#truste-consent-button",
    '[data-testid="cookie-policy-dialog-accept-button"]',
    'button[id*="cookie"][id*="accept"]',
    'button[class*="cookie"][class*="accept"]',
)

BUTTON_KEYWORDS = (
    "accept all", "allow all", "accept", "agree", "i understand", "got it",
    "accetta tutti", "accetta", "accetto", "acconsento", "ho capito",
    "alle akzeptieren", "akzeptieren", "zustimmen",
    "tout accepter", "accepter", "aceptar",
    "souhlasím", "povolit vše", "přijmout", "rozumím",
)

DISMISS_SCRIPT = r"""
const selectors = arguments[0];
const keywords = arguments[1];
const shown = (el) => !!el && el.offsetParent !== null;
for (const selector of selectors) {
  const el = document.querySelector(selector);
  if (shown(el)) { el.click(); return {method: 'selector', match: selector}; }
}
const buttons = Array.from(document.querySelectorAll('button, [role="button"], a[href="#"], input[type="button"]'));
for (const keyword of keywords) {
  const el = buttons.find((b) => shown(b) &&
    ((b.textContent || b.value || '').trim().toLowerCase() === keyword ||
     ((b.textContent || '').trim().toLowerCase().startsWith(keyword) && (b.textContent || '').trim().length < 40)));
  if (el) { el.click(); return {method: 'keyword', match: keyword}; }
}
return null;
"""


async def dismiss_consent(session, timeout: Optional[float] = 5.0) -> StepOutcome:
    """Click the first matching consent button.

    Returns an absent outcome when nothing matched or the attempt failed;
    never raises.
    """
    try:
        result = await asyncio.wait_for(
            session.evaluate(DISMISS_SCRIPT, list(CMP_SELECTORS), list(BUTTON_KEYWORDS), timeout=timeout),
            timeout,
        )
    except asyncio.TimeoutError:
        logger.warning(f"Consent dismissal timed out after {timeout}s")
        return StepOutcome.absent("timed out")
    except Exception as e:
        logger.warning(f"Consent dismissal failed: {e}")
        return StepOutcome.absent(f"error: {e}")

    if not result:
        logger.debug("No consent banner found")
        return StepOutcome.absent("no consent banner matched")

    logger.info(f"Consent banner dismissed via {result.get('method')}: {result.get('match')}")
    return StepOutcome.ok(result)
