"""
Checkout steps after a successful add-to-cart: checkout navigation,
payment-field population, order submission.

Same split as detection: in-page scripts report raw facts (matches per
selector, form field attributes), pure functions decide what to act on,
and every action re-resolves its element from a locator.
"""

from __future__ import annotations

from typing import Iterable, Optional, Sequence

from playwright.async_api import Page

from dropcart.constants import (
    CHECKOUT_SELECTORS,
    FORM_FIELD_SELECTOR,
    PAYMENT_FIELD_HINTS,
    SUBMIT_SELECTORS,
)
from dropcart.detect.extract import LOCATOR_HELPERS_JS
from dropcart.executor import POINTER_CLICK_JS, target_args
from dropcart.models import PaymentProfile
from shared.logging import get_logger

logger = get_logger(__name__)

FIND_CONTROLS_JS = (
    """
(selectors) => {
"""
    + LOCATOR_HELPERS_JS
    + """
  return selectors.map((sel) => {
    let nodes;
    try {
      nodes = Array.from(document.querySelectorAll(sel));
    } catch (e) {
      return { selector: sel, error: String(e && e.message || e), matches: [] };
    }
    return {
      selector: sel,
      matches: nodes.map((el) => ({
        locator: xpathFor(el),
        disabled: !!el.disabled || el.getAttribute('aria-disabled') === 'true',
        laidOut: el.offsetParent !== null
      }))
    };
  });
}
"""
)

FORM_FIELDS_JS = (
    """
(selector) => {
"""
    + LOCATOR_HELPERS_JS
    + """
  return Array.from(document.querySelectorAll(selector)).map((el) => ({
    locator: xpathFor(el),
    name: el.getAttribute('name') || '',
    id: el.id || '',
    placeholder: el.getAttribute('placeholder') || '',
    autocomplete: el.getAttribute('autocomplete') || '',
    ariaLabel: el.getAttribute('aria-label') || '',
    type: (el.getAttribute('type') || '').toLowerCase(),
    disabled: !!el.disabled || !!el.readOnly,
    laidOut: el.offsetParent !== null
  }));
}
"""
)

# Framework-controlled inputs ignore a plain `.value =`; go through the
# prototype setter and fire input + change so listeners see the edit.
FILL_FIELD_JS = (
    """
(args) => {
"""
    + LOCATOR_HELPERS_JS
    + """
  const el = resolveTarget(args.target);
  if (!el) return false;
  const proto = el.tagName === 'TEXTAREA' ? window.HTMLTextAreaElement.prototype : window.HTMLInputElement.prototype;
  const descriptor = Object.getOwnPropertyDescriptor(proto, 'value');
  el.focus();
  if (descriptor && descriptor.set) {
    descriptor.set.call(el, args.value);
  } else {
    el.value = args.value;
  }
  el.dispatchEvent(new Event('input', { bubbles: true }));
  el.dispatchEvent(new Event('change', { bubbles: true }));
  return true;
}
"""
)


def pick_first_actionable(results: Sequence[dict]) -> Optional[tuple[str, str]]:
    """
    First (selector, locator) that is laid out and enabled, in selector order.

    Pure function for tests. `results` is FIND_CONTROLS_JS output.
    """
    for entry in results or ():
        for match in entry.get("matches") or ():
            if match.get("laidOut") and not match.get("disabled") and match.get("locator"):
                return entry.get("selector") or "", match["locator"]
    return None


async def _click_first(page: Page, selectors: Iterable[str], step: str) -> Optional[str]:
    results = await page.evaluate(FIND_CONTROLS_JS, list(selectors))
    for entry in results or ():
        if entry.get("error"):
            logger.warning("selector_rejected", step=step, selector=entry.get("selector"), reason=entry["error"])
    picked = pick_first_actionable(results or [])
    if picked is None:
        logger.info("control_not_found", step=step)
        return None
    selector, locator = picked
    clicked = await page.evaluate(POINTER_CLICK_JS, target_args(locator, None))
    if not clicked:
        logger.info("control_vanished", step=step, selector=selector)
        return None
    logger.info("control_clicked", step=step, selector=selector)
    return selector


async def click_checkout_control(page: Page, selectors: Sequence[str] = CHECKOUT_SELECTORS) -> Optional[str]:
    """Click the first visible, enabled checkout/cart link. Returns the selector used, or None."""
    return await _click_first(page, selectors, "checkout_nav")


async def click_submit_control(page: Page, selectors: Sequence[str] = SUBMIT_SELECTORS) -> Optional[str]:
    """Click the first visible, enabled order submit control. Returns the selector used, or None."""
    return await _click_first(page, selectors, "submit")


def match_payment_field(attrs: dict) -> Optional[str]:
    """
    Map one form field's attributes to a PaymentProfile field name.

    Hints are matched as substrings of name/id/placeholder/autocomplete/
    aria-label (lowercased); the first field in PAYMENT_FIELD_HINTS order
    wins. type="email" always maps to email.
    """
    if (attrs.get("type") or "") == "email":
        return "email"
    haystack = " ".join(
        str(attrs.get(k) or "").lower() for k in ("name", "id", "placeholder", "autocomplete", "ariaLabel")
    )
    if not haystack.strip():
        return None
    for field_name, hints in PAYMENT_FIELD_HINTS:
        if any(hint in haystack for hint in hints):
            return field_name
    return None


async def fill_payment_fields(page: Page, profile: PaymentProfile) -> list[str]:
    """
    Populate every visible, editable form field that maps to a profile value.

    Returns the profile field names that were filled (first-seen order).
    Values themselves are never logged.
    """
    fields = await page.evaluate(FORM_FIELDS_JS, FORM_FIELD_SELECTOR)
    filled: list[str] = []
    for attrs in fields or ():
        if attrs.get("disabled") or not attrs.get("laidOut"):
            continue
        field_name = match_payment_field(attrs)
        if field_name is None:
            continue
        value = profile.value_for(field_name)
        if not value:
            continue
        args = target_args(attrs.get("locator"), None)
        args["value"] = value
        if await page.evaluate(FILL_FIELD_JS, args) and field_name not in filled:
            filled.append(field_name)
    logger.info("payment_fields_filled", fields=filled, candidates=len(fields or ()))
    return filled
