"""
Candidate extraction: raw facts per matched element (in-page), then record
building and filtering (pure Python).

The in-page script only reports what it sees (text, classes, rect,
disabled state, locator, product container text). Visibility rules,
keyword validity, price acceptance and id generation happen here so they
can be tested without a browser.
"""

from __future__ import annotations

import re
from typing import Any, Optional

from playwright.async_api import Page

from dropcart.constants import (
    BUTTON_ID_SEGMENT_LENGTH,
    CURRENCY_SYMBOLS,
    PRODUCT_CONTAINER_SELECTOR,
    PRODUCT_NAME_SELECTORS,
    PRODUCT_PRICE_SELECTORS,
    PRODUCT_SKU_SELECTOR,
)
from dropcart.detect.keywords import is_valid_cart_control
from dropcart.detect.text import normalize_label, normalize_whitespace
from dropcart.errors import SelectorError
from dropcart.models import BoundingBox, ButtonRecord, ProductInfo

CURRENCY_PATTERN = re.compile(f"[{re.escape(CURRENCY_SYMBOLS)}]")

# Shared in-page helpers: XPath locator for an element and re-resolution of
# a {locator, selector} target. Prepended to every script that touches an element.
LOCATOR_HELPERS_JS = """
  const xpathFor = (el) => {
    if (el.id) return 'id("' + el.id + '")';
    if (el === document.body) return '/html/body';
    if (!el.parentNode || el.parentNode.nodeType !== 1) return '';
    let ix = 0;
    const siblings = el.parentNode.childNodes;
    for (let i = 0; i < siblings.length; i++) {
      const sibling = siblings[i];
      if (sibling === el) {
        return xpathFor(el.parentNode) + '/' + el.tagName.toLowerCase() + '[' + (ix + 1) + ']';
      }
      if (sibling.nodeType === 1 && sibling.tagName === el.tagName) ix++;
    }
    return '';
  };
  const resolveTarget = (target) => {
    if (target && target.locator) {
      try {
        const hit = document.evaluate(target.locator, document, null, XPathResult.FIRST_ORDERED_NODE_TYPE, null);
        if (hit.singleNodeValue) return hit.singleNodeValue;
      } catch (e) {}
    }
    if (target && target.selector) {
      try { return document.querySelector(target.selector); } catch (e) { return null; }
    }
    return null;
  };
"""

CANDIDATES_JS = (
    """
(args) => {
"""
    + LOCATOR_HELPERS_JS
    + """
  let nodes;
  try {
    nodes = Array.from(document.querySelectorAll(args.selector));
  } catch (e) {
    return { error: String(e && e.message || e) };
  }
  const textOf = (root, sel) => {
    try {
      const el = root.querySelector(sel);
      const text = el ? (el.textContent || '').trim() : '';
      return text || null;
    } catch (e) { return null; }
  };
  const candidates = nodes.map((el) => {
    const rect = el.getBoundingClientRect();
    const style = window.getComputedStyle(el);
    let container = null;
    try { container = el.closest(args.containerSelector); } catch (e) {}
    if (!container) container = el.closest('form') || el.parentElement;
    const product = { hasContainer: !!container, names: [], prices: [], sku: null, image: null };
    if (container) {
      product.names = args.nameSelectors.map((sel) => textOf(container, sel));
      product.prices = args.priceSelectors.map((sel) => textOf(container, sel));
      const skuEl = container.querySelector(args.skuSelector);
      if (skuEl) {
        product.sku = skuEl.getAttribute('data-sku') || skuEl.getAttribute('data-product-id')
          || skuEl.getAttribute('data-variant-id') || null;
      }
      const img = container.querySelector('img[src]');
      if (img) product.image = img.src || img.getAttribute('src');
    }
    return {
      tag: el.tagName.toLowerCase(),
      text: (el.textContent || '').trim(),
      value: el.value || '',
      ariaLabel: el.getAttribute('aria-label') || '',
      className: typeof el.className === 'string' ? el.className : '',
      id: el.id || '',
      laidOut: el.offsetParent !== null,
      rect: {
        x: rect.left + window.scrollX,
        y: rect.top + window.scrollY,
        width: rect.width,
        height: rect.height
      },
      visibilityHidden: style.visibility === 'hidden',
      disabled: !!el.disabled,
      ariaDisabled: el.getAttribute('aria-disabled') === 'true',
      locator: xpathFor(el),
      product: product
    };
  });
  return { candidates: candidates };
}
"""
)


def candidate_query_args(selector: str) -> dict:
    return {
        "selector": selector,
        "containerSelector": PRODUCT_CONTAINER_SELECTOR,
        "nameSelectors": list(PRODUCT_NAME_SELECTORS),
        "priceSelectors": list(PRODUCT_PRICE_SELECTORS),
        "skuSelector": PRODUCT_SKU_SELECTOR,
    }


async def query_candidates(page: Page, selector: str) -> list[dict]:
    """
    Run one selector in-page and return raw candidate dicts.

    Raises SelectorError when the document rejects the selector.
    """
    result = await page.evaluate(CANDIDATES_JS, candidate_query_args(selector))
    if not isinstance(result, dict):
        return []
    if result.get("error"):
        raise SelectorError(selector, str(result["error"]))
    return list(result.get("candidates") or [])


def control_label(raw: dict) -> str:
    """Visible text; inputs fall back to value, then aria-label."""
    text = normalize_whitespace(raw.get("text"))
    if text:
        return text
    if raw.get("tag") == "input":
        return normalize_whitespace(raw.get("value")) or normalize_whitespace(raw.get("ariaLabel"))
    return normalize_whitespace(raw.get("ariaLabel"))


def _rect(raw: dict) -> dict:
    rect = raw.get("rect") or {}
    return {
        "x": float(rect.get("x") or 0),
        "y": float(rect.get("y") or 0),
        "width": float(rect.get("width") or 0),
        "height": float(rect.get("height") or 0),
    }


def is_laid_out(raw: dict) -> bool:
    rect = _rect(raw)
    return bool(raw.get("laidOut")) and rect["width"] > 0 and rect["height"] > 0


def generate_button_id(text: str, class_names: str, x: float, y: float) -> str:
    """
    Same-session fingerprint: btn-<text[:20]>-<classes[:20]>-<round x>-<round y>.

    Not stable across reloads or layout shifts.
    """
    n = BUTTON_ID_SEGMENT_LENGTH
    text_part = normalize_label(text)[:n]
    class_part = normalize_whitespace(class_names)[:n]
    return f"btn-{text_part}-{class_part}-{round(x)}-{round(y)}"


def _first_present(values: list[Any]) -> Optional[str]:
    for value in values or ():
        text = normalize_whitespace(value)
        if text:
            return text
    return None


def _first_price(values: list[Any]) -> Optional[str]:
    for value in values or ():
        text = normalize_whitespace(value)
        if text and CURRENCY_PATTERN.search(text):
            return text
    return None


def extract_product_info(raw_product: dict | None) -> ProductInfo:
    """
    Build ProductInfo from the container facts reported in-page.

    Name: first non-empty sub-selector text. Price: first text carrying a
    currency symbol. No container -> every field is None.
    """
    if not raw_product or not raw_product.get("hasContainer"):
        return ProductInfo()
    return ProductInfo(
        name=_first_present(raw_product.get("names")),
        price=_first_price(raw_product.get("prices")),
        sku=raw_product.get("sku") or None,
        image_url=raw_product.get("image") or None,
    )


def build_button_record(raw: dict, selector_used: str, discovered_at: int) -> Optional[ButtonRecord]:
    """
    Turn one raw candidate into a ButtonRecord, or None if it is rejected.

    Rejected: not laid out (no offsetParent or zero size), or label/class/id
    fail keyword validity.
    """
    if not is_laid_out(raw):
        return None
    label = control_label(raw)
    class_names = normalize_whitespace(raw.get("className"))
    if not is_valid_cart_control(label, class_names, raw.get("id")):
        return None
    rect = _rect(raw)
    return ButtonRecord(
        id=generate_button_id(label, class_names, rect["x"], rect["y"]),
        selector_used=selector_used,
        dom_locator=str(raw.get("locator") or ""),
        text_label=label,
        class_names=class_names,
        bounding_box=BoundingBox(x=rect["x"], y=rect["y"], w=rect["width"], h=rect["height"]),
        visible=not raw.get("visibilityHidden"),
        enabled=not (raw.get("disabled") or raw.get("ariaDisabled")),
        product=extract_product_info(raw.get("product")),
        discovered_at=discovered_at,
    )
