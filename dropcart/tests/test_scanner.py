"""
Tests for a full scan pass against the simulated document: selector
precedence, text-pattern pass, invalid selectors and deduplication.
"""

from __future__ import annotations

import pytest

from dropcart.constants import GENERIC_SELECTORS
from dropcart.detect.extract import CANDIDATES_JS
from dropcart.detect.scanner import scan_for_cart_buttons
from dropcart.tests.fakes import FakeElement, FakePage, cart_button, product_facts


@pytest.mark.asyncio
async def test_scan_finds_generic_cart_button():
    page = FakePage(elements=(cart_button(product=product_facts(name="Labubu", price="$30")),))
    result = await scan_for_cart_buttons(page, now_ms=42)

    assert result.platform == "generic"
    assert len(result.detections) == 1
    record = result.detections[0]
    assert record.selector_used == 'button[class*="add-to-cart"]'
    assert record.product.name == "Labubu"
    assert record.discovered_at == 42
    assert result.selector_errors == ()


@pytest.mark.asyncio
async def test_platform_selector_takes_precedence():
    button = cart_button(selectors=('button[name="add"]', 'button[class*="add-to-cart"]'))
    page = FakePage("https://store.myshopify.com/products/a", elements=(button,))
    result = await scan_for_cart_buttons(page)
    assert result.platform == "shopify"
    assert [r.selector_used for r in result.detections] == ['button[name="add"]']


@pytest.mark.asyncio
async def test_text_pass_finds_unmatched_buttons():
    page = FakePage(elements=(FakeElement(text="Buy Now", selectors=()),))
    result = await scan_for_cart_buttons(page)
    assert [r.selector_used for r in result.detections] == ["text-based"]
    assert page.calls(CANDIDATES_JS) == len(GENERIC_SELECTORS) + 1


@pytest.mark.asyncio
async def test_rejected_selector_is_skipped():
    bad = 'button[class*="buy-now"]'
    page = FakePage(elements=(cart_button(),), invalid_selectors=(bad,))
    result = await scan_for_cart_buttons(page)
    assert result.selector_errors == (bad,)
    assert len(result.detections) == 1


@pytest.mark.asyncio
async def test_invisible_and_excluded_controls_are_dropped():
    page = FakePage(
        elements=(
            cart_button(laid_out=False),
            cart_button(text="Remove", y=500),
            FakeElement(text="Continue shopping", y=700),
        )
    )
    result = await scan_for_cart_buttons(page)
    assert len(result.detections) == 0


@pytest.mark.asyncio
async def test_near_duplicates_collapse():
    page = FakePage(
        elements=(
            cart_button(x=100, y=200),
            cart_button(x=104, y=203),
            cart_button(x=100, y=800),
        )
    )
    result = await scan_for_cart_buttons(page)
    assert [r.bounding_box.y for r in result.detections] == [200, 800]


@pytest.mark.asyncio
async def test_scan_does_not_mutate_the_document():
    page = FakePage(elements=(cart_button(), FakeElement(text="Add to bag", y=400)))
    await scan_for_cart_buttons(page)
    assert page.mutations == 0
