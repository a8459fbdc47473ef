"""
Tests for candidate extraction: labels, ids, product metadata and record
filtering.
"""

from __future__ import annotations

import pytest

from dropcart.detect.extract import (
    build_button_record,
    control_label,
    extract_product_info,
    generate_button_id,
    query_candidates,
)
from dropcart.errors import SelectorError
from dropcart.models import ProductInfo
from dropcart.tests.fakes import FakeElement, FakePage, cart_button, product_facts


def _raw(**kwargs) -> dict:
    element = cart_button(**kwargs)
    element.locator = "/html/body/button[1]"
    return element.raw_candidate()


def test_button_id_format():
    assert generate_button_id("Add to Cart", "btn add-to-cart", 100.4, 200.6) == "btn-add to cart-btn add-to-cart-100-201"


def test_button_id_truncates_text_and_classes():
    button_id = generate_button_id(
        "Add to Cart - Limited Edition",
        "product-form__submit button button--full-width",
        0,
        12,
    )
    assert button_id == "btn-add to cart - limite-product-form__submit-0-12"


def test_control_label_prefers_text_then_input_value():
    assert control_label({"tag": "button", "text": "  Buy   now ", "ariaLabel": "x"}) == "Buy now"
    assert control_label({"tag": "input", "text": "", "value": "Add to Cart"}) == "Add to Cart"
    assert control_label({"tag": "input", "text": "", "value": "", "ariaLabel": "Add to bag"}) == "Add to bag"
    assert control_label({"tag": "button", "text": "", "value": "ignored", "ariaLabel": "Purchase"}) == "Purchase"


def test_product_info_picks_first_name_and_first_priced_text():
    raw = product_facts(name="Labubu The Monsters", sku="SKU-1", image="https://cdn.example/l.png")
    raw["prices"] = ["Sold out soon", None, "$19.99", "€18"]
    info = extract_product_info(raw)
    assert info == ProductInfo(
        name="Labubu The Monsters",
        price="$19.99",
        sku="SKU-1",
        image_url="https://cdn.example/l.png",
    )


def test_product_info_without_container_is_empty():
    assert extract_product_info({"hasContainer": False, "names": ["x"], "prices": ["$1"]}) == ProductInfo()
    assert extract_product_info(None) == ProductInfo()


def test_build_record_fields():
    raw = _raw(x=10, y=20, product=product_facts(name="Labubu", price="$25.00"))
    record = build_button_record(raw, 'button[class*="add-to-cart"]', 1234)
    assert record is not None
    assert record.id == "btn-add to cart-add-to-cart-10-20"
    assert record.selector_used == 'button[class*="add-to-cart"]'
    assert record.dom_locator == "/html/body/button[1]"
    assert record.bounding_box.w == 120
    assert record.visible is True
    assert record.enabled is True
    assert record.product.name == "Labubu"
    assert record.product.price == "$25.00"
    assert record.discovered_at == 1234


def test_build_record_rejects_elements_that_are_not_laid_out():
    assert build_button_record(_raw(laid_out=False), "sel", 0) is None
    assert build_button_record(_raw(width=0), "sel", 0) is None


def test_build_record_rejects_excluded_controls():
    assert build_button_record(_raw(text="Remove"), "sel", 0) is None


def test_build_record_keeps_hidden_and_disabled_flags():
    record = build_button_record(_raw(visibility_hidden=True, aria_disabled=True), "sel", 0)
    assert record is not None
    assert record.visible is False
    assert record.enabled is False


@pytest.mark.asyncio
async def test_query_candidates_raises_on_rejected_selector():
    page = FakePage(invalid_selectors=("button:contains('Add')",))
    with pytest.raises(SelectorError) as exc_info:
        await query_candidates(page, "button:contains('Add')")
    assert exc_info.value.selector == "button:contains('Add')"


@pytest.mark.asyncio
async def test_query_candidates_returns_raw_facts():
    page = FakePage(elements=(cart_button(), FakeElement(text="Wishlist", selectors=("button.wish",))))
    raws = await query_candidates(page, 'button[class*="add-to-cart"]')
    assert [r["text"] for r in raws] == ["Add to Cart"]
