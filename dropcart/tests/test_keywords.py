"""Tests for cart keyword validity and the text-pattern pass."""

from __future__ import annotations

import pytest

from dropcart.detect.keywords import (
    has_cart_keyword,
    has_exclude_keyword,
    is_valid_cart_control,
    matches_text_pattern,
)


@pytest.mark.parametrize(
    "label",
    ["Add to Cart", "ADD TO BAG", "Buy now", "Purchase", "Order Now", "add   to\ncart"],
)
def test_cart_labels_are_valid(label):
    assert is_valid_cart_control(label)


def test_class_and_id_are_matched_without_separators():
    assert has_cart_keyword("", "btn add-to-cart", "")
    assert has_cart_keyword("", "", "addToCart")
    assert has_cart_keyword("", "product__add_to_cart", "")


def test_exclusion_beats_cart_keyword():
    assert not is_valid_cart_control("Remove from cart", "add-to-cart")
    assert not is_valid_cart_control("Add to Cart", "", "back-button")
    assert not is_valid_cart_control("Add to cart", "cart-remove")
    assert has_exclude_keyword("Continue shopping")


def test_control_without_any_cart_keyword_is_invalid():
    assert not is_valid_cart_control("Subscribe", "newsletter-btn", "signup")
    assert not is_valid_cart_control(None)


def test_text_patterns():
    assert matches_text_pattern("Add To Cart - $19")
    assert matches_text_pattern("buy now")
    assert not matches_text_pattern("Add to wishlist")
    assert not matches_text_pattern("")
    assert not matches_text_pattern(None)
