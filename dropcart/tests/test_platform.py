"""
Tests for platform classification: URL first, then generator meta, script
sources, body class, then generic.
"""

from __future__ import annotations

import pytest

from dropcart.detect.platform import PlatformMarkers, classify_platform, detect_platform
from dropcart.tests.fakes import FakePage


def test_popmart_domain_wins_over_markers():
    markers = PlatformMarkers(generator="WooCommerce 8.1")
    assert classify_platform("https://www.popmart.com/us/products/123", markers) == "popmart"


def test_shopify_in_url():
    assert classify_platform("https://store.myshopify.com/products/x", PlatformMarkers()) == "shopify"


def test_generator_meta():
    assert classify_platform("https://shop.example", PlatformMarkers(generator="WooCommerce 8.1")) == "woocommerce"
    assert classify_platform("https://shop.example", PlatformMarkers(generator="Shopify")) == "shopify"


def test_script_sources():
    shopify = PlatformMarkers(script_sources=("/js/app.js", "https://cdn.shopify.com/s/files/theme.js"))
    assert classify_platform("https://shop.example", shopify) == "shopify"
    magento = PlatformMarkers(script_sources=("/static/frontend/Magento/mage/requirejs.js",))
    assert classify_platform("https://shop.example", magento) == "magento"


def test_body_class():
    assert classify_platform("https://shop.example", PlatformMarkers(body_class="template-product woocommerce")) == "woocommerce"


def test_no_markers_is_generic():
    assert classify_platform("https://shop.example/p/1", PlatformMarkers()) == "generic"


def test_markers_from_raw_tolerates_missing_keys():
    markers = PlatformMarkers.from_raw({"generator": None})
    assert markers == PlatformMarkers()
    assert PlatformMarkers.from_raw(None) == PlatformMarkers()


@pytest.mark.asyncio
async def test_detect_platform_reads_page_markers():
    page = FakePage("https://shop.example/p/1", body_class="shopify-section")
    assert await detect_platform(page) == "shopify"
