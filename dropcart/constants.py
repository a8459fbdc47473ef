"""
Engine constants: platform selectors, keyword lists, product sub-selectors,
interaction timings, checkout/payment selectors.

Selector lists are plain CSS: they run through `document.querySelectorAll`
inside the page, so Playwright-only pseudo classes are not allowed here.
"""

from __future__ import annotations

from typing import Literal

Platform = Literal["generic", "shopify", "woocommerce", "magento", "popmart"]
Viewport = Literal["desktop", "mobile"]

VIEWPORT_CONFIGS = {
    "desktop": {"width": 1920, "height": 1080},
    "mobile": {"width": 375, "height": 667},
}

# --- Platform classification (first match wins, in this order) ---

# URL substring -> platform
PLATFORM_URL_HINTS: tuple[tuple[str, Platform], ...] = (
    ("popmart.com", "popmart"),
    ("shopify", "shopify"),
)
# <meta name="generator"> content substring -> platform
PLATFORM_GENERATOR_HINTS: tuple[tuple[str, Platform], ...] = (
    ("woocommerce", "woocommerce"),
    ("shopify", "shopify"),
)
# <script src> substring -> platform
PLATFORM_SCRIPT_HINTS: tuple[tuple[str, Platform], ...] = (
    ("cdn.shopify.com", "shopify"),
    ("mage", "magento"),
)
# body class substring -> platform
PLATFORM_BODY_CLASS_HINTS: tuple[tuple[str, Platform], ...] = (
    ("shopify", "shopify"),
    ("woocommerce", "woocommerce"),
)

# --- Selector catalog ---

GENERIC_SELECTORS: tuple[str, ...] = (
    'button[class*="add-to-cart"]',
    'button[class*="addtocart"]',
    'button[class*="buy-now"]',
    'button[class*="purchase"]',
    'input[value*="Add to Cart"]',
    'button[data-action*="cart"]',
    'button[data-testid*="cart"]',
)

PLATFORM_SELECTORS: dict[str, tuple[str, ...]] = {
    "shopify": (
        'button[name="add"]',
        "button.btn-product-form",
        "input.btn-product-form",
        'button[data-action="add-to-cart"]',
    ),
    "woocommerce": (
        "button.single_add_to_cart_button",
        "button.product_type_simple",
    ),
    "magento": (
        "button#product-addtocart-button",
        "button.action.primary.tocart",
    ),
    "popmart": (
        'button[class*="add-to-cart"]',
        'button[class*="buy-button"]',
        ".product-buy-button",
        ".add-cart-btn",
    ),
}

# Elements scanned by the text-pattern pass and watched by the mutation observer.
INTERACTIVE_SELECTOR = 'button, input[type="button"], input[type="submit"], a[role="button"]'
TEXT_BASED_SELECTOR_LABEL = "text-based"

# --- Keyword validity ---

CART_KEYWORDS: tuple[str, ...] = (
    "add to cart",
    "add to bag",
    "buy now",
    "purchase",
    "order now",
    "add cart",
)
EXCLUDE_KEYWORDS: tuple[str, ...] = (
    "remove",
    "delete",
    "cancel",
    "close",
    "back",
    "continue shopping",
)
TEXT_PATTERNS: tuple[str, ...] = (
    r"add to cart",
    r"add to bag",
    r"buy now",
    r"purchase",
    r"order now",
)

# --- Product metadata ---

PRODUCT_CONTAINER_SELECTOR = '.product, .item, [class*="product"], [data-product]'
PRODUCT_NAME_SELECTORS: tuple[str, ...] = (
    "h1",
    "h2",
    "h3",
    ".product-title",
    ".product-name",
    '[class*="title"]',
    '[class*="name"]',
    ".item-title",
)
PRODUCT_PRICE_SELECTORS: tuple[str, ...] = (
    ".price",
    '[class*="price"]',
    ".cost",
    '[class*="cost"]',
    ".amount",
    "[data-price]",
    ".money",
)
PRODUCT_SKU_SELECTOR = "[data-sku], [data-product-id], [data-variant-id]"
CURRENCY_SYMBOLS = "$£€¥₹"

# --- Deduplication ---

POSITION_TOLERANCE_PX = 10
BUTTON_ID_SEGMENT_LENGTH = 20

# --- Interaction timings (ms) ---

PRE_SCROLL_DELAY_MS = 200
POST_SCROLL_DELAY_MS = 500
SUCCESS_CHECK_DELAY_MS = 1000
HIGHLIGHT_DURATION_MS = 3000
HIGHLIGHT_OUTLINE = "3px solid #ff6b6b"

SUCCESS_INDICATOR_SELECTORS: tuple[str, ...] = (
    ".cart-notification",
    ".add-to-cart-success",
    ".product-added",
    '[class*="success"]',
    ".notification",
    ".alert-success",
)

# --- Auto-checkout pipeline (ms) ---

CHECKOUT_NAV_DELAY_MS = 2000
PAYMENT_FILL_DELAY_MS = 3000
SUBMIT_DELAY_MS = 1000

CHECKOUT_SELECTORS: tuple[str, ...] = (
    'a[href*="checkout"]',
    'button[name="checkout"]',
    'input[name="checkout"]',
    'button[class*="checkout"]',
    '[data-testid*="checkout"]',
    'a[href*="/cart"]',
    '[class*="cart-link"]',
    ".cart-icon",
)

SUBMIT_SELECTORS: tuple[str, ...] = (
    'button[class*="place-order"]',
    "button#place_order",
    'button[class*="complete-order"]',
    'button[class*="pay-now"]',
    'button[data-testid*="submit"]',
    'button[type="submit"]',
    'input[type="submit"]',
)

# Payment field -> attribute substrings (name/id/placeholder/autocomplete/aria-label).
# Checked in this order; the first field whose hint matches wins.
PAYMENT_FIELD_HINTS: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("email", ("email", "e-mail")),
    ("card_number", ("cardnumber", "card-number", "card_number", "cc-number", "ccnumber", "card number")),
    ("expiry", ("expiry", "expiration", "exp-date", "expdate", "cc-exp", "mm/yy", "mm / yy")),
    ("cvv", ("cvv", "cvc", "csc", "security code", "securitycode", "cc-csc")),
    ("first_name", ("firstname", "first_name", "first-name", "first name", "given-name", "fname")),
    ("last_name", ("lastname", "last_name", "last-name", "last name", "family-name", "lname", "surname")),
    ("zip", ("zip", "postal", "postcode")),
    ("city", ("city", "town", "address-level2")),
    ("address", ("address1", "address-line1", "street", "address")),
)

FORM_FIELD_SELECTOR = 'input:not([type="hidden"]):not([type="checkbox"]):not([type="radio"]), textarea'

# --- Message contract ---

GET_CART_BUTTONS = "GET_CART_BUTTONS"
EXECUTE_ADD_TO_CART = "EXECUTE_ADD_TO_CART"
HIGHLIGHT_BUTTON = "HIGHLIGHT_BUTTON"
RESCAN_BUTTONS = "RESCAN_BUTTONS"
START_AUTO_CHECKOUT = "START_AUTO_CHECKOUT"
STOP_AUTO_CHECKOUT = "STOP_AUTO_CHECKOUT"

MESSAGE_TYPES: tuple[str, ...] = (
    GET_CART_BUTTONS,
    EXECUTE_ADD_TO_CART,
    HIGHLIGHT_BUTTON,
    RESCAN_BUTTONS,
    START_AUTO_CHECKOUT,
    STOP_AUTO_CHECKOUT,
)
