"""
Browser context creation for engine pages (viewport, UA, timezone).
"""

from __future__ import annotations

from playwright.async_api import Browser, BrowserContext

from dropcart.constants import VIEWPORT_CONFIGS, Viewport

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
    "AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/120.0.0.0 Safari/537.36"
)

MOBILE_USER_AGENT = (
    "Mozilla/5.0 (iPhone; CPU iPhone OS 17_0 like Mac OS X) "
    "AppleWebKit/605.1.15 (KHTML, like Gecko) "
    "Version/17.0 Mobile/15E148 Safari/604.1"
)


def context_options(viewport: Viewport) -> dict:
    """Keyword arguments for `browser.new_context` for a viewport name."""
    config = VIEWPORT_CONFIGS.get(viewport) or VIEWPORT_CONFIGS["desktop"]
    options = {
        "viewport": {"width": config["width"], "height": config["height"]},
        "user_agent": DEFAULT_USER_AGENT,
        "timezone_id": "America/New_York",
        "locale": "en-US",
    }
    if viewport == "mobile":
        options.update({"user_agent": MOBILE_USER_AGENT, "is_mobile": True, "has_touch": True})
    return options


async def create_browser_context(browser: Browser, viewport: Viewport) -> BrowserContext:
    """Create a browser context with a stable UA, viewport and timezone."""
    return await browser.new_context(**context_options(viewport))
