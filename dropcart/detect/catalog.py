"""
Selector catalog: ordered candidate query patterns per platform bucket.
"""

from __future__ import annotations

from dropcart.constants import GENERIC_SELECTORS, PLATFORM_SELECTORS


def get_selectors_for_platform(platform: str) -> list[str]:
    """Platform-specific patterns first, generic patterns always appended."""
    return [*PLATFORM_SELECTORS.get(platform, ()), *GENERIC_SELECTORS]
