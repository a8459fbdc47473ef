"""
Text normalization for detection (whitespace collapse, case folding,
separator stripping for class/id matching).
"""

from __future__ import annotations

import re

_WHITESPACE = re.compile(r"\s+")
_SEPARATORS = re.compile(r"[\s\-_]+")


def normalize_whitespace(text: str | None) -> str:
    """Collapse runs of whitespace to one space and trim."""
    if not text:
        return ""
    return _WHITESPACE.sub(" ", str(text)).strip()


def normalize_label(text: str | None) -> str:
    """Lowercase and whitespace-collapsed; used for keyword and dedup comparisons."""
    return normalize_whitespace(text).lower()


def compact(text: str | None) -> str:
    """Lowercase with whitespace, '-' and '_' removed ("Add-To Cart" -> "addtocart")."""
    if not text:
        return ""
    return _SEPARATORS.sub("", str(text)).lower()
