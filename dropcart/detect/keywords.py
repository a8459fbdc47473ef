"""
Cart-control keyword rules: keyword validity, exclusions, text-pattern pass.

Deterministic and minimal. A control is valid when its label, class or id
carries a cart keyword and none of them carries an exclusion keyword.
"""

from __future__ import annotations

import re

from dropcart.constants import CART_KEYWORDS, EXCLUDE_KEYWORDS, TEXT_PATTERNS
from dropcart.detect.text import compact, normalize_label

TEXT_PATTERN_RES = tuple(re.compile(p, re.I) for p in TEXT_PATTERNS)


def _mentions(keyword: str, label: str, class_name: str, element_id: str) -> bool:
    squeezed = compact(keyword)
    return keyword in label or squeezed in class_name or squeezed in element_id


def has_cart_keyword(label: str | None, class_name: str | None = None, element_id: str | None = None) -> bool:
    norm_label = normalize_label(label)
    norm_class = compact(class_name)
    norm_id = compact(element_id)
    return any(_mentions(kw, norm_label, norm_class, norm_id) for kw in CART_KEYWORDS)


def has_exclude_keyword(label: str | None, class_name: str | None = None, element_id: str | None = None) -> bool:
    norm_label = normalize_label(label)
    norm_class = compact(class_name)
    norm_id = compact(element_id)
    return any(_mentions(kw, norm_label, norm_class, norm_id) for kw in EXCLUDE_KEYWORDS)


def is_valid_cart_control(label: str | None, class_name: str | None = None, element_id: str | None = None) -> bool:
    """
    True if label/class/id name a cart action and nothing names an excluded one.

    Case-insensitive. Labels are whitespace-collapsed; class and id are
    compared with whitespace, '-' and '_' removed so `add-to-cart` and
    `addToCart` both match "add to cart".
    """
    return has_cart_keyword(label, class_name, element_id) and not has_exclude_keyword(
        label, class_name, element_id
    )


def matches_text_pattern(text: str | None) -> bool:
    """True if visible text matches one of the text-pattern pass regexes."""
    if not text:
        return False
    return any(p.search(text) for p in TEXT_PATTERN_RES)
