"""
Deduplication of button records and change detection between scan passes.
"""

from __future__ import annotations

from typing import Iterable

from dropcart.constants import POSITION_TOLERANCE_PX
from dropcart.detect.text import normalize_label
from dropcart.models import ButtonRecord, DetectionSet


def is_duplicate(a: ButtonRecord, b: ButtonRecord, tolerance: float = POSITION_TOLERANCE_PX) -> bool:
    """Same normalized text and both position deltas under the tolerance."""
    if normalize_label(a.text_label) != normalize_label(b.text_label):
        return False
    return (
        abs(a.bounding_box.x - b.bounding_box.x) < tolerance
        and abs(a.bounding_box.y - b.bounding_box.y) < tolerance
    )


def merge_records(records: Iterable[ButtonRecord]) -> list[ButtonRecord]:
    """
    Collapse near-duplicates, keeping the first-encountered record.

    Input order is selector precedence (platform, generic, text-based), so
    the surviving selector_used is the most specific one that matched.
    """
    kept: list[ButtonRecord] = []
    for record in records:
        if any(is_duplicate(record, existing) for existing in kept):
            continue
        kept.append(record)
    return kept


def detection_changed(previous: DetectionSet | None, current: DetectionSet) -> bool:
    """True when the id sequence differs (length or order). No previous set counts as empty."""
    if previous is None:
        return len(current) > 0
    return not current.same_as(previous)
