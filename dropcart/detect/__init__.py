"""
Cart-control detection for a live Playwright page.

Platform classification, selector catalog, candidate extraction, keyword
rules, deduplication and the scan pass that ties them together.

Public API: re-exports the symbols used by the engine, the drop-alert job
and tests so that `from dropcart.detect import ...` stays valid.
"""

from __future__ import annotations

from dropcart.detect.catalog import get_selectors_for_platform
from dropcart.detect.dedup import detection_changed, is_duplicate, merge_records
from dropcart.detect.extract import (
    CANDIDATES_JS,
    LOCATOR_HELPERS_JS,
    build_button_record,
    control_label,
    extract_product_info,
    generate_button_id,
    is_laid_out,
    query_candidates,
)
from dropcart.detect.keywords import (
    has_cart_keyword,
    has_exclude_keyword,
    is_valid_cart_control,
    matches_text_pattern,
)
from dropcart.detect.platform import (
    PLATFORM_MARKERS_JS,
    PlatformMarkers,
    classify_platform,
    detect_platform,
    extract_platform_markers,
)
from dropcart.detect.scanner import ScanResult, epoch_ms, scan_for_cart_buttons
from dropcart.detect.text import compact, normalize_label, normalize_whitespace

__all__ = [
    # platform
    "PLATFORM_MARKERS_JS",
    "PlatformMarkers",
    "classify_platform",
    "detect_platform",
    "extract_platform_markers",
    # catalog
    "get_selectors_for_platform",
    # keywords
    "has_cart_keyword",
    "has_exclude_keyword",
    "is_valid_cart_control",
    "matches_text_pattern",
    # extract
    "CANDIDATES_JS",
    "LOCATOR_HELPERS_JS",
    "build_button_record",
    "control_label",
    "extract_product_info",
    "generate_button_id",
    "is_laid_out",
    "query_candidates",
    # dedup
    "detection_changed",
    "is_duplicate",
    "merge_records",
    # scanner
    "ScanResult",
    "epoch_ms",
    "scan_for_cart_buttons",
    # text
    "compact",
    "normalize_label",
    "normalize_whitespace",
]
