"""
Platform classification: URL + DOM markers -> platform bucket.

Markers (meta generator, script sources, body class) are gathered in one
in-page evaluation; classification itself is a pure function so it can be
tested without a browser.
"""

from __future__ import annotations

from dataclasses import dataclass

from playwright.async_api import Page

from dropcart.constants import (
    PLATFORM_BODY_CLASS_HINTS,
    PLATFORM_GENERATOR_HINTS,
    PLATFORM_SCRIPT_HINTS,
    PLATFORM_URL_HINTS,
    Platform,
)

PLATFORM_MARKERS_JS = """
() => {
  const meta = document.querySelector('meta[name="generator"]');
  const scripts = Array.from(document.querySelectorAll('script[src]')).map(s => s.getAttribute('src') || '');
  return {
    generator: meta ? (meta.getAttribute('content') || '') : '',
    scriptSources: scripts,
    bodyClass: document.body ? (document.body.className || '') : ''
  };
}
"""


@dataclass(frozen=True)
class PlatformMarkers:
    generator: str = ""
    script_sources: tuple[str, ...] = ()
    body_class: str = ""

    @classmethod
    def from_raw(cls, raw: dict | None) -> "PlatformMarkers":
        raw = raw or {}
        return cls(
            generator=str(raw.get("generator") or ""),
            script_sources=tuple(str(s) for s in raw.get("scriptSources") or ()),
            body_class=str(raw.get("bodyClass") or ""),
        )


def _first_hint(haystack: str, hints) -> Platform | None:
    lowered = haystack.lower()
    for needle, platform in hints:
        if needle in lowered:
            return platform
    return None


def classify_platform(url: str, markers: PlatformMarkers) -> Platform:
    """
    Return the platform bucket for a page (pure function for tests).

    Order, first match wins: URL domain, meta generator, script sources,
    body class, then "generic".
    """
    found = _first_hint(url or "", PLATFORM_URL_HINTS)
    if found:
        return found
    found = _first_hint(markers.generator, PLATFORM_GENERATOR_HINTS)
    if found:
        return found
    for src in markers.script_sources:
        found = _first_hint(src, PLATFORM_SCRIPT_HINTS)
        if found:
            return found
    found = _first_hint(markers.body_class, PLATFORM_BODY_CLASS_HINTS)
    if found:
        return found
    return "generic"


async def extract_platform_markers(page: Page) -> PlatformMarkers:
    raw = await page.evaluate(PLATFORM_MARKERS_JS)
    return PlatformMarkers.from_raw(raw)


async def detect_platform(page: Page) -> Platform:
    markers = await extract_platform_markers(page)
    return classify_platform(page.url, markers)
