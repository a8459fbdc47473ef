"""
dropcart: add-to-cart detection and auto-checkout engine for Playwright pages.

One `CartEngine` per page context (see dropcart.engine). Collaborators
(settings, payment profile, message relay) are injected; the Redis-backed
implementation lives in dropcart.bridge and shared.store.
"""
