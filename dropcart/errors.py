"""
Engine error taxonomy.

Every error is recovered at the nearest step boundary; none of them stops
the engine or the page.
"""

from __future__ import annotations


class DropcartError(Exception):
    """Base class for engine errors."""


class SelectorError(DropcartError):
    """A query pattern was rejected by the document."""

    def __init__(self, selector: str, reason: str = ""):
        self.selector = selector
        self.reason = reason
        super().__init__(f"Invalid selector {selector!r}: {reason}" if reason else f"Invalid selector {selector!r}")


class NotFoundError(DropcartError):
    """Target element could not be resolved at action time."""

    def __init__(self, message: str = "Button not found"):
        super().__init__(message)


class DisabledOrHiddenError(DropcartError):
    """Target element exists but is disabled or has no visible ancestor chain."""

    def __init__(self, message: str = "Button is disabled or hidden"):
        super().__init__(message)


class NoResponseError(DropcartError):
    """A collaborator did not answer within its timeout."""


class PipelineCancelled(DropcartError):
    """Raised at a step boundary once the pipeline's cancellation token is tripped."""
