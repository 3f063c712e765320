"""Failure taxonomy for remote photo restoration.

Every failure raised by the restoration client or the timeout guard derives
from :class:`RestorationError`. The batch orchestrator is the only place that
turns these into user-facing messages.
"""

from typing import Optional


class RestorationError(Exception):
    """Base class for all restoration failures."""


class AuthError(RestorationError):
    """Missing or rejected API credential."""


class QuotaError(RestorationError):
    """Remote rate limit or quota exhausted."""


class NetworkError(RestorationError):
    """Connectivity problem reaching the remote API."""


class ContentBlockedError(RestorationError):
    """Remote safety policy refused the photo."""

    def __init__(self, message: str, finish_reason: Optional[str] = None) -> None:
        super().__init__(message)
        self.finish_reason = finish_reason


class EmptyResponseError(RestorationError):
    """Remote response had no candidate or no content parts."""


class ModelRefusedTextError(RestorationError):
    """Model answered with text instead of an image."""

    def __init__(self, text: str) -> None:
        super().__init__(f"Model returned text instead of an image: {text}")
        self.text = text


class RestorationTimeoutError(RestorationError, TimeoutError):
    """Restoration call did not settle before its deadline."""


class UnknownError(RestorationError):
    """Uncategorized failure; carries the original message."""

    def __init__(self, message: str, finish_reason: Optional[str] = None) -> None:
        super().__init__(message)
        self.finish_reason = finish_reason
