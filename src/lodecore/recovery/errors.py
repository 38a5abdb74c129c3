"""
Exception hierarchy for acquisition failures.
"""

from __future__ import annotations

from typing import Optional


class AcquisitionError(Exception):
    """Base class for all errors raised inside the acquisition engine."""

    def __init__(self, message: str, *, url: Optional[str] = None, code: Optional[str] = None) -> None:
        super().__init__(message)
        self.url = url
        self.code = code


class TransientNetworkError(AcquisitionError):
    """Connection reset, timeout, DNS failure or similar. Retryable."""


class AccessDeniedError(AcquisitionError):
    """The source refused access (403-class response, bot block)."""

    def __init__(self, message: str, *, url: Optional[str] = None, status: Optional[int] = None) -> None:
        super().__init__(message, url=url, code=str(status) if status is not None else None)
        self.status = status


class InvalidTargetError(AcquisitionError):
    """The target cannot be acquired at all (malformed, blocked host)."""


class MalformedResponseError(AcquisitionError):
    """A response arrived but could not be parsed as the expected format."""


class PageNotFoundError(AcquisitionError):
    """Navigation landed on a "not found" page."""


class BrowserUnavailableError(AcquisitionError):
    """The browser process could not be started or crashed mid-attempt."""


class StrategyMiss(AcquisitionError):
    """A strategy ran cleanly but found nothing usable."""


# Errors that must never be retried in place.
TERMINAL_ERRORS = (
    AccessDeniedError,
    InvalidTargetError,
    MalformedResponseError,
    PageNotFoundError,
    BrowserUnavailableError,
    StrategyMiss,
)
