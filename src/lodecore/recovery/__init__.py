"""Error taxonomy, classification and retry for the acquisition engine."""

from .classifier import ErrorClass, classify_error, is_retryable
from .errors import (
    AccessDeniedError,
    AcquisitionError,
    BrowserUnavailableError,
    InvalidTargetError,
    MalformedResponseError,
    PageNotFoundError,
    StrategyMiss,
    TransientNetworkError,
)
from .retry import with_retry

__all__ = [
    "AccessDeniedError",
    "AcquisitionError",
    "BrowserUnavailableError",
    "ErrorClass",
    "InvalidTargetError",
    "MalformedResponseError",
    "PageNotFoundError",
    "StrategyMiss",
    "TransientNetworkError",
    "classify_error",
    "is_retryable",
    "with_retry",
]
