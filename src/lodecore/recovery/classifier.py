"""
Error classification: retryable vs terminal.

Two independent signals decide that an error is transient: a known
network fault code, or a message containing one of a few tell-tale
substrings. Explicit access/target failures are terminal regardless of
what their message says.
"""

from __future__ import annotations

import asyncio
import errno
import socket
from enum import Enum
from typing import Optional

import aiohttp
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from .errors import TERMINAL_ERRORS, TransientNetworkError


class ErrorClass(str, Enum):
    RETRYABLE = "retryable"
    TERMINAL = "terminal"


RETRYABLE_CODES = frozenset(
    {
        "ETIMEDOUT",
        "ECONNRESET",
        "ENOTFOUND",
        "ECONNREFUSED",
        "EHOSTUNREACH",
        "EPIPE",
        "EAI_AGAIN",
        "ENETCHANGED",
        "ENETRESET",
        "ENETUNREACH",
    }
)

RETRYABLE_MESSAGES = ("timeout", "timed out", "network", "navigation", "aborted")

_ERRNO_CODES = {
    errno.ETIMEDOUT: "ETIMEDOUT",
    errno.ECONNRESET: "ECONNRESET",
    errno.ECONNREFUSED: "ECONNREFUSED",
    errno.EHOSTUNREACH: "EHOSTUNREACH",
    errno.EPIPE: "EPIPE",
    errno.ENETRESET: "ENETRESET",
    errno.ENETUNREACH: "ENETUNREACH",
}

# HTTP statuses that indicate the source is overloaded rather than refusing us.
RETRYABLE_STATUSES = frozenset({500, 502, 503, 504})


def error_code(error: BaseException) -> Optional[str]:
    """Best-effort symbolic fault code for an exception."""
    code = getattr(error, "code", None)
    if isinstance(code, str) and code:
        return code.upper()

    if isinstance(error, socket.gaierror):
        if error.errno == socket.EAI_AGAIN:
            return "EAI_AGAIN"
        return "ENOTFOUND"

    err_no = getattr(error, "errno", None)
    if isinstance(err_no, int) and err_no in _ERRNO_CODES:
        return _ERRNO_CODES[err_no]

    if isinstance(error, (asyncio.TimeoutError, TimeoutError)):
        return "ETIMEDOUT"
    if isinstance(error, ConnectionResetError):
        return "ECONNRESET"
    return None


def classify_error(error: BaseException) -> ErrorClass:
    """Map a transport or automation error to retryable or terminal."""
    if isinstance(error, TERMINAL_ERRORS):
        return ErrorClass.TERMINAL

    if isinstance(error, TransientNetworkError):
        return ErrorClass.RETRYABLE

    if isinstance(error, aiohttp.ClientResponseError):
        if error.status in RETRYABLE_STATUSES:
            return ErrorClass.RETRYABLE
        return ErrorClass.TERMINAL

    if isinstance(error, (aiohttp.ServerTimeoutError, aiohttp.ClientConnectionError)):
        return ErrorClass.RETRYABLE

    if isinstance(error, PlaywrightTimeoutError):
        return ErrorClass.RETRYABLE

    code = error_code(error)
    if code and code in RETRYABLE_CODES:
        return ErrorClass.RETRYABLE

    message = str(error).lower()
    if message and any(marker in message for marker in RETRYABLE_MESSAGES):
        return ErrorClass.RETRYABLE

    return ErrorClass.TERMINAL


def is_retryable(error: BaseException) -> bool:
    return classify_error(error) is ErrorClass.RETRYABLE
