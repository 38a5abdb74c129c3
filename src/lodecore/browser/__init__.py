"""Browser automation: shared process, isolated sessions, waits and challenges."""

from .challenge import detect_challenge, handle_challenge
from .manager import BrowserManager
from .navigation import navigate_with_retry
from .session import BrowserSession, SessionFactory
from .waits import WaitOutcome, first_of, wait_for_content

__all__ = [
    "BrowserManager",
    "BrowserSession",
    "SessionFactory",
    "WaitOutcome",
    "detect_challenge",
    "first_of",
    "handle_challenge",
    "navigate_with_retry",
    "wait_for_content",
]
