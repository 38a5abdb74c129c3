"""The closed set of acquisition strategies, cheapest first."""

from .api import ApiProbeStrategy
from .base import BaseStrategy
from .browser import BrowserStrategy
from .feed import FeedStrategy, normalize_entries
from .fetch import FetchStrategy

__all__ = [
    "ApiProbeStrategy",
    "BaseStrategy",
    "BrowserStrategy",
    "FeedStrategy",
    "FetchStrategy",
    "normalize_entries",
]
