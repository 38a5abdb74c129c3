"""Network-facing primitives shared by every strategy."""

from .cache import AcquisitionCache, CacheEntry
from .rate_limiter import RateBudget, TokenBucketRateLimiter
from .rotation import ProxyRotator, RotatingPool, UserAgentRotator
from .urls import cache_key, canonicalize_url

__all__ = [
    "AcquisitionCache",
    "CacheEntry",
    "ProxyRotator",
    "RateBudget",
    "RotatingPool",
    "TokenBucketRateLimiter",
    "UserAgentRotator",
    "cache_key",
    "canonicalize_url",
]
