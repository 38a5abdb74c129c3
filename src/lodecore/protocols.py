"""
Shared data types and protocols for the LodeCore acquisition engine.

Every component (strategies, cascade, batch processor, adapters) talks in
terms of the types defined here so that the pieces stay independently
testable and composable.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Protocol, Tuple, runtime_checkable


class StrategyKind(str, Enum):
    """Closed set of acquisition techniques, in cascade priority order."""

    FEED = "feed"
    API = "api"
    FETCH = "fetch"
    BROWSER = "browser"


# Fixed evaluation order of the cascade.
STRATEGY_ORDER: Tuple[StrategyKind, ...] = (
    StrategyKind.FEED,
    StrategyKind.API,
    StrategyKind.FETCH,
    StrategyKind.BROWSER,
)


class BackoffKind(str, Enum):
    """Delay growth between retry attempts."""

    LINEAR = "linear"
    EXPONENTIAL = "exponential"


@dataclass(frozen=True)
class RetryPolicy:
    """Retry configuration value. Never mutated at runtime."""

    max_attempts: int = 3
    base_delay: float = 1.0
    backoff: BackoffKind = BackoffKind.EXPONENTIAL

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.base_delay < 0:
            raise ValueError("base_delay must be non-negative")

    def delay_for(self, attempt: int) -> float:
        """Delay to wait after the given (1-based) failed attempt."""
        if self.backoff is BackoffKind.LINEAR:
            return self.base_delay * attempt
        return self.base_delay * (2 ** (attempt - 1))


@dataclass(frozen=True)
class TargetHints:
    """Optional per-source hints. Selectors and feed lists are configuration data."""

    source: Optional[str] = None
    feed_urls: Tuple[str, ...] = ()
    item_selector: Optional[str] = None
    title_selector: Optional[str] = None
    content_selector: Optional[str] = None
    link_selector: Optional[str] = None
    blocks_plain_http: bool = False
    auto_discover: bool = False

    @property
    def has_item_selectors(self) -> bool:
        return bool(self.item_selector and self.title_selector)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TargetHints":
        feeds = data.get("feed_urls") or ()
        return cls(
            source=data.get("source"),
            feed_urls=tuple(feeds),
            item_selector=data.get("item_selector") or data.get("selector"),
            title_selector=data.get("title_selector"),
            content_selector=data.get("content_selector"),
            link_selector=data.get("link_selector"),
            blocks_plain_http=bool(data.get("blocks_plain_http", False)),
            auto_discover=bool(data.get("auto_discover", False)),
        )


@dataclass(frozen=True)
class AcquisitionTarget:
    """An addressable resource plus optional hints. Immutable once submitted."""

    url: str
    hints: TargetHints = field(default_factory=TargetHints)

    @classmethod
    def coerce(cls, value: "AcquisitionTarget | str") -> "AcquisitionTarget":
        if isinstance(value, AcquisitionTarget):
            return value
        return cls(url=str(value))

    @property
    def source(self) -> str:
        return self.hints.source or self.url


@dataclass(frozen=True)
class AcquisitionResult:
    """Outcome of one cascade run for one target."""

    target: AcquisitionTarget
    succeeded: bool
    payload: Optional[Any] = None
    strategy_used: Optional[StrategyKind] = None
    error: Optional[str] = None
    from_cache: bool = False
    attempts: Tuple[Tuple[str, str], ...] = ()
    completed_at: float = field(default_factory=time.time)

    @classmethod
    def success(
        cls,
        target: AcquisitionTarget,
        payload: Any,
        strategy: StrategyKind,
        *,
        from_cache: bool = False,
        attempts: Tuple[Tuple[str, str], ...] = (),
    ) -> "AcquisitionResult":
        return cls(
            target=target,
            succeeded=True,
            payload=payload,
            strategy_used=strategy,
            from_cache=from_cache,
            attempts=attempts,
        )

    @classmethod
    def failure(
        cls,
        target: AcquisitionTarget,
        error: str,
        *,
        attempts: Tuple[Tuple[str, str], ...] = (),
    ) -> "AcquisitionResult":
        return cls(target=target, succeeded=False, error=error or "acquisition failed", attempts=attempts)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "url": self.target.url,
            "source": self.target.hints.source,
            "succeeded": self.succeeded,
            "strategy_used": self.strategy_used.value if self.strategy_used else None,
            "from_cache": self.from_cache,
            "error": self.error,
            "attempts": [{"strategy": kind, "outcome": outcome} for kind, outcome in self.attempts],
            "payload": self.payload,
        }


@runtime_checkable
class AcquisitionStrategy(Protocol):
    """One acquisition technique, tagged with its kind."""

    kind: StrategyKind

    async def attempt(self, target: AcquisitionTarget) -> Optional[Any]:
        """Return non-empty data, ``None`` for "no data", or raise on failure."""
        ...


@runtime_checkable
class CacheProtocol(Protocol):
    """Short-TTL payload store keyed by a canonical target identifier."""

    async def get(self, target: AcquisitionTarget | str) -> Optional[Any]:
        ...

    async def set(self, target: AcquisitionTarget | str, payload: Any) -> None:
        ...

    async def clear(self) -> None:
        ...


def is_empty_payload(payload: Any) -> bool:
    """A strategy result counts as "no data" when it is None or an empty container."""
    if payload is None:
        return True
    if isinstance(payload, (list, tuple, dict, set, str, bytes)):
        return len(payload) == 0
    return False
