"""
Strategy cascade: ordered, short-circuiting acquisition for one target.
"""

from __future__ import annotations

import asyncio
import time
from typing import Any, Dict, List, Optional, Sequence, Tuple

import structlog

from lodecore.observability.metrics import METRICS, record_acquisition, record_strategy_attempt
from lodecore.protocols import (
    STRATEGY_ORDER,
    AcquisitionResult,
    AcquisitionStrategy,
    AcquisitionTarget,
    CacheProtocol,
    StrategyKind,
    is_empty_payload,
)
from lodecore.recovery.errors import InvalidTargetError, StrategyMiss
from lodecore.security.validation import TargetValidator

logger = structlog.get_logger(__name__)


class StrategyCascade:
    """
    Runs strategies in fixed priority order until one returns data.

    The cache is consulted first and a hit skips every strategy. A strategy
    that raises or returns nothing is a miss: the reason is recorded and the
    next strategy runs. Once a strategy returns data no later strategy is
    invoked. :meth:`acquire` never raises for an acquisition failure; it
    returns a failed result explaining every miss.
    """

    def __init__(
        self,
        strategies: Sequence[AcquisitionStrategy],
        cache: Optional[CacheProtocol] = None,
        validator: Optional[TargetValidator] = None,
    ) -> None:
        kinds = [strategy.kind for strategy in strategies]
        if len(set(kinds)) != len(kinds):
            raise ValueError(f"Duplicate strategy kinds: {[k.value for k in kinds]}")

        self.strategies: List[AcquisitionStrategy] = sorted(strategies, key=lambda s: STRATEGY_ORDER.index(s.kind))
        self.cache = cache
        self.validator = validator or TargetValidator()
        self.logger = logger.bind(component="StrategyCascade")

        self._metrics: Dict[str, Dict[str, float]] = {
            kind.value: {"attempts": 0, "successes": 0, "errors": 0, "total_time": 0.0} for kind in STRATEGY_ORDER
        }
        self.cache_hits = 0

    async def acquire(self, target: AcquisitionTarget | str) -> AcquisitionResult:
        target = AcquisitionTarget.coerce(target)
        start_time = time.monotonic()
        METRICS["acquisitions_in_flight"].inc()
        try:
            with structlog.contextvars.bound_contextvars(target_url=target.url):
                result = await self._run(target)
        finally:
            METRICS["acquisitions_in_flight"].dec()

        record_acquisition(
            result.strategy_used.value if result.strategy_used else None,
            result.succeeded,
            time.monotonic() - start_time,
        )
        return result

    async def _run(self, target: AcquisitionTarget) -> AcquisitionResult:
        try:
            self.validator.validate_url(target.url)
        except InvalidTargetError as e:
            self.logger.warning("Rejected invalid target", url=target.url, error=str(e))
            return AcquisitionResult.failure(target, f"invalid target: {e}")

        cached = await self._cache_get(target)
        if cached is not None:
            self.cache_hits += 1
            strategy, payload = cached
            self.logger.debug("Cache hit, skipping strategies", url=target.url, strategy=strategy.value)
            return AcquisitionResult.success(target, payload, strategy, from_cache=True)

        attempts: List[Tuple[str, str]] = []
        reasons: List[str] = []

        for strategy in self.strategies:
            kind = strategy.kind.value
            stats = self._metrics[kind]
            stats["attempts"] += 1
            strategy_start = time.monotonic()

            try:
                payload = await strategy.attempt(target)
            except asyncio.CancelledError:
                raise
            except StrategyMiss as e:
                stats["total_time"] += time.monotonic() - strategy_start
                record_strategy_attempt(kind, "miss")
                attempts.append((kind, "miss"))
                reasons.append(f"{kind}: no data ({e})")
                self.logger.debug("Strategy found no data", url=target.url, strategy=kind, reason=str(e))
                continue
            except Exception as e:
                stats["errors"] += 1
                stats["total_time"] += time.monotonic() - strategy_start
                record_strategy_attempt(kind, "error")
                attempts.append((kind, "error"))
                reasons.append(f"{kind}: {type(e).__name__}: {e}")
                self.logger.info("Strategy failed, falling back", url=target.url, strategy=kind, error=str(e))
                continue

            stats["total_time"] += time.monotonic() - strategy_start
            if is_empty_payload(payload):
                record_strategy_attempt(kind, "miss")
                attempts.append((kind, "miss"))
                reasons.append(f"{kind}: no data")
                self.logger.debug("Strategy returned no data", url=target.url, strategy=kind)
                continue

            stats["successes"] += 1
            record_strategy_attempt(kind, "hit")
            attempts.append((kind, "hit"))
            self.logger.info("Acquired target", url=target.url, strategy=kind)

            await self._cache_set(target, strategy.kind, payload)
            return AcquisitionResult.success(target, payload, strategy.kind, attempts=tuple(attempts))

        explanation = "all strategies failed: " + "; ".join(reasons) if reasons else "no strategies configured"
        self.logger.warning("All strategies failed", url=target.url, attempts=len(attempts))
        return AcquisitionResult.failure(target, explanation, attempts=tuple(attempts))

    async def _cache_get(self, target: AcquisitionTarget) -> Optional[Tuple[StrategyKind, Any]]:
        if self.cache is None:
            return None
        try:
            cached = await self.cache.get(target)
        except Exception as e:
            self.logger.warning("Cache read failed, continuing without cache", url=target.url, error=str(e))
            return None
        if not isinstance(cached, dict) or "strategy" not in cached or "payload" not in cached:
            return None
        try:
            strategy = StrategyKind(cached["strategy"])
        except ValueError:
            self.logger.warning("Ignoring cache entry with unknown strategy", url=target.url, strategy=cached["strategy"])
            return None
        return strategy, cached["payload"]

    async def _cache_set(self, target: AcquisitionTarget, kind: StrategyKind, payload: Any) -> None:
        if self.cache is None:
            return
        try:
            await self.cache.set(target, {"strategy": kind.value, "payload": payload})
        except Exception as e:
            self.logger.warning("Cache write failed", url=target.url, error=str(e))

    def get_metrics(self) -> Dict[str, Dict[str, float]]:
        return {kind: dict(values) for kind, values in self._metrics.items()}
