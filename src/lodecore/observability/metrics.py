"""
Defines the Prometheus metrics exported by the acquisition engine.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from prometheus_client import REGISTRY as _PROM_REGISTRY
from prometheus_client import Counter as _OrigCounter
from prometheus_client import Gauge as _OrigGauge
from prometheus_client import Histogram as _OrigHistogram
from prometheus_client import start_http_server

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Duplicate-safe Prometheus metric wrappers
# ---------------------------------------------------------------------------
# Modules are re-imported during the test suite; reuse an already registered
# collector instead of failing with a duplicate timeseries error.


def _duplicate_safe_factory(metric_cls):
    """Return a factory that reuses an existing collector if already present."""

    def _factory(name: str, documentation: str, *args, **kwargs):  # type: ignore[override]
        existing = _PROM_REGISTRY._names_to_collectors.get(name)
        if existing is not None:
            return existing  # type: ignore[return-value]
        try:
            return metric_cls(name, documentation, *args, **kwargs)  # type: ignore[call-arg]
        except ValueError:
            return _PROM_REGISTRY._names_to_collectors[name]  # type: ignore[return-value]

    return _factory


Counter = _duplicate_safe_factory(_OrigCounter)  # type: ignore[assignment]
Gauge = _duplicate_safe_factory(_OrigGauge)  # type: ignore[assignment]
Histogram = _duplicate_safe_factory(_OrigHistogram)  # type: ignore[assignment]


def _create_metrics() -> Dict[str, Any]:
    return {
        "acquisitions_total": Counter(
            "lodecore_acquisitions_total",
            "Completed acquisitions by winning strategy and outcome",
            ["strategy", "outcome"],
        ),
        "strategy_attempts_total": Counter(
            "lodecore_strategy_attempts_total",
            "Individual strategy attempts by outcome (hit, miss, error)",
            ["strategy", "outcome"],
        ),
        "cache_lookups_total": Counter(
            "lodecore_cache_lookups_total",
            "Cache lookups by result (hit, miss, expired)",
            ["result"],
        ),
        "acquisitions_in_flight": Gauge(
            "lodecore_acquisitions_in_flight",
            "Number of acquisitions currently running",
        ),
        "rate_limiter_wait_seconds": Histogram(
            "lodecore_rate_limiter_wait_seconds",
            "Time spent waiting for a rate limiter token",
            buckets=[0.0, 0.01, 0.1, 0.5, 1.0, 5.0, 15.0, 60.0],
        ),
        "browser_sessions_open": Gauge(
            "lodecore_browser_sessions_open",
            "Number of browser sessions currently open",
        ),
        "acquisition_duration_seconds": Histogram(
            "lodecore_acquisition_duration_seconds",
            "Wall time of a full acquisition including fallbacks",
            buckets=[0.1, 0.5, 1.0, 2.0, 5.0, 10.0, 30.0, 60.0, 120.0],
        ),
    }


METRICS: Dict[str, Any] = _create_metrics()


def record_strategy_attempt(strategy: str, outcome: str) -> None:
    METRICS["strategy_attempts_total"].labels(strategy=strategy, outcome=outcome).inc()


def record_acquisition(strategy: Optional[str], succeeded: bool, duration: float) -> None:
    outcome = "success" if succeeded else "failure"
    METRICS["acquisitions_total"].labels(strategy=strategy or "none", outcome=outcome).inc()
    METRICS["acquisition_duration_seconds"].observe(duration)


def record_cache_lookup(result: str) -> None:
    METRICS["cache_lookups_total"].labels(result=result).inc()


_server_started = False


def start_metrics_server(port: Optional[int]) -> bool:
    """Expose metrics over HTTP once per process. Returns True if started."""
    global _server_started
    if port is None or _server_started:
        return False
    start_http_server(port)
    _server_started = True
    logger.info("Prometheus metrics server started on port %s", port)
    return True
