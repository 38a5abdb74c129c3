from .logging import configure_logging
from .metrics import METRICS, record_acquisition, record_cache_lookup, record_strategy_attempt, start_metrics_server

__all__ = [
    "METRICS",
    "configure_logging",
    "record_acquisition",
    "record_cache_lookup",
    "record_strategy_attempt",
    "start_metrics_server",
]
