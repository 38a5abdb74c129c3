"""
LodeCore - multi-strategy web acquisition engine.
"""

from __future__ import annotations

__version__ = "0.1.0"

from .config import Config
from .engine import AcquisitionEngine
from .protocols import AcquisitionResult, AcquisitionTarget, RetryPolicy, StrategyKind, TargetHints

__all__ = [
    "__version__",
    "AcquisitionEngine",
    "AcquisitionResult",
    "AcquisitionTarget",
    "Config",
    "RetryPolicy",
    "StrategyKind",
    "TargetHints",
]
