"""
Common base for acquisition strategies.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Optional

import structlog

from lodecore.protocols import AcquisitionTarget, StrategyKind
from lodecore.recovery.errors import StrategyMiss

logger = structlog.get_logger(__name__)


class BaseStrategy(ABC):
    """
    One acquisition technique.

    ``attempt`` returns non-empty data, ``None`` when the technique found
    nothing (or does not apply to the target), or raises. ``run`` may raise
    :class:`StrategyMiss` to report why it found nothing.
    """

    kind: StrategyKind

    def __init__(self, *, enabled: bool = True) -> None:
        self.enabled = enabled
        self.logger = logger.bind(strategy=self.kind.value)

    def applies_to(self, target: AcquisitionTarget) -> bool:
        return self.enabled

    async def attempt(self, target: AcquisitionTarget) -> Optional[Any]:
        if not self.applies_to(target):
            self.logger.debug("Strategy skipped for target", url=target.url)
            return None
        try:
            return await self.run(target)
        except StrategyMiss as e:
            self.logger.debug("Strategy found no data", url=target.url, reason=str(e))
            return None

    @abstractmethod
    async def run(self, target: AcquisitionTarget) -> Optional[Any]:
        """Perform the acquisition."""
