"""Strategy cascade, batch processing and the engine facade."""

from .batch import BatchProcessor
from .cascade import StrategyCascade
from .engine import AcquisitionEngine

__all__ = ["AcquisitionEngine", "BatchProcessor", "StrategyCascade"]
