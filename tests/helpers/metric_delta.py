"""
Helpers for validating metric value changes during tests.
"""

from contextlib import contextmanager


def _value(metric) -> float:
    if not hasattr(metric, "_value"):
        raise ValueError(f"Metric {metric} doesn't have a _value attribute")
    return metric._value.get()


@contextmanager
def metric_delta(metric, expected_delta=1):
    """
    Assert that ``metric`` changes by exactly ``expected_delta`` inside the block.

    Usage:
        with metric_delta(METRICS["cache_lookups_total"].labels(result="hit")):
            await cache.get(url)
    """
    initial_value = _value(metric)
    yield
    actual_delta = _value(metric) - initial_value
    if actual_delta != expected_delta:
        raise AssertionError(
            f"Expected metric to change by {expected_delta}, "
            f"but it changed by {actual_delta} (from {initial_value} to {initial_value + actual_delta})"
        )


def get_histogram_count(histogram) -> float:
    """Current observation count of an unlabelled histogram."""
    for family in histogram.collect():
        for sample in family.samples:
            if sample.name.endswith("_count"):
                return sample.value
    return 0.0
