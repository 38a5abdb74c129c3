from .fakes import FakePlaywright, FakeStrategy, make_fake_page
from .metric_delta import get_histogram_count, metric_delta

__all__ = ["FakePlaywright", "FakeStrategy", "get_histogram_count", "make_fake_page", "metric_delta"]
