import pytest

from trainsim.data_cache import DataCache
from trainsim.testing import build_cache


@pytest.fixture
def cache() -> DataCache:
    # 日曜の 1:40 / 1:50 / 2:00 → 週内分 100 / 110 / 120
    return build_cache()
