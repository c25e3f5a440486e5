import pytest
from django.core.cache import cache


@pytest.fixture(autouse=True)
def clear_throttle_cache():
    """Throttle counters live in the cache; start every test with a fresh one."""
    cache.clear()
    yield
    cache.clear()
