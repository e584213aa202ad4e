"""
Shared fixtures: a throwaway source directory with real images, a cache
directory, and an optimizer wired into the app with a counting pipeline.
"""

import threading

import pytest
from fastapi.testclient import TestClient
from PIL import Image

from imgopt.api.optimize import get_optimizer
from imgopt.core import cache_metrics
from imgopt.core.cache_store import CacheStore
from imgopt.core.transform import transform
from imgopt.main import app
from imgopt.services.optimizer import ImageOptimizer


class CountingPipeline:
    """Wraps the real transform and counts invocations."""

    def __init__(self, delay: float = 0.0):
        self.calls = 0
        self.delay = delay
        self.error = None
        self._lock = threading.Lock()

    def __call__(self, *args, **kwargs):
        with self._lock:
            self.calls += 1
        if self.delay:
            threading.Event().wait(self.delay)
        if self.error is not None:
            raise self.error
        return transform(*args, **kwargs)


@pytest.fixture
def source_dir(tmp_path):
    root = tmp_path / "public"
    root.mkdir()
    Image.new("RGB", (400, 300), (200, 30, 30)).save(root / "photo.jpg", "JPEG")
    Image.new("RGBA", (64, 64), (0, 128, 255, 120)).save(root / "logo.png", "PNG")
    (root / "products").mkdir()
    Image.new("RGB", (1000, 500), (10, 200, 10)).save(root / "products" / "shoe.png", "PNG")
    (root / "broken.jpg").write_bytes(b"this is not an image")
    return root


@pytest.fixture
def cache_dir(tmp_path):
    return tmp_path / "cache"


@pytest.fixture
def store(cache_dir):
    return CacheStore(cache_dir)


@pytest.fixture
def pipeline():
    return CountingPipeline()


@pytest.fixture
def optimizer(source_dir, store, pipeline):
    return ImageOptimizer(source_dir, store, pipeline=pipeline)


@pytest.fixture(autouse=True)
def _reset_metrics():
    cache_metrics.reset_cache_metrics()
    yield


@pytest.fixture
def client(optimizer):
    """Test client bound to the fixture optimizer."""
    app.dependency_overrides[get_optimizer] = lambda: optimizer
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.pop(get_optimizer, None)
