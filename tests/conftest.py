"""
Global test configuration and fixtures
"""

import time

import pytest

from deploygraph_shared.config.settings import get_settings
from tests.fakes import FakeFileSystem, FakeManifestReader, FakeWatchFactory

# Slow test thresholds (seconds)
SLOW_TEST_THRESHOLD = 5.0
WARNING_TEST_THRESHOLD = 2.0


@pytest.fixture(autouse=True)
def track_test_duration(request):
    """Warn about slow tests."""
    start_time = time.time()

    yield

    duration = time.time() - start_time
    test_name = request.node.nodeid

    if duration > SLOW_TEST_THRESHOLD:
        print(f"\nSLOW TEST ({duration:.2f}s): {test_name}")
        print("   Consider marking with @pytest.mark.slow or optimizing")
    elif duration > WARNING_TEST_THRESHOLD:
        print(f"\nSlow ({duration:.2f}s): {test_name}")


@pytest.fixture
def fake_filesystem() -> FakeFileSystem:
    return FakeFileSystem()


@pytest.fixture
def fake_reader() -> FakeManifestReader:
    return FakeManifestReader()


@pytest.fixture
def fake_watch_factory() -> FakeWatchFactory:
    return FakeWatchFactory()


@pytest.fixture
def clean_settings():
    """Fresh get_settings() cache around a test."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


# Pytest hooks
def pytest_collection_modifyitems(config, items):
    """Path-based markers."""
    for item in items:
        if "unit" in str(item.fspath):
            item.add_marker(pytest.mark.unit)
        elif "integration" in str(item.fspath):
            item.add_marker(pytest.mark.integration)


def pytest_report_header(config):
    return [
        f"Slow test threshold: {SLOW_TEST_THRESHOLD}s",
        f"Warning threshold: {WARNING_TEST_THRESHOLD}s",
    ]
