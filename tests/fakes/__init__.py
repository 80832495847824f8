"""
Test Fakes Module

In-memory implementations of the engine's capability ports.
"""

from tests.fakes.fake_filesystem import FakeFileSystem
from tests.fakes.fake_manifest_reader import FakeManifestReader
from tests.fakes.fake_watch import FakeWatchFactory, FakeWatchHandle
from tests.fakes.workspace import make_package

__all__ = [
    "FakeFileSystem",
    "FakeManifestReader",
    "FakeWatchFactory",
    "FakeWatchHandle",
    "make_package",
]
