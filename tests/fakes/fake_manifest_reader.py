"""
Fake ManifestReader for Unit Testing
"""

from collections.abc import Sequence

from deploygraph_engine.dependency.domain.models import Package


class FakeManifestReader:
    """ManifestReader port Fake: returns a fixed package list."""

    def __init__(self, packages: Sequence[Package] | None = None):
        self.packages: list[Package] = list(packages or [])
        self.error: Exception | None = None
        self.calls = 0

    def read_packages(self) -> list[Package]:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return list(self.packages)

    def set_packages(self, packages: Sequence[Package]):
        self.packages = list(packages)

    def fail_with(self, error: Exception | None):
        """Make subsequent reads raise `error` (None restores normal reads)."""
        self.error = error
