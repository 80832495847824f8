"""
Package name matching.

Declared dependency names and imported module names are matched against
workspace packages case-insensitively, with "-" and "_" treated as equal
(crate `my-lib` is imported as `my_lib`).

Matching is lossy: two packages whose names differ only in case or
separator alias each other. The first one in input order wins and the
collision is logged.
"""

import os

from deploygraph_engine.dependency.domain.models import Package
from deploygraph_shared.common.observability import get_logger

logger = get_logger(__name__)


def normalize_name(name: str) -> str:
    return name.strip().lower().replace("-", "_")


def normalize_path(path: str) -> str:
    """Comparable form of a filesystem path."""
    return os.path.normpath(path.replace("\\", "/")).rstrip("/")


class PackageLookup:
    """Resolves names and local paths to workspace packages."""

    def __init__(self, packages: list[Package]):
        self.packages = list(packages)
        self.names: frozenset[str] = frozenset(p.name for p in self.packages)
        self._by_name: dict[str, Package] = {}
        self._by_dir: dict[str, Package] = {}

        for package in self.packages:
            key = normalize_name(package.name)
            existing = self._by_name.get(key)
            if existing is None:
                self._by_name[key] = package
            elif existing.name != package.name:
                logger.warning(
                    "package_name_alias",
                    kept=existing.name,
                    shadowed=package.name,
                )
            self._by_dir.setdefault(normalize_path(package.directory), package)

    def by_name(self, name: str) -> Package | None:
        return self._by_name.get(normalize_name(name))

    def by_local_path(self, owner: Package, path: str) -> Package | None:
        """Package whose directory a local path marker points at."""
        target = path if os.path.isabs(path) else os.path.join(owner.directory, path)
        return self._by_dir.get(normalize_path(target))

    def position(self) -> dict[str, int]:
        """Input position per package name."""
        return {p.name: i for i, p in enumerate(self.packages)}
