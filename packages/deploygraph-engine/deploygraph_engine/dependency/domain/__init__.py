"""Dependency domain: models, ports and queries."""

from deploygraph_engine.dependency.domain.models import (
    DependencyEdge,
    DependencyGraph,
    DependencyNode,
    DependencyRecord,
    DependencySection,
    DetectionOptions,
    EdgeSource,
    GraphStatistics,
    ImportRecord,
    ImportType,
    Package,
    ResolutionResult,
)
from deploygraph_engine.dependency.domain.ports import (
    DirEntry,
    FileEventType,
    FileSystem,
    ManifestReader,
    WatchFactory,
    WatchHandle,
    WatchSink,
    WatchSpec,
)

__all__ = [
    # Models
    "DependencyEdge",
    "DependencyGraph",
    "DependencyNode",
    "DependencyRecord",
    "DependencySection",
    "DetectionOptions",
    "EdgeSource",
    "GraphStatistics",
    "ImportRecord",
    "ImportType",
    "Package",
    "ResolutionResult",
    # Ports
    "DirEntry",
    "FileEventType",
    "FileSystem",
    "ManifestReader",
    "WatchFactory",
    "WatchHandle",
    "WatchSink",
    "WatchSpec",
]
