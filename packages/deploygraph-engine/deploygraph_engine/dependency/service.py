"""
Dependency Detection Service

Builds the workspace dependency graph from parsed manifests and source
imports, and keeps the most recent graph in a short-lived cache.

Pipeline:
    1. EdgeResolver   declared edges (+ external records)
    2. ImportScanner  import records (optional)
    3. EdgeMerger     one edge per package pair, evidence tagged
    4. EdgeResolver   cycles / order / levels over the merged edges
    5. GraphAssembler nodes, depths, classification, statistics, external edges

Usage:
    service = DependencyDetectionService()
    graph = service.build_graph(packages)
    if service.has_cycles(graph):
        for line in service.cycle_descriptions(graph):
            print(line)
"""

from collections.abc import Sequence
from dataclasses import dataclass, field, replace

from deploygraph_engine.dependency.domain import queries
from deploygraph_engine.dependency.domain.models import (
    DependencyEdge,
    DependencyGraph,
    DependencyNode,
    DetectionOptions,
    EdgeSource,
    ImportRecord,
    Package,
)
from deploygraph_engine.dependency.domain.ports import FileSystem
from deploygraph_engine.dependency.infrastructure.edge_merger import EdgeMerger
from deploygraph_engine.dependency.infrastructure.edge_resolver import EdgeResolver
from deploygraph_engine.dependency.infrastructure.graph_assembler import GraphAssembler
from deploygraph_engine.dependency.infrastructure.graph_cache import DEFAULT_MAX_AGE_MS, GraphCache
from deploygraph_engine.dependency.infrastructure.import_scanner import ImportScanner
from deploygraph_engine.dependency.infrastructure.local_filesystem import LocalFileSystem
from deploygraph_shared.common.observability import get_logger

logger = get_logger(__name__)


@dataclass
class DependencyLookup:
    """Direct and transitive neighbours of one package."""

    direct: list[DependencyNode] = field(default_factory=list)
    transitive: list[DependencyNode] = field(default_factory=list)


class DependencyDetectionService:
    def __init__(
        self,
        filesystem: FileSystem | None = None,
        cache: GraphCache | None = None,
    ):
        """
        Args:
            filesystem: Source file access (default: local disk)
            cache: Graph cache (default: fresh GraphCache)
        """
        self.filesystem = filesystem or LocalFileSystem()
        self.cache = cache or GraphCache()

    # ------------------------------------------------------------------
    # Build
    # ------------------------------------------------------------------

    def build_graph(
        self,
        packages: Sequence[Package],
        options: DetectionOptions | None = None,
    ) -> DependencyGraph:
        """
        Build a complete dependency graph and cache it.

        Args:
            packages: Workspace packages (order drives tie-breaking)
            options: Detection options

        Returns:
            New immutable DependencyGraph
        """
        opts = options or DetectionOptions()
        packages = list(packages)

        logger.info("dependency_graph_build_started", packages=len(packages))

        resolver = EdgeResolver(opts)
        declared = resolver.resolve(packages)

        imports = self.detect_import_dependencies(packages, opts) if opts.detect_imports else []
        logger.info("import_statements_found", imports=len(imports))

        edges = EdgeMerger().merge(declared.edges, imports, packages)

        # Inferred edges take part in ordering as well
        resolution = declared
        if any(edge.source is EdgeSource.INFERRED for edge in edges):
            cycles, order, levels = resolver.order([p.name for p in packages], edges)
            resolution = replace(declared, edges=tuple(edges), cycles=cycles, order=order, levels=levels)

        graph = GraphAssembler(opts).assemble(packages, edges, imports, resolution)

        self.cache.set(graph)
        logger.info("dependency_graph_built", **queries.summarize(graph))
        return graph

    def detect_import_dependencies(
        self,
        packages: Sequence[Package],
        options: DetectionOptions | None = None,
    ) -> list[ImportRecord]:
        opts = options or DetectionOptions()
        scanner = ImportScanner(
            self.filesystem,
            extensions=opts.source_extensions,
            max_depth=opts.max_source_depth,
        )
        return scanner.scan_packages(packages)

    # ------------------------------------------------------------------
    # Cache
    # ------------------------------------------------------------------

    def cached_graph(self, max_age_ms: int = DEFAULT_MAX_AGE_MS) -> DependencyGraph | None:
        """Cached graph if built within max_age_ms, else None."""
        return self.cache.get(max_age_ms)

    def invalidate(self) -> None:
        self.cache.invalidate()
        logger.debug("dependency_cache_invalidated")

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def has_cycles(self, graph: DependencyGraph) -> bool:
        return queries.has_cycles(graph)

    def cycle_descriptions(self, graph: DependencyGraph) -> list[str]:
        return queries.cycle_descriptions(graph)

    def get_package_dependencies(self, graph: DependencyGraph, name: str) -> DependencyLookup:
        return DependencyLookup(
            direct=queries.direct_dependencies(graph, name),
            transitive=queries.transitive_dependencies(graph, name),
        )

    def get_package_dependents(self, graph: DependencyGraph, name: str) -> DependencyLookup:
        return DependencyLookup(
            direct=queries.direct_dependents(graph, name),
            transitive=queries.transitive_dependents(graph, name),
        )

    def get_external_dependencies(self, graph: DependencyGraph, name: str) -> list[DependencyEdge]:
        return queries.external_dependencies_of(graph, name)
