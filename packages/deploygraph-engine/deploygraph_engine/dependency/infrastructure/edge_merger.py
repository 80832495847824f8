"""
Edge Merger

Reconciles declared edges with import evidence into one edge per ordered
package pair.

- Import confirms a declared edge → source becomes "both", import attached
- Import with no declared edge   → new "inferred" edge (workspace-internal
  dependency expressed only through a version-less manifest reference)
- Import of a non-workspace name → no edge, kept in graph.imports only
"""

from collections.abc import Sequence
from dataclasses import replace

from deploygraph_engine.dependency.domain.models import (
    DependencyEdge,
    DependencySection,
    EdgeSource,
    ImportRecord,
    Package,
)
from deploygraph_engine.dependency.domain.naming import PackageLookup
from deploygraph_shared.common.observability import get_logger

logger = get_logger(__name__)


class EdgeMerger:
    def merge(
        self,
        declared_edges: Sequence[DependencyEdge],
        imports: Sequence[ImportRecord],
        packages: Sequence[Package],
    ) -> list[DependencyEdge]:
        """
        Merge declared edges with import records.

        Args:
            declared_edges: Edge resolver output (workspace edges)
            imports: Import scanner output
            packages: Workspace packages

        Returns:
            Declared edges in input order (upgraded where confirmed),
            followed by inferred edges in import order
        """
        lookup = PackageLookup(list(packages))
        edge_map: dict[tuple[str, str], DependencyEdge] = {}
        for edge in declared_edges:
            edge_map.setdefault(edge.key, edge)

        confirmed = 0
        inferred = 0
        unresolved = 0

        for record in imports:
            source = lookup.by_name(record.source_package)
            target = lookup.by_name(record.imported_module)

            if source is None or target is None:
                unresolved += 1
                continue
            if source.name == target.name:
                # A package naming itself (mod foo inside foo) is not a dependency
                continue

            key = (source.name, target.name)
            existing = edge_map.get(key)

            if existing is not None:
                if existing.source is EdgeSource.INFERRED:
                    merged_source = EdgeSource.INFERRED
                else:
                    merged_source = EdgeSource.BOTH
                    confirmed += existing.source is EdgeSource.DECLARED
                edge_map[key] = replace(
                    existing,
                    source=merged_source,
                    imports=existing.imports + (record,),
                )
            else:
                inferred += 1
                edge_map[key] = DependencyEdge(
                    from_package=source.name,
                    to_package=target.name,
                    dependency_name=record.imported_module,
                    section=DependencySection.WORKSPACE,
                    source=EdgeSource.INFERRED,
                    imports=(record,),
                )

        logger.debug(
            "edges_merged",
            declared=len(declared_edges),
            confirmed=confirmed,
            inferred=inferred,
            unresolved_imports=unresolved,
        )

        return list(edge_map.values())
