"""
Graph Assembler

Merged edges → nodes (adjacency, depth), external/workspace classification
and aggregate statistics.
"""

from collections.abc import Sequence

from deploygraph_engine.dependency.domain.models import (
    DependencyEdge,
    DependencyGraph,
    DependencyNode,
    DetectionOptions,
    GraphStatistics,
    ImportRecord,
    Package,
    ResolutionResult,
)
from deploygraph_engine.dependency.domain.naming import PackageLookup

_UNVISITED, _IN_PROGRESS, _DONE = 0, 1, 2
_EXHAUSTED = object()


def compute_depths(dependencies: Sequence[Sequence[int]]) -> list[int]:
    """
    Longest dependency chain per node, over index-keyed adjacency.

    depth(n) = 0 without dependencies, else 1 + max(depth(d)). A dependency
    still in progress (a cycle) contributes its current value, so the walk
    always terminates; depths on cycles are best effort only.
    """
    count = len(dependencies)
    state = [_UNVISITED] * count
    depth = [0] * count

    for root in range(count):
        if state[root] != _UNVISITED:
            continue

        state[root] = _IN_PROGRESS
        stack = [(root, iter(dependencies[root]))]
        while stack:
            node, deps = stack[-1]
            dep = next(deps, _EXHAUSTED)
            if dep is _EXHAUSTED:
                if dependencies[node]:
                    depth[node] = 1 + max(depth[d] for d in dependencies[node])
                state[node] = _DONE
                stack.pop()
            elif state[dep] == _UNVISITED:
                state[dep] = _IN_PROGRESS
                stack.append((dep, iter(dependencies[dep])))

    return depth


class GraphAssembler:
    """Builds the immutable DependencyGraph."""

    def __init__(self, options: DetectionOptions | None = None):
        self.options = options or DetectionOptions()

    def build_nodes(
        self,
        packages: Sequence[Package],
        edges: Sequence[DependencyEdge],
    ) -> dict[str, DependencyNode]:
        """One node per package; a declared+inferred pair yields one adjacency entry."""
        index: dict[str, int] = {}
        unique: list[Package] = []
        for package in packages:
            if package.name not in index:
                index[package.name] = len(unique)
                unique.append(package)

        dependencies: list[list[str]] = [[] for _ in unique]
        dependents: list[list[str]] = [[] for _ in unique]

        for edge in edges:
            if edge.is_external:
                continue
            source = index.get(edge.from_package)
            target = index.get(edge.to_package)
            if source is None or target is None:
                continue
            if edge.to_package not in dependencies[source]:
                dependencies[source].append(edge.to_package)
            if edge.from_package not in dependents[target]:
                dependents[target].append(edge.from_package)

        depths = compute_depths([[index[name] for name in deps] for deps in dependencies])

        return {
            package.name: DependencyNode(
                name=package.name,
                manifest_path=package.manifest_path,
                directory=package.directory,
                dependencies=tuple(dependencies[i]),
                dependents=tuple(dependents[i]),
                depth=depths[i],
            )
            for i, package in enumerate(unique)
        }

    def classify(self, packages: Sequence[Package]) -> tuple[frozenset[str], frozenset[str]]:
        """
        (external_dependencies, workspace_packages).

        A declared name is external when it resolves to no workspace package
        and carries no local path marker.
        """
        lookup = PackageLookup(list(packages))
        external: set[str] = set()

        for package in packages:
            declared = package.declared(
                include_build=self.options.include_build_dependencies,
                include_dev=self.options.include_dev_dependencies,
            )
            for _, dep in declared:
                if dep.is_local or lookup.by_name(dep.name) is not None:
                    continue
                external.add(dep.name)

        return frozenset(external), lookup.names

    def statistics(
        self,
        nodes: dict[str, DependencyNode],
        edges: Sequence[DependencyEdge],
        external: frozenset[str],
        cycle_count: int,
    ) -> GraphStatistics:
        total = len(nodes)
        return GraphStatistics(
            total_packages=total,
            total_dependencies=len(edges),
            external_dependencies=len(external),
            circular_dependencies=cycle_count,
            max_depth=max((n.depth for n in nodes.values()), default=0),
            avg_dependencies_per_package=len(edges) / total if total else 0.0,
            leaf_packages=sum(1 for n in nodes.values() if n.is_leaf),
            root_packages=sum(1 for n in nodes.values() if n.is_root),
        )

    def assemble(
        self,
        packages: Sequence[Package],
        edges: Sequence[DependencyEdge],
        imports: Sequence[ImportRecord],
        resolution: ResolutionResult,
    ) -> DependencyGraph:
        """
        Args:
            packages: Workspace packages
            edges: Merged edges
            imports: All import records, resolved or not
            resolution: Cycles, order and levels for `edges`, plus the
                external edges
        """
        nodes = self.build_nodes(packages, edges)
        external, workspace = self.classify(packages)

        return DependencyGraph(
            nodes=nodes,
            edges=tuple(edges),
            external_edges=resolution.external,
            imports=tuple(imports),
            cycles=resolution.cycles,
            deployment_order=resolution.order,
            deployment_levels=resolution.levels,
            external_dependencies=external,
            workspace_packages=workspace,
            statistics=self.statistics(nodes, edges, external, len(resolution.cycles)),
        )
