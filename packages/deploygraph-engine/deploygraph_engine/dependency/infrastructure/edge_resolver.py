"""
Edge Resolver

Declared dependencies → directed workspace edges, cycles, deployment order
and parallel deployment levels.

Never raises on structural problems: cycles are returned as data and the
order/levels computed alongside them are best effort.
"""

import heapq
from collections.abc import Iterable, Sequence

from deploygraph_engine.dependency.domain.models import (
    DependencyEdge,
    DetectionOptions,
    EdgeSource,
    Package,
    ResolutionResult,
)
from deploygraph_engine.dependency.domain.naming import PackageLookup
from deploygraph_shared.common.observability import get_logger

logger = get_logger(__name__)

_EXHAUSTED = object()


def build_adjacency(names: Sequence[str], edges: Iterable[DependencyEdge]) -> dict[str, list[str]]:
    """name → workspace dependencies (edge order, de-duplicated)."""
    adjacency: dict[str, list[str]] = {name: [] for name in names}
    for edge in edges:
        if edge.is_external:
            continue
        if edge.from_package not in adjacency or edge.to_package not in adjacency:
            continue
        deps = adjacency[edge.from_package]
        if edge.to_package not in deps:
            deps.append(edge.to_package)
    return adjacency


def find_cycles(names: Sequence[str], adjacency: dict[str, list[str]]) -> list[tuple[str, ...]]:
    """
    Enumerate cycles with a depth-first traversal.

    Every back edge to a node still on the traversal stack yields one cycle:
    the stack slice from that node to the top, with the node repeated at the
    end. Traversal restarts from every unvisited node so disjoint cycles are
    all reported.

    Iterative, so deep chains cannot exhaust the interpreter stack.
    """
    cycles: list[tuple[str, ...]] = []
    visited: set[str] = set()

    for start in names:
        if start in visited:
            continue

        visited.add(start)
        path = [start]
        on_stack = {start}
        iterators = [iter(adjacency.get(start, ()))]

        while iterators:
            dep = next(iterators[-1], _EXHAUSTED)
            if dep is _EXHAUSTED:
                iterators.pop()
                on_stack.discard(path.pop())
                continue

            if dep in on_stack:
                index = path.index(dep)
                cycles.append(tuple(path[index:]) + (dep,))
            elif dep not in visited:
                visited.add(dep)
                path.append(dep)
                on_stack.add(dep)
                iterators.append(iter(adjacency.get(dep, ())))

    return cycles


def topological_order(names: Sequence[str], adjacency: dict[str, list[str]]) -> tuple[list[str], list[str]]:
    """
    Dependency-first order (Kahn's algorithm).

    Ties between independent packages are broken by input position, so the
    same input always yields the same order.

    Returns:
        (ordered, unresolved): unresolved holds packages on or behind a cycle,
        in input order
    """
    position = {name: i for i, name in enumerate(names)}
    remaining = {name: len(adjacency.get(name, ())) for name in names}
    dependents: dict[str, list[str]] = {name: [] for name in names}
    for name in names:
        for dep in adjacency.get(name, ()):
            dependents[dep].append(name)

    ready = [position[name] for name in names if remaining[name] == 0]
    heapq.heapify(ready)
    ordered: list[str] = []

    while ready:
        name = names[heapq.heappop(ready)]
        ordered.append(name)
        for dependent in dependents[name]:
            remaining[dependent] -= 1
            if remaining[dependent] == 0:
                heapq.heappush(ready, position[dependent])

    placed = set(ordered)
    unresolved = [name for name in names if name not in placed]
    return ordered, unresolved


def deployment_levels(
    ordered: Sequence[str],
    adjacency: dict[str, list[str]],
    names: Sequence[str] | None = None,
) -> list[list[str]]:
    """
    Longest-path layering.

    Level i holds exactly the packages whose dependencies all sit in levels
    0..i-1. `ordered` must be a dependency-first order; packages missing
    from it (cycle members) are left out. Within a level packages keep their
    position in `names` (default: `ordered`).
    """
    level: dict[str, int] = {}
    for name in ordered:
        deps = adjacency.get(name, ())
        level[name] = 1 + max(level[d] for d in deps) if deps else 0

    layers: list[list[str]] = [[] for _ in range(max(level.values(), default=-1) + 1)]
    for name in ordered:
        layers[level[name]].append(name)

    position = {name: i for i, name in enumerate(names if names is not None else ordered)}
    for layer in layers:
        layer.sort(key=position.__getitem__)
    return layers


class EdgeResolver:
    """
    Resolves declared manifest dependencies into a workspace graph.

    A declared dependency becomes an edge when its name (or its local path
    marker) resolves to another workspace package; otherwise it is recorded
    as external and takes no part in ordering.
    """

    def __init__(self, options: DetectionOptions | None = None):
        self.options = options or DetectionOptions()

    def resolve(self, packages: Sequence[Package]) -> ResolutionResult:
        lookup = PackageLookup(list(packages))
        edges: dict[tuple[str, str], DependencyEdge] = {}
        external: list[DependencyEdge] = []

        for package in packages:
            declared = package.declared(
                include_build=self.options.include_build_dependencies,
                include_dev=self.options.include_dev_dependencies,
            )
            for section, dep in declared:
                target = lookup.by_name(dep.name)
                if target is None and dep.is_local:
                    target = lookup.by_local_path(package, dep.path)

                if target is None:
                    external.append(
                        DependencyEdge(
                            from_package=package.name,
                            to_package=dep.name,
                            dependency_name=dep.name,
                            section=section,
                            is_external=True,
                            metadata=dep,
                        )
                    )
                    continue

                key = (package.name, target.name)
                if key in edges:
                    continue

                edges[key] = DependencyEdge(
                    from_package=package.name,
                    to_package=target.name,
                    dependency_name=dep.name,
                    section=section,
                    source=EdgeSource.DECLARED,
                    metadata=package.find_dependency(dep.name),
                )

        edge_list = tuple(edges.values())
        cycles, order, levels = self.order([p.name for p in packages], edge_list)

        logger.debug(
            "declared_edges_resolved",
            packages=len(packages),
            edges=len(edge_list),
            external=len(external),
            cycles=len(cycles),
        )

        return ResolutionResult(
            edges=edge_list,
            external=tuple(external),
            cycles=cycles,
            order=order,
            levels=levels,
        )

    def order(
        self,
        names: Sequence[str],
        edges: Iterable[DependencyEdge],
    ) -> tuple[tuple[tuple[str, ...], ...], tuple[str, ...], tuple[tuple[str, ...], ...]]:
        """
        Cycles, deployment order and levels for an edge set.

        With cycles the order still lists every package (cycle members and
        everything behind them appended in input order) while levels stop at
        what could be layered.
        """
        names = list(dict.fromkeys(names))
        adjacency = build_adjacency(names, edges)

        cycles = find_cycles(names, adjacency)
        ordered, unresolved = topological_order(names, adjacency)
        levels = deployment_levels(ordered, adjacency, names)

        if cycles:
            logger.warning(
                "dependency_cycles_detected",
                cycles=len(cycles),
                unresolved=unresolved,
            )

        return (
            tuple(cycles),
            tuple(ordered + unresolved),
            tuple(tuple(layer) for layer in levels),
        )
