"""
Read-only graph queries.

All functions are total: an unknown package name yields an empty result,
never an exception.
"""

from collections.abc import Callable
from typing import Any

from deploygraph_engine.dependency.domain.models import DependencyEdge, DependencyGraph, DependencyNode


def has_cycles(graph: DependencyGraph) -> bool:
    return len(graph.cycles) > 0


def cycle_descriptions(graph: DependencyGraph) -> list[str]:
    """One line per cycle: "Circular dependency: a → b → a"."""
    return [f"Circular dependency: {' → '.join(cycle)}" for cycle in graph.cycles]


def _nodes(graph: DependencyGraph, names: tuple[str, ...]) -> list[DependencyNode]:
    return [graph.nodes[name] for name in names if name in graph.nodes]


def direct_dependencies(graph: DependencyGraph, name: str) -> list[DependencyNode]:
    node = graph.nodes.get(name)
    if node is None:
        return []
    return _nodes(graph, node.dependencies)


def direct_dependents(graph: DependencyGraph, name: str) -> list[DependencyNode]:
    node = graph.nodes.get(name)
    if node is None:
        return []
    return _nodes(graph, node.dependents)


def external_dependencies_of(graph: DependencyGraph, name: str) -> list[DependencyEdge]:
    """Declared edges from `name` to packages outside the workspace."""
    return [edge for edge in graph.external_edges if edge.from_package == name]


def _walk(
    graph: DependencyGraph,
    name: str,
    neighbours: Callable[[DependencyNode], tuple[str, ...]],
) -> list[DependencyNode]:
    """Depth-first pre-order reachability, excluding the start node."""
    start = graph.nodes.get(name)
    if start is None:
        return []

    visited = {name}
    result: list[DependencyNode] = []
    stack = [iter(neighbours(start))]

    while stack:
        next_name = next(stack[-1], None)
        if next_name is None:
            stack.pop()
            continue
        if next_name in visited:
            continue
        visited.add(next_name)

        node = graph.nodes.get(next_name)
        if node is not None:
            result.append(node)
            stack.append(iter(neighbours(node)))

    return result


def transitive_dependencies(graph: DependencyGraph, name: str) -> list[DependencyNode]:
    """Everything `name` depends on, directly or indirectly."""
    return _walk(graph, name, lambda node: node.dependencies)


def transitive_dependents(graph: DependencyGraph, name: str) -> list[DependencyNode]:
    """Everything that depends on `name`, directly or indirectly."""
    return _walk(graph, name, lambda node: node.dependents)


def summarize(graph: DependencyGraph) -> dict[str, Any]:
    """Flat summary for logging."""
    stats = graph.statistics
    return {
        "packages": stats.total_packages,
        "dependencies": stats.total_dependencies,
        "external_dependencies": stats.external_dependencies,
        "cycles": len(graph.cycles),
        "max_depth": stats.max_depth,
        "leaf_packages": stats.leaf_packages,
        "root_packages": stats.root_packages,
        "levels": len(graph.deployment_levels),
    }
