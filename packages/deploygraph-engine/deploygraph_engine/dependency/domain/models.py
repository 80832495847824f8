"""
Dependency graph domain models.

Packages arrive already parsed from a manifest reader. Everything produced
from them (import records, edges, nodes, the graph itself) is immutable: each
rebuild yields new values and nothing already handed out is ever mutated.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import TYPE_CHECKING, Any

from deploygraph_shared.common.exceptions import ConfigurationError

if TYPE_CHECKING:
    from deploygraph_shared.config.groups import DetectionConfig


DEFAULT_SOURCE_EXTENSIONS: tuple[str, ...] = (".rs",)
DEFAULT_MAX_SOURCE_DEPTH = 3


# ============================================================
# Inputs
# ============================================================


class DependencySection(Enum):
    """Manifest section a dependency was declared in."""

    NORMAL = "normal"
    BUILD = "build"
    DEV = "dev"
    WORKSPACE = "workspace"  # inferred from imports, no manifest section


@dataclass(frozen=True)
class DependencyRecord:
    """
    One declared dependency.

    Attributes:
        name: Declared dependency name
        path: Local path marker (relative to the declaring package or absolute)
        workspace: Workspace inheritance marker
        version: Version requirement, informational only
    """

    name: str
    path: str | None = None
    workspace: bool = False
    version: str | None = None

    @property
    def is_local(self) -> bool:
        return bool(self.path)


@dataclass(frozen=True)
class Package:
    """A workspace package as produced by the manifest reader."""

    name: str
    directory: str
    manifest_path: str
    dependencies: tuple[DependencyRecord, ...] = ()
    build_dependencies: tuple[DependencyRecord, ...] = ()
    dev_dependencies: tuple[DependencyRecord, ...] = ()

    def declared(
        self,
        include_build: bool = True,
        include_dev: bool = False,
    ) -> list[tuple[DependencySection, DependencyRecord]]:
        """Declared dependencies in manifest order, filtered by section policy."""
        result = [(DependencySection.NORMAL, dep) for dep in self.dependencies]
        if include_build:
            result.extend((DependencySection.BUILD, dep) for dep in self.build_dependencies)
        if include_dev:
            result.extend((DependencySection.DEV, dep) for dep in self.dev_dependencies)
        return result

    def find_dependency(self, name: str) -> DependencyRecord | None:
        """
        Manifest metadata for a declared name.

        Later sections win when a name is declared more than once
        (dependencies < build-dependencies < dev-dependencies).
        """
        found = None
        for section in (self.dependencies, self.build_dependencies, self.dev_dependencies):
            for dep in section:
                if dep.name == name:
                    found = dep
        return found


@dataclass(frozen=True)
class DetectionOptions:
    """Options for build_graph()."""

    include_dev_dependencies: bool = False
    include_build_dependencies: bool = True
    detect_imports: bool = True
    max_source_depth: int = DEFAULT_MAX_SOURCE_DEPTH
    source_extensions: tuple[str, ...] = DEFAULT_SOURCE_EXTENSIONS

    def __post_init__(self):
        if self.max_source_depth < 0:
            raise ConfigurationError(
                "max_source_depth must be >= 0",
                details={"max_source_depth": self.max_source_depth},
            )

    @classmethod
    def from_config(cls, config: "DetectionConfig") -> "DetectionOptions":
        return cls(
            include_dev_dependencies=config.include_dev_dependencies,
            include_build_dependencies=config.include_build_dependencies,
            detect_imports=config.detect_imports,
            max_source_depth=config.max_source_depth,
            source_extensions=config.source_extension_list or DEFAULT_SOURCE_EXTENSIONS,
        )


# ============================================================
# Imports
# ============================================================


class ImportType(Enum):
    USE = "use"
    EXTERN_CRATE = "extern_crate"
    MOD = "mod"


@dataclass(frozen=True)
class ImportRecord:
    """An import-like statement found in a package's source."""

    source_package: str
    imported_module: str
    import_type: ImportType
    source_file: str
    line_number: int
    statement: str


# ============================================================
# Edges
# ============================================================


class EdgeSource(Enum):
    """Evidence an edge rests on."""

    DECLARED = "declared"
    INFERRED = "inferred"
    BOTH = "both"


@dataclass(frozen=True)
class DependencyEdge:
    """
    Directed package-level edge: from_package depends on to_package.

    At most one edge exists per ordered pair; confirming imports accumulate
    onto `imports`.
    """

    from_package: str
    to_package: str
    dependency_name: str
    section: DependencySection
    source: EdgeSource = EdgeSource.DECLARED
    is_external: bool = False
    metadata: DependencyRecord | None = None
    imports: tuple[ImportRecord, ...] = ()

    @property
    def key(self) -> tuple[str, str]:
        return (self.from_package, self.to_package)


@dataclass(frozen=True)
class ResolutionResult:
    """Edge resolver output."""

    edges: tuple[DependencyEdge, ...]
    external: tuple[DependencyEdge, ...]
    cycles: tuple[tuple[str, ...], ...]
    order: tuple[str, ...]
    levels: tuple[tuple[str, ...], ...]

    @property
    def is_acyclic(self) -> bool:
        return not self.cycles


# ============================================================
# Graph
# ============================================================


@dataclass(frozen=True)
class DependencyNode:
    """One workspace package in the graph."""

    name: str
    manifest_path: str
    directory: str
    dependencies: tuple[str, ...] = ()
    dependents: tuple[str, ...] = ()
    depth: int = 0

    @property
    def dependency_count(self) -> int:
        return len(self.dependencies)

    @property
    def dependent_count(self) -> int:
        return len(self.dependents)

    @property
    def is_leaf(self) -> bool:
        return not self.dependencies

    @property
    def is_root(self) -> bool:
        return not self.dependents


@dataclass(frozen=True)
class GraphStatistics:
    total_packages: int = 0
    total_dependencies: int = 0
    external_dependencies: int = 0
    circular_dependencies: int = 0
    max_depth: int = 0
    avg_dependencies_per_package: float = 0.0
    leaf_packages: int = 0
    root_packages: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_packages": self.total_packages,
            "total_dependencies": self.total_dependencies,
            "external_dependencies": self.external_dependencies,
            "circular_dependencies": self.circular_dependencies,
            "max_depth": self.max_depth,
            "avg_dependencies_per_package": self.avg_dependencies_per_package,
            "leaf_packages": self.leaf_packages,
            "root_packages": self.root_packages,
        }


@dataclass(frozen=True)
class DependencyGraph:
    """
    Complete dependency graph of a workspace.

    deployment_order is a permutation of the workspace package names that
    respects every workspace-internal edge, but only when `cycles` is empty.
    With cycles present order and levels are best effort.

    external_edges holds one edge per declared dependency that resolves to
    no workspace package (crates.io and git dependencies); they take no part
    in nodes, order or levels.
    """

    nodes: Mapping[str, DependencyNode] = field(default_factory=dict)
    edges: tuple[DependencyEdge, ...] = ()
    external_edges: tuple[DependencyEdge, ...] = ()
    imports: tuple[ImportRecord, ...] = ()
    cycles: tuple[tuple[str, ...], ...] = ()
    deployment_order: tuple[str, ...] = ()
    deployment_levels: tuple[tuple[str, ...], ...] = ()
    external_dependencies: frozenset[str] = frozenset()
    workspace_packages: frozenset[str] = frozenset()
    statistics: GraphStatistics = field(default_factory=GraphStatistics)

    def __post_init__(self):
        if not isinstance(self.nodes, MappingProxyType):
            object.__setattr__(self, "nodes", MappingProxyType(dict(self.nodes)))

    @property
    def has_cycles(self) -> bool:
        return bool(self.cycles)
