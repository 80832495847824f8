"""
Configuration groups.

Settings are split into logical groups. Each group is usable on its own and
is assembled by DeployGraphSettings.
"""

from pydantic import BaseModel, Field

# Editor, VCS and build output paths ignored by file watches
DEFAULT_EXCLUDE_PATTERNS = (
    ".git",
    "target",
    "node_modules",
    "out",
    ".idea",
    ".vscode",
    "*.swp",
    "*~",
)


def split_csv(raw: str) -> tuple[str, ...]:
    """"a, b,,c" → ("a", "b", "c")"""
    return tuple(item.strip() for item in raw.split(",") if item.strip())


class DetectionConfig(BaseModel):
    """Dependency detection settings."""

    include_dev_dependencies: bool = Field(default=False, description="Follow dev-dependencies")
    include_build_dependencies: bool = Field(default=True, description="Follow build-dependencies")
    detect_imports: bool = Field(default=True, description="Scan sources for imports")
    max_source_depth: int = Field(default=3, ge=0, le=32, description="Source scan recursion depth")
    source_extensions: str = Field(default=".rs", description="Scanned extensions")

    @property
    def source_extension_list(self) -> tuple[str, ...]:
        return split_csv(self.source_extensions)


class WatcherConfig(BaseModel):
    """File watching settings."""

    enabled: bool = Field(default=True, description="Watch the workspace")
    debounce_ms: int = Field(default=1000, ge=0, le=60000, description="Debounce (ms)")
    watch_source_files: bool = Field(default=True, description="Watch source files as well as manifests")
    auto_refresh: bool = Field(default=True, description="Rebuild automatically on changes")
    manifest_filename: str = Field(default="Cargo.toml", description="Manifest file name")
    exclude_patterns: str = Field(
        default=",".join(DEFAULT_EXCLUDE_PATTERNS),
        description="Excluded path patterns",
    )

    @property
    def exclude_pattern_list(self) -> tuple[str, ...]:
        return split_csv(self.exclude_patterns)


class GraphCacheConfig(BaseModel):
    """Graph cache settings."""

    max_age_ms: int = Field(default=60000, ge=0, description="Freshness window (ms)")


class ObservabilityConfig(BaseModel):
    """Logging settings."""

    log_level: str = Field(default="INFO", description="Log level")
    log_json: bool = Field(default=False, description="JSON log lines")
