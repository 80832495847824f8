from functools import cached_property, lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict

from deploygraph_shared.config.groups import (
    DEFAULT_EXCLUDE_PATTERNS,
    DetectionConfig,
    GraphCacheConfig,
    ObservabilityConfig,
    WatcherConfig,
)


class DeployGraphSettings(BaseSettings):
    """
    Deploygraph Settings

    Environment variables use the DEPLOYGRAPH_ prefix.
    Example: DEPLOYGRAPH_WATCHER_DEBOUNCE_MS, DEPLOYGRAPH_DETECT_IMPORTS

    Grouped access:
        settings.detection      # DetectionConfig
        settings.watcher        # WatcherConfig
        settings.cache          # GraphCacheConfig
        settings.observability  # ObservabilityConfig
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="DEPLOYGRAPH_",
        extra="ignore",
    )

    # ========================================================================
    # Grouped Config Accessors
    # ========================================================================

    @cached_property
    def detection(self) -> DetectionConfig:
        return DetectionConfig(
            include_dev_dependencies=self.include_dev_dependencies,
            include_build_dependencies=self.include_build_dependencies,
            detect_imports=self.detect_imports,
            max_source_depth=self.max_source_depth,
            source_extensions=self.source_extensions,
        )

    @cached_property
    def watcher(self) -> WatcherConfig:
        return WatcherConfig(
            enabled=self.watcher_enabled,
            debounce_ms=self.watcher_debounce_ms,
            watch_source_files=self.watcher_watch_source_files,
            auto_refresh=self.watcher_auto_refresh,
            manifest_filename=self.watcher_manifest_filename,
            exclude_patterns=self.watcher_exclude_patterns,
        )

    @cached_property
    def cache(self) -> GraphCacheConfig:
        return GraphCacheConfig(max_age_ms=self.cache_max_age_ms)

    @cached_property
    def observability(self) -> ObservabilityConfig:
        return ObservabilityConfig(log_level=self.log_level, log_json=self.log_json)

    # ========================================================================
    # Dependency Detection
    # ========================================================================
    include_dev_dependencies: bool = False
    include_build_dependencies: bool = True
    detect_imports: bool = True
    max_source_depth: int = 3
    source_extensions: str = ".rs"

    # ========================================================================
    # File Watcher
    # ========================================================================
    watcher_enabled: bool = True
    watcher_debounce_ms: int = 1000
    watcher_watch_source_files: bool = True
    watcher_auto_refresh: bool = True
    watcher_manifest_filename: str = "Cargo.toml"
    watcher_exclude_patterns: str = ",".join(DEFAULT_EXCLUDE_PATTERNS)

    # ========================================================================
    # Graph Cache
    # ========================================================================
    cache_max_age_ms: int = 60000

    # ========================================================================
    # Observability
    # ========================================================================
    log_level: str = "INFO"
    log_json: bool = False


@lru_cache(maxsize=1)
def get_settings() -> DeployGraphSettings:
    """Process-wide settings instance."""
    return DeployGraphSettings()
