from deploygraph_shared.config.groups import (
    DetectionConfig,
    GraphCacheConfig,
    ObservabilityConfig,
    WatcherConfig,
)
from deploygraph_shared.config.settings import DeployGraphSettings, get_settings

__all__ = [
    "DeployGraphSettings",
    "DetectionConfig",
    "GraphCacheConfig",
    "ObservabilityConfig",
    "WatcherConfig",
    "get_settings",
]
