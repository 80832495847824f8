from deploygraph_shared.common.exceptions import (
    ConfigurationError,
    DeployGraphError,
    DomainError,
    FileSystemAccessError,
    GraphBuildError,
    InfrastructureError,
    WatcherError,
    WorkspaceScanError,
)
from deploygraph_shared.common.observability import configure_logging, get_logger, reset_logging

__all__ = [
    "ConfigurationError",
    "DeployGraphError",
    "DomainError",
    "FileSystemAccessError",
    "GraphBuildError",
    "InfrastructureError",
    "WatcherError",
    "WorkspaceScanError",
    "configure_logging",
    "get_logger",
    "reset_logging",
]
