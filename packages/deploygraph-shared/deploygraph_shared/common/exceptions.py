"""
Deploygraph Exception Hierarchy

Usage:
    1. Recoverable error → log and continue
    2. Unrecoverable error → log and re-raise
    3. Collaborator error → wrap in a custom exception

Example:
    try:
        packages = reader.read_packages()
    except Exception as e:
        raise WorkspaceScanError("Manifest reader failed") from e
"""

from typing import Any


class DeployGraphError(Exception):
    """Base exception for all deploygraph errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        """
        Args:
            message: Human-readable error message
            details: Optional additional details for debugging
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} (details: {self.details})"
        return self.message


# ============================================================
# Infrastructure Errors
# ============================================================


class InfrastructureError(DeployGraphError):
    """Infrastructure failures (filesystem, watchers)."""

    pass


class FileSystemAccessError(InfrastructureError):
    """A directory listing or file read failed."""

    pass


class WatcherError(InfrastructureError):
    """File watching could not be started."""

    pass


# ============================================================
# Domain Errors
# ============================================================


class DomainError(DeployGraphError):
    """Failures in graph construction."""

    pass


class WorkspaceScanError(DomainError):
    """The manifest reader could not produce the workspace packages."""

    pass


class GraphBuildError(DomainError):
    """Unexpected failure while building the dependency graph."""

    pass


# ============================================================
# Configuration Errors
# ============================================================


class ConfigurationError(DeployGraphError):
    """Invalid configuration value."""

    pass
