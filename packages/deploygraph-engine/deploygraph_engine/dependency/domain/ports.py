"""
Dependency Layer Ports

Narrow capability interfaces for the collaborators the engine consumes:
- ManifestReader: parsed workspace packages
- FileSystem: directory listing and whole-file reads
- WatchFactory: file change subscriptions

Each port exposes exactly the operations the engine calls, so tests can
substitute in-memory fakes (see tests/fakes).
"""

from abc import abstractmethod
from collections.abc import Callable, Sequence
import os
from dataclasses import dataclass
from enum import Enum
from typing import Protocol, runtime_checkable

from deploygraph_engine.dependency.domain.models import Package


@dataclass(frozen=True)
class DirEntry:
    """One directory listing entry."""

    name: str
    path: str
    is_dir: bool
    is_file: bool


class FileEventType(Enum):
    """File system event type."""

    CREATED = "created"
    MODIFIED = "modified"
    DELETED = "deleted"


@dataclass(frozen=True)
class WatchSpec:
    """
    What a watch subscribes to.

    Attributes:
        filenames: Exact file names to report (e.g. "Cargo.toml")
        extensions: File extensions to report (e.g. ".rs")
        exclude_patterns: fnmatch patterns for ignored path components
    """

    name: str
    filenames: tuple[str, ...] = ()
    extensions: tuple[str, ...] = ()
    exclude_patterns: tuple[str, ...] = ()


WatchSink = Callable[[FileEventType, str], None]


def has_extension(filename: str, extensions: Sequence[str]) -> bool:
    """Case-insensitive extension match ('lib.RS' matches '.rs')."""
    suffix = os.path.splitext(filename)[1].lower()
    return bool(suffix) and suffix in (ext.lower() for ext in extensions)


@runtime_checkable
class ManifestReader(Protocol):
    """Produces the current workspace packages."""

    @abstractmethod
    def read_packages(self) -> Sequence[Package]:
        """
        Scan the workspace.

        Returns:
            Packages in a stable order (the order drives tie-breaking)
        """
        ...


@runtime_checkable
class FileSystem(Protocol):
    """Read-only file access. Both operations raise FileSystemAccessError."""

    @abstractmethod
    def list_dir(self, path: str) -> list[DirEntry]:
        ...

    @abstractmethod
    def read_text(self, path: str) -> str:
        ...


@runtime_checkable
class WatchHandle(Protocol):
    @abstractmethod
    def dispose(self) -> None:
        ...


@runtime_checkable
class WatchFactory(Protocol):
    """Registers file watches."""

    @abstractmethod
    def watch(self, spec: WatchSpec, sink: WatchSink) -> WatchHandle:
        """
        Start watching.

        Args:
            spec: Files to report
            sink: Called with (event_type, path) for every matching event.
                  May be invoked from a foreign thread.

        Returns:
            Handle whose dispose() stops the watch
        """
        ...
