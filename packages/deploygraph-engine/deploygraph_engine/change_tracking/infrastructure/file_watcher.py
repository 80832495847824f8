"""
File watcher: watchdog-based implementation of the WatchFactory port.

Each watch runs its own Observer thread. Matching events are handed to the
sink on the event loop thread via loop.call_soon_threadsafe.
"""

import asyncio
import fnmatch
import os
from pathlib import Path

from watchdog.events import (
    DirCreatedEvent,
    DirDeletedEvent,
    DirModifiedEvent,
    DirMovedEvent,
    FileSystemEvent,
    FileSystemEventHandler,
)
from watchdog.observers import Observer

from deploygraph_engine.dependency.domain.ports import FileEventType, WatchSink, WatchSpec, has_extension
from deploygraph_shared.common.exceptions import WatcherError
from deploygraph_shared.common.observability import get_logger

logger = get_logger(__name__)


class WorkspaceEventHandler(FileSystemEventHandler):
    """
    Watchdog event handler.

    Filters events by WatchSpec and forwards (event_type, path) to the sink.
    A move is reported as a delete of the source plus a create of the target.
    """

    def __init__(
        self,
        root: Path,
        spec: WatchSpec,
        sink: WatchSink,
        loop: asyncio.AbstractEventLoop | None = None,
    ):
        super().__init__()
        self.root = root
        self.spec = spec
        self.sink = sink
        self._loop = loop

    def _should_ignore(self, path: str) -> bool:
        try:
            rel_path = Path(path).relative_to(self.root)
        except ValueError:
            rel_path = Path(path)

        rel_path_str = str(rel_path)
        for pattern in self.spec.exclude_patterns:
            if fnmatch.fnmatch(rel_path_str, pattern):
                return True
            for part in rel_path.parts:
                if fnmatch.fnmatch(part, pattern):
                    return True

        return False

    def _matches(self, path: str) -> bool:
        if self._should_ignore(path):
            return False

        name = Path(path).name
        if name in self.spec.filenames:
            return True
        return has_extension(name, self.spec.extensions)

    def _push_event(self, event_type: FileEventType, path: str):
        # watchdog callbacks run on the observer thread
        if self._loop is not None and self._loop.is_running():
            self._loop.call_soon_threadsafe(self.sink, event_type, path)
        else:
            self.sink(event_type, path)

    def on_created(self, event: FileSystemEvent):
        if isinstance(event, DirCreatedEvent):
            return

        path = os.fsdecode(event.src_path)
        if self._matches(path):
            logger.debug("file_created", watch=self.spec.name, path=path)
            self._push_event(FileEventType.CREATED, path)

    def on_modified(self, event: FileSystemEvent):
        if isinstance(event, DirModifiedEvent):
            return

        path = os.fsdecode(event.src_path)
        if self._matches(path):
            logger.debug("file_modified", watch=self.spec.name, path=path)
            self._push_event(FileEventType.MODIFIED, path)

    def on_deleted(self, event: FileSystemEvent):
        if isinstance(event, DirDeletedEvent):
            return

        path = os.fsdecode(event.src_path)
        if self._matches(path):
            logger.debug("file_deleted", watch=self.spec.name, path=path)
            self._push_event(FileEventType.DELETED, path)

    def on_moved(self, event: FileSystemEvent):
        if isinstance(event, DirMovedEvent):
            return

        src_path = os.fsdecode(event.src_path)
        dest_path = os.fsdecode(event.dest_path)

        if self._matches(src_path):
            logger.debug("file_moved_from", watch=self.spec.name, path=src_path)
            self._push_event(FileEventType.DELETED, src_path)
        if self._matches(dest_path):
            logger.debug("file_moved_to", watch=self.spec.name, path=dest_path)
            self._push_event(FileEventType.CREATED, dest_path)


class WatchdogWatch:
    """Handle for one running Observer."""

    def __init__(self, name: str, observer: Observer, join_timeout: float = 5.0):
        self.name = name
        self._observer: Observer | None = observer
        self._join_timeout = join_timeout

    @property
    def is_active(self) -> bool:
        return self._observer is not None

    def dispose(self) -> None:
        if self._observer is None:
            return

        self._observer.stop()
        self._observer.join(timeout=self._join_timeout)
        self._observer = None
        logger.info("file_watch_disposed", watch=self.name)


class WatchdogWatchFactory:
    """
    Watchdog-backed WatchFactory.

    Usage:
        factory = WatchdogWatchFactory(Path("/path/to/workspace"))
        handle = factory.watch(WatchSpec("manifest", filenames=("Cargo.toml",)), sink)
        ...
        handle.dispose()
    """

    def __init__(
        self,
        root: Path | str,
        recursive: bool = True,
        loop: asyncio.AbstractEventLoop | None = None,
    ):
        """
        Args:
            root: Workspace root to watch
            recursive: Watch subdirectories as well
            loop: Loop that receives events (default: the running loop at watch())
        """
        self.root = Path(root).resolve()
        self.recursive = recursive
        self._loop = loop

    def _get_loop(self) -> asyncio.AbstractEventLoop | None:
        if self._loop is not None:
            return self._loop
        try:
            return asyncio.get_running_loop()
        except RuntimeError:
            return None

    def watch(self, spec: WatchSpec, sink: WatchSink) -> WatchdogWatch:
        if not self.root.is_dir():
            raise WatcherError(
                "Watch root does not exist",
                details={"root": str(self.root), "watch": spec.name},
            )

        handler = WorkspaceEventHandler(self.root, spec, sink, loop=self._get_loop())

        observer = Observer()
        try:
            observer.schedule(handler, str(self.root), recursive=self.recursive)
            observer.start()
        except OSError as e:
            raise WatcherError(
                "Failed to start file watch",
                details={"root": str(self.root), "watch": spec.name, "error": str(e)},
            ) from e

        logger.info(
            "file_watch_started",
            watch=spec.name,
            root=str(self.root),
            filenames=list(spec.filenames),
            extensions=list(spec.extensions),
        )
        return WatchdogWatch(spec.name, observer)
