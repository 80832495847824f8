"""
Dependency Change Coordinator

Keeps the workspace dependency graph current while the workspace changes.

Flow:
    watch event → pending set + EventDebouncer (timer reset)
                → timer fires → one full rebuild → DependencyChangeEvent
    refresh()   → immediate full rebuild, failures raised to the caller

Rebuilds are serialized: a debounced rebuild and a manual refresh never
overlap. The cached graph is only replaced by a fully built graph, so a
failed rebuild leaves the previous one in place.

Usage:
    coordinator = DependencyChangeCoordinator.from_settings(reader, workspace_root)
    unsubscribe = coordinator.on_change(lambda event: print(event.kind))
    await coordinator.start()
    ...
    await coordinator.dispose()
"""

import asyncio
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from deploygraph_engine.change_tracking.infrastructure.file_watcher import WatchdogWatchFactory
from deploygraph_engine.change_tracking.infrastructure.watcher_debouncer import ChangeSet, EventDebouncer
from deploygraph_engine.dependency.domain.models import DependencyGraph, DetectionOptions, Package
from deploygraph_engine.dependency.domain.ports import (
    FileEventType,
    ManifestReader,
    WatchFactory,
    WatchHandle,
    WatchSpec,
)
from deploygraph_engine.dependency.infrastructure.graph_cache import DEFAULT_MAX_AGE_MS
from deploygraph_engine.dependency.service import DependencyDetectionService
from deploygraph_shared.common.exceptions import DeployGraphError, GraphBuildError, WorkspaceScanError
from deploygraph_shared.common.observability import get_logger
from deploygraph_shared.config.groups import DEFAULT_EXCLUDE_PATTERNS
from deploygraph_shared.config.settings import DeployGraphSettings, get_settings

logger = get_logger(__name__)


class ChangeKind(Enum):
    """What triggered a published graph."""

    ADDED = "added"
    REMOVED = "removed"
    MODIFIED = "modified"
    FULL_REFRESH = "full-refresh"


_KIND_BY_EVENT = {
    FileEventType.CREATED: ChangeKind.ADDED,
    FileEventType.MODIFIED: ChangeKind.MODIFIED,
    FileEventType.DELETED: ChangeKind.REMOVED,
}


class CoordinatorState(Enum):
    STOPPED = "stopped"
    RUNNING = "running"


@dataclass(frozen=True)
class DependencyChangeEvent:
    """Published after every successful rebuild."""

    kind: ChangeKind
    affected_paths: tuple[str, ...]
    timestamp: float  # epoch seconds
    graph: DependencyGraph


ChangeListener = Callable[[DependencyChangeEvent], None]


@dataclass(frozen=True)
class CoordinatorOptions:
    debounce_ms: int = 1000
    watch_source_files: bool = True
    auto_refresh: bool = True
    manifest_filename: str = "Cargo.toml"
    exclude_patterns: tuple[str, ...] = DEFAULT_EXCLUDE_PATTERNS
    cache_max_age_ms: int = DEFAULT_MAX_AGE_MS
    detection: DetectionOptions = field(default_factory=DetectionOptions)

    @classmethod
    def from_settings(cls, settings: DeployGraphSettings) -> "CoordinatorOptions":
        watcher = settings.watcher
        return cls(
            debounce_ms=watcher.debounce_ms,
            watch_source_files=watcher.watch_source_files,
            auto_refresh=watcher.auto_refresh,
            manifest_filename=watcher.manifest_filename,
            exclude_patterns=watcher.exclude_pattern_list,
            cache_max_age_ms=settings.cache.max_age_ms,
            detection=DetectionOptions.from_config(settings.detection),
        )


class DependencyChangeCoordinator:
    def __init__(
        self,
        manifest_reader: ManifestReader,
        service: DependencyDetectionService | None = None,
        watch_factory: WatchFactory | None = None,
        options: CoordinatorOptions | None = None,
    ):
        """
        Args:
            manifest_reader: Produces the workspace packages
            service: Graph builder and cache owner
            watch_factory: File watch registration (None: manual refresh only)
            options: Coordinator options
        """
        self.manifest_reader = manifest_reader
        self.service = service or DependencyDetectionService()
        self.watch_factory = watch_factory
        self.options = options or CoordinatorOptions()

        self._state = CoordinatorState.STOPPED
        self._handles: list[WatchHandle] = []
        self._debouncer: EventDebouncer | None = None
        self._listeners: list[ChangeListener] = []

        # path → kind of the latest event seen for it
        self._pending: dict[str, ChangeKind] = {}
        self._rebuild_lock = asyncio.Lock()

    @classmethod
    def from_settings(
        cls,
        manifest_reader: ManifestReader,
        workspace_root: Path | str,
        settings: DeployGraphSettings | None = None,
        service: DependencyDetectionService | None = None,
    ) -> "DependencyChangeCoordinator":
        settings = settings or get_settings()
        watch_factory = WatchdogWatchFactory(workspace_root) if settings.watcher.enabled else None
        return cls(
            manifest_reader,
            service=service,
            watch_factory=watch_factory,
            options=CoordinatorOptions.from_settings(settings),
        )

    @property
    def state(self) -> CoordinatorState:
        return self._state

    @property
    def is_running(self) -> bool:
        return self._state is CoordinatorState.RUNNING

    @property
    def pending_paths(self) -> tuple[str, ...]:
        return tuple(self._pending)

    @property
    def pending_changes(self) -> dict[str, ChangeKind]:
        """Unpublished paths with the kind of the latest event seen for each."""
        return dict(self._pending)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self):
        """
        Register watches and, with auto_refresh, publish an initial full refresh.

        Raises:
            WatcherError: The watch factory could not start a watch
            WorkspaceScanError, GraphBuildError: The initial refresh failed
        """
        if self.is_running:
            logger.warning("coordinator_already_running")
            return

        self._debouncer = EventDebouncer(
            debounce_ms=self.options.debounce_ms,
            on_batch_ready=self._on_batch_ready,
        )
        await self._debouncer.start()

        try:
            self._register_watches()
        except Exception:
            self._dispose_watches()
            await self._debouncer.stop()
            self._debouncer = None
            raise

        self._state = CoordinatorState.RUNNING
        logger.info(
            "coordinator_started",
            watches=len(self._handles),
            debounce_ms=self.options.debounce_ms,
            auto_refresh=self.options.auto_refresh,
        )

        if self.options.auto_refresh:
            await self.refresh(ChangeKind.FULL_REFRESH)

    async def stop(self):
        """Dispose watches, cancel the pending timer and drop pending changes."""
        if not self.is_running:
            return

        self._state = CoordinatorState.STOPPED
        self._dispose_watches()

        if self._debouncer:
            await self._debouncer.stop()
            self._debouncer = None

        self._pending.clear()
        logger.info("coordinator_stopped")

    async def dispose(self):
        await self.stop()
        self._listeners.clear()

    def _register_watches(self):
        if self.watch_factory is None:
            logger.info("coordinator_watch_disabled")
            return

        specs = [
            WatchSpec(
                name="manifest",
                filenames=(self.options.manifest_filename,),
                exclude_patterns=self.options.exclude_patterns,
            )
        ]
        if self.options.watch_source_files:
            specs.append(
                WatchSpec(
                    name="source",
                    extensions=self.options.detection.source_extensions,
                    exclude_patterns=self.options.exclude_patterns,
                )
            )

        for spec in specs:
            self._handles.append(self.watch_factory.watch(spec, self._on_file_event))

    def _dispose_watches(self):
        handles, self._handles = self._handles, []
        for handle in handles:
            try:
                handle.dispose()
            except Exception as e:
                logger.warning("watch_dispose_failed", error=str(e))

    # ------------------------------------------------------------------
    # Subscriptions
    # ------------------------------------------------------------------

    def on_change(self, listener: ChangeListener) -> Callable[[], None]:
        """
        Subscribe to change events.

        Returns:
            Unsubscribe function (safe to call more than once)
        """
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _emit(self, event: DependencyChangeEvent):
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception as e:
                logger.error("change_listener_failed", kind=event.kind.value, error=str(e), exc_info=True)

    # ------------------------------------------------------------------
    # Rebuild
    # ------------------------------------------------------------------

    async def refresh(self, kind: ChangeKind = ChangeKind.FULL_REFRESH) -> DependencyGraph | None:
        """
        Rebuild now and publish the result.

        Returns:
            The new graph, or None when the workspace has no packages

        Raises:
            WorkspaceScanError: The manifest reader failed
            GraphBuildError: Graph construction failed
        """
        async with self._rebuild_lock:
            return self._rebuild_and_publish(kind)

    def _rebuild_and_publish(self, kind: ChangeKind) -> DependencyGraph | None:
        affected = tuple(self._pending)
        logger.info("dependency_refresh_started", kind=kind.value, affected_paths=len(affected))

        packages = self._read_packages()
        if not packages:
            logger.info("dependency_refresh_no_packages", kind=kind.value)
            return None

        graph = self._build(packages)

        self._emit(
            DependencyChangeEvent(
                kind=kind,
                affected_paths=affected,
                timestamp=time.time(),
                graph=graph,
            )
        )
        for path in affected:
            self._pending.pop(path, None)

        logger.info("dependency_refresh_published", kind=kind.value, packages=len(graph.nodes))
        return graph

    def get_graph(self, max_age_ms: int | None = None) -> DependencyGraph | None:
        """
        Cached graph if fresh, else a synchronous rebuild (not published).
        """
        max_age = self.options.cache_max_age_ms if max_age_ms is None else max_age_ms
        cached = self.service.cached_graph(max_age)
        if cached is not None:
            return cached

        packages = self._read_packages()
        if not packages:
            return None
        return self._build(packages)

    def _read_packages(self) -> list[Package]:
        try:
            return list(self.manifest_reader.read_packages())
        except DeployGraphError:
            raise
        except Exception as e:
            raise WorkspaceScanError("Manifest reader failed", details={"error": str(e)}) from e

    def _build(self, packages: list[Package]) -> DependencyGraph:
        try:
            return self.service.build_graph(packages, self.options.detection)
        except DeployGraphError:
            raise
        except Exception as e:
            raise GraphBuildError(
                "Dependency graph build failed",
                details={"packages": len(packages), "error": str(e)},
            ) from e

    # ------------------------------------------------------------------
    # Watch events
    # ------------------------------------------------------------------

    def _on_file_event(self, event_type: FileEventType, path: str):
        """Watch sink; runs on the event loop thread."""
        if not self.is_running or self._debouncer is None:
            return

        self._pending[path] = _KIND_BY_EVENT[event_type]
        logger.debug("dependency_change_observed", event_type=event_type.value, path=path)
        self._debouncer.push_event(event_type, path)

    async def _on_batch_ready(self, change_set: ChangeSet):
        if not self.is_running:
            return
        if not self.options.auto_refresh:
            logger.debug("auto_refresh_disabled", pending=len(self._pending))
            return

        kind = _KIND_BY_EVENT.get(change_set.last_event_type, ChangeKind.MODIFIED)
        try:
            await self.refresh(kind)
        except Exception as e:
            logger.error(
                "debounced_refresh_failed",
                kind=kind.value,
                pending=len(self._pending),
                error=str(e),
                exc_info=True,
            )

    async def wait_idle(self):
        """Wait until a fired debounce batch has been processed."""
        if self._debouncer:
            await self._debouncer.wait_idle()
