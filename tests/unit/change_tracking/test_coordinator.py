"""
DependencyChangeCoordinator: lifecycle, debounced rebuilds, manual refresh
and change notification.
"""

import asyncio

import pytest

from deploygraph_engine.change_tracking.coordinator import (
    ChangeKind,
    CoordinatorOptions,
    CoordinatorState,
    DependencyChangeCoordinator,
    DependencyChangeEvent,
)
from deploygraph_engine.dependency.domain.models import DetectionOptions
from deploygraph_engine.dependency.domain.ports import FileEventType
from deploygraph_engine.dependency.service import DependencyDetectionService
from deploygraph_shared.common.exceptions import GraphBuildError, WatcherError, WorkspaceScanError
from tests.fakes import FakeFileSystem, FakeManifestReader, FakeWatchFactory, make_package

DEBOUNCE_MS = 50
SETTLE = 0.3


class FailingBuildService(DependencyDetectionService):
    def build_graph(self, packages, options=None):
        raise ValueError("resolver exploded")


class EventRecorder:
    def __init__(self):
        self.events: list[DependencyChangeEvent] = []

    def __call__(self, event: DependencyChangeEvent):
        self.events.append(event)


@pytest.fixture
def reader() -> FakeManifestReader:
    return FakeManifestReader([make_package("app", deps=["core"]), make_package("core")])


@pytest.fixture
def watch_factory() -> FakeWatchFactory:
    return FakeWatchFactory()


@pytest.fixture
def service() -> DependencyDetectionService:
    return DependencyDetectionService(filesystem=FakeFileSystem())


def _options(**overrides) -> CoordinatorOptions:
    values = {"debounce_ms": DEBOUNCE_MS, "detection": DetectionOptions(detect_imports=False)}
    values.update(overrides)
    return CoordinatorOptions(**values)


@pytest.fixture
def coordinator(reader, service, watch_factory) -> DependencyChangeCoordinator:
    return DependencyChangeCoordinator(reader, service=service, watch_factory=watch_factory, options=_options())


class TestLifecycle:
    @pytest.mark.asyncio
    async def test_start_registers_manifest_and_source_watches(self, coordinator, watch_factory):
        # When
        await coordinator.start()

        # Then
        assert coordinator.state is CoordinatorState.RUNNING
        specs = {h.spec.name: h.spec for h in watch_factory.active}
        assert specs["manifest"].filenames == ("Cargo.toml",)
        assert specs["source"].extensions == (".rs",)
        assert "target" in specs["source"].exclude_patterns
        await coordinator.dispose()

    @pytest.mark.asyncio
    async def test_manifest_only_watch(self, reader, service, watch_factory):
        coordinator = DependencyChangeCoordinator(
            reader,
            service=service,
            watch_factory=watch_factory,
            options=_options(watch_source_files=False),
        )

        await coordinator.start()

        assert [h.spec.name for h in watch_factory.active] == ["manifest"]
        await coordinator.dispose()

    @pytest.mark.asyncio
    async def test_start_publishes_initial_full_refresh(self, coordinator):
        recorder = EventRecorder()
        coordinator.on_change(recorder)

        await coordinator.start()

        assert len(recorder.events) == 1
        event = recorder.events[0]
        assert event.kind is ChangeKind.FULL_REFRESH
        assert event.affected_paths == ()
        assert set(event.graph.nodes) == {"app", "core"}
        await coordinator.dispose()

    @pytest.mark.asyncio
    async def test_start_twice_is_noop(self, coordinator, watch_factory, reader):
        await coordinator.start()
        await coordinator.start()

        assert len(watch_factory.handles) == 2
        assert reader.calls == 1
        await coordinator.dispose()

    @pytest.mark.asyncio
    async def test_stop_disposes_watches_and_clears_pending(self, coordinator, watch_factory):
        # Given
        await coordinator.start()
        watch_factory.fire(FileEventType.MODIFIED, "/ws/crates/app/src/lib.rs")
        assert coordinator.pending_paths == ("/ws/crates/app/src/lib.rs",)

        # When
        await coordinator.stop()

        # Then
        assert coordinator.state is CoordinatorState.STOPPED
        assert watch_factory.active == []
        assert coordinator.pending_paths == ()

    @pytest.mark.asyncio
    async def test_stop_cancels_pending_timer(self, coordinator, watch_factory, reader):
        await coordinator.start()
        watch_factory.fire(FileEventType.MODIFIED, "/ws/crates/app/Cargo.toml")

        await coordinator.stop()
        await asyncio.sleep(SETTLE)

        assert reader.calls == 1

    @pytest.mark.asyncio
    async def test_watch_failure_leaves_coordinator_stopped(self, coordinator, watch_factory):
        watch_factory.error = WatcherError("no such root")

        with pytest.raises(WatcherError):
            await coordinator.start()

        assert coordinator.state is CoordinatorState.STOPPED

    @pytest.mark.asyncio
    async def test_without_watch_factory_only_manual_refresh(self, reader, service):
        coordinator = DependencyChangeCoordinator(reader, service=service, options=_options())

        await coordinator.start()

        assert coordinator.is_running
        assert reader.calls == 1
        await coordinator.dispose()


class TestDebouncedRefresh:
    @pytest.mark.asyncio
    async def test_burst_triggers_one_rebuild(self, coordinator, watch_factory, reader):
        """N rapid events trigger exactly one rebuild and one change event"""
        # Given
        recorder = EventRecorder()
        coordinator.on_change(recorder)
        await coordinator.start()

        # When
        paths = [f"/ws/crates/app/src/m{i}.rs" for i in range(10)]
        for path in paths:
            watch_factory.fire(FileEventType.MODIFIED, path)
        await asyncio.sleep(SETTLE)
        await coordinator.wait_idle()

        # Then
        assert reader.calls == 2
        assert len(recorder.events) == 2
        event = recorder.events[1]
        assert event.kind is ChangeKind.MODIFIED
        assert set(event.affected_paths) == set(paths)
        assert coordinator.pending_paths == ()
        await coordinator.dispose()

    @pytest.mark.asyncio
    async def test_kind_follows_last_event(self, coordinator, watch_factory):
        recorder = EventRecorder()
        coordinator.on_change(recorder)
        await coordinator.start()

        watch_factory.fire(FileEventType.CREATED, "/ws/crates/new/Cargo.toml")
        watch_factory.fire(FileEventType.DELETED, "/ws/crates/old/Cargo.toml")
        await asyncio.sleep(SETTLE)
        await coordinator.wait_idle()

        assert recorder.events[-1].kind is ChangeKind.REMOVED
        await coordinator.dispose()

    @pytest.mark.asyncio
    async def test_rebuild_picks_up_new_packages(self, coordinator, watch_factory, reader):
        await coordinator.start()

        reader.set_packages(reader.packages + [make_package("cli", deps=["app"])])
        watch_factory.fire(FileEventType.CREATED, "/ws/crates/cli/Cargo.toml")
        await asyncio.sleep(SETTLE)
        await coordinator.wait_idle()

        graph = coordinator.get_graph()
        assert graph.deployment_order == ("core", "app", "cli")
        await coordinator.dispose()

    @pytest.mark.asyncio
    async def test_failed_debounced_rebuild_is_swallowed(self, coordinator, watch_factory, reader, service):
        """The previous graph stays cached and the coordinator keeps running"""
        # Given
        recorder = EventRecorder()
        coordinator.on_change(recorder)
        await coordinator.start()
        previous = service.cached_graph()

        # When
        reader.fail_with(RuntimeError("manifest unreadable"))
        watch_factory.fire(FileEventType.MODIFIED, "/ws/crates/app/Cargo.toml")
        await asyncio.sleep(SETTLE)
        await coordinator.wait_idle()

        # Then
        assert coordinator.is_running
        assert len(recorder.events) == 1
        assert service.cached_graph() is previous
        assert coordinator.pending_paths == ("/ws/crates/app/Cargo.toml",)
        await coordinator.dispose()

    @pytest.mark.asyncio
    async def test_auto_refresh_disabled_only_accumulates(self, reader, service, watch_factory):
        coordinator = DependencyChangeCoordinator(
            reader,
            service=service,
            watch_factory=watch_factory,
            options=_options(auto_refresh=False),
        )

        await coordinator.start()
        watch_factory.fire(FileEventType.MODIFIED, "/ws/crates/app/Cargo.toml")
        watch_factory.fire(FileEventType.MODIFIED, "/ws/crates/core/src/lib.rs")
        await asyncio.sleep(SETTLE)

        assert reader.calls == 0
        assert set(coordinator.pending_paths) == {
            "/ws/crates/app/Cargo.toml",
            "/ws/crates/core/src/lib.rs",
        }
        await coordinator.dispose()

    @pytest.mark.asyncio
    async def test_pending_changes_keep_latest_kind_per_path(self, reader, service, watch_factory):
        """A file created then deleted before a rebuild is pending as removed"""
        # Given
        coordinator = DependencyChangeCoordinator(
            reader,
            service=service,
            watch_factory=watch_factory,
            options=_options(auto_refresh=False),
        )
        await coordinator.start()

        # When
        watch_factory.fire(FileEventType.CREATED, "/ws/crates/core/src/new.rs")
        watch_factory.fire(FileEventType.MODIFIED, "/ws/crates/app/Cargo.toml")
        watch_factory.fire(FileEventType.DELETED, "/ws/crates/core/src/new.rs")

        # Then
        assert coordinator.pending_changes == {
            "/ws/crates/core/src/new.rs": ChangeKind.REMOVED,
            "/ws/crates/app/Cargo.toml": ChangeKind.MODIFIED,
        }
        await coordinator.dispose()
        assert coordinator.pending_changes == {}


class TestManualRefresh:
    @pytest.mark.asyncio
    async def test_refresh_publishes_immediately(self, coordinator):
        recorder = EventRecorder()
        coordinator.on_change(recorder)

        graph = await coordinator.refresh(ChangeKind.MODIFIED)

        assert recorder.events[0].graph is graph
        assert recorder.events[0].kind is ChangeKind.MODIFIED

    @pytest.mark.asyncio
    async def test_reader_failure_propagates(self, coordinator, reader):
        """Manual refresh surfaces collaborator failures to its caller"""
        reader.fail_with(RuntimeError("boom"))

        with pytest.raises(WorkspaceScanError) as exc_info:
            await coordinator.refresh()

        assert isinstance(exc_info.value.__cause__, RuntimeError)

    @pytest.mark.asyncio
    async def test_build_failure_wrapped(self, reader):
        coordinator = DependencyChangeCoordinator(reader, service=FailingBuildService(), options=_options())

        with pytest.raises(GraphBuildError) as exc_info:
            await coordinator.refresh()

        assert isinstance(exc_info.value.__cause__, ValueError)
        assert exc_info.value.details["packages"] == 2

    @pytest.mark.asyncio
    async def test_empty_workspace_publishes_nothing(self, coordinator, reader):
        recorder = EventRecorder()
        coordinator.on_change(recorder)
        reader.set_packages([])

        graph = await coordinator.refresh()

        assert graph is None
        assert recorder.events == []

    @pytest.mark.asyncio
    async def test_pending_kept_until_publish(self, coordinator, watch_factory, reader):
        await coordinator.start()
        watch_factory.fire(FileEventType.MODIFIED, "/ws/crates/app/Cargo.toml")
        reader.fail_with(RuntimeError("boom"))

        with pytest.raises(WorkspaceScanError):
            await coordinator.refresh()
        assert coordinator.pending_paths == ("/ws/crates/app/Cargo.toml",)

        reader.fail_with(None)
        await coordinator.refresh()
        assert coordinator.pending_paths == ()
        await coordinator.dispose()


class TestSubscriptions:
    @pytest.mark.asyncio
    async def test_failing_listener_does_not_block_others(self, coordinator):
        def broken(event):
            raise RuntimeError("listener bug")

        recorder = EventRecorder()
        coordinator.on_change(broken)
        coordinator.on_change(recorder)

        await coordinator.refresh()

        assert len(recorder.events) == 1

    @pytest.mark.asyncio
    async def test_unsubscribe(self, coordinator):
        recorder = EventRecorder()
        unsubscribe = coordinator.on_change(recorder)

        await coordinator.refresh()
        unsubscribe()
        unsubscribe()
        await coordinator.refresh()

        assert len(recorder.events) == 1

    @pytest.mark.asyncio
    async def test_dispose_drops_listeners(self, coordinator):
        recorder = EventRecorder()
        coordinator.on_change(recorder)
        await coordinator.start()

        await coordinator.dispose()
        await coordinator.refresh()

        assert len(recorder.events) == 1


class TestGetGraph:
    def test_rebuilds_without_publishing(self, coordinator, reader):
        recorder = EventRecorder()
        coordinator.on_change(recorder)

        graph = coordinator.get_graph()

        assert set(graph.nodes) == {"app", "core"}
        assert recorder.events == []
        assert reader.calls == 1

    def test_returns_cached_graph_when_fresh(self, coordinator, reader):
        first = coordinator.get_graph()

        second = coordinator.get_graph()

        assert second is first
        assert reader.calls == 1

    def test_empty_workspace(self, coordinator, reader):
        reader.set_packages([])

        assert coordinator.get_graph() is None


class TestOptions:
    def test_defaults(self):
        options = CoordinatorOptions()

        assert options.debounce_ms == 1000
        assert options.watch_source_files
        assert options.auto_refresh
        assert options.cache_max_age_ms == 60_000
