"""
Event debouncer: coalesces bursts of file system events.

Watch callbacks push events onto a single-consumer queue. The consumer
buffers them (latest event per path wins) and restarts one debounce timer
per event; when the timer expires the buffered batch is handed to
on_batch_ready. Batches are delivered one at a time, never concurrently.
"""

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import datetime, timezone

from deploygraph_engine.dependency.domain.ports import FileEventType
from deploygraph_shared.common.observability import get_logger

logger = get_logger(__name__)


@dataclass
class FileEvent:
    """Single file event."""

    event_type: FileEventType
    file_path: str
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass
class ChangeSet:
    """Coalesced batch of file changes."""

    added: set[str] = field(default_factory=set)
    modified: set[str] = field(default_factory=set)
    deleted: set[str] = field(default_factory=set)
    last_event_type: FileEventType | None = None

    @property
    def all_paths(self) -> set[str]:
        return self.added | self.modified | self.deleted

    @property
    def total_count(self) -> int:
        return len(self.added) + len(self.modified) + len(self.deleted)

    def is_empty(self) -> bool:
        return self.total_count == 0


class EventDebouncer:
    """
    File event debouncer.

    Usage:
        debouncer = EventDebouncer(debounce_ms=1000, on_batch_ready=handle_changes)
        await debouncer.start()
        debouncer.push_event(FileEventType.MODIFIED, "crates/a/src/lib.rs")
    """

    def __init__(
        self,
        debounce_ms: int = 1000,
        on_batch_ready: Callable[[ChangeSet], Awaitable[None]] | None = None,
        max_queue_size: int = 10000,
    ):
        """
        Args:
            debounce_ms: Quiet period (ms) before a batch is delivered
            on_batch_ready: Batch callback
            max_queue_size: Queue bound; events beyond it are dropped
        """
        self.debounce_ms = debounce_ms
        self.on_batch_ready = on_batch_ready
        self.max_queue_size = max_queue_size

        self._queue: asyncio.Queue[FileEvent] = asyncio.Queue(maxsize=max_queue_size)

        # file_path → FileEvent (latest only)
        self._events: dict[str, FileEvent] = {}
        self._last_event: FileEvent | None = None
        self._flush_lock = asyncio.Lock()

        self._debounce_task: asyncio.Task | None = None
        self._flush_tasks: set[asyncio.Task] = set()
        self._consumer_task: asyncio.Task | None = None
        self._is_running = False

    @property
    def is_running(self) -> bool:
        return self._is_running

    async def start(self):
        self._is_running = True
        self._consumer_task = asyncio.create_task(self._consumer_loop())
        logger.info("event_debouncer_started", debounce_ms=self.debounce_ms)

    async def stop(self):
        """
        Stop consuming and drop buffered events.

        A batch already being delivered is left to finish.
        """
        self._is_running = False

        if self._consumer_task and not self._consumer_task.done():
            self._consumer_task.cancel()
            try:
                await self._consumer_task
            except asyncio.CancelledError:
                pass
        self._consumer_task = None

        if self._debounce_task and not self._debounce_task.done():
            self._debounce_task.cancel()
        self._debounce_task = None

        while not self._queue.empty():
            self._queue.get_nowait()
        self._events.clear()
        self._last_event = None

        logger.info("event_debouncer_stopped")

    def push_event(self, event_type: FileEventType, file_path: str):
        """
        Enqueue an event.

        Must run on the event loop thread; watchers hop threads with
        loop.call_soon_threadsafe before calling this.
        """
        if not self._is_running:
            logger.warning("event_debouncer_not_running", file_path=file_path)
            return

        try:
            self._queue.put_nowait(FileEvent(event_type=event_type, file_path=file_path))
        except asyncio.QueueFull:
            logger.error("event_queue_full", file_path=file_path, max_queue_size=self.max_queue_size)

    async def _consumer_loop(self):
        while self._is_running:
            event = await self._queue.get()

            self._events[event.file_path] = event
            self._last_event = event
            logger.debug(
                "event_consumed",
                event_type=event.event_type.value,
                file_path=event.file_path,
                buffer_size=len(self._events),
            )

            self._reset_debounce_timer()

    def _reset_debounce_timer(self):
        """Restart the single pending timer (last event wins)."""
        if self._debounce_task and not self._debounce_task.done():
            self._debounce_task.cancel()

        self._debounce_task = asyncio.create_task(self._debounce_timer())

    async def _debounce_timer(self):
        try:
            await asyncio.sleep(self.debounce_ms / 1000)
        except asyncio.CancelledError:
            return  # timer reset

        # Delivery runs in its own task so a later reset cannot cancel it
        task = asyncio.create_task(self._flush())
        self._flush_tasks.add(task)
        task.add_done_callback(self._flush_tasks.discard)

    async def _flush(self):
        async with self._flush_lock:
            if not self._events:
                return

            events = dict(self._events)
            last_event = self._last_event
            self._events.clear()
            self._last_event = None

            change_set = self._build_change_set(events, last_event)
            logger.info(
                "events_flushed",
                added=len(change_set.added),
                modified=len(change_set.modified),
                deleted=len(change_set.deleted),
            )

            if self.on_batch_ready and not change_set.is_empty():
                try:
                    await self.on_batch_ready(change_set)
                except Exception as e:
                    logger.error("on_batch_ready_failed", error=str(e), exc_info=True)

    async def wait_idle(self):
        """Wait for batches currently being delivered (tests, shutdown)."""
        if self._flush_tasks:
            await asyncio.gather(*list(self._flush_tasks), return_exceptions=True)

    def _build_change_set(self, events: dict[str, FileEvent], last_event: FileEvent | None) -> ChangeSet:
        change_set = ChangeSet(last_event_type=last_event.event_type if last_event else None)

        for file_path, event in events.items():
            if event.event_type == FileEventType.CREATED:
                change_set.added.add(file_path)
            elif event.event_type == FileEventType.MODIFIED:
                change_set.modified.add(file_path)
            elif event.event_type == FileEventType.DELETED:
                change_set.deleted.add(file_path)

        return change_set

    def get_pending_count(self) -> int:
        return len(self._events)

    def is_idle(self) -> bool:
        return not self._events and not self._flush_tasks
