from deploygraph_engine.change_tracking.infrastructure.file_watcher import (
    WatchdogWatch,
    WatchdogWatchFactory,
    WorkspaceEventHandler,
)
from deploygraph_engine.change_tracking.infrastructure.watcher_debouncer import ChangeSet, EventDebouncer, FileEvent

__all__ = [
    "ChangeSet",
    "EventDebouncer",
    "FileEvent",
    "WatchdogWatch",
    "WatchdogWatchFactory",
    "WorkspaceEventHandler",
]
