"""
Graph cache: explicit {graph, built_at} state with a freshness window.

Holds one immutable DependencyGraph. set() swaps the reference and
invalidate() drops it; neither touches graphs already handed out.
"""

import threading
import time
from collections.abc import Callable
from dataclasses import dataclass

from deploygraph_engine.dependency.domain.models import DependencyGraph

DEFAULT_MAX_AGE_MS = 60_000


@dataclass(frozen=True)
class CacheEntry:
    graph: DependencyGraph
    built_at: float  # seconds, from the cache clock


class GraphCache:
    def __init__(self, clock: Callable[[], float] = time.monotonic):
        """
        Args:
            clock: Seconds source; injectable for tests
        """
        self._clock = clock
        self._entry: CacheEntry | None = None
        self._lock = threading.Lock()

    def get(self, max_age_ms: int = DEFAULT_MAX_AGE_MS) -> DependencyGraph | None:
        """The cached graph if younger than max_age_ms, else None."""
        entry = self._entry
        if entry is None:
            return None

        age_ms = (self._clock() - entry.built_at) * 1000
        if age_ms > max_age_ms:
            return None
        return entry.graph

    def set(self, graph: DependencyGraph) -> None:
        with self._lock:
            self._entry = CacheEntry(graph=graph, built_at=self._clock())

    def invalidate(self) -> None:
        with self._lock:
            self._entry = None
