"""
Thread-safe log and progress channel shared by migration workers.

Workers only ever enqueue; the orchestrating thread is the single consumer
that writes events to the console.
"""

import logging
import queue
import threading
from typing import Callable, Hashable, Optional, Set

from models import LogEvent


class LogChannel:
    """Unbounded multi-producer / single-consumer queue of LogEvents."""

    def __init__(self):
        self._queue: "queue.SimpleQueue[LogEvent]" = queue.SimpleQueue()

    def put(self, event: LogEvent) -> None:
        self._queue.put(event)

    def emit(
        self, instance_id: str, step: int, message: str, level: int = logging.INFO
    ) -> LogEvent:
        """Build a LogEvent stamped now and enqueue it."""
        event = LogEvent(instance_id=instance_id, step=step, message=message, level=level)
        self._queue.put(event)
        return event

    def try_get(self) -> Optional[LogEvent]:
        """Dequeue one event without blocking; None when empty."""
        try:
            return self._queue.get_nowait()
        except queue.Empty:
            return None

    def drain(self, sink: Callable[[LogEvent], None]) -> int:
        """
        Hand every currently queued event to sink in dequeue order.

        Args:
            sink: Callable receiving each event

        Returns:
            Number of events drained
        """
        drained = 0
        while True:
            event = self.try_get()
            if event is None:
                return drained
            sink(event)
            drained += 1

    def empty(self) -> bool:
        return self._queue.empty()


class ProgressCounter:
    """Counts runs that reached a terminal phase, once per run key."""

    def __init__(self):
        self._lock = threading.Lock()
        self._completed: Set[Hashable] = set()

    def record(self, key: Hashable) -> bool:
        """Mark key complete. Returns False if it was already recorded."""
        with self._lock:
            if key in self._completed:
                return False
            self._completed.add(key)
            return True

    def is_recorded(self, key: Hashable) -> bool:
        with self._lock:
            return key in self._completed

    @property
    def count(self) -> int:
        with self._lock:
            return len(self._completed)
