"""Process-wide message counters."""
import threading
from datetime import datetime, timezone
from typing import NamedTuple


class CounterSnapshot(NamedTuple):
    message_count: int
    last_message_time: datetime | None


class MessageCounters:
    """
    Message count and last-message time for one ingestion context.

    Only the increment takes the lock; readers may see a slightly stale
    value under concurrent writes.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._message_count = 0
        self._last_message_time: datetime | None = None

    @property
    def message_count(self) -> int:
        return self._message_count

    @property
    def last_message_time(self) -> datetime | None:
        return self._last_message_time

    def record_message(self) -> int:
        """
        Atomically bump the counter and stamp the last-message time.

        Returns:
            The new counter value, used as the event's sequence number
        """
        with self._lock:
            self._message_count += 1
            count = self._message_count
            self._last_message_time = datetime.now(timezone.utc)
        return count

    def snapshot(self) -> CounterSnapshot:
        return CounterSnapshot(self._message_count, self._last_message_time)
