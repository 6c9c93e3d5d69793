"""Append-only narration log for a workflow."""

from lifecert.models import LogEntry


class EventLog:
    """Ordered, append-only sequence of narration entries."""

    def __init__(self):
        self._entries: list[LogEntry] = []

    def append(self, entry: LogEntry) -> LogEntry:
        self._entries.append(entry)
        return entry

    def snapshot(self) -> tuple[LogEntry, ...]:
        """Return an immutable copy of all entries in insertion order."""
        return tuple(self._entries)

    def since(self, offset: int) -> tuple[LogEntry, ...]:
        """Return entries appended after the first ``offset`` ones."""
        return tuple(self._entries[offset:])

    def reset(self) -> None:
        # Only a new run may clear the log
        self._entries = []

    def __len__(self) -> int:
        return len(self._entries)
