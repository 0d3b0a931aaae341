"""Capped in-memory operation log shown to the user."""

from __future__ import annotations

from collections import deque
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime

DEFAULT_CAPACITY = 100


@dataclass(frozen=True)
class LogEntry:
    message: str
    is_error: bool = False
    timestamp: datetime = field(default_factory=datetime.now)

    def format(self) -> str:
        return f"[{self.timestamp:%H:%M:%S}] {self.message}"


class LogSink:
    """Ring buffer of the most recent log entries; oldest evicted first."""

    def __init__(self, capacity: int = DEFAULT_CAPACITY) -> None:
        if capacity <= 0:
            raise ValueError(f"capacity must be positive, got {capacity}")
        self._entries: deque[LogEntry] = deque(maxlen=capacity)

    @property
    def capacity(self) -> int:
        return self._entries.maxlen or 0

    @property
    def entries(self) -> list[LogEntry]:
        return list(self._entries)

    def append(self, message: str, is_error: bool = False) -> LogEntry:
        entry = LogEntry(message=message, is_error=is_error)
        self._entries.append(entry)
        return entry

    def extend(self, entries: Iterable[LogEntry]) -> None:
        self._entries.extend(entries)

    def clear(self) -> None:
        self._entries.clear()

    def export_text(self) -> str:
        """All entries as clipboard-ready text, one line each."""
        return "".join(f"{entry.format()}\n" for entry in self._entries)

    def __len__(self) -> int:
        return len(self._entries)
