"""Append-only lifecycle event log.

The core records events here; dashboards and trackers poll it.  Nothing in
the core ever calls back into a consumer.
"""

from __future__ import annotations

from typing import Any

from multiagent.metrics.definitions import EventType


class EventLog:
    """In-memory list of event dicts, read by cursor."""

    def __init__(self) -> None:
        self._events: list[dict[str, Any]] = []

    def record(self, event: EventType, **fields: Any) -> dict[str, Any]:
        entry = {"event": event.value, **fields}
        self._events.append(entry)
        return entry

    @property
    def events(self) -> list[dict[str, Any]]:
        """All events recorded so far (copy)."""
        return list(self._events)

    def since(self, cursor: int) -> tuple[list[dict[str, Any]], int]:
        """Events after ``cursor`` and the cursor to pass next time."""
        new = self._events[cursor:]
        return list(new), len(self._events)

    def of_type(self, event: EventType) -> list[dict[str, Any]]:
        return [e for e in self._events if e["event"] == event.value]

    def __len__(self) -> int:
        return len(self._events)
