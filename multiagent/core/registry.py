"""Insertion-ordered record registry.

Records live in a dense list (iteration order == registration order) with an
id -> index map for O(1) lookup.  Removal keeps the remaining records in
registration order and shifts the indices of everything after the removed
slot, so the default turn order never gets scrambled by churn.
"""

from __future__ import annotations

from typing import Generic, Iterator, TypeVar

T = TypeVar("T")


class OrderedRegistry(Generic[T]):
    """Dense, insertion-ordered mapping from id to record."""

    def __init__(self) -> None:
        self._ids: list[str] = []
        self._records: list[T] = []
        self._index: dict[str, int] = {}

    def add(self, record_id: str, record: T) -> bool:
        """Register a record. Returns False if the id is already present."""
        if record_id in self._index:
            return False
        self._index[record_id] = len(self._records)
        self._ids.append(record_id)
        self._records.append(record)
        return True

    def remove(self, record_id: str) -> T | None:
        """Remove and return a record, or None if it was never registered."""
        idx = self._index.pop(record_id, None)
        if idx is None:
            return None
        record = self._records.pop(idx)
        self._ids.pop(idx)
        for shifted in self._ids[idx:]:
            self._index[shifted] -= 1
        return record

    def get(self, record_id: str) -> T | None:
        idx = self._index.get(record_id)
        if idx is None:
            return None
        return self._records[idx]

    def index_of(self, record_id: str) -> int | None:
        return self._index.get(record_id)

    def ids(self) -> list[str]:
        return list(self._ids)

    def items(self) -> list[tuple[str, T]]:
        return list(zip(self._ids, self._records))

    def values(self) -> list[T]:
        return list(self._records)

    def clear(self) -> None:
        self._ids.clear()
        self._records.clear()
        self._index.clear()

    def __contains__(self, record_id: object) -> bool:
        return record_id in self._index

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._ids))
