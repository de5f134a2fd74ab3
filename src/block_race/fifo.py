"""FIFO buffer — growable list with a read offset.

Once the consumed prefix reaches half of the backing list, the list is
compacted and the offset reset, so pop-heavy use stays bounded in memory.
Not thread-safe; only touched from inside the serial runner.
"""

from __future__ import annotations

from typing import Generic, TypeVar

T = TypeVar("T")


class EmptyBufferError(IndexError):
    """Pop on an empty buffer. Always a logic bug in the caller."""


class FifoBuffer(Generic[T]):
    def __init__(self) -> None:
        self._items: list[T | None] = []
        self._offset = 0

    def __len__(self) -> int:
        return self.size()

    def size(self) -> int:
        return len(self._items) - self._offset

    def push(self, item: T) -> None:
        self._items.append(item)

    def pop(self) -> T:
        if self.size() == 0:
            raise EmptyBufferError("Cannot pop from an empty buffer")
        item = self._items[self._offset]
        self._items[self._offset] = None
        self._offset += 1
        if len(self._items) <= 2 * self._offset:
            self._items = self._items[self._offset:]
            self._offset = 0
        return item  # type: ignore[return-value]

    def clear(self) -> None:
        self._items = []
        self._offset = 0
