# oms/stream/queue.py
from collections import deque
from typing import Generic, TypeVar

T = TypeVar("T")


class BackpressureQueue(Generic[T]):
    """FIFO buffer between synchronous engine emissions and a slower consumer."""

    def __init__(self):
        self._items: deque[T] = deque()

    def enqueue(self, item: T) -> None:
        self._items.append(item)

    def dequeue(self) -> T:
        if not self._items:
            raise IndexError("dequeue from an empty queue")
        return self._items.popleft()

    def peek(self) -> T:
        if not self._items:
            raise IndexError("peek into an empty queue")
        return self._items[0]

    def is_empty(self) -> bool:
        return not self._items

    def __len__(self) -> int:
        return len(self._items)

    def __bool__(self) -> bool:
        return bool(self._items)
