"""
Fixed-capacity circular queue.

Used for the vehicles travelling on each link and for the pool of idle
vehicles. Enqueue, dequeue and peek are all constant time; the capacity is
chosen once, large enough for the whole fleet, so the queue never resizes.
"""

from typing import Generic, Iterator, List, Optional, TypeVar

T = TypeVar('T')


class RingQueue(Generic[T]):
    """Circular buffer with O(1) enqueue/dequeue and no resizing.

    Overflow and underflow are prevented by construction (every queue is as
    large as the fleet). The preconditions are still asserted so that a broken
    invariant fails loudly in tests instead of corrupting the buffer.
    """

    __slots__ = ('_items', '_capacity', '_head', '_len')

    def __init__(self, capacity: int):
        if capacity <= 0:
            raise ValueError(f"capacity must be positive, got {capacity}")
        self._capacity = capacity
        self._items: List[Optional[T]] = [None] * capacity
        self._head = 0
        self._len = 0

    @property
    def capacity(self) -> int:
        return self._capacity

    def length(self) -> int:
        """Number of items currently queued."""
        return self._len

    def __len__(self) -> int:
        return self._len

    def __bool__(self) -> bool:
        return self._len > 0

    def is_full(self) -> bool:
        return self._len == self._capacity

    def enqueue(self, item: T) -> None:
        """Append at the logical tail. Requires length() < capacity."""
        assert self._len < self._capacity, "enqueue on a full RingQueue"
        self._items[(self._head + self._len) % self._capacity] = item
        self._len += 1

    def dequeue(self) -> T:
        """Remove and return the item at the head. Requires length() > 0."""
        assert self._len > 0, "dequeue on an empty RingQueue"
        item = self._items[self._head]
        self._items[self._head] = None
        self._head = (self._head + 1) % self._capacity
        self._len -= 1
        return item

    def first(self) -> T:
        assert self._len > 0, "first() on an empty RingQueue"
        return self._items[self._head]

    def last(self) -> T:
        assert self._len > 0, "last() on an empty RingQueue"
        return self._items[(self._head + self._len - 1) % self._capacity]

    def peek(self, index: int) -> T:
        """Item at logical offset `index` from the head, 0 <= index < length()."""
        assert 0 <= index < self._len, f"peek({index}) outside [0, {self._len})"
        return self._items[(self._head + index) % self._capacity]

    def __iter__(self) -> Iterator[T]:
        for i in range(self._len):
            yield self._items[(self._head + i) % self._capacity]

    def __repr__(self) -> str:
        return f"RingQueue(len={self._len}, capacity={self._capacity})"
