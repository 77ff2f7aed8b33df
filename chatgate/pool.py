"""A blocking, closable pool of reusable connections."""

from __future__ import annotations

import threading
from collections import deque
from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from typing import Generic, TypeVar

T = TypeVar("T")


class PoolClosedError(RuntimeError):
    """Raised when a connection is requested from a closed pool."""


class ConnectionPool(Generic[T]):
    """Hands out connections first-in first-out; ``get`` waits while empty."""

    def __init__(self, connections: Iterable[T]):
        self._items: deque[T] = deque(connections)
        self._cond = threading.Condition()
        self._closed = False

    def __len__(self) -> int:
        with self._cond:
            return len(self._items)

    @property
    def closed(self) -> bool:
        return self._closed

    def get(self) -> T:
        """Take a connection, waiting until one is free or the pool closes."""
        with self._cond:
            self._cond.wait_for(lambda: self._closed or bool(self._items))
            if self._closed:
                raise PoolClosedError("connection pool is closed")
            return self._items.popleft()

    def put(self, connection: T) -> None:
        """Give a connection back; it is dropped if the pool is closed."""
        with self._cond:
            if self._closed:
                return
            self._items.append(connection)
            self._cond.notify()

    def close(self) -> None:
        """Close the pool and wake everyone waiting on it."""
        with self._cond:
            self._closed = True
            self._items.clear()
            self._cond.notify_all()

    @contextmanager
    def connection(self) -> Iterator[T]:
        """Borrow a connection for the duration of a ``with`` block."""
        conn = self.get()
        try:
            yield conn
        finally:
            self.put(conn)