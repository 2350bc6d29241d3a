"""Per-request deadline and cancellation shared by every outbound hop."""

from __future__ import annotations

import contextlib
import socket
import threading
import time
from contextvars import ContextVar
from typing import Iterator, Optional, Protocol

from app.services.errors import RequestCancelled


class _Connection(Protocol):
    sock: Optional[socket.socket]


_active_scope: ContextVar[Optional["RequestScope"]] = ContextVar("active_request_scope", default=None)


def active_scope() -> Optional["RequestScope"]:
    """Scope of the hop running on this thread, if any."""
    return _active_scope.get()


class RequestScope:
    """Deadline plus cancellation for one inbound request.

    Outbound connections opened inside :meth:`hop` are registered on the
    scope. Cancelling the scope, or reaching the deadline while a hop is in
    flight, shuts their sockets down so the blocked call fails immediately.
    """

    def __init__(self, timeout: float) -> None:
        self._deadline = time.monotonic() + timeout
        self._cancelled = threading.Event()
        self._timed_out = threading.Event()
        self._lock = threading.Lock()
        self._connections: list[_Connection] = []

    def cancel(self) -> None:
        self._cancelled.set()
        self._abort_connections()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    @property
    def expired(self) -> bool:
        return self.cancelled or self._timed_out.is_set() or self.remaining() <= 0

    def remaining(self) -> float:
        return max(self._deadline - time.monotonic(), 0.0)

    def check(self) -> float:
        """Return the remaining budget, raising if the request is already over."""
        if self.cancelled:
            raise RequestCancelled("inbound request was cancelled")
        remaining = self.remaining()
        if remaining <= 0 or self._timed_out.is_set():
            raise RequestCancelled("inbound request deadline exceeded")
        return remaining

    @contextlib.contextmanager
    def hop(self) -> Iterator[float]:
        """Bound one outbound call by the remaining budget, end to end.

        Yields the remaining budget for use as the socket timeout.
        """
        remaining = self.check()
        timer = threading.Timer(remaining, self._expire)
        timer.daemon = True
        token = _active_scope.set(self)
        timer.start()
        try:
            yield remaining
        finally:
            timer.cancel()
            _active_scope.reset(token)
            with self._lock:
                self._connections.clear()

    def track(self, connection: _Connection) -> None:
        with self._lock:
            self._connections.append(connection)
            aborted = self.expired
        if aborted:
            self._abort_connections()

    def _expire(self) -> None:
        self._timed_out.set()
        self._abort_connections()

    def _abort_connections(self) -> None:
        with self._lock:
            connections = list(self._connections)
        for connection in connections:
            sock = connection.sock
            if sock is None:
                continue
            with contextlib.suppress(OSError):
                sock.shutdown(socket.SHUT_RDWR)
