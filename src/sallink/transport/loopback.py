"""In-process link pairs.

A pair of :class:`LoopbackLink` instances stands in for two devices sharing a
channel: whatever one end sends arrives, in order, at the other end. An
optional *drop* hook simulates signals lost in the air.
"""

from __future__ import annotations

import queue
import threading
from typing import Any, Callable, Optional, Tuple

from .base import Link, TransportConnectionError


class LoopbackLink(Link):
    """One end of an in-process channel.

    The *drop* callable, if provided, is invoked as ``drop(index, signal)``
    for every outbound signal, where *index* counts signals sent on this
    end starting from zero. If it returns True the signal is discarded.
    """

    def __init__(self, name: str = "loopback", drop: Optional[Callable[[int, Any], bool]] = None):
        self.name = name
        self.drop = drop
        self.peer: Optional[LoopbackLink] = None
        self.sent = 0
        self.dropped = 0

        self._inbox: queue.SimpleQueue = queue.SimpleQueue()
        self._open = False
        self._lock = threading.Lock()

    def __repr__(self):
        return f"LoopbackLink({self.name!r})"

    @property
    def is_open(self) -> bool:
        return self._open

    def open(self) -> None:
        self._open = True

    def close(self) -> None:
        self._open = False

    def send(self, signal: Any) -> None:
        if not self._open:
            raise TransportConnectionError(f"{self.name}: link is closed")

        peer = self.peer
        if peer is None:
            raise TransportConnectionError(f"{self.name}: link has no peer")

        with self._lock:
            index = self.sent
            self.sent += 1

        if self.drop is not None and self.drop(index, signal):
            self.dropped += 1
            return

        peer._inbox.put(signal)

    def recv(self, timeout: Optional[float] = None) -> Optional[Any]:
        try:
            return self._inbox.get(timeout=timeout)
        except queue.Empty:
            return None


def pair(drop: Optional[Callable[[int, Any], bool]] = None) -> Tuple[LoopbackLink, LoopbackLink]:
    """Return two connected links, ``(host_end, client_end)``.

    The *drop* hook applies to signals sent from the client end, which is
    how lost request chunks are simulated.
    """

    host_end = LoopbackLink("loopback.host")
    client_end = LoopbackLink("loopback.client", drop=drop)

    host_end.peer = client_end
    client_end.peer = host_end

    return host_end, client_end
