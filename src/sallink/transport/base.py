"""Signal channels.

A :class:`Link` is one end of whatever physically carries the signals between
two devices: an audio path, a socket, or an in-process queue in tests. It
moves one signal at a time and has no notion of chunks, envelopes, or who is
on the other end; :class:`sallink.transport.TransportAdapter` builds on it.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Optional


# Errors raised by links and the adapter above them.

class TransportError(Exception):
    """A link or adapter failed to move signals."""


class TransportTimeout(TransportError):
    """No answer arrived over the channel before the request deadline."""


class TransportConnectionError(TransportError):
    """Signals cannot be sent: the link is closed, was never opened, or has
    nobody on the other end.
    """


class Link(ABC):
    """One end of a signal channel."""

    @abstractmethod
    def open(self) -> None:
        """Acquire the channel; signals may be sent and received afterwards."""

    @abstractmethod
    def close(self) -> None:
        """Release the channel. Closing a closed link does nothing."""

    @abstractmethod
    def send(self, signal: Any) -> None:
        """Put *signal* on the channel, or raise
        :class:`TransportConnectionError` if it cannot be sent.
        """

    @abstractmethod
    def recv(self, timeout: Optional[float] = None) -> Optional[Any]:
        """Return the next signal, or None if nothing arrived in time."""

    @property
    def is_open(self) -> bool:
        """True between :func:`open` and :func:`close`."""
        return False
