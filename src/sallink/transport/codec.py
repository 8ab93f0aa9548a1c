"""Signal codec contract, and a passthrough implementation."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Optional

from .. import config


class SignalCodec(ABC):
    """Turns byte payloads into something a link can carry, and back.

    Implementations may be lossy: :meth:`decode` returns None when nothing
    intelligible was recovered from a signal.
    """

    @abstractmethod
    def encode(self, payload: bytes) -> Any:
        """Return the signal for *payload*."""

    @abstractmethod
    def decode(self, signal: Any) -> Optional[bytes]:
        """Return the payload carried by *signal*, or None."""

    @abstractmethod
    def duration(self, signal: Any) -> float:
        """Estimated seconds the channel is busy transmitting *signal*."""


class PassthroughCodec(SignalCodec):
    """The signal is the payload itself.

    The transmission time is estimated from *byte_rate*, in bytes per second;
    a rate of zero means transmission is instantaneous.
    """

    def __init__(self, byte_rate: Optional[float] = None):
        self.byte_rate = float(config.pick(byte_rate, "byte_rate"))

    def encode(self, payload: bytes) -> bytes:
        return bytes(payload)

    def decode(self, signal: Any) -> Optional[bytes]:
        if not signal:
            return None
        return bytes(signal)

    def duration(self, signal: Any) -> float:
        if self.byte_rate <= 0:
            return 0.0
        return len(signal) / self.byte_rate
