"""ZeroMQ link.

A PAIR socket carries one signal per message frame. This is useful for
running a host and a client in separate processes, or on separate machines,
without an acoustic channel in between; the chunking and pacing above the
link behave exactly as they would over audio.
"""

from __future__ import annotations

import threading
import time
from typing import Optional

import zmq

from ... import config
from ..base import Link, TransportConnectionError


zmq_context = zmq.Context()


class ZmqLink(Link):
    """One end of a ZeroMQ PAIR connection.

    Exactly one end should *bind* to the *address*; the other connects to it.
    The *address* defaults to the configured ``zmq_address``.
    """

    poll_slice = 10

    def __init__(self, address: Optional[str] = None, bind: bool = False):
        self.address = config.pick(address, "zmq_address")
        self.bind = bind
        self.socket = None
        self.socket_lock = threading.Lock()

    def __repr__(self):
        role = "bind" if self.bind else "connect"
        return f"ZmqLink({self.address!r}, {role})"

    @property
    def is_open(self) -> bool:
        return self.socket is not None

    def open(self) -> None:
        if self.socket is not None:
            return

        socket = zmq_context.socket(zmq.PAIR)
        socket.setsockopt(zmq.LINGER, 0)

        try:
            if self.bind:
                socket.bind(self.address)
            else:
                socket.connect(self.address)
        except zmq.ZMQError as e:
            socket.close()
            raise TransportConnectionError(f"{self.address}: {e}")

        self.socket = socket

    def close(self) -> None:
        with self.socket_lock:
            socket = self.socket
            self.socket = None

            if socket is not None:
                socket.close()

    def send(self, signal: bytes) -> None:
        # ZeroMQ sockets are not thread-safe; the receive thread and any
        # sending thread share this one.

        with self.socket_lock:
            if self.socket is None:
                raise TransportConnectionError(f"{self.address}: link is closed")

            try:
                self.socket.send(bytes(signal), flags=zmq.NOBLOCK)
            except zmq.Again:
                raise TransportConnectionError(f"{self.address}: no peer connected")

    def recv(self, timeout: Optional[float] = None) -> Optional[bytes]:
        if timeout is None:
            deadline = None
        else:
            deadline = time.monotonic() + timeout

        while True:
            # Poll in short slices so a sender never waits long for the lock.

            with self.socket_lock:
                if self.socket is None:
                    raise TransportConnectionError(f"{self.address}: link is closed")

                if self.socket.poll(self.poll_slice, zmq.POLLIN):
                    return self.socket.recv(flags=zmq.NOBLOCK)

            if deadline is not None and time.monotonic() >= deadline:
                return None
