"""Transport layer implementations."""

from .. import config

from .base import (
    Link,
    TransportError,
    TransportTimeout,
    TransportConnectionError,
)
from .codec import SignalCodec, PassthroughCodec
from .adapter import TransportAdapter
from . import loopback


def link(name=None, **kwargs):
    """Instantiate a :class:`base.Link` for the named backend, which
    defaults to the configured ``transport``. Keyword arguments are passed
    to the backend's constructor.
    """

    name = config.pick(name, "transport")

    if name == "loopback":
        return loopback.LoopbackLink(**kwargs)

    if name == "zmq":
        from . import zmq
        return zmq.ZmqLink(**kwargs)

    raise ValueError(f"unknown transport backend: {name!r}")
