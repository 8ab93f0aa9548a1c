"""ZeroMQ link backend."""

from .link import ZmqLink, zmq_context
