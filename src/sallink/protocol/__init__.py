from . import fields
from . import message
from . import builder
from . import wire
from . import chunk

from .message import Envelope, Request, Response, new_nonce
from .builder import EnvelopeBuilder
from .wire import ParseError, parse, serialize


"""
sallink Protocol Layer
======================

This package defines the channel-agnostic messaging protocol used between a
host and its clients: the signed envelope, its wire text, and the framing
that lets a long envelope cross a channel that only carries short bursts.

The protocol layer MUST NOT depend on any transport implementation
(loopback, ZeroMQ, an audio codec, etc).

---------------------------------------------------------------------

Layer Architecture Overview
---------------------------

Client / Host (client.py, host.py)
    Correlate requests and responses; validate and dispatch requests

    │
    ▼
Envelope Builder (builder.py)
    Fluent construction of signed envelopes
    - Fresh nonce, sender public key
    - Signs over the canonical {headers, body}

    │
    ▼
Envelope Model (message.py)
    - Envelope
    - Request (method)
    - Response (status, code)

    │
    ▼
Envelope Codec (wire.py)
    Envelope <-> JSON text; rejects malformed input

    │
    ▼
Chunk Codec (chunk.py)
    Marker framing, splitting, reassembly

    │
    ▼
Field Vocabulary (fields.py)
    Canonical names for methods, statuses and wire keys

---------------------------------------------------------------------

Below the Protocol Layer (for context)
--------------------------------------

Transport Adapter
    Paces chunks onto a link, runs the receive loop

Signal Codec
    Maps bytes <-> channel signal (external)

Link
    Moves signals
    - loopback
    - ZeroMQ
    - audio (external)

---------------------------------------------------------------------
"""


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
