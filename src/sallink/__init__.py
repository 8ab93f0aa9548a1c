""" Python implementation of a signed request/response protocol for narrow,
    lossy, half-duplex channels such as audio. This includes the client
    role, which greets a host and sends it messages and transactions, and
    the host role, which authenticates, answers, and relays them.
"""

# Utility components.

from . import json
from . import config
from . import events

# Submodules used by multiple other components.

from . import identity
from . import replay
from . import protocol
from . import transport
from . import relay

# Primary public-facing interfaces.

from .identity import Identity
from .client import Client
from .host import Host
from .transport import TransportAdapter

# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
