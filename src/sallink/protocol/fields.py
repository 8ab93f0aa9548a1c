"""Names and numbers that appear on the wire.

Method tags, response statuses and codes, and the keys of the signed
envelope. Both peers must agree on every value here byte for byte, since
the keys take part in the canonical signed text.
"""

# Request methods, as they appear on the wire.
GREETING = "gm"
MESSAGE = "msg"
TRANSACTION = "tx"

METHODS = frozenset((GREETING, MESSAGE, TRANSACTION))

# Response statuses and their default codes.
OK = "ok"
ERROR = "error"

STATUSES = frozenset((OK, ERROR))

CODE_OK = 200
CODE_ERROR = 400
CODE_INTERNAL = 500
CODE_NOT_IMPLEMENTED = 501

DEFAULT_CODES = {OK: CODE_OK, ERROR: CODE_ERROR}

# Top-level envelope keys.
METHOD = "method"
SIG = "sig"
MSG = "msg"
HEADERS = "headers"
BODY = "body"
STATUS = "status"
CODE = "code"

# Header keys.
HOST = "host"
PHONE = "phone"
NONCE = "nonce"
BLOCK_HEIGHT = "blockHeight"
PUBLIC_KEY = "publicKey"
PEER = "peer"

# Fixed bodies.
HELLO = "HELLO"
WELCOME = "WELCOME"

# Transaction bodies are {"type": "transaction", "data": "<base64>"}.
TYPE = "type"
DATA = "data"
TRANSACTION_TYPE = "transaction"
