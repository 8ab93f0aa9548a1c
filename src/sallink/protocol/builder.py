from __future__ import annotations

from typing import Any, Dict, Optional

from . import fields
from .message import Request, Response, new_nonce


class EnvelopeBuilder:
    """Fluent construction of signed envelopes.

    The builder fills in the signer's public key and a fresh nonce, and signs
    the envelope in :meth:`build`. One builder produces one envelope.
    """

    def __init__(self, signer):
        self._signer = signer

        self._method: Optional[str] = None
        self._status: Optional[str] = None
        self._code: Optional[int] = None
        self._headers: Dict[str, Any] = {}
        self._body: Any = None

    # Semantic type setters
    def greeting(self):
        self._method = fields.GREETING
        self._body = fields.HELLO
        return self

    def message(self, body: Any):
        self._method = fields.MESSAGE
        self._body = body
        return self

    def transaction(self, data: str):
        self._method = fields.TRANSACTION
        self._body = {fields.TYPE: fields.TRANSACTION_TYPE, fields.DATA: data}
        return self

    def respond(self, request: Request, status: str = fields.OK, code: Optional[int] = None):
        """Answer *request*: reuse its nonce and echo its block height."""
        self._status = status
        self._code = code
        self._headers[fields.NONCE] = request.nonce

        block_height = request.block_height
        if block_height is not None:
            self._headers[fields.BLOCK_HEIGHT] = block_height
        return self

    # Headers
    def host(self, host: Optional[str]):
        if host is not None:
            self._headers[fields.HOST] = host
        return self

    def phone(self, phone: Optional[str]):
        if phone is not None:
            self._headers[fields.PHONE] = phone
        return self

    def block_height(self, height: Optional[int]):
        if height is not None:
            self._headers[fields.BLOCK_HEIGHT] = int(height)
        return self

    def nonce(self, nonce: str):
        self._headers[fields.NONCE] = nonce
        return self

    def header(self, key: str, value: Any):
        self._headers[key] = value
        return self

    # Data
    def body(self, body: Any):
        self._body = body
        return self

    # Finalize
    def build(self):

        headers = dict(self._headers)
        headers.setdefault(fields.NONCE, new_nonce())
        headers[fields.PUBLIC_KEY] = self._signer.public_key

        if self._status is not None:
            envelope = Response(self._status, headers, self._body, code=self._code)
        elif self._method is not None:
            envelope = Request(self._method, headers, self._body)
        else:
            raise ValueError("Envelope method or status not specified")

        return envelope.sign(self._signer)
