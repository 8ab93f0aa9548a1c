"""Envelope <-> wire text.

Request layout::

    {"method": "gm"|"msg"|"tx", "sig": "<base64>",
     "msg": {"headers": {...}, "body": <string|object>}}

Response layout: the same ``sig`` and ``msg``, plus ``status`` and ``code``,
and no ``method``.
"""

from __future__ import annotations

from typing import Union

from .. import json
from . import fields
from .message import Envelope, Request, Response


class ParseError(ValueError):
    """The text does not hold a well-formed envelope."""


def serialize(envelope: Envelope) -> str:
    """
    Serialize Envelope -> text
    """

    if envelope.signature is None:
        raise ValueError("envelopes must be signed to be put on the wire")

    return json.dumps(envelope.to_dict()).decode("utf-8")


def parse(text: Union[str, bytes]) -> Envelope:
    """
    Deserialize text -> Request or Response

    Raises ParseError when any of the signature, headers or body is absent.
    The body may be empty or falsy, but the key must be present.
    """

    try:
        raw = json.loads(text)
    except json.DecodeError as e:
        raise ParseError(f"not valid JSON: {e}")

    if not isinstance(raw, dict):
        raise ParseError("envelope must be a JSON object")

    signature = raw.get(fields.SIG)
    msg = raw.get(fields.MSG)

    if not isinstance(signature, str) or signature == "":
        raise ParseError("envelope has no signature")

    if not isinstance(msg, dict):
        raise ParseError("envelope has no msg")

    headers = msg.get(fields.HEADERS)
    if not isinstance(headers, dict):
        raise ParseError("envelope has no headers")

    if fields.BODY not in msg:
        raise ParseError("envelope has no body")

    body = msg[fields.BODY]

    try:
        if fields.METHOD in raw:
            return Request(raw[fields.METHOD], headers, body, signature)

        if fields.STATUS in raw:
            if raw.get(fields.CODE) is None:
                raise ParseError("response has no code")

            return Response(raw[fields.STATUS], headers, body, signature, raw[fields.CODE])
    except ValueError as e:
        raise ParseError(str(e))

    raise ParseError("envelope is neither a request nor a response")
