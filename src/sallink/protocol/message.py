""" A class representation of a signed envelope, including subclasses for
    requests and responses.
"""

import secrets

from .. import identity
from .. import json
from . import fields


class Envelope:
    """ The :class:`Envelope` is the unit exchanged between peers: a set of
        *headers*, a *body*, and a *signature* covering both. The headers are
        kept as the plain dictionary that appears on the wire, so that any
        keys this implementation does not know about survive a round trip
        and the canonical bytes can be reproduced exactly by the recipient.

        The *body* is either text or any structure that can be serialized as
        JSON. The *signature* is None until :func:`sign` is called, or until
        one is supplied from a parsed envelope.
    """

    def __init__(self, headers, body, signature=None):

        headers = dict(headers)

        nonce = headers.get(fields.NONCE)
        public_key = headers.get(fields.PUBLIC_KEY)

        if not isinstance(nonce, str) or nonce == '':
            raise ValueError('envelope headers require a nonce string')

        if not isinstance(public_key, str) or public_key == '':
            raise ValueError('envelope headers require a publicKey string')

        self.headers = headers
        self.body = body
        self.signature = signature


    def __repr__(self):
        return '%s(%r, %r)' % (self.__class__.__name__, self.headers, self.body)


    @property
    def nonce(self):
        return self.headers[fields.NONCE]


    @property
    def public_key(self):
        return self.headers[fields.PUBLIC_KEY]


    @property
    def host(self):
        return self.headers.get(fields.HOST)


    @property
    def phone(self):
        return self.headers.get(fields.PHONE)


    @property
    def block_height(self):
        return self.headers.get(fields.BLOCK_HEIGHT)


    def canonical(self):
        """ Return the bytes covered by the signature: the serialization of
            exactly the headers and the body, with sorted keys. The method
            and signature are excluded.
        """

        signed = dict()
        signed[fields.HEADERS] = self.headers
        signed[fields.BODY] = self.body

        return json.canonical(signed)


    def sign(self, signer):
        """ Sign this envelope with the provided :class:`identity.Identity`,
            which must match the public key claimed in the headers. Returns
            the envelope to allow chaining.
        """

        if signer.public_key != self.public_key:
            raise ValueError('the signing identity does not match the publicKey header')

        self.signature = signer.sign(self.canonical())
        return self


    def verify(self):
        """ Return True if the signature verifies against the public key
            claimed in the headers.
        """

        if self.signature is None:
            return False

        return identity.verify(self.public_key, self.canonical(), self.signature)


    def to_dict(self):
        msg = dict()
        msg[fields.HEADERS] = self.headers
        msg[fields.BODY] = self.body

        envelope = dict()
        envelope[fields.SIG] = self.signature
        envelope[fields.MSG] = msg
        return envelope


# end of class Envelope



class Request(Envelope):
    """ A :class:`Request` is sent by a client, and carries the *method* the
        host should use to process it.
    """

    valid_methods = fields.METHODS

    def __init__(self, method, headers, body, signature=None):

        if method in self.valid_methods:
            pass
        else:
            raise ValueError('invalid request method: ' + repr(method))

        Envelope.__init__(self, headers, body, signature)
        self.method = method


    def __repr__(self):
        return 'Request(%r, %r, %r)' % (self.method, self.headers, self.body)


    def to_dict(self):
        envelope = dict()
        envelope[fields.METHOD] = self.method
        envelope.update(Envelope.to_dict(self))
        return envelope


# end of class Request



class Response(Envelope):
    """ A :class:`Response` is sent by a host, and reuses the nonce of the
        request it answers. The *code* defaults to the conventional value
        for the *status*.
    """

    valid_statuses = fields.STATUSES

    def __init__(self, status, headers, body, signature=None, code=None):

        if status in self.valid_statuses:
            pass
        else:
            raise ValueError('invalid response status: ' + repr(status))

        if code is None:
            code = fields.DEFAULT_CODES[status]
        elif isinstance(code, bool) or not isinstance(code, int):
            raise ValueError('response code must be an integer: ' + repr(code))

        Envelope.__init__(self, headers, body, signature)
        self.status = status
        self.code = code


    def __repr__(self):
        return 'Response(%r, %d, %r, %r)' % (self.status, self.code, self.headers, self.body)


    @property
    def ok(self):
        return self.status == fields.OK


    def to_dict(self):
        envelope = dict()
        envelope[fields.STATUS] = self.status
        envelope[fields.CODE] = self.code
        envelope.update(Envelope.to_dict(self))
        return envelope


# end of class Response



def new_nonce():
    """ Return a fresh random nonce, unique across all clients of a host.
    """

    return secrets.token_hex(16)


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
