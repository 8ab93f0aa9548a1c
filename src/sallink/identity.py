""" Ed25519 signing and verification for envelope authentication.

The public key, base64-encoded, doubles as the peer's identifier for the
lifetime of a session. Signatures are detached and base64-encoded for the
wire. Signing and verification failures are local matters; :func:`verify`
never raises for malformed input, it simply reports the signature as bad.
"""

from __future__ import annotations

from typing import Union

from nacl.encoding import Base64Encoder
from nacl.exceptions import CryptoError
from nacl.signing import SigningKey, VerifyKey


class Identity:
    """ Wraps an Ed25519 keypair. Create a fresh one with :func:`generate`,
        or restore one from a previously exported :attr:`seed`.
    """

    def __init__(self, signing_key: SigningKey):
        self.signing_key = signing_key
        self.verify_key = signing_key.verify_key
        self.public_key = self.verify_key.encode(encoder=Base64Encoder).decode()


    def __repr__(self):
        return 'Identity(%s)' % (self.public_key)


    @classmethod
    def generate(cls) -> Identity:
        return cls(SigningKey.generate())


    @classmethod
    def from_seed(cls, seed: Union[str, bytes]) -> Identity:
        """ Restore an identity from a base64-encoded 32 byte seed, as
            returned by :attr:`seed`.
        """

        if isinstance(seed, str):
            seed = seed.encode()

        return cls(SigningKey(seed, encoder=Base64Encoder))


    @property
    def seed(self) -> str:
        return self.signing_key.encode(encoder=Base64Encoder).decode()


    def sign(self, data: bytes) -> str:
        """ Return the base64-encoded detached signature of *data*.
        """

        signed = self.signing_key.sign(data)
        return Base64Encoder.encode(signed.signature).decode()


# end of class Identity


def verify(public_key: str, data: bytes, signature: str) -> bool:
    """ Return True if *signature* is a valid signature of *data* by the
        holder of *public_key*, otherwise False. Keys or signatures that
        cannot be decoded are treated as invalid.
    """

    if not isinstance(public_key, str) or not isinstance(signature, str):
        return False

    try:
        key = VerifyKey(public_key.encode(), encoder=Base64Encoder)
        raw_signature = Base64Encoder.decode(signature.encode())
        key.verify(data, raw_signature)
    except (CryptoError, ValueError, TypeError):
        return False

    return True


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
