""" Wrapper module to provide the equivalent of :func:`json.loads` and
    :func:`json.dumps` via msgspec, plus the canonical encoding used when
    signing and verifying envelopes.
"""

import msgspec


# The msgspec 'encode' operation returns bytes. Everything on the wire is
# handled as text by the chunk codec; callers decode as necessary.

encoder = msgspec.json.Encoder()
decoder = msgspec.json.Decoder()

# Sorted keys, compact separators: both peers compute identical bytes for
# the same logical content regardless of the order fields were assembled.

canonical_encoder = msgspec.json.Encoder(order='sorted')

DecodeError = msgspec.DecodeError
EncodeError = msgspec.EncodeError

dumps = encoder.encode
loads = decoder.decode
canonical = canonical_encoder.encode


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
