""" Runtime configuration. Every setting has a default listed in
    :data:`defaults`; any of them can be overridden by setting an environment
    variable named ``SAL_`` followed by the upper-case setting name, for
    example ``SAL_TIMEOUT=5``. Explicit arguments passed to constructors
    always take precedence over both.
"""

import os


defaults = dict()

# Which transport backend :func:`sallink.transport.link` will instantiate.
defaults['transport'] = 'loopback'

# Chunking and pacing. The chunk size is in bytes of UTF-8 text; the guard
# and ceiling are in seconds. The byte rate is only used by the passthrough
# codec to estimate how long a chunk takes to go out on the channel.
defaults['chunk_size'] = 120
defaults['chunk_guard'] = 0.5
defaults['chunk_ceiling'] = 10.0
defaults['byte_rate'] = 16.0
defaults['max_buffer'] = 65536

# Request handling.
defaults['timeout'] = 20.0
defaults['workers'] = 4

# Replay protection. A max_age of zero disables age-based eviction.
defaults['nonce_capacity'] = 10000
defaults['nonce_max_age'] = 0.0

defaults['zmq_address'] = 'tcp://127.0.0.1:10079'


def get(name, default=None):
    """ Return the configured value for *name*. The environment is consulted
        on every call, so changes made after import are honored. Values from
        the environment are cast to the type of the built-in default; the
        *default* argument is only used for names with no built-in default.
    """

    try:
        builtin = defaults[name]
    except KeyError:
        builtin = default

    variable = 'SAL_' + name.upper()

    try:
        raw = os.environ[variable]
    except KeyError:
        return builtin

    if builtin is None or isinstance(builtin, str):
        return raw

    try:
        return type(builtin)(raw)
    except ValueError:
        raise ValueError("%s=%r is not a valid %s" % (variable, raw, type(builtin).__name__))


def pick(value, name):
    """ Return *value* unless it is None, in which case return the
        configured value for *name*.
    """

    if value is None:
        return get(name)
    return value


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
