import base64
import pytest

import sallink
from sallink.transport import loopback


def quick_adapter(link, chunk_size=40):
    """ Return an adapter that does not pace its output, so that tests are
        not held up waiting for simulated transmission time.
    """

    codec = sallink.transport.PassthroughCodec(byte_rate=0)
    return sallink.TransportAdapter(link, codec, chunk_size=chunk_size, guard=0, ceiling=0)


class FakeLedger(sallink.relay.Ledger):
    """ A ledger that accepts any transaction starting with b'tx:', and
        records every call made against it.
    """

    def __init__(self, confirm=True, submit_error=None):
        self.calls = list()
        self.confirmed = confirm
        self.submit_error = submit_error

    def deserialize(self, data):
        self.calls.append('deserialize')
        if data.startswith(b'tx:'):
            return data
        raise ValueError('not a transaction')

    def countersign(self, transaction, identity):
        self.calls.append('countersign')
        return transaction + b':' + identity.sign(transaction).encode()

    def submit(self, transaction):
        self.calls.append('submit')
        if self.submit_error is not None:
            raise self.submit_error
        return 'id-' + transaction.split(b':')[1].decode()

    def confirm(self, transaction_id):
        self.calls.append('confirm')
        return self.confirmed


def transaction_data(name='abc'):
    return base64.b64encode(b'tx:' + name.encode()).decode()


class Channel:
    """ A running host and an unconnected client joined by a loopback link.
    """

    def __init__(self, drop=None, ledger=None, timeout=2.0, **host_kwargs):

        self.host_link, self.client_link = loopback.pair(drop)

        self.host_identity = sallink.Identity.generate()
        self.client_identity = sallink.Identity.generate()

        self.host = sallink.Host(quick_adapter(self.host_link), self.host_identity, name='unittest', ledger=ledger, workers=2, **host_kwargs)
        self.client = sallink.Client(quick_adapter(self.client_link), self.client_identity, timeout=timeout)

        self.host.run()

    def connect(self):
        return self.client.connect('unittest', '+15555550100').wait(5)

    def close(self):
        self.client.close()
        self.host.stop()


@pytest.fixture
def channel():

    opened = list()

    def build(**kwargs):
        instance = Channel(**kwargs)
        opened.append(instance)
        return instance

    yield build

    for instance in opened:
        instance.close()


@pytest.fixture
def identity():
    return sallink.Identity.generate()


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
