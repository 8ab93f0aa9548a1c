""" Full exchanges between a running host and client over a loopback link.
"""

import queue
import time

import pytest

import sallink
from sallink.protocol import wire

from conftest import FakeLedger, transaction_data


class Dropper:
    """ Drop one chunk, counted from when it is armed.
    """

    def __init__(self, target):
        self.target = target
        self.armed = None

    def arm(self, link):
        self.armed = link.sent

    def __call__(self, index, signal):
        if self.armed is None:
            return False
        return index - self.armed == self.target


def test_greeting(channel):

    pair = channel()
    response = pair.connect()

    assert response.ok
    assert response.body == 'WELCOME'
    assert response.headers['peer'] == pair.client.public_key
    assert pair.client.state == sallink.client.CONNECTED

    peer = pair.host.peers[pair.client.public_key]
    assert peer.host == 'unittest'
    assert peer.phone == '+15555550100'


def test_message(channel):

    pair = channel()
    received = list()
    pair.host.register(message_handler=lambda body, peer_id: received.append((body, peer_id)))

    pair.connect()
    response = pair.client.send('Hello').wait(5)

    assert response.ok
    assert response.code == 200
    assert response.body == {'received': True}
    assert received == [('Hello', pair.client.public_key)]


def test_replay(channel):

    pair = channel()
    received = list()
    pair.host.register(message_handler=lambda body, peer_id: received.append(body))

    pair.connect()
    pending = pair.client.send('Hello')
    pending.wait(5)

    sent = pair.host_link.sent

    # Play the same signed request at the host a second time.

    pair.client.adapter.send_message(wire.serialize(pending.request))
    time.sleep(0.5)

    assert received == ['Hello']
    assert pair.host_link.sent == sent


def test_corrupted_transaction(channel):

    ledger = FakeLedger()
    pair = channel(ledger=ledger)
    pair.connect()

    response = pair.client.send({'type': 'transaction', 'data': 'this is not base64!'}).wait(5)

    assert response.status == 'error'
    assert response.body['error'] == 'Transaction processing failed'
    assert response.body['reason'] == 'decode_error'
    assert response.body['details']
    assert ledger.calls == []


def test_transaction(channel):

    ledger = FakeLedger()
    pair = channel(ledger=ledger)
    pair.connect()

    transaction_id = pair.client.transact(b'tx:payment', timeout=5)

    assert transaction_id == 'id-payment'
    assert ledger.calls == ['deserialize', 'countersign', 'submit', 'confirm']


def test_lost_chunk_times_out(channel):

    dropper = Dropper(2)
    pair = channel(drop=dropper, timeout=1.0)
    received = list()
    pair.host.register(message_handler=lambda body, peer_id: received.append(body))

    pair.connect()

    dropper.arm(pair.client_link)
    pending = pair.client.send('this one loses its third chunk')

    with pytest.raises(sallink.client.RequestTimeout):
        pending.wait(5)

    assert pair.client.pending == {}
    assert received == []

    # The stream resynchronizes; the next request goes through.

    response = pair.client.send('this one arrives').wait(5)
    assert response.ok
    assert received == ['this one arrives']


def test_many_requests(channel):

    pair = channel()
    pair.host.register(message_handler=lambda body, peer_id: None)
    pair.connect()

    pendings = [pair.client.send('message %d' % (number)) for number in range(10)]

    for pending in pendings:
        response = pending.wait(5)
        assert response.nonce == pending.nonce
        assert response.ok


def test_custom_transaction_handler(channel):

    pair = channel()
    pair.host.register(transaction_handler=lambda transaction: 'custom-' + str(len(transaction)))
    pair.connect()

    assert pair.client.transact(b'12345', timeout=5) == 'custom-5'


def test_unencodable_transaction_id_is_answered(channel):

    class Opaque:
        pass

    pair = channel()
    pair.host.register(transaction_handler=lambda transaction: Opaque())
    pair.connect()

    response = pair.client.send_transaction(b'12345').wait(5)

    assert response.status == 'error'
    assert response.code == 500
    assert response.body['reason'] == 'process_error'


def test_request_from_connect_callback(channel):

    pair = channel()
    pair.host.register(message_handler=lambda body, peer_id: None)
    outcome = queue.SimpleQueue()

    def connected(host):
        try:
            outcome.put(pair.client.send('Hello').wait(3).body)
        except Exception as e:
            outcome.put(e.__class__.__name__)

    pair.client.on_success(connected)
    pair.connect()

    assert outcome.get(timeout=5) == {'received': True}


def test_request_from_done_callback(channel):

    pair = channel()
    received = list()
    pair.host.register(message_handler=lambda body, peer_id: received.append(body))
    pair.connect()

    outcome = queue.SimpleQueue()

    def follow_up(pending):
        try:
            outcome.put(pair.client.send('second').wait(3).ok)
        except Exception as e:
            outcome.put(e.__class__.__name__)

    pair.client.send('first').add_done_callback(follow_up)

    assert outcome.get(timeout=5) == True
    assert received == ['first', 'second']


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
