""" The host half of the protocol: receive requests from clients, decide
    whether to trust them, route them by method, and answer each one that
    passes validation with a signed response.
"""

import logging
import queue
import threading
import time

from . import config
from . import json
from . import relay
from .events import Event
from .identity import Identity
from .protocol import fields
from .protocol import wire
from .protocol.builder import EnvelopeBuilder
from .protocol.message import Request
from .replay import NonceWindow
from .transport.base import TransportConnectionError

logger = logging.getLogger(__name__)


STOPPED = 'stopped'
RUNNING = 'running'
STOPPING = 'stopping'


class PeerRecord:
    """ What the host learned about a client from its greeting. A peer
        record is context for application handlers; it is never consulted
        to authenticate later requests.
    """

    def __init__(self, public_key, host=None, phone=None):
        self.peer_id = public_key
        self.public_key = public_key
        self.host = host
        self.phone = phone
        self.connected = time.time()


    def __repr__(self):
        return 'PeerRecord(%s)' % (self.peer_id)


# end of class PeerRecord



class Host:
    """ Answer requests arriving over the provided
        :class:`sallink.transport.TransportAdapter`. Responses are signed
        with the host's *identity*, a fresh one if none is provided, and
        carry the host *name* in their headers.

        Inbound messages are handed off to a pool of worker threads, in the
        same fashion as any request/response server, so that one slow
        handler does not hold up the requests queued behind it.

        Transactions are relayed through a :class:`sallink.relay.Relay`
        built around the optional *ledger*. If *trusted_keys* is provided,
        requests signed by any other key are ignored.

        :ivar peers: A dictionary of :class:`PeerRecord` instances, keyed by
            peer id.
        :ivar running: :class:`sallink.events.Event` fired on :func:`run`.
        :ivar stopped: :class:`sallink.events.Event` fired on :func:`stop`.
        :ivar peer_connected: fired with each new :class:`PeerRecord`.
        :ivar message_received: fired with the body and peer id of every
            authenticated message.
        :ivar transaction_processed: fired with the transaction id and peer
            id of every relayed transaction.
        :ivar request_failed: fired with the request and the exception when
            a handler or the relay fails.
    """

    def __init__(self, adapter, identity=None, name=None, ledger=None, workers=None, trusted_keys=None, nonce_capacity=None, nonce_max_age=None):

        if identity is None:
            identity = Identity.generate()

        self.adapter = adapter
        self.identity = identity
        self.name = name

        if trusted_keys is not None:
            trusted_keys = frozenset(trusted_keys)

        self.trusted_keys = trusted_keys

        capacity = config.pick(nonce_capacity, 'nonce_capacity')
        max_age = config.pick(nonce_max_age, 'nonce_max_age')
        self.nonces = NonceWindow(capacity, max_age)

        self.relay = relay.Relay(identity, ledger)
        self.message_handler = None

        self.peers = dict()
        self.peers_lock = threading.Lock()

        self.state = STOPPED
        self.worker_count = int(config.pick(workers, 'workers'))
        self.workers = list()
        self.queue = queue.SimpleQueue()
        self.state_lock = threading.Lock()
        self.shutdown = True

        self.running = Event('running')
        self.stopped = Event('stopped')
        self.peer_connected = Event('peer_connected')
        self.message_received = Event('message_received')
        self.transaction_processed = Event('transaction_processed')
        self.request_failed = Event('request_failed')

        self.routes = dict()
        self.routes[fields.GREETING] = self.handle_greeting
        self.routes[fields.MESSAGE] = self.handle_message
        self.routes[fields.TRANSACTION] = self.handle_transaction

        adapter.on_message(self._enqueue)


    def __repr__(self):
        return 'Host(%s, %s)' % (self.identity.public_key, self.state)


    @property
    def public_key(self):
        return self.identity.public_key


    def register(self, message_handler=None, transaction_handler=None):
        """ Register the application handlers. The *message_handler* is
            invoked as ``message_handler(body, peer_id)``; the
            *transaction_handler*, if provided, replaces the default
            countersign-and-submit behavior of the relay and is invoked with
            the decoded transaction. Returns the host.
        """

        if message_handler is not None:
            self.message_handler = message_handler

        if transaction_handler is not None:
            self.relay.handler = transaction_handler

        return self


    def run(self):
        """ Start listening for requests.
        """

        with self.state_lock:
            if self.state != STOPPED:
                return

            if self.adapter.start_listening() == False:
                raise TransportConnectionError('the host transport could not be started')

            self.shutdown = False
            self.workers = list()

            for thread_number in range(self.worker_count):
                thread = threading.Thread(target=self._worker_main, name='Host.worker.%d' % (thread_number))
                thread.daemon = True
                thread.start()
                self.workers.append(thread)

            self.state = RUNNING

        logger.info('host %s running with %d workers', self.public_key, self.worker_count)
        self.running.emit()


    def stop(self):
        """ Stop listening. Inbound messages still queued when the workers
            exit are discarded, never processed by a later :func:`run`.
        """

        with self.state_lock:
            if self.state != RUNNING:
                return

            self.state = STOPPING
            self.shutdown = True

        # _enqueue() holds the state lock; the receive thread is joined
        # without it.
        self.adapter.stop_listening()

        # One None is enough; each worker puts it back before exiting.
        self.queue.put(None)

        for thread in self.workers:
            thread.join(1)

        self.workers = list()

        discarded = 0
        while True:
            try:
                dequeued = self.queue.get_nowait()
            except queue.Empty:
                break

            if dequeued is not None:
                discarded += 1

        if discarded:
            logger.debug('discarded %d queued messages on stop', discarded)

        with self.peers_lock:
            self.peers.clear()

        with self.state_lock:
            self.state = STOPPED

        logger.info('host %s stopped', self.public_key)
        self.stopped.emit()


    def _enqueue(self, text):
        with self.state_lock:
            if self.shutdown == False:
                self.queue.put(text)


    def _worker_main(self):
        """ This is the 'main' method for the worker threads: pull inbound
            messages off the queue and hand them to :func:`handle_inbound`.
        """

        while self.shutdown == False:
            try:
                dequeued = self.queue.get(timeout=300)
            except queue.Empty:
                continue

            if dequeued is None:
                continue

            try:
                self.handle_inbound(dequeued)
            except Exception:
                logger.exception('unhandled error processing inbound message')

        # self.shutdown is True. Make sure the remaining workers wake up.
        self.queue.put(None)


    def accept(self, text):
        """ Return the :class:`sallink.protocol.Request` held in *text* if it
            should be processed, otherwise None. Nothing rejected here is
            ever answered.
        """

        try:
            request = wire.parse(text)
        except wire.ParseError as e:
            logger.debug('dropped unparseable message: %s', e)
            return None

        if isinstance(request, Request):
            pass
        else:
            logger.debug('dropped %s response, hosts only accept requests', request.status)
            return None

        if request.verify() == False:
            logger.debug('dropped %s request %s: bad signature', request.method, request.nonce)
            return None

        trusted = self.trusted_keys
        if trusted is not None and request.public_key not in trusted:
            logger.debug('dropped %s request %s: untrusted key', request.method, request.nonce)
            return None

        if self.nonces.check(request.nonce) == False:
            logger.debug('dropped %s request %s: replayed nonce', request.method, request.nonce)
            return None

        return request


    def handle_inbound(self, text):
        """ Process one complete inbound message, and send the response if
            there is one. Returns the response that was sent, or None if the
            message was dropped.
        """

        request = self.accept(text)

        if request is None:
            return None

        try:
            route = self.routes[request.method]
        except KeyError:
            logger.debug('dropped request %s: no route for %s', request.nonce, request.method)
            return None

        try:
            response = route(request)
        except Exception as e:
            logger.exception('%s request %s failed', request.method, request.nonce)
            self.request_failed.emit(request, e)

            error = dict()
            error['error'] = str(e) or e.__class__.__name__
            response = self.respond(request, error, fields.ERROR, fields.CODE_INTERNAL).build()

        self.send(response)
        return response


    def respond(self, request, body, status=fields.OK, code=None):
        builder = EnvelopeBuilder(self.identity)
        builder.respond(request, status, code).host(self.name).body(body)
        return builder


    def send(self, response):

        text = wire.serialize(response)

        try:
            self.adapter.send_message(text)
        except TransportConnectionError as e:
            logger.warning('response %s not sent: %s', response.nonce, e)


    def handle_greeting(self, request):

        peer = PeerRecord(request.public_key, request.host, request.phone)

        with self.peers_lock:
            self.peers[peer.peer_id] = peer

        logger.info('peer connected: %s', peer.peer_id)
        self.peer_connected.emit(peer)

        builder = self.respond(request, fields.WELCOME)
        builder.header(fields.PEER, peer.peer_id)
        return builder.build()


    def handle_message(self, request):

        peer_id = request.public_key
        body = request.body

        self.message_received.emit(body, peer_id)

        handler = self.message_handler

        if handler is None:
            error = dict()
            error['error'] = 'No message handler'
            return self.respond(request, error, fields.ERROR, fields.CODE_NOT_IMPLEMENTED).build()

        try:
            handler(body, peer_id)
        except Exception as e:
            logger.warning('message handler failed for %s: %s', request.nonce, e)
            self.request_failed.emit(request, e)

            error = dict()
            error['error'] = str(e) or e.__class__.__name__
            return self.respond(request, error, fields.ERROR).build()

        acknowledgement = dict()
        acknowledgement['received'] = True
        return self.respond(request, acknowledgement).build()


    def handle_transaction(self, request):

        peer_id = request.public_key
        body = request.body

        try:
            if isinstance(body, dict) and body.get(fields.TYPE) == fields.TRANSACTION_TYPE:
                data = body.get(fields.DATA)
            else:
                raise relay.RelayError(relay.DECODE_ERROR, 'the body is not a transaction')

            if isinstance(data, str):
                pass
            else:
                raise relay.RelayError(relay.DECODE_ERROR, 'the transaction data is not text')

            transaction_id = self.relay.relay(data)

            result = dict()
            result['signature'] = transaction_id

            try:
                response = self.respond(request, result).build()
            except (TypeError, ValueError, json.EncodeError) as e:
                raise relay.RelayError(relay.PROCESS_ERROR, 'transaction id %r cannot be encoded: %s' % (transaction_id, e))

        except relay.RelayError as e:
            logger.warning('transaction %s failed (%s): %s', request.nonce, e.reason, e.details)
            self.request_failed.emit(request, e)

            error = dict()
            error['error'] = 'Transaction processing failed'
            error['details'] = e.details
            error['reason'] = e.reason
            return self.respond(request, error, fields.ERROR, e.code).build()

        self.transaction_processed.emit(transaction_id, peer_id)
        return response


# end of class Host


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
