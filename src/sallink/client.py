""" The client half of the protocol: send signed requests to a host, and
    correlate the responses that eventually come back with the requests that
    prompted them.
"""

import base64
import logging
import queue
import threading

from . import config
from .events import Event
from .identity import Identity
from .protocol import fields
from .protocol import wire
from .protocol.builder import EnvelopeBuilder
from .protocol.message import Response
from .transport.base import TransportTimeout

logger = logging.getLogger(__name__)


DISCONNECTED = 'disconnected'
CONNECTING = 'connecting'
CONNECTED = 'connected'
CLOSED = 'closed'


class ClientError(Exception):
    pass


class ClientStateError(ClientError):
    """ The operation is not permitted in the client's current state.
    """
    pass


class RequestTimeout(ClientError, TransportTimeout):
    """ No response arrived in time. A lost chunk, a host that is not
        listening, and a host that chose not to answer all look the same.
    """
    pass


class RequestCancelled(ClientError):
    pass


class RequestFailed(ClientError):
    """ The host answered with an error response, which is retained as the
        *response* attribute.
    """

    def __init__(self, response):
        self.response = response

        body = response.body
        if isinstance(body, dict):
            description = body.get('error', repr(body))
            details = body.get('details')
            if details:
                description = '%s: %s' % (description, details)
        else:
            description = repr(body)

        ClientError.__init__(self, 'error %d: %s' % (response.code, description))


class PendingRequest:
    """ A :class:`PendingRequest` tracks one outstanding request until it is
        settled: by a matching response, by its timeout expiring, or by
        cancellation. Only the first of these has any effect.

        :ivar request: The :class:`sallink.protocol.Request` that was sent.
        :ivar response: The matching :class:`sallink.protocol.Response`, if
            one arrived.
        :ivar error: The exception that settled the request, if it did not
            succeed.
    """

    def __init__(self, request, client=None):

        self.request = request
        self.nonce = request.nonce
        self.client = client

        self.response = None
        self.error = None
        self.timer = None

        self.finished = False
        self.hooks = list()
        self.callbacks = list()
        self.lock = threading.Lock()
        self.settled = threading.Event()


    def __repr__(self):
        if self.finished:
            if self.error is None:
                state = 'ok'
            else:
                state = self.error.__class__.__name__
        else:
            state = 'pending'

        return 'PendingRequest(%s, %s)' % (self.nonce, state)


    def done(self):
        return self.finished


    def add_done_callback(self, callback):
        """ Invoke *callback* with this :class:`PendingRequest` once it is
            settled; immediately, if it already is. Callbacks for a request
            settled later run on the client's callback thread, never on the
            thread receiving responses, so a callback may itself send a
            request and wait for the answer.
        """

        with self.lock:
            if self.finished == False:
                self.callbacks.append(callback)
                return

        self._invoke(callback)


    def wait(self, timeout=None):
        """ Block until the request is settled and return the response. If
            the request did not succeed the exception that settled it is
            raised instead. A *timeout* here only limits how long this call
            waits; it does not settle the request.
        """

        settled = self.settled.wait(timeout)

        if settled == False:
            raise RequestTimeout('no response to %s in %.2f sec' % (self.nonce, timeout))

        if self.error is not None:
            raise self.error

        return self.response


    def cancel(self):
        """ Stop waiting for a response. The request has already gone out on
            the channel; a response that arrives later is discarded.
        """

        if self.client is not None:
            self.client._forget(self.nonce)

        return self._fail(RequestCancelled('request %s cancelled' % (self.nonce)))


    def _complete(self, response):
        return self._settle(response, None)


    def _fail(self, error):
        return self._settle(None, error)


    def _settle(self, response, error):

        with self.lock:
            if self.finished:
                return False

            self.finished = True
            self.response = response
            self.error = error

            hooks = self.hooks
            self.hooks = list()
            callbacks = self.callbacks
            self.callbacks = list()

        timer = self.timer
        if timer is not None:
            timer.cancel()

        # Hooks are the client's own bookkeeping, and must finish before any
        # waiter is released.

        for hook in hooks:
            self._invoke(hook)

        self.settled.set()

        for callback in callbacks:
            if self.client is None:
                self._invoke(callback)
            else:
                self.client._defer(self._invoke, callback)

        return True


    def _invoke(self, callback):
        try:
            callback(self)
        except Exception:
            logger.exception('done callback %r failed for %s', callback, self.nonce)


# end of class PendingRequest



class Client:
    """ Send requests to a host over the provided
        :class:`sallink.transport.TransportAdapter`. The client signs
        everything it sends with its *identity*, a fresh one if none is
        provided.

        The client must :func:`connect` before it can :func:`send`. The host's
        public key is pinned when the greeting is answered, and responses
        signed by any other key are ignored from then on; a *host_key* can
        be provided to pin it in advance.

        The *block_height* argument, if provided, is a callable returning the
        current ledger block height, which is included in the headers of
        every message and transaction.

        :ivar connected: :class:`sallink.events.Event` fired with the host
            name when the greeting is accepted.
        :ivar disconnected: :class:`sallink.events.Event` fired on close.
        :ivar failed: :class:`sallink.events.Event` fired with the exception
            when a connection attempt fails.
        :ivar response: :class:`sallink.events.Event` fired with every
            response matched to a pending request.

        Event callbacks and request done callbacks run in order on a
        dedicated callback thread, fed by a queue, so that the thread
        receiving responses is never held up by application code.
    """

    def __init__(self, adapter, identity=None, timeout=None, host_key=None, block_height=None):

        if identity is None:
            identity = Identity.generate()

        self.adapter = adapter
        self.identity = identity
        self.timeout = float(config.pick(timeout, 'timeout'))
        self.block_height = block_height

        self.trusted_host_key = host_key
        self.host_key = host_key
        self.host = None
        self.phone = None

        self.state = DISCONNECTED
        self.state_lock = threading.Lock()

        self.pending = dict()
        self.pending_lock = threading.Lock()

        self.connected = Event('connected')
        self.disconnected = Event('disconnected')
        self.failed = Event('failed')
        self.response = Event('response')

        self.callback_queue = queue.SimpleQueue()
        self.callback_lock = threading.Lock()
        self.callback_shutdown = False
        self.callback_thread = threading.Thread(target=self._callback_main, name='Client.callbacks')
        self.callback_thread.daemon = True
        self.callback_thread.start()

        adapter.on_message(self.handle_inbound)


    def __repr__(self):
        return 'Client(%s, %s)' % (self.identity.public_key, self.state)


    @property
    def public_key(self):
        return self.identity.public_key


    def _defer(self, function, *args):
        """ Queue *function* to be called on the callback thread. Once the
            client is closed and the callback thread has been told to exit,
            the call is made immediately instead.
        """

        with self.callback_lock:
            if self.callback_shutdown == False:
                self.callback_queue.put((function, args))
                return

        function(*args)


    def _callback_main(self):

        while True:
            dequeued = self.callback_queue.get()

            if dequeued is None:
                break

            function, args = dequeued

            try:
                function(*args)
            except Exception:
                logger.exception('client callback %r failed', function)


    def _set_state(self, state):
        with self.state_lock:
            previous = self.state
            self.state = state

        if previous != state:
            logger.info('client %s -> %s', previous, state)


    def on_success(self, callback):
        """ Register *callback* to be invoked with the host name when a
            connection attempt succeeds. Returns the client, so that
            registrations can be chained.
        """

        self.connected.connect(callback)
        return self


    def on_failure(self, callback):
        """ Register *callback* to be invoked with the exception when a
            connection attempt fails. Returns the client.
        """

        self.failed.connect(callback)
        return self


    def connect(self, host, phone=None):
        """ Greet the *host* and return the :class:`PendingRequest` for the
            greeting. The client is connected once the greeting is answered
            with an ok response.
        """

        with self.state_lock:
            state = self.state
            if state == DISCONNECTED:
                self.state = CONNECTING

        if state != DISCONNECTED:
            raise ClientStateError('cannot connect while ' + state)

        logger.info('client %s -> %s', state, CONNECTING)

        self.host = host
        self.phone = phone
        self.host_key = self.trusted_host_key

        if self.adapter.start_listening() == False:
            self._set_state(DISCONNECTED)
            raise ClientStateError('the transport could not be started')

        builder = EnvelopeBuilder(self.identity)
        builder.greeting().host(host).phone(phone)
        request = builder.build()

        pending = PendingRequest(request, self)
        pending.hooks.append(self._greeting_done)
        self._dispatch(pending)
        return pending


    def _greeting_done(self, pending):

        if self.state == CLOSED:
            return

        error = pending.error
        if error is None and pending.response.ok == False:
            error = RequestFailed(pending.response)

        if error is not None:
            logger.info('connection to %s failed: %s', self.host, error)
            self._set_state(DISCONNECTED)
            self._defer(self.failed.emit, error)
            return

        self.host_key = pending.response.public_key
        self._set_state(CONNECTED)
        self._defer(self.connected.emit, self.host)


    def send(self, body):
        """ Send *body* to the connected host and return the
            :class:`PendingRequest`. A mapping whose ``type`` is
            ``transaction`` is sent as a transaction; anything else, text or
            structured, is sent as a message.
        """

        if self.state != CONNECTED:
            raise ClientStateError('not connected to a host')

        builder = EnvelopeBuilder(self.identity)

        if isinstance(body, dict) and body.get(fields.TYPE) == fields.TRANSACTION_TYPE:
            builder.transaction(body.get(fields.DATA))
        else:
            builder.message(body)

        builder.host(self.host)

        if self.block_height is not None:
            builder.block_height(self.block_height())

        request = builder.build()

        pending = PendingRequest(request, self)
        self._dispatch(pending)
        return pending


    def send_transaction(self, data):
        """ Send a serialized, partially-signed transaction for the host to
            relay. Raw bytes are base64-encoded; text is assumed to already
            be base64.
        """

        if isinstance(data, (bytes, bytearray)):
            data = base64.b64encode(data).decode()

        body = dict()
        body[fields.TYPE] = fields.TRANSACTION_TYPE
        body[fields.DATA] = data

        return self.send(body)


    def transact(self, data, timeout=None):
        """ Relay a transaction and block until the host answers. Returns the
            transaction identifier; raises :class:`RequestFailed` if the host
            reports an error.
        """

        pending = self.send_transaction(data)
        response = pending.wait(timeout)

        if response.ok == False:
            raise RequestFailed(response)

        return response.body['signature']


    def _dispatch(self, pending):
        """ Register *pending* and put its request on the channel. The
            deadline starts once the last chunk has gone out.
        """

        nonce = pending.nonce
        text = wire.serialize(pending.request)

        with self.pending_lock:
            self.pending[nonce] = pending

        try:
            self.adapter.send_message(text)
        except Exception as e:
            self._forget(nonce)
            pending._fail(e)
            raise

        if pending.done():
            return

        timer = threading.Timer(self.timeout, self._expire, args=(nonce,))
        timer.daemon = True
        pending.timer = timer
        timer.start()

        # The response may have arrived while the timer was being armed.
        if pending.done():
            timer.cancel()


    def _forget(self, nonce):
        with self.pending_lock:
            return self.pending.pop(nonce, None)


    def _expire(self, nonce):

        pending = self._forget(nonce)

        if pending is not None:
            logger.debug('request %s timed out after %.2f sec', nonce, self.timeout)
            pending._fail(RequestTimeout('no response to %s in %.2f sec' % (nonce, self.timeout)))


    def handle_inbound(self, text):
        """ Process one complete inbound message. Anything that is not a
            valid response to an outstanding request from the expected host
            is ignored.
        """

        try:
            envelope = wire.parse(text)
        except wire.ParseError as e:
            logger.debug('dropped unparseable message: %s', e)
            return

        if isinstance(envelope, Response):
            pass
        else:
            logger.debug('dropped %s request, clients only accept responses', envelope.method)
            return

        if envelope.verify() == False:
            logger.debug('dropped response %s: bad signature', envelope.nonce)
            return

        host_key = self.host_key
        if host_key is not None and envelope.public_key != host_key:
            logger.debug('dropped response %s: signed by an unexpected key', envelope.nonce)
            return

        pending = self._forget(envelope.nonce)

        if pending is None:
            logger.debug('dropped response %s: no matching request', envelope.nonce)
            return

        self._defer(self.response.emit, envelope)
        pending._complete(envelope)


    def close(self):
        """ Stop the transport and cancel every outstanding request.
        """

        with self.state_lock:
            previous = self.state
            self.state = CLOSED

        if previous == CLOSED:
            return

        logger.info('client %s -> %s', previous, CLOSED)

        self.adapter.close()

        with self.pending_lock:
            outstanding = list(self.pending.values())
            self.pending.clear()

        for pending in outstanding:
            pending._fail(RequestCancelled('client closed'))

        self._defer(self.disconnected.emit)

        with self.callback_lock:
            self.callback_shutdown = True
            self.callback_queue.put(None)


# end of class Client


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
