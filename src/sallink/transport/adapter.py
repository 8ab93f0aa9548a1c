""" The transport adapter sits between the protocol roles and a link. It is
    responsible for chunking outbound envelopes, pacing the chunks onto a
    half-duplex channel, and running the receive loop that turns inbound
    signals back into complete envelope text.
"""

import logging
import math
import threading
import time

from .. import config
from ..events import Event
from ..protocol import chunk
from .base import TransportConnectionError
from .codec import PassthroughCodec

logger = logging.getLogger(__name__)


class TransportAdapter:
    """ Wrap a :class:`base.Link` and a :class:`codec.SignalCodec`. The
        *chunk_size*, *guard* and *ceiling* arguments default to the
        configured ``chunk_size``, ``chunk_guard`` and ``chunk_ceiling``.

        After each chunk is emitted the sender sleeps for the codec's
        estimate of the transmission time plus the *guard* interval, never
        longer than the *ceiling*. Outbound messages are serialized: the
        chunks of one message are never interleaved with another's.

        :ivar messages: :class:`events.Event` fired with each complete
            inbound message.
        :ivar raw: :class:`events.Event` fired with each decoded inbound
            fragment, before reassembly.
    """

    poll_interval = 0.05

    def __init__(self, link, codec=None, chunk_size=None, guard=None, ceiling=None, max_buffer=None, name=None):

        if codec is None:
            codec = PassthroughCodec()

        self.link = link
        self.codec = codec
        self.name = name or link.__class__.__name__

        self.chunk_size = int(config.pick(chunk_size, 'chunk_size'))
        self.guard = float(config.pick(guard, 'chunk_guard'))
        self.ceiling = float(config.pick(ceiling, 'chunk_ceiling'))

        max_buffer = config.pick(max_buffer, 'max_buffer')
        self.reassembler = chunk.Reassembler(max_buffer)

        self.messages = Event('message')
        self.raw = Event('raw')

        self.send_lock = threading.Lock()
        self.shutdown = True
        self.thread = None


    def initialize(self):
        """ Open the underlying link. Returns True on success and False if
            the link could not be opened.
        """

        if self.link.is_open:
            return True

        try:
            self.link.open()
        except TransportConnectionError:
            logger.exception('%s: link failed to open', self.name)
            return False

        return True


    def on_message(self, handler):
        """ Register *handler* to receive each complete inbound message as
            text.
        """

        self.messages.connect(handler)


    def on_raw(self, handler):
        self.raw.connect(handler)


    def pacing(self, signal):
        """ Return how many seconds to wait after emitting *signal*. The
            codec's duration is only a hint: nonsense values count as zero
            and the result never exceeds the ceiling.
        """

        try:
            hint = float(self.codec.duration(signal))
        except (TypeError, ValueError):
            hint = 0.0

        if math.isnan(hint) or hint < 0:
            hint = 0.0

        return min(hint + self.guard, self.ceiling)


    def send_raw(self, data):
        """ Encode *data* and emit it as a single signal, then wait for the
            transmission to plausibly finish.
        """

        if isinstance(data, str):
            data = data.encode('utf-8')

        signal = self.codec.encode(data)
        self.link.send(signal)

        delay = self.pacing(signal)
        if delay > 0:
            time.sleep(delay)


    def send_message(self, text):
        """ Split *text* into chunks and send them in order. Blocks until the
            final chunk has been paced out.
        """

        if not self.link.is_open and not self.initialize():
            raise TransportConnectionError(self.name + ': link is not open')

        chunks = chunk.split(text, self.chunk_size)

        with self.send_lock:
            logger.debug('%s: sending %d bytes in %d chunks', self.name, len(text), len(chunks))
            for fragment in chunks:
                self.send_raw(fragment)


    def start_listening(self):
        """ Start the background receive thread. Returns True if the adapter
            is listening.
        """

        if self.thread is not None and self.thread.is_alive():
            return True

        if not self.initialize():
            return False

        self.shutdown = False
        self.thread = threading.Thread(target=self.run, name=self.name + '.receive')
        self.thread.daemon = True
        self.thread.start()
        return True


    def stop_listening(self):

        self.shutdown = True
        thread = self.thread
        self.thread = None

        if thread is not None and thread is not threading.current_thread():
            thread.join(self.poll_interval * 4)


    def close(self):
        self.stop_listening()
        self.link.close()


    def receive(self, signal):
        """ Process one inbound *signal*: decode it, feed the reassembler,
            and emit every message it completes. A signal the codec cannot
            decode is silently lost.
        """

        data = self.codec.decode(signal)

        if data is None:
            logger.debug('%s: undecodable signal dropped', self.name)
            return

        fragment = data.decode('utf-8', errors='replace')
        self.raw.emit(fragment)

        message = self.reassembler.feed(fragment)

        while message is not None:
            self.messages.emit(message)
            message = self.reassembler.feed('')


    def run(self):

        while self.shutdown == False:
            try:
                signal = self.link.recv(self.poll_interval)
            except TransportConnectionError:
                logger.exception('%s: link failed, receive loop exiting', self.name)
                break

            if signal is None:
                continue

            try:
                self.receive(signal)
            except Exception:
                logger.exception('%s: error processing inbound signal', self.name)


# end of class TransportAdapter


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
