""" Explicit notification lists. Each component that raises events owns one
    :class:`Event` instance per event kind, rather than relying on ad hoc
    registration against string names.
"""

import logging
import threading

logger = logging.getLogger(__name__)


class Event:
    """ A named list of callbacks. :func:`emit` invokes every connected
        callback in registration order with the supplied arguments; an
        exception raised by one callback is logged and does not prevent the
        remaining callbacks from running, nor does it propagate back to the
        component that raised the event.
    """

    def __init__(self, name):
        self.name = name
        self.callbacks = list()
        self.lock = threading.Lock()


    def __repr__(self):
        return 'Event(%r, %d callbacks)' % (self.name, len(self.callbacks))


    def __len__(self):
        return len(self.callbacks)


    def connect(self, callback):
        """ Register *callback*. Returns the callback so this method can be
            used as a decorator.
        """

        if callable(callback):
            pass
        else:
            raise TypeError('the registered callback must be callable')

        with self.lock:
            self.callbacks.append(callback)

        return callback


    def disconnect(self, callback):
        with self.lock:
            try:
                self.callbacks.remove(callback)
            except ValueError:
                pass


    def emit(self, *args):

        with self.lock:
            callbacks = tuple(self.callbacks)

        for callback in callbacks:
            try:
                callback(*args)
            except Exception:
                logger.exception('%s callback %r failed', self.name, callback)


# end of class Event


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
