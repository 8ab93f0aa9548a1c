""" Replay protection for the host. A :class:`NonceWindow` remembers the
    nonces of requests already processed so that a captured request cannot
    be played back at the host a second time.

    The window is bounded: it retains at most *capacity* nonces, and if a
    *max_age* is set, nonces first seen more than *max_age* seconds ago are
    forgotten. A nonce evicted from the window would be accepted again; the
    bounds should be chosen generously relative to the client timeout.
"""

import collections
import threading
import time


class NonceWindow:

    def __init__(self, capacity=10000, max_age=None):

        capacity = int(capacity)
        if capacity < 1:
            raise ValueError('the nonce window capacity must be positive')

        if max_age is not None:
            max_age = float(max_age)
            if max_age <= 0:
                max_age = None

        self.capacity = capacity
        self.max_age = max_age

        self._seen = collections.OrderedDict()
        self._lock = threading.Lock()


    def __contains__(self, nonce):
        with self._lock:
            self._expire(time.monotonic())
            return nonce in self._seen


    def __len__(self):
        return len(self._seen)


    def check(self, nonce):
        """ Record *nonce* and return True if it has not been seen within the
            window; return False, leaving the window untouched, if it has.
            The test and the insertion are a single atomic step.
        """

        now = time.monotonic()

        with self._lock:
            self._expire(now)

            if nonce in self._seen:
                return False

            self._seen[nonce] = now

            while len(self._seen) > self.capacity:
                self._seen.popitem(last=False)

        return True


    def clear(self):
        with self._lock:
            self._seen.clear()


    def _expire(self, now):
        """ Evict nonces older than the maximum age. The caller must hold
            the lock.
        """

        if self.max_age is None:
            return

        cutoff = now - self.max_age

        while self._seen:
            nonce, seen = next(iter(self._seen.items()))
            if seen > cutoff:
                break
            del self._seen[nonce]


# end of class NonceWindow


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
