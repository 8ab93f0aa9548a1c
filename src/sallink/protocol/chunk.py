""" Framing of serialized envelopes for a narrow channel. An outbound payload
    is wrapped in start and end markers and cut into chunks small enough for
    one transmission each; on the receiving side a :class:`Reassembler`
    accumulates whatever fragments arrive and hands back complete payloads.

    The marker character ``~`` is escaped inside the payload as ``~-``, so
    the two marker sequences, ``~{`` and ``~}``, never appear inside data.
    Payloads that themselves contain the marker text round-trip intact.

    There is no acknowledgment or retransmission at this layer. A lost chunk
    means the affected payload is either never completed or is completed
    with a hole in it, which the envelope parser will then reject.
"""

START = '~{'
END = '~}'
ESCAPE = '~'
ESCAPED = '~-'

# The smallest chunk that can always hold at least one UTF-8 character.
minimum_chunk_size = 4


def escape(text):
    return text.replace(ESCAPE, ESCAPED)


def unescape(text):
    return text.replace(ESCAPED, ESCAPE)


def frame(payload):
    """ Return the escaped *payload* wrapped in the start and end markers.
    """

    if isinstance(payload, bytes):
        payload = payload.decode('utf-8')

    return START + escape(payload) + END


def split(payload, max_chunk_size):
    """ Frame the *payload* and split it into an ordered list of text chunks,
        each at most *max_chunk_size* bytes when encoded as UTF-8. Even a
        payload that fits in a single chunk is framed, so the receiver never
        has to guess where a message begins or ends.

        The split is made on byte ranges, but a cut is never placed inside a
        multi-byte character; each chunk is valid text on its own.
    """

    max_chunk_size = int(max_chunk_size)

    if max_chunk_size < minimum_chunk_size:
        raise ValueError('chunk size must be at least %d bytes' % (minimum_chunk_size))

    framed = frame(payload).encode('utf-8')
    length = len(framed)

    chunks = list()
    begin = 0

    while begin < length:
        end = begin + max_chunk_size

        if end >= length:
            end = length
        else:
            # Back up to the first byte of the character straddling the cut.
            # UTF-8 continuation bytes all look like 0b10xxxxxx.

            while framed[end] & 0xC0 == 0x80:
                end -= 1

        chunks.append(framed[begin:end].decode('utf-8'))
        begin = end

    return chunks


class Reassembler:
    """ Accumulate inbound fragments and return complete payloads. Fragments
        do not need to line up with the chunks that were sent; only the
        order matters.

        The *max_buffer* bounds the number of characters retained while
        waiting for an end marker. If it is exceeded the oldest text is
        thrown away, which will corrupt at most the message in progress.

        :ivar discarded: How many times text was thrown away, either because
            an end marker arrived without a start marker, or because a start
            marker was superseded before its end marker arrived.
    """

    def __init__(self, max_buffer=None):
        self.buffer = ''
        self.max_buffer = max_buffer
        self.discarded = 0


    def feed(self, fragment):
        """ Append *fragment* to the receive buffer. If the buffer now holds
            a complete payload return it, retaining everything after its end
            marker; otherwise return None. Only one payload is returned per
            call: call ``feed('')`` to collect any further payloads that
            were already buffered.
        """

        if fragment:
            self.buffer += fragment

        buffer = self.buffer
        end = buffer.find(END)

        while end != -1:
            start = buffer.rfind(START, 0, end)

            if start == -1:
                # The start of this message was lost; nothing up to and
                # including this end marker can be recovered.
                buffer = buffer[end + len(END):]
                self.discarded += 1
                end = buffer.find(END)
                continue

            if start > 0:
                self.discarded += 1

            payload = buffer[start + len(START):end]
            self.buffer = buffer[end + len(END):]
            return unescape(payload)

        self.buffer = self._trim(buffer)
        return None


    def reset(self):
        self.buffer = ''


    def _trim(self, buffer):
        """ Drop text that can no longer be part of any payload: everything
            before the most recent start marker, or, absent a start marker,
            everything except a trailing marker character.
        """

        start = buffer.rfind(START)

        if start == -1:
            if buffer.endswith(ESCAPE):
                keep = ESCAPE
            else:
                keep = ''

            if len(buffer) > len(keep):
                self.discarded += 1
            buffer = keep

        elif start > 0:
            buffer = buffer[start:]
            self.discarded += 1

        if self.max_buffer is not None and len(buffer) > self.max_buffer:
            buffer = buffer[-self.max_buffer:]
            self.discarded += 1

        return buffer


# end of class Reassembler


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
