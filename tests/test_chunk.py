import pytest

from sallink.protocol import chunk


def reassemble(chunks):

    reassembler = chunk.Reassembler()
    results = list()

    for fragment in chunks:
        message = reassembler.feed(fragment)
        while message is not None:
            results.append(message)
            message = reassembler.feed('')

    return results


def test_round_trip():

    payloads = ('', 'x', 'Hello', '{"a": 1, "b": [1, 2, 3]}', 'é' * 50, '日本語のテキスト' * 9, 'a' * 1000)

    for payload in payloads:
        for size in (4, 5, 7, 16, 200):
            chunks = chunk.split(payload, size)
            for fragment in chunks:
                assert len(fragment.encode('utf-8')) <= size

            assert reassemble(chunks) == [payload]


def test_marker_safety():

    payload = 'before ~{ middle ~} after ~- and ~~ and a trailing ~'
    chunks = chunk.split(payload, 6)

    assert reassemble(chunks) == [payload]
    assert chunk.START not in chunk.escape(payload)
    assert chunk.END not in chunk.escape(payload)


def test_single_chunk_is_framed():

    chunks = chunk.split('Hello', 200)
    assert chunks == ['~{Hello~}']


def test_small_chunk_size():

    with pytest.raises(ValueError):
        chunk.split('Hello', 3)


def test_trailing_text_retained():

    reassembler = chunk.Reassembler()

    assert reassembler.feed('~{one~}~{tw') == 'one'
    assert reassembler.buffer == '~{tw'
    assert reassembler.feed('o~}') == 'two'
    assert reassembler.buffer == ''


def test_drain():

    reassembler = chunk.Reassembler()

    assert reassembler.feed('~{one~}~{two~}~{three~}') == 'one'
    assert reassembler.feed('') == 'two'
    assert reassembler.feed('') == 'three'
    assert reassembler.feed('') is None


def test_arbitrary_boundaries():

    stream = ''.join(chunk.split('first', 5)) + ''.join(chunk.split('second', 9))

    # Deliver the stream one character at a time; fragment boundaries do
    # not need to match the chunks that were sent.

    assert reassemble(list(stream)) == ['first', 'second']


def test_lost_start():

    chunks = chunk.split('lost message', 5)
    del chunks[0]

    following = chunk.split('next message', 5)

    reassembler = chunk.Reassembler()
    results = reassemble(chunks + following)

    assert results == ['next message']
    assert reassembler.feed('noise~}') is None
    assert reassembler.discarded == 1


def test_lost_end():

    chunks = chunk.split('lost message', 5)
    del chunks[-1]

    following = chunk.split('next message', 5)

    assert reassemble(chunks + following) == ['next message']


def test_lost_middle():

    payload = 'abcdefghijklmnopqrstuvwxyz'
    chunks = chunk.split(payload, 6)
    del chunks[2]

    results = reassemble(chunks)

    assert len(results) == 1
    assert results[0] != payload


def test_noise_is_discarded():

    reassembler = chunk.Reassembler()

    assert reassembler.feed('static and hiss') is None
    assert reassembler.buffer == ''
    assert reassembler.feed('~') is None
    assert reassembler.buffer == '~'
    assert reassembler.feed('{ok~}') == 'ok'


def test_bounded_buffer():

    reassembler = chunk.Reassembler(max_buffer=10)
    reassembler.feed('~{' + 'x' * 50)

    assert len(reassembler.buffer) == 10


def test_reset():

    reassembler = chunk.Reassembler()
    reassembler.feed('~{partial')
    reassembler.reset()

    assert reassembler.buffer == ''
    assert reassembler.feed('~}') is None


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
