import pytest

import sallink
from sallink import json
from sallink.protocol import fields, wire
from sallink.protocol.builder import EnvelopeBuilder


def test_request_round_trip(identity):

    request = EnvelopeBuilder(identity).message('Hello').host('unittest').block_height(42).build()
    text = wire.serialize(request)

    assert isinstance(text, str)

    parsed = wire.parse(text)

    assert isinstance(parsed, sallink.protocol.Request)
    assert parsed.method == fields.MESSAGE
    assert parsed.body == 'Hello'
    assert parsed.host == 'unittest'
    assert parsed.block_height == 42
    assert parsed.nonce == request.nonce
    assert parsed.public_key == identity.public_key
    assert parsed.verify()


def test_response_round_trip(identity):

    request = EnvelopeBuilder(identity).greeting().build()
    response = EnvelopeBuilder(identity).respond(request, fields.ERROR, 501).body({'error': 'nope'}).build()

    parsed = wire.parse(wire.serialize(response))

    assert isinstance(parsed, sallink.protocol.Response)
    assert parsed.status == fields.ERROR
    assert parsed.code == 501
    assert parsed.ok == False
    assert parsed.nonce == request.nonce
    assert parsed.body == {'error': 'nope'}
    assert parsed.verify()


def test_layout(identity):

    request = EnvelopeBuilder(identity).transaction('AAAA').build()
    raw = json.loads(wire.serialize(request))

    assert set(raw) == set(('method', 'sig', 'msg'))
    assert raw['method'] == 'tx'
    assert set(raw['msg']) == set(('headers', 'body'))
    assert raw['msg']['body'] == {'type': 'transaction', 'data': 'AAAA'}

    response = EnvelopeBuilder(identity).respond(request).body('ok').build()
    raw = json.loads(wire.serialize(response))

    assert set(raw) == set(('status', 'code', 'sig', 'msg'))
    assert raw['code'] == 200


def test_falsy_body(identity):

    for body in ('', 0, False, None, {}):
        request = EnvelopeBuilder(identity).message(body).build()
        parsed = wire.parse(wire.serialize(request))
        assert parsed.body == body


def test_unknown_headers_survive(identity):

    request = EnvelopeBuilder(identity).message('x').header('extra', [1, 2]).build()
    parsed = wire.parse(wire.serialize(request))

    assert parsed.headers['extra'] == [1, 2]
    assert parsed.verify()


def test_canonical_ignores_key_order(identity):

    request = EnvelopeBuilder(identity).message({'b': 1, 'a': 2}).build()

    reordered = dict(reversed(list(request.headers.items())))
    other = sallink.protocol.Request(request.method, reordered, {'a': 2, 'b': 1}, request.signature)

    assert other.canonical() == request.canonical()
    assert other.verify()


def test_tampering_detected(identity):

    request = EnvelopeBuilder(identity).message('Hello').build()
    raw = json.loads(wire.serialize(request))
    raw['msg']['body'] = 'Goodbye'

    parsed = wire.parse(json.dumps(raw))
    assert parsed.verify() == False


def test_malformed(identity):

    request = EnvelopeBuilder(identity).message('Hello').build()
    good = request.to_dict()

    def broken(change):
        raw = json.loads(json.dumps(good))
        change(raw)
        return json.dumps(raw)

    bad = list()
    bad.append('')
    bad.append('not json')
    bad.append('[1, 2, 3]')
    bad.append('"text"')
    bad.append(broken(lambda raw: raw.pop('sig')))
    bad.append(broken(lambda raw: raw.__setitem__('sig', '')))
    bad.append(broken(lambda raw: raw.pop('msg')))
    bad.append(broken(lambda raw: raw['msg'].pop('headers')))
    bad.append(broken(lambda raw: raw['msg'].pop('body')))
    bad.append(broken(lambda raw: raw['msg']['headers'].pop('nonce')))
    bad.append(broken(lambda raw: raw['msg']['headers'].pop('publicKey')))
    bad.append(broken(lambda raw: raw.__setitem__('method', 'bogus')))
    bad.append(broken(lambda raw: raw.pop('method')))

    response = EnvelopeBuilder(identity).respond(request).body('x').build()
    answered = response.to_dict()

    def broken_response(change):
        raw = json.loads(json.dumps(answered))
        change(raw)
        return json.dumps(raw)

    bad.append(broken_response(lambda raw: raw.pop('code')))
    bad.append(broken_response(lambda raw: raw.__setitem__('code', None)))
    bad.append(broken_response(lambda raw: raw.__setitem__('status', 'maybe')))

    for text in bad:
        with pytest.raises(wire.ParseError):
            wire.parse(text)


def test_bad_response_code(identity):

    request = EnvelopeBuilder(identity).greeting().build()
    response = EnvelopeBuilder(identity).respond(request).body('x').build()
    raw = response.to_dict()
    raw['code'] = 'two hundred'

    with pytest.raises(wire.ParseError):
        wire.parse(json.dumps(raw))


def test_unsigned_not_serialized(identity):

    headers = {'nonce': 'n1', 'publicKey': identity.public_key}
    request = sallink.protocol.Request(fields.MESSAGE, headers, 'x')

    with pytest.raises(ValueError):
        wire.serialize(request)


def test_sign_with_wrong_identity(identity):

    headers = {'nonce': 'n1', 'publicKey': identity.public_key}
    request = sallink.protocol.Request(fields.MESSAGE, headers, 'x')

    with pytest.raises(ValueError):
        request.sign(sallink.Identity.generate())


def test_builder_requires_method(identity):

    with pytest.raises(ValueError):
        EnvelopeBuilder(identity).body('x').build()


def test_nonces_unique(identity):

    nonces = set()
    for count in range(200):
        nonces.add(EnvelopeBuilder(identity).message('x').build().nonce)

    assert len(nonces) == 200


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
