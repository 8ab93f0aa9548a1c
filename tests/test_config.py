import pytest

from sallink import config


def test_defaults(monkeypatch):

    monkeypatch.delenv('SAL_TIMEOUT', raising=False)
    monkeypatch.delenv('SAL_TRANSPORT', raising=False)

    assert config.get('timeout') == 20.0
    assert config.get('transport') == 'loopback'
    assert config.get('chunk_size') == 120
    assert config.get('no_such_setting', 'fallback') == 'fallback'


def test_environment(monkeypatch):

    monkeypatch.setenv('SAL_TIMEOUT', '5')
    monkeypatch.setenv('SAL_CHUNK_SIZE', '64')
    monkeypatch.setenv('SAL_TRANSPORT', 'zmq')

    assert config.get('timeout') == 5.0
    assert config.get('chunk_size') == 64
    assert config.get('transport') == 'zmq'


def test_bad_environment(monkeypatch):

    monkeypatch.setenv('SAL_WORKERS', 'several')

    with pytest.raises(ValueError):
        config.get('workers')


def test_pick(monkeypatch):

    monkeypatch.setenv('SAL_TIMEOUT', '5')

    assert config.pick(1.5, 'timeout') == 1.5
    assert config.pick(0, 'timeout') == 0
    assert config.pick(None, 'timeout') == 5.0


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
