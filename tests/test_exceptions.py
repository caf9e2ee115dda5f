import http.client
import socket
import ssl

import pytest

from dockwire.exceptions import (
    APIError,
    ConnectionFailed,
    MalformedFrame,
    NotFound,
    ProtocolError,
    TlsHandshakeFailed,
    UnexpectedEof,
    classify_error,
    create_api_error,
)


def test_404_with_json_message():
    error = create_api_error(404, b'{"message":"no such container"}', reason='Not Found')
    assert isinstance(error, NotFound)
    assert isinstance(error, APIError)
    assert error.status_code == 404
    assert error.explanation == 'no such container'
    assert error.kind == 'daemon_reported'
    assert error.is_client_error()
    assert not error.is_server_error()


def test_plain_text_error_body():
    error = create_api_error(500, b'driver failed\n', reason='Internal Server Error')
    assert type(error) is APIError
    assert error.explanation == 'driver failed'
    assert error.is_server_error()


def test_empty_error_body_uses_reason():
    error = create_api_error(409, b'', reason='Conflict', url='http://localhost/x')
    assert error.explanation == 'Conflict'
    assert error.context['url'] == 'http://localhost/x'
    assert 'url=http://localhost/x' in str(error)


def test_json_body_without_message_kept_as_text():
    error = create_api_error(400, b'{"error": "bad"}')
    assert error.explanation == '{"error": "bad"}'


@pytest.mark.parametrize('exc, expected', [
    (ConnectionRefusedError(111, 'Connection refused'), ConnectionFailed),
    (FileNotFoundError(2, 'No such file or directory'), ConnectionFailed),
    (socket.timeout('timed out'), ConnectionFailed),
    (http.client.RemoteDisconnected('closed'), ConnectionFailed),
    (ssl.SSLError(1, 'wrong version number'), TlsHandshakeFailed),
    (http.client.IncompleteRead(b'abc', 10), UnexpectedEof),
    (RuntimeError('odd'), ProtocolError),
])
def test_classify_error(exc, expected):
    error = classify_error(exc, url='http://localhost/_ping')
    assert type(error) is expected
    assert error.context['url'] == 'http://localhost/_ping'


def test_classify_keeps_protocol_errors():
    original = MalformedFrame('bad frame', offset=8)
    error = classify_error(original, url='http://localhost/logs', offset=99)
    assert error is original
    assert error.context == {'offset': 8, 'url': 'http://localhost/logs'}


def test_kinds_are_distinct():
    kinds = {cls.kind for cls in (ConnectionFailed, TlsHandshakeFailed, UnexpectedEof,
                                  MalformedFrame, APIError)}
    assert len(kinds) == 5
