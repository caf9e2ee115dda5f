import pytest

from dockwire.endpoint import (
    DEFAULT_UNIX_SOCKET,
    EndpointTarget,
    TLSConfig,
    TransportKind,
)
from dockwire.transport import Transport


@pytest.mark.parametrize('address, kind, host, port, socket_path', [
    ('unix:///var/run/docker.sock', TransportKind.UNIX, None, None, '/var/run/docker.sock'),
    ('/tmp/docker.sock', TransportKind.UNIX, None, None, '/tmp/docker.sock'),
    ('http+unix://%2Frun%2Fdocker.sock', TransportKind.UNIX, None, None, '/run/docker.sock'),
    ('tcp://10.0.0.5:2375', TransportKind.TCP, '10.0.0.5', 2375, None),
    ('tcp://docker.local', TransportKind.TCP, 'docker.local', 2375, None),
    ('http://127.0.0.1:8080', TransportKind.TCP, '127.0.0.1', 8080, None),
    ('localhost:2375', TransportKind.TCP, 'localhost', 2375, None),
    ('https://docker.example.com', TransportKind.TLS, 'docker.example.com', 2376, None),
])
def test_parse(address, kind, host, port, socket_path):
    target = EndpointTarget.parse(address)
    assert target.kind is kind
    assert target.host == host
    assert target.port == port
    assert target.socket_path == socket_path


def test_tls_material_turns_tcp_into_tls():
    tls = TLSConfig(verify=False)
    target = EndpointTarget.parse('tcp://docker.example.com:2376', tls=tls)
    assert target.kind is TransportKind.TLS
    assert target.tls is tls


def test_unix_without_path_uses_default():
    assert EndpointTarget.parse('unix://').socket_path == DEFAULT_UNIX_SOCKET


@pytest.mark.parametrize('address', ['ssh://user@host', 'tcp://:2375'])
def test_parse_rejects(address):
    with pytest.raises(ValueError):
        EndpointTarget.parse(address)


def test_targets_are_immutable():
    target = EndpointTarget.tcp('localhost')
    with pytest.raises(AttributeError):
        target.port = 1


def test_secure_target_gets_default_tls():
    target = EndpointTarget(TransportKind.TLS, host='h', port=2376)
    assert target.tls == TLSConfig()


def test_from_cert_path(tmp_path):
    (tmp_path / 'cert.pem').write_text('cert')
    (tmp_path / 'key.pem').write_text('key')
    tls = TLSConfig.from_cert_path(str(tmp_path), verify=True)
    assert tls.ca_cert == str(tmp_path / 'ca.pem')
    assert tls.client_cert == str(tmp_path / 'cert.pem')
    assert tls.client_key == str(tmp_path / 'key.pem')


def test_insecure_context_skips_verification():
    context = TLSConfig(verify=False).ssl_context()
    assert not context.check_hostname


def test_url_and_host_header():
    unix = Transport(EndpointTarget.unix('/var/run/docker.sock'))
    assert unix.host_header == 'localhost'
    assert unix.url_for('/v1.43/_ping') == 'http+unix://%2Fvar%2Frun%2Fdocker.sock/v1.43/_ping'

    tcp = Transport(EndpointTarget.tcp('10.0.0.5', 2375))
    assert tcp.host_header == '10.0.0.5:2375'
    assert tcp.url_for('/info') == 'http://10.0.0.5:2375/info'

    tls = Transport(EndpointTarget.secure('docker.example.com', tls=TLSConfig(verify=False)))
    assert tls.url_for('/info') == 'https://docker.example.com:2376/info'
