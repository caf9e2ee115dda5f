import json
import os

import pytest

from dockwire.config import ClientSettings, get_user_settings_path
from dockwire.endpoint import TransportKind


def test_defaults(tmp_path):
    settings = ClientSettings(settings_file=str(tmp_path / 'missing.json'), environ={})
    assert settings.timeout == 60.0
    assert settings.api_version is None
    assert settings.log_level == 'WARNING'
    assert settings.tls_config() is None
    endpoint = settings.endpoint()
    assert endpoint.kind is TransportKind.UNIX
    assert endpoint.socket_path.endswith('docker.sock')


def test_settings_file_overrides_defaults(tmp_path):
    path = tmp_path / 'settings.json'
    path.write_text(json.dumps({'docker_host': 'tcp://10.0.0.5:2375', 'timeout': 5}))
    settings = ClientSettings(settings_file=str(path), environ={})
    assert settings.get('docker_host') == 'tcp://10.0.0.5:2375'
    assert settings.timeout == 5.0
    assert settings.endpoint().kind is TransportKind.TCP


def test_environment_overrides_file(tmp_path):
    path = tmp_path / 'settings.json'
    path.write_text(json.dumps({'docker_host': 'tcp://10.0.0.5:2375', 'api_version': '1.41'}))
    environ = {
        'DOCKER_HOST': 'unix:///tmp/other.sock',
        'DOCKER_API_VERSION': '1.43',
        'DOCKWIRE_LOG_LEVEL': 'debug',
    }
    settings = ClientSettings(settings_file=str(path), environ=environ)
    assert settings.endpoint().socket_path == '/tmp/other.sock'
    assert settings.api_version == '1.43'
    assert settings.log_level == 'DEBUG'


def test_tls_from_environment(tmp_path):
    (tmp_path / 'cert.pem').write_text('cert')
    (tmp_path / 'key.pem').write_text('key')
    environ = {
        'DOCKER_HOST': 'tcp://docker.example.com:2376',
        'DOCKER_TLS_VERIFY': '1',
        'DOCKER_CERT_PATH': str(tmp_path),
    }
    settings = ClientSettings(settings_file=str(tmp_path / 'none.json'), environ=environ)
    target = settings.endpoint()
    assert target.kind is TransportKind.TLS
    assert target.tls.verify
    assert target.tls.client_cert == str(tmp_path / 'cert.pem')


def test_tls_verify_off_values(tmp_path):
    settings = ClientSettings(settings_file=str(tmp_path / 'none.json'),
                              environ={'DOCKER_TLS_VERIFY': '0'})
    assert settings.get('tls_verify') is False


def test_broken_settings_file_ignored(tmp_path, caplog):
    path = tmp_path / 'settings.json'
    path.write_text('{not json')
    settings = ClientSettings(settings_file=str(path), environ={})
    assert settings.get_all()['timeout'] == 60.0
    assert 'Could not load settings' in caplog.text


def test_invalid_timeout_falls_back(tmp_path):
    settings = ClientSettings(settings_file=str(tmp_path / 'none.json'),
                              environ={'DOCKWIRE_TIMEOUT': 'soon'})
    assert settings.timeout == 60.0


@pytest.mark.skipif(os.name == 'nt', reason='APPDATA is used on Windows')
def test_user_settings_path(monkeypatch, tmp_path):
    monkeypatch.setenv('XDG_CONFIG_HOME', str(tmp_path))
    assert get_user_settings_path() == str(tmp_path / 'dockwire' / 'settings.json')
