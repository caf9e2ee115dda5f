import json

import pytest

from dockwire import DockerClient
from dockwire.exceptions import NetworkNotFound, NotFound

NETWORK = {
    'Id': 'beef' * 16,
    'Name': 'backend',
    'Driver': 'bridge',
    'Containers': {'c0ffee' * 10: {'Name': 'web'}},
}


@pytest.fixture
def client(daemon):
    return DockerClient(daemon.target, timeout=5)


def test_list_merges_name_filter(client, daemon):
    daemon.route('GET', '/networks', body=[NETWORK, {'Id': 'f' * 64, 'Name': 'host', 'Driver': 'host'}])
    networks = client.networks.list(names=['backend'], filters={'driver': ['bridge']})
    assert [n.name for n in networks] == ['backend', 'host']
    assert json.loads(daemon.last_request.param('filters')) == {
        'driver': ['bridge'], 'name': ['backend'],
    }


def test_list_without_filters_sends_none(client, daemon):
    daemon.route('GET', '/networks', body=[])
    assert client.networks.list() == []
    assert daemon.last_request.param('filters') is None


def test_get_network(client, daemon):
    daemon.route('GET', '/networks/backend', body=NETWORK)
    network = client.networks.get('backend')
    assert network.id == NETWORK['Id']
    assert network.driver == 'bridge'
    assert network.containers == ['c0ffee' * 10]


def test_missing_network(client, daemon):
    daemon.route('GET', '/networks/ghost', status=404, body={'message': 'network ghost not found'})
    with pytest.raises(NetworkNotFound) as excinfo:
        client.networks.get('ghost')
    assert isinstance(excinfo.value, NotFound)
    assert excinfo.value.explanation == 'network ghost not found'
    assert excinfo.value.response.status == 404


def test_create_network(client, daemon):
    daemon.route('POST', '/networks/create', status=201, body={'Id': NETWORK['Id'], 'Warning': ''})
    daemon.route('GET', f"/networks/{NETWORK['Id']}", body=NETWORK)
    network = client.networks.create('backend', internal=True, labels={'tier': 'db'})
    assert network.name == 'backend'

    config = json.loads(daemon.requests[0].body)
    assert config['Name'] == 'backend'
    assert config['Driver'] == 'bridge'
    assert config['Internal'] is True
    assert config['CheckDuplicate'] is True
    assert config['Labels'] == {'tier': 'db'}
    assert 'IPAM' not in config


def test_connect_and_disconnect(client, daemon):
    daemon.route('GET', '/networks/backend', body=NETWORK)
    daemon.route('POST', '/networks/backend/connect', status=200)
    daemon.route('POST', f"/networks/{NETWORK['Id']}/disconnect", status=200)

    client.networks.connect('backend', 'web', aliases=['db'], ipv4_address='172.20.0.5')
    assert json.loads(daemon.last_request.body) == {
        'Container': 'web',
        'EndpointConfig': {'Aliases': ['db'], 'IPAMConfig': {'IPv4Address': '172.20.0.5'}},
    }

    network = client.networks.get('backend')
    network.disconnect('web', force=True)
    assert json.loads(daemon.last_request.body) == {'Container': 'web', 'Force': True}


def test_connect_missing_network(client, daemon):
    daemon.route('POST', '/networks/ghost/connect', status=404, body={'message': 'no such network'})
    with pytest.raises(NetworkNotFound):
        client.networks.connect('ghost', 'web')
    assert json.loads(daemon.last_request.body) == {'Container': 'web'}


def test_remove_and_prune(client, daemon):
    daemon.route('DELETE', '/networks/backend', status=204)
    daemon.route('POST', '/networks/prune', body={'NetworksDeleted': ['old']})
    assert client.networks.remove('backend') is None
    assert daemon.last_request.method == 'DELETE'
    assert client.networks.prune(filters={'until': ['24h']}) == {'NetworksDeleted': ['old']}
    assert json.loads(daemon.last_request.param('filters')) == {'until': ['24h']}
