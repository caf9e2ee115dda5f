"""
Docker Networks API
"""

import logging
from typing import Any, Dict, List, Optional

from .exceptions import NetworkNotFound, NotFound

logger = logging.getLogger(__name__)


class Network:
    """Docker Network object"""

    def __init__(self, attrs: Dict[str, Any], client):
        self.attrs = attrs
        self.client = client
        self.id = attrs.get('Id', '')
        self.short_id = self.id[:12]
        self.name = attrs.get('Name', '')
        self.driver = attrs.get('Driver', '')

    def __repr__(self):
        return f"<Network: {self.name or self.short_id}>"

    @property
    def containers(self) -> List[str]:
        """IDs of the attached containers, as of the last inspect"""
        return list((self.attrs.get('Containers') or {}).keys())

    def reload(self):
        """Refresh attributes from the daemon"""
        self.__init__(self.client.inspect(self.id), self.client)
        return self

    def connect(self, container: str, **kwargs):
        return self.client.connect(self.id, container, **kwargs)

    def disconnect(self, container: str, force: bool = False):
        return self.client.disconnect(self.id, container, force=force)

    def remove(self):
        return self.client.remove(self.id)


class NetworkCollection:
    """Docker Networks collection"""

    def __init__(self, client):
        self.client = client

    @property
    def http(self):
        return self.client.http

    def _call(self, method: str, network_id: str, action: str = '', **kwargs):
        path = f"/networks/{network_id}/{action}" if action else f"/networks/{network_id}"
        try:
            return self.http.request(method, path, **kwargs)
        except NotFound as e:
            raise NetworkNotFound(
                f"Network not found: {network_id}",
                response=e.response, status_code=e.status_code, explanation=e.explanation
            ) from e

    def list(self, names: Optional[List[str]] = None, ids: Optional[List[str]] = None,
             filters: Optional[Dict[str, Any]] = None) -> List[Network]:
        """
        List networks

        Args:
            names: Only networks with one of these names
            ids: Only networks with one of these IDs
            filters: Filters to apply (e.g., {'driver': ['bridge']})

        Returns:
            List of Network objects
        """
        filters = dict(filters or {})
        if names:
            filters['name'] = names
        if ids:
            filters['id'] = ids
        data = self.http.get('/networks', params={'filters': filters or None}) or []
        return [Network(net, self) for net in data]

    def inspect(self, network_id: str, verbose: bool = False) -> Dict[str, Any]:
        return self._call('GET', network_id, params={'verbose': verbose or None})

    def get(self, network_id: str) -> Network:
        """
        Get network by name or ID

        Raises:
            NetworkNotFound: If network not found
        """
        return Network(self.inspect(network_id), self)

    def create(self, name: str, driver: str = 'bridge', internal: bool = False,
               attachable: bool = True, options: Optional[Dict[str, str]] = None,
               labels: Optional[Dict[str, str]] = None, ipam: Optional[Dict[str, Any]] = None,
               check_duplicate: bool = True) -> Network:
        """
        Create network

        Args:
            name: Network name
            driver: Network driver
            internal: Restrict external access to the network
            attachable: Allow manual container attachment
            options: Driver options
            labels: Labels for the network
            ipam: IPAM configuration
            check_duplicate: Fail if a network with this name exists

        Returns:
            Network object
        """
        config = {
            'Name': name,
            'Driver': driver,
            'Internal': internal,
            'Attachable': attachable,
            'CheckDuplicate': check_duplicate,
        }
        if options:
            config['Options'] = options
        if labels:
            config['Labels'] = labels
        if ipam:
            config['IPAM'] = ipam

        result = self.http.post('/networks/create', data=config)
        if result.get('Warning'):
            logger.warning(f"Network {name}: {result['Warning']}")
        logger.info(f"Created network {name}")
        return self.get(result['Id'])

    def remove(self, network_id: str):
        return self._call('DELETE', network_id)

    def connect(self, network_id: str, container: str, aliases: Optional[List[str]] = None,
                ipv4_address: Optional[str] = None, endpoint_config: Optional[Dict[str, Any]] = None):
        """
        Attach a container to a network

        Args:
            network_id: Network name or ID
            container: Container name or ID
            aliases: Extra DNS names of the container on this network
            ipv4_address: Fixed address on the network
            endpoint_config: Raw EndpointConfig, merged with the above
        """
        endpoint = dict(endpoint_config or {})
        if aliases:
            endpoint['Aliases'] = aliases
        if ipv4_address:
            endpoint.setdefault('IPAMConfig', {})['IPv4Address'] = ipv4_address
        body = {'Container': container}
        if endpoint:
            body['EndpointConfig'] = endpoint
        return self._call('POST', network_id, 'connect', data=body)

    def disconnect(self, network_id: str, container: str, force: bool = False):
        return self._call('POST', network_id, 'disconnect',
                          data={'Container': container, 'Force': force})

    def prune(self, filters: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """Remove unused networks; returns {'NetworksDeleted': [...]}"""
        return self.http.post('/networks/prune', params={'filters': filters}) or {}
