"""
Docker Client - Main API entry point
"""

import logging
from typing import Any, Dict, Iterator, Mapping, Optional, Union

from .config import ClientSettings
from .containers import ContainerCollection
from .endpoint import EndpointTarget, TLSConfig, default_socket_path
from .http_client import DockerHTTPClient
from .images import ImageCollection
from .networks import NetworkCollection
from .volumes import VolumeCollection

logger = logging.getLogger(__name__)


class DockerClient:
    """
    Docker API Client
    Talks to the daemon over a unix socket, plain TCP or TLS
    """

    def __init__(self, base_url: Optional[Union[str, EndpointTarget]] = None,
                 timeout: Optional[float] = 60, tls: Optional[TLSConfig] = None,
                 version: Optional[str] = None):
        """
        Initialize Docker client

        Args:
            base_url: Daemon address (unix:///path, tcp://host:port,
                https://host:port) or an EndpointTarget (default: local socket)
            timeout: Request timeout in seconds
            tls: TLS material; turns a tcp:// address into a TLS one
            version: API version, e.g. '1.43' (default: the daemon's own)
        """
        if isinstance(base_url, EndpointTarget):
            target = base_url
        elif base_url:
            target = EndpointTarget.parse(base_url, tls=tls)
        else:
            target = EndpointTarget.unix(default_socket_path())

        self.http = DockerHTTPClient(target, timeout=timeout, version=version)
        self.images = ImageCollection(self)
        self.containers = ContainerCollection(self)
        self.networks = NetworkCollection(self)
        self.volumes = VolumeCollection(self)
        logger.debug(f"Docker client for {target.describe()}")

    @classmethod
    def from_env(cls, settings_file: Optional[str] = None,
                 environ: Optional[Mapping[str, str]] = None) -> 'DockerClient':
        """
        Create client from DOCKER_HOST, DOCKER_TLS_VERIFY, DOCKER_CERT_PATH,
        DOCKER_API_VERSION and the user settings file
        """
        settings = ClientSettings(settings_file=settings_file, environ=environ)
        return cls(settings.endpoint(), timeout=settings.timeout, version=settings.api_version)

    def __repr__(self):
        return f"<DockerClient: {self.http.target.describe()}>"

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    @property
    def target(self) -> EndpointTarget:
        return self.http.target

    def version(self) -> Dict[str, Any]:
        """Get Docker version info"""
        return self.http.get('/version')

    def info(self) -> Dict[str, Any]:
        """Get Docker system info"""
        return self.http.get('/info')

    def ping(self) -> str:
        """Ping Docker daemon"""
        return self.http.get('/_ping')

    def events(self, since: Optional[int] = None, until: Optional[int] = None,
               filters: Optional[Dict[str, Any]] = None) -> Iterator[Dict[str, Any]]:
        """
        Stream daemon events

        Args:
            since: Show events since timestamp (Unix epoch)
            until: Stop streaming at timestamp (Unix epoch)
            filters: Filters, e.g. {'type': ['container']}

        Returns:
            Lazy iterator of event records; closing it releases the connection
        """
        params = {'since': since, 'until': until, 'filters': filters}
        return self.http.stream_json('GET', '/events', params=params)

    def close(self):
        """Close client; every request owns its connection, so nothing is pooled"""
        logger.debug(f"Docker client for {self.http.target.describe()} closed")
