"""
Transports for the Docker daemon
One connection per request over tcp, tls or a unix socket, built on http.client
"""

import http.client
import logging
import socket
from typing import Callable, Dict
from urllib.parse import quote

from .endpoint import EndpointTarget, TransportKind
from .exceptions import classify_error

logger = logging.getLogger(__name__)


class UnixHTTPConnection(http.client.HTTPConnection):
    """HTTP connection over Unix socket"""

    def __init__(self, socket_path: str, timeout: float = 60):
        super().__init__('localhost', timeout=timeout)
        self.socket_path = socket_path

    def connect(self):
        """Connect to Unix socket"""
        sock = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
        try:
            sock.settimeout(self.timeout)
            sock.connect(self.socket_path)
        except OSError:
            sock.close()
            raise
        self.sock = sock


class Transport:
    """
    Connector for one endpoint target

    The transport kind is fixed at construction; each ``connect()`` call
    returns a new, independent connection. The only state kept here is the
    target and, for tls, the SSL context, both read-only after construction,
    so one transport can serve concurrent requests.
    """

    def __init__(self, target: EndpointTarget, timeout: float = 60):
        self.target = target
        self.timeout = timeout
        self._ssl_context = target.tls.ssl_context() if target.kind is TransportKind.TLS else None
        self._connectors: Dict[TransportKind, Callable[[], http.client.HTTPConnection]] = {
            TransportKind.TCP: self._tcp_connection,
            TransportKind.TLS: self._tls_connection,
            TransportKind.UNIX: self._unix_connection,
        }

    def __repr__(self):
        return f"<Transport: {self.target.describe()}>"

    @property
    def kind(self) -> TransportKind:
        return self.target.kind

    def _tcp_connection(self) -> http.client.HTTPConnection:
        return http.client.HTTPConnection(self.target.host, self.target.port, timeout=self.timeout)

    def _tls_connection(self) -> http.client.HTTPConnection:
        return http.client.HTTPSConnection(
            self.target.host, self.target.port,
            timeout=self.timeout, context=self._ssl_context
        )

    def _unix_connection(self) -> http.client.HTTPConnection:
        return UnixHTTPConnection(self.target.socket_path, timeout=self.timeout)

    def connect(self) -> http.client.HTTPConnection:
        """
        Open a connection to the daemon

        Connects (and handshakes, for tls) eagerly, so failures surface here
        rather than on the first write.

        Returns:
            Connected http.client connection owned by the caller

        Raises:
            ConnectionFailed: Socket could not be connected
            TlsHandshakeFailed: TLS negotiation failed
        """
        conn = self._connectors[self.target.kind]()
        try:
            conn.connect()
        except OSError as e:
            conn.close()
            raise classify_error(e, endpoint=self.target.describe(), stage='connect') from e
        logger.debug(f"Connected to {self.target.describe()}")
        return conn

    def url_for(self, path: str) -> str:
        """Full URL of a request target, as the transport sees it"""
        if self.target.kind is TransportKind.UNIX:
            return f"http+unix://{quote(self.target.socket_path, safe='')}{path}"
        scheme = 'https' if self.target.kind is TransportKind.TLS else 'http'
        return f"{scheme}://{self.target.authority}{path}"

    @property
    def host_header(self) -> str:
        return self.target.authority
