"""
Endpoint targets
Where the daemon lives: tcp host/port, tls host/port with certificates, or a unix socket path
"""

import enum
import os
import platform
import ssl
from dataclasses import dataclass
from typing import Optional
from urllib.parse import unquote, urlsplit

DEFAULT_UNIX_SOCKET = '/var/run/docker.sock'
DEFAULT_TCP_PORT = 2375
DEFAULT_TLS_PORT = 2376


class TransportKind(enum.Enum):
    """Socket kinds the client can talk over"""
    TCP = 'tcp'
    TLS = 'tls'
    UNIX = 'unix'


@dataclass(frozen=True)
class TLSConfig:
    """
    TLS material for a daemon listening on tcp

    Args:
        ca_cert: CA bundle used to verify the daemon certificate
        client_cert: Client certificate (PEM)
        client_key: Client private key (PEM)
        verify: Verify the daemon certificate and hostname
    """

    ca_cert: Optional[str] = None
    client_cert: Optional[str] = None
    client_key: Optional[str] = None
    verify: bool = True

    @classmethod
    def from_cert_path(cls, cert_path: str, verify: bool = True) -> 'TLSConfig':
        """Use the ca.pem / cert.pem / key.pem layout of DOCKER_CERT_PATH"""
        cert_path = os.path.expanduser(cert_path)
        client_cert = os.path.join(cert_path, 'cert.pem')
        client_key = os.path.join(cert_path, 'key.pem')
        ca_cert = os.path.join(cert_path, 'ca.pem')
        return cls(
            ca_cert=ca_cert if verify else None,
            client_cert=client_cert if os.path.exists(client_cert) else None,
            client_key=client_key if os.path.exists(client_key) else None,
            verify=verify,
        )

    def ssl_context(self) -> ssl.SSLContext:
        """Create the SSL context shared by every request to this endpoint"""
        if self.verify:
            context = ssl.create_default_context(cafile=self.ca_cert)
        else:
            context = ssl.SSLContext(ssl.PROTOCOL_TLS_CLIENT)
            context.check_hostname = False
            context.verify_mode = ssl.CERT_NONE
        if self.client_cert:
            context.load_cert_chain(self.client_cert, self.client_key)
        return context


@dataclass(frozen=True)
class EndpointTarget:
    """Resolved connection configuration for reaching the daemon"""

    kind: TransportKind
    host: Optional[str] = None
    port: Optional[int] = None
    socket_path: Optional[str] = None
    tls: Optional[TLSConfig] = None

    def __post_init__(self):
        if self.kind is TransportKind.UNIX:
            if not self.socket_path:
                raise ValueError("unix endpoint requires a socket path")
        elif not self.host:
            raise ValueError(f"{self.kind.value} endpoint requires a host")
        if self.kind is TransportKind.TLS and self.tls is None:
            object.__setattr__(self, 'tls', TLSConfig())

    @classmethod
    def tcp(cls, host: str, port: int = DEFAULT_TCP_PORT) -> 'EndpointTarget':
        return cls(TransportKind.TCP, host=host, port=port)

    @classmethod
    def secure(cls, host: str, port: int = DEFAULT_TLS_PORT,
               tls: Optional[TLSConfig] = None) -> 'EndpointTarget':
        return cls(TransportKind.TLS, host=host, port=port, tls=tls or TLSConfig())

    @classmethod
    def unix(cls, socket_path: str = DEFAULT_UNIX_SOCKET) -> 'EndpointTarget':
        return cls(TransportKind.UNIX, socket_path=socket_path)

    @classmethod
    def parse(cls, base_url: str, tls: Optional[TLSConfig] = None) -> 'EndpointTarget':
        """
        Parse a DOCKER_HOST style address

        Accepted forms: unix:///path, /path, tcp://host:port, http://host:port,
        https://host:port and bare host:port. A tcp address becomes TLS when
        ``tls`` is given.

        Raises:
            ValueError: Unsupported scheme or missing host
        """
        base_url = base_url.strip()
        if base_url.startswith('/'):
            return cls.unix(base_url)
        if '://' not in base_url:
            base_url = f"tcp://{base_url}"

        parts = urlsplit(base_url)
        scheme = parts.scheme.lower()
        if scheme in ('unix', 'http+unix'):
            path = parts.path if scheme == 'unix' else unquote(parts.netloc)
            return cls.unix(path or DEFAULT_UNIX_SOCKET)
        if scheme not in ('tcp', 'http', 'https'):
            raise ValueError(f"Unsupported Docker host scheme: {scheme}")
        if not parts.hostname:
            raise ValueError(f"Docker host address has no host: {base_url}")

        if scheme == 'https' or tls is not None:
            return cls.secure(parts.hostname, parts.port or DEFAULT_TLS_PORT, tls)
        return cls.tcp(parts.hostname, parts.port or DEFAULT_TCP_PORT)

    @property
    def authority(self) -> str:
        """Value of the Host header; unix sockets have no DNS name"""
        if self.kind is TransportKind.UNIX:
            return 'localhost'
        return f"{self.host}:{self.port}"

    def describe(self) -> str:
        if self.kind is TransportKind.UNIX:
            return f"unix://{self.socket_path}"
        return f"{self.kind.value}://{self.host}:{self.port}"


def default_socket_path() -> str:
    """Local daemon socket (Docker Desktop on macOS keeps it under the home directory)"""
    if platform.system() == 'Darwin':
        desktop_socket = os.path.expanduser('~/.docker/run/docker.sock')
        if os.path.exists(desktop_socket):
            return desktop_socket
    return DEFAULT_UNIX_SOCKET
