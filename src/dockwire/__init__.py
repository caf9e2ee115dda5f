"""
dockwire - Docker Engine API client
Unix socket, TCP and TLS transports with streaming log and event decoding
"""

from .client import DockerClient
from .endpoint import EndpointTarget, TLSConfig, TransportKind
from .exceptions import (
    APIError,
    BuildError,
    ConnectionFailed,
    ContainerNotFound,
    DockerException,
    ImageNotFound,
    MalformedFrame,
    MalformedJson,
    NotFound,
    NetworkNotFound,
    ProtocolError,
    TlsHandshakeFailed,
    UnexpectedEof,
    VolumeNotFound,
    classify_error,
)
from .json_stream import JSONStreamDecoder, json_stream
from .multiplexed import Frame, FrameDecoder, StreamType, demux_stream

__all__ = [
    'DockerClient',
    'EndpointTarget',
    'TLSConfig',
    'TransportKind',
    'DockerException',
    'ProtocolError',
    'ConnectionFailed',
    'TlsHandshakeFailed',
    'UnexpectedEof',
    'MalformedFrame',
    'MalformedJson',
    'APIError',
    'NotFound',
    'ImageNotFound',
    'ContainerNotFound',
    'NetworkNotFound',
    'VolumeNotFound',
    'BuildError',
    'classify_error',
    'Frame',
    'FrameDecoder',
    'StreamType',
    'demux_stream',
    'JSONStreamDecoder',
    'json_stream',
]

__version__ = '1.0.0'
