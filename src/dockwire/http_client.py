"""
HTTP Client for the Docker daemon
Builds and sends one request per connection over any transport, using http.client
"""

import http.client
import io
import json
import logging
from typing import Any, Dict, Iterable, Iterator, Optional, Tuple, Union
from urllib.parse import quote

from .endpoint import EndpointTarget
from .exceptions import classify_error, create_api_error
from .multiplexed import Frame
from .response import DockerResponse
from .transport import Transport

logger = logging.getLogger(__name__)

Body = Union[None, bytes, Dict[str, Any], list, Iterable[bytes], io.IOBase]


def encode_query(params: Optional[Dict[str, Any]]) -> str:
    """
    Percent-encode query parameters

    None values are skipped, booleans become true/false, lists and dicts are
    sent as JSON (the daemon's filters format).
    """
    if not params:
        return ''
    query_parts = []
    for key, value in params.items():
        if value is None:
            continue
        if isinstance(value, bool):
            value = 'true' if value else 'false'
        elif isinstance(value, (list, dict)):
            value = json.dumps(value)
        query_parts.append(f"{quote(str(key), safe='')}={quote(str(value), safe='')}")
    return '&'.join(query_parts)


class DockerHTTPClient:
    """HTTP client for Docker daemon"""

    def __init__(self, target: EndpointTarget, timeout: float = 60,
                 version: Optional[str] = None):
        """
        Initialize Docker HTTP client

        Args:
            target: Where the daemon listens
            timeout: Socket timeout in seconds (None waits forever, for follow streams)
            version: API version prefix, e.g. '1.43' (default: daemon's own)
        """
        self.target = target
        self.timeout = timeout
        self.version = version.lstrip('v') if version else None
        self.transport = Transport(target, timeout=timeout)

    def __repr__(self):
        return f"<DockerHTTPClient: {self.target.describe()}>"

    def build_url(self, path: str, params: Optional[Dict[str, Any]] = None) -> str:
        """Request target: optional version prefix, path and query string"""
        if not path.startswith('/'):
            path = f"/{path}"
        if self.version:
            path = f"/v{self.version}{path}"
        query = encode_query(params)
        return f"{path}?{query}" if query else path

    def _prepare_body(self, data: Body, headers: Dict[str, str]) -> Tuple[Any, Dict[str, str]]:
        if data is None:
            return None, headers
        if isinstance(data, (bytes, bytearray)):
            # Raw bytes data (e.g., tar archive)
            headers.setdefault('Content-Length', str(len(data)))
            return bytes(data), headers
        if isinstance(data, (dict, list)):
            body = json.dumps(data).encode('utf-8')
            headers['Content-Type'] = 'application/json'
            headers['Content-Length'] = str(len(body))
            return body, headers
        # Byte iterables and file objects have no length: http.client sends
        # them chunk by chunk with chunked transfer encoding
        headers.setdefault('Content-Type', 'application/x-tar')
        headers.pop('Content-Length', None)
        return data, headers

    def send(self, method: str, path: str, params: Optional[Dict[str, Any]] = None,
             data: Body = None, headers: Optional[Dict[str, str]] = None) -> DockerResponse:
        """
        Send one request and return the response with its body unread

        Args:
            method: HTTP method (GET, POST, DELETE, etc.)
            path: API path
            params: URL query parameters
            data: None, bytes, JSON-serializable dict/list, or a byte
                iterable / binary file streamed as the body
            headers: Extra HTTP headers

        Returns:
            DockerResponse owning the connection; the caller must consume or
            close it

        Raises:
            ConnectionFailed: Connect or send failed
            TlsHandshakeFailed: TLS negotiation failed
            APIError: Daemon answered with status >= 400 (NotFound for 404)
        """
        url = self.build_url(path, params)
        req_headers = {'Host': self.transport.host_header}
        if headers:
            req_headers.update(headers)
        body, req_headers = self._prepare_body(data, req_headers)

        full_url = self.transport.url_for(url)
        logger.debug(f"{method} {full_url}")

        conn = self.transport.connect()
        try:
            conn.request(method, url, body=body, headers=req_headers)
            raw = conn.getresponse()
        except (OSError, http.client.HTTPException) as e:
            conn.close()
            raise classify_error(e, url=full_url, stage='send') from e
        except BaseException:
            conn.close()
            raise

        response = DockerResponse(conn, raw, url=full_url)
        logger.debug(f"{method} {full_url} -> {response.status}")

        if response.status >= 400:
            error_body = response.read()
            raise create_api_error(
                response.status, error_body, reason=response.reason,
                response=response, url=full_url
            )
        return response

    def request(self, method: str, path: str, data: Body = None,
                params: Optional[Dict[str, Any]] = None, headers: Optional[Dict[str, str]] = None,
                stream: bool = False) -> Any:
        """
        Make HTTP request to Docker daemon

        Args:
            method: HTTP method (GET, POST, DELETE, etc.)
            path: API path
            data: JSON data for request body, raw bytes, or a byte stream
            params: URL query parameters
            headers: HTTP headers
            stream: If True, return the response for streaming

        Returns:
            Parsed JSON response, text, None for an empty body, or the
            DockerResponse if stream=True
        """
        response = self.send(method, path, params=params, data=data, headers=headers)
        if stream:
            return response

        response_data = response.read()
        if not response_data:
            return None
        try:
            return json.loads(response_data.decode('utf-8'))
        except ValueError:
            # Return raw data if not JSON
            return response_data.decode('utf-8', errors='replace')

    def request_binary(self, method: str, path: str, **kwargs) -> bytes:
        """Make request and return the body as bytes (archives, exports)"""
        return self.send(method, path, **kwargs).read()

    def stream_frames(self, method: str, path: str, **kwargs) -> Iterator[Frame]:
        """Make request and lazily demultiplex its stdout/stderr frames"""
        return self.send(method, path, **kwargs).frames()

    def stream_json(self, method: str, path: str, **kwargs) -> Iterator[Any]:
        """Make request and lazily decode its JSON value stream"""
        return self.send(method, path, **kwargs).json_stream()

    def stream_raw(self, method: str, path: str, **kwargs) -> Iterator[bytes]:
        """Make request and yield body chunks as they arrive (tty output, exports)"""
        return self.send(method, path, **kwargs).iter_chunks()

    def get(self, path: str, **kwargs) -> Any:
        """Make GET request"""
        return self.request('GET', path, **kwargs)

    def post(self, path: str, **kwargs) -> Any:
        """Make POST request"""
        return self.request('POST', path, **kwargs)

    def delete(self, path: str, **kwargs) -> Any:
        """Make DELETE request"""
        return self.request('DELETE', path, **kwargs)

    def put(self, path: str, **kwargs) -> Any:
        """Make PUT request"""
        return self.request('PUT', path, **kwargs)

    def head(self, path: str, **kwargs) -> DockerResponse:
        """Make HEAD request; returns the (closed) response for its headers"""
        response = self.send('HEAD', path, **kwargs)
        response.close()
        return response
