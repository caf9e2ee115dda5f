"""
Docker API Exceptions
Error taxonomy shared by the transport, the request pipeline and the stream decoders
"""

import http.client
import json
import ssl
from typing import Any, Dict, Optional


class DockerException(Exception):
    """Base Docker exception"""
    pass


class ProtocolError(DockerException):
    """
    Failure of one request/response exchange.

    Every stage (connect, send, status check, body decoding) raises a
    subclass of this error, so callers can branch on ``kind`` without caring
    which endpoint shape they used.
    """

    kind = 'protocol'

    def __init__(self, message: str, **context):
        super().__init__(message)
        self.context: Dict[str, Any] = {k: v for k, v in context.items() if v is not None}

    def annotate(self, **context) -> 'ProtocolError':
        """Attach extra context (url, socket path, offset...) and return self"""
        for key, value in context.items():
            if value is not None:
                self.context.setdefault(key, value)
        return self

    def __str__(self):
        message = super().__str__()
        if not self.context:
            return message
        details = ', '.join(f"{k}={v}" for k, v in sorted(self.context.items()))
        return f"{message} ({details})"


class ConnectionFailed(ProtocolError):
    """Could not connect to the daemon, or the connection broke mid-exchange"""
    kind = 'connection_failed'


class TlsHandshakeFailed(ProtocolError):
    """TLS negotiation with the daemon failed"""
    kind = 'tls_handshake_failed'


class UnexpectedEof(ProtocolError):
    """Body ended in the middle of a frame or JSON value"""
    kind = 'unexpected_eof'


class MalformedFrame(ProtocolError):
    """Multiplexed stream frame with an unknown stream type"""
    kind = 'malformed_frame'


class MalformedJson(ProtocolError):
    """JSON stream contained something that is not JSON"""
    kind = 'malformed_json'


class APIError(ProtocolError):
    """Docker API error reported by the daemon"""

    kind = 'daemon_reported'

    def __init__(self, message, response=None, status_code=None, explanation=None, **context):
        super().__init__(message, **context)
        self.response = response
        self.status_code = status_code
        self.explanation = explanation if explanation is not None else message

    def is_client_error(self) -> bool:
        return self.status_code is not None and 400 <= self.status_code < 500

    def is_server_error(self) -> bool:
        return self.status_code is not None and 500 <= self.status_code < 600


class NotFound(APIError):
    """Daemon answered 404"""
    pass


class ImageNotFound(NotFound):
    """Image not found"""
    pass


class ContainerNotFound(NotFound):
    """Container not found"""
    pass


class NetworkNotFound(NotFound):
    """Network not found"""
    pass


class VolumeNotFound(NotFound):
    """Volume not found"""
    pass


class BuildError(DockerException):
    """Image build error"""

    def __init__(self, message, build_log=None):
        super().__init__(message)
        self.build_log = build_log or []


def _error_message(body: bytes, reason: Optional[str]) -> str:
    text = body.decode('utf-8', errors='replace').strip()
    if not text:
        return reason or 'unknown error'
    try:
        data = json.loads(text)
    except ValueError:
        return text
    if isinstance(data, dict) and isinstance(data.get('message'), str):
        return data['message']
    return text


def create_api_error(status: int, body: bytes, reason: Optional[str] = None,
                     response=None, url: Optional[str] = None) -> APIError:
    """
    Build the daemon-reported error for a response with status >= 400

    Args:
        status: HTTP status code
        body: Fully read response body
        reason: HTTP reason phrase, used when the body is empty
        response: Response object kept on the error for inspection
        url: Request URL, added to the error context

    Returns:
        APIError (NotFound for 404)
    """
    message = _error_message(body, reason)
    cls = NotFound if status == 404 else APIError
    return cls(
        f"{status} {reason or 'Error'}: {message}",
        response=response,
        status_code=status,
        explanation=message,
        url=url,
    )


def classify_error(exc: BaseException, **context) -> ProtocolError:
    """
    Map an exception raised by any stage to the protocol error taxonomy

    Errors already in the taxonomy only get the extra context.

    Args:
        exc: Exception raised while connecting, sending or reading
        **context: url, socket_path, stage... attached to the result

    Returns:
        ProtocolError instance (the caller raises it ``from exc``)
    """
    if isinstance(exc, ProtocolError):
        return exc.annotate(**context)
    if isinstance(exc, ssl.SSLError):
        return TlsHandshakeFailed(f"TLS handshake failed: {exc}", **context)
    if isinstance(exc, http.client.IncompleteRead):
        return UnexpectedEof(
            f"Connection closed after {len(exc.partial)} bytes of a chunk",
            expected=exc.expected, **context
        )
    if isinstance(exc, (OSError, http.client.HTTPException)):
        return ConnectionFailed(f"{type(exc).__name__}: {exc}", **context)
    return ProtocolError(f"{type(exc).__name__}: {exc}", **context)
