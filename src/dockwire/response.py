"""
Response envelope
Status, headers and the still unread body of one daemon response
"""

import http.client
import json
import logging
from typing import Any, Callable, Iterator, List

from .exceptions import MalformedJson, classify_error
from .json_stream import json_stream
from .multiplexed import Frame, demux_stream

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 64 * 1024

MULTIPLEXED_STREAM = 'application/vnd.docker.multiplexed-stream'


class DockerResponse:
    """
    One response from the daemon, owning its connection

    The body is not read until the caller asks for it. Reading it to the end,
    calling ``close()``, leaving a ``with`` block, or closing/dropping one of
    the generators below releases the connection. Release happens once and
    never raises.
    """

    def __init__(self, connection: http.client.HTTPConnection,
                 raw: http.client.HTTPResponse, url: str = ''):
        self.connection = connection
        self.raw = raw
        self.url = url
        self.status: int = raw.status
        self.reason: str = raw.reason
        self.headers = raw.headers
        self.closed = False
        self._release_callbacks: List[Callable[[], None]] = []

    def __repr__(self):
        return f"<DockerResponse: {self.status} {self.url}>"

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def __del__(self):
        if not getattr(self, 'closed', True):
            self.close()

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 400

    @property
    def content_type(self) -> str:
        return (self.headers.get('Content-Type') or '').split(';')[0].strip().lower()

    @property
    def is_multiplexed(self) -> bool:
        """
        Whether the daemon labelled the body as stdout/stderr framed

        Older API versions label both framed and tty bodies as raw streams,
        so False does not rule framing out.
        """
        return self.content_type == MULTIPLEXED_STREAM

    def add_release_callback(self, callback: Callable[[], None]):
        """Run ``callback`` when the connection is released"""
        if self.closed:
            callback()
        else:
            self._release_callbacks.append(callback)

    def close(self):
        """Release the connection; safe to call more than once"""
        if self.closed:
            return
        self.closed = True
        try:
            self.raw.close()
        finally:
            self.connection.close()
            logger.debug(f"Released connection for {self.url}")
            callbacks, self._release_callbacks = self._release_callbacks, []
            for callback in callbacks:
                try:
                    callback()
                except Exception as e:
                    logger.warning(f"Release callback failed for {self.url}: {e}")

    def iter_chunks(self, chunk_size: int = DEFAULT_CHUNK_SIZE) -> Iterator[bytes]:
        """
        Yield body bytes as they arrive from the network

        Each chunk is at most ``chunk_size`` bytes; a read returns whatever
        is available instead of waiting to fill the chunk. The connection is
        released when the body ends or the generator is closed.
        """
        try:
            while True:
                try:
                    chunk = self.raw.read1(chunk_size)
                except (OSError, http.client.HTTPException) as e:
                    raise classify_error(e, url=self.url, stage='read') from e
                if not chunk:
                    return
                yield chunk
        finally:
            self.close()

    def frames(self) -> Iterator[Frame]:
        """Multiplexed stdout/stderr frames (attach, logs and exec without tty)"""
        chunks = self.iter_chunks()
        try:
            yield from demux_stream(chunks)
        finally:
            chunks.close()

    def json_stream(self) -> Iterator[Any]:
        """Decoded JSON values (pull, build, push, events, stats)"""
        chunks = self.iter_chunks()
        try:
            yield from json_stream(chunks)
        finally:
            chunks.close()

    def read(self) -> bytes:
        """Read the whole body and release the connection"""
        try:
            return self.raw.read()
        except (OSError, http.client.HTTPException) as e:
            raise classify_error(e, url=self.url, stage='read') from e
        finally:
            self.close()

    def text(self) -> str:
        return self.read().decode('utf-8', errors='replace')

    def json(self) -> Any:
        """Read the body as one JSON document; None for an empty body"""
        body = self.read()
        if not body:
            return None
        try:
            return json.loads(body.decode('utf-8'))
        except ValueError as e:
            raise MalformedJson(f"Response body is not JSON: {e}", url=self.url) from e
