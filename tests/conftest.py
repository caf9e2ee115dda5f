"""
Fake Docker daemon for pipeline tests

A real http.server in a background thread, reachable over loopback tcp or a
unix socket. Tests register canned responses per (method, path) and inspect
the requests the daemon received.
"""

import http.server
import json
import os
import socketserver
import tempfile
import threading
from urllib.parse import parse_qs, urlsplit

import pytest

from dockwire.endpoint import EndpointTarget


class Route:
    def __init__(self, status=200, body=b'', content_type='application/json',
                 chunks=None, headers=None):
        if isinstance(body, (dict, list)):
            body = json.dumps(body).encode('utf-8')
        elif isinstance(body, str):
            body = body.encode('utf-8')
        self.status = status
        self.body = body
        self.content_type = content_type
        # bytes items are sent as HTTP chunks, threading.Event items pause the
        # response until the test sets them
        self.chunks = chunks
        self.headers = headers or {}


class RecordedRequest:
    def __init__(self, method, path, query, headers, body):
        self.method = method
        self.path = path
        self.query = query
        self.headers = headers
        self.body = body

    def param(self, name):
        values = self.query.get(name)
        return values[0] if values else None


class DaemonHandler(http.server.BaseHTTPRequestHandler):
    protocol_version = 'HTTP/1.1'

    def address_string(self):
        # unix socket peers have no address
        return 'fake-daemon'

    def log_message(self, format, *args):
        pass

    def _read_body(self) -> bytes:
        if self.headers.get('Transfer-Encoding', '').lower() == 'chunked':
            body = bytearray()
            while True:
                size = int(self.rfile.readline().split(b';')[0].strip(), 16)
                if size == 0:
                    # trailer section ends with an empty line
                    while self.rfile.readline() not in (b'\r\n', b'\n', b''):
                        pass
                    return bytes(body)
                body.extend(self.rfile.read(size))
                self.rfile.readline()
        length = int(self.headers.get('Content-Length') or 0)
        return self.rfile.read(length) if length else b''

    def _handle(self):
        parts = urlsplit(self.path)
        body = self._read_body()
        daemon = self.server.daemon
        request = RecordedRequest(self.command, parts.path, parse_qs(parts.query),
                                  dict(self.headers.items()), body)
        daemon.requests.append(request)

        route = daemon.routes.get((self.command, parts.path))
        if route is None:
            route = Route(404, {'message': f"page not found: {parts.path}"})

        self.close_connection = True
        self.send_response(route.status)
        self.send_header('Content-Type', route.content_type)
        self.send_header('Connection', 'close')
        for name, value in route.headers.items():
            self.send_header(name, value)

        try:
            if route.chunks is None:
                self.send_header('Content-Length', str(len(route.body)))
                self.end_headers()
                if self.command != 'HEAD':
                    self.wfile.write(route.body)
                return

            self.send_header('Transfer-Encoding', 'chunked')
            self.end_headers()
            for chunk in route.chunks:
                if isinstance(chunk, threading.Event):
                    chunk.wait(5)
                    continue
                self.wfile.write(f"{len(chunk):x}\r\n".encode('ascii') + chunk + b'\r\n')
                self.wfile.flush()
            self.wfile.write(b'0\r\n\r\n')
        except OSError:
            # client went away mid-stream
            pass

    do_GET = _handle
    do_POST = _handle
    do_PUT = _handle
    do_DELETE = _handle
    do_HEAD = _handle


class TCPDaemonServer(socketserver.ThreadingMixIn, http.server.HTTPServer):
    daemon_threads = True


class UnixDaemonServer(socketserver.ThreadingMixIn, socketserver.UnixStreamServer):
    daemon_threads = True


class FakeDaemon:
    def __init__(self, server, target: EndpointTarget):
        self.server = server
        self.target = target
        self.routes = {}
        self.requests = []
        server.daemon = self
        self._thread = threading.Thread(target=server.serve_forever, daemon=True)

    def start(self):
        self._thread.start()
        return self

    def stop(self):
        self.server.shutdown()
        self.server.server_close()

    def route(self, method, path, **kwargs) -> Route:
        route = Route(**kwargs)
        self.routes[(method, path)] = route
        return route

    @property
    def last_request(self) -> RecordedRequest:
        return self.requests[-1]


@pytest.fixture
def daemon():
    server = TCPDaemonServer(('127.0.0.1', 0), DaemonHandler)
    host, port = server.server_address[:2]
    fake = FakeDaemon(server, EndpointTarget.tcp(host, port)).start()
    yield fake
    fake.stop()


@pytest.fixture
def unix_daemon():
    # short directory: unix socket paths are limited to ~100 bytes
    tmpdir = tempfile.mkdtemp(prefix='dw')
    socket_path = os.path.join(tmpdir, 'docker.sock')
    server = UnixDaemonServer(socket_path, DaemonHandler)
    fake = FakeDaemon(server, EndpointTarget.unix(socket_path)).start()
    yield fake
    fake.stop()
    if os.path.exists(socket_path):
        os.unlink(socket_path)
    os.rmdir(tmpdir)


def frame(stream: int, data: bytes) -> bytes:
    """Encode one multiplexed stream frame"""
    return bytes([stream, 0, 0, 0]) + len(data).to_bytes(4, 'big') + data
