"""
Pytest configuration and fixtures
"""

import json
import socket
import threading
import time
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from urllib.parse import parse_qs, urlsplit

import pytest

from vault_transports import AiohttpTransport, RequestsTransport

TRANSPORTS = {
    "requests": RequestsTransport,
    "aiohttp": AiohttpTransport,
}


class VaultStubHandler(BaseHTTPRequestHandler):
    """Minimal Vault look-alike serving fixed routes."""

    protocol_version = "HTTP/1.1"

    def version_string(self):
        return "VaultStub/1.0"

    def date_time_string(self, timestamp=None):
        # Fixed date so responses from separate transfers compare equal
        return "Mon, 19 Oct 2026 00:00:00 GMT"

    def log_message(self, format, *args):
        pass

    def _reply(self, status, body, headers=()):
        try:
            self.send_response(status)
            self.send_header("Content-Type", "application/json")
            self.send_header("Content-Length", str(len(body)))
            for name, value in headers:
                self.send_header(name, value)
            self.end_headers()
            self.wfile.write(body)
        except (BrokenPipeError, ConnectionResetError):
            # Client went away (cancelled or timed out)
            pass

    def _handle(self):
        length = int(self.headers.get("Content-Length") or 0)
        body = self.rfile.read(length) if length else b""
        url = urlsplit(self.path)
        query = parse_qs(url.query)

        if url.path == "/v1/secret/foo":
            self._reply(200, b'{"data":{}}', [("X-Request-Id", "req-1")])
        elif url.path == "/echo":
            payload = {
                "method": self.command,
                "path": self.path,
                "headers": {k.lower(): v for k, v in self.headers.items()},
                "body": body.decode("utf-8"),
            }
            self._reply(200, json.dumps(payload, sort_keys=True).encode("utf-8"))
        elif url.path == "/multi":
            self._reply(200, b"{}", [("X-Multi", "one"), ("X-Multi", "two")])
        elif url.path.startswith("/status/"):
            status = int(url.path.rsplit("/", 1)[1])
            self._reply(status, b'{"errors":["permission denied"]}')
        elif url.path == "/slow":
            time.sleep(min(float(query.get("seconds", ["1"])[0]), 5.0))
            self._reply(200, b'{"slow":true}')
        else:
            self._reply(404, b'{"errors":[]}')

    do_GET = _handle
    do_POST = _handle
    do_PUT = _handle
    do_DELETE = _handle


@pytest.fixture(scope="session")
def vault_server():
    """Threaded HTTP server on an ephemeral port"""
    server = ThreadingHTTPServer(("127.0.0.1", 0), VaultStubHandler)
    server.daemon_threads = True
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    yield server
    server.shutdown()
    server.server_close()


@pytest.fixture
def base_uri(vault_server):
    return f"http://127.0.0.1:{vault_server.server_address[1]}"


@pytest.fixture(params=sorted(TRANSPORTS))
def transport_class(request):
    """Each transport implementation in turn"""
    return TRANSPORTS[request.param]


@pytest.fixture
def transport(transport_class, base_uri):
    """Transport of each kind pointed at the stub server"""
    instance = transport_class({"base_uri": base_uri, "timeout": 5})
    yield instance
    instance.close()


@pytest.fixture
def all_transports(base_uri):
    """One transport of every kind, for side-by-side comparisons"""
    instances = [cls({"base_uri": base_uri, "timeout": 5}) for cls in TRANSPORTS.values()]
    yield instances
    for instance in instances:
        instance.close()


@pytest.fixture
def refused_uri():
    """Address with nothing listening on it"""
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    sock.bind(("127.0.0.1", 0))
    port = sock.getsockname()[1]
    sock.close()
    return f"http://127.0.0.1:{port}"


@pytest.fixture(autouse=True)
def no_proxy_env(monkeypatch):
    """Keep requests from routing the stub server through a proxy"""
    for name in ("HTTP_PROXY", "HTTPS_PROXY", "ALL_PROXY", "http_proxy", "https_proxy", "all_proxy"):
        monkeypatch.delenv(name, raising=False)
