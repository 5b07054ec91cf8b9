"""HTTP server for the DAP registry using stdlib http.server.

Routes:
    GET    /.well-known/did.json   — the registry's DID document
    GET    /metadata               — registration capabilities
    GET    /daps/{handle}          — look up a registered handle
    POST   /daps                   — register a DAP

Usage:
    python -m dap_registry.server.app
    REGISTRY_PORT=9000 REGISTRY_DATABASE=:memory: python -m dap_registry.server.app
"""
from __future__ import annotations

import json
import logging
import re
import threading
import urllib.parse
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer

from dap_registry.config import RegistrySettings
from dap_registry.registry import DapRegistry, PortableDidIdentity, RegistrationMetadata
from dap_registry.server.routes import DapRoutes, error_response
from dap_registry.store import DapStore, SqliteDapStore

logger = logging.getLogger(__name__)

# URL pattern for /daps/{handle}
_DAP_HANDLE_PATTERN = re.compile(r"^/daps/([^/]+)$")

_MAX_BODY_BYTES = 64 * 1024


class DapRegistryServer(ThreadingHTTPServer):
    """Threading HTTP server that owns the registry's store.

    Each request runs on its own thread; the store serializes writes.
    :meth:`server_close` closes the store exactly once.
    """

    daemon_threads = True

    def __init__(self, address: tuple[str, int], routes: DapRoutes) -> None:
        super().__init__(address, DapRegistryHandler)
        self.routes = routes
        self._closed = False
        self._close_lock = threading.Lock()

    def server_close(self) -> None:
        super().server_close()
        with self._close_lock:
            if self._closed:
                return
            self._closed = True
        self.routes.registry.store.close()
        logger.info("DAP registry store closed")


class DapRegistryHandler(BaseHTTPRequestHandler):
    """HTTP request handler for the DAP registry.

    All responses are JSON. Errors use ``{"error": {"message": ...}}``.
    """

    server: DapRegistryServer

    def log_message(self, format: str, *args: object) -> None:
        """Override to route access logs through the Python logging system."""
        logger.debug(format, *args)

    # ── GET ───────────────────────────────────────────────────────────────────

    def do_GET(self) -> None:
        """Handle all GET requests by routing on the URL path."""
        path = self._path()
        routes = self.server.routes

        if path == "/.well-known/did.json":
            self._dispatch(routes.handle_did_document)
        elif path == "/metadata":
            self._dispatch(routes.handle_metadata)
        else:
            match = _DAP_HANDLE_PATTERN.match(path)
            if match:
                handle = urllib.parse.unquote(match.group(1))
                self._dispatch(routes.handle_get_dap, handle)
            elif path == "/daps":
                self._method_not_allowed("GET", path)
            else:
                self._not_found("GET", path)

    # ── POST ──────────────────────────────────────────────────────────────────

    def do_POST(self) -> None:
        """Handle all POST requests by routing on the URL path."""
        path = self._path()

        if path == "/daps":
            body = self._read_body()
            if body is None:
                return
            self._dispatch(self.server.routes.handle_register, body)
        elif path in ("/.well-known/did.json", "/metadata") or _DAP_HANDLE_PATTERN.match(path):
            self._method_not_allowed("POST", path)
        else:
            self._not_found("POST", path)

    # ── Other methods ─────────────────────────────────────────────────────────

    def do_PUT(self) -> None:
        self._method_not_allowed("PUT", self._path())

    def do_PATCH(self) -> None:
        self._method_not_allowed("PATCH", self._path())

    def do_DELETE(self) -> None:
        self._method_not_allowed("DELETE", self._path())

    # ── Helpers ───────────────────────────────────────────────────────────────

    def _path(self) -> str:
        path = urllib.parse.urlparse(self.path).path
        return path.rstrip("/") or "/"

    def _dispatch(self, handler, *args: object) -> None:
        try:
            status, data = handler(*args)
        except Exception:
            logger.exception("Unhandled error serving %s %s", self.command, self.path)
            status, data = error_response(500, "Internal server error")
        self._send_json(status, data)

    def _not_found(self, method: str, path: str) -> None:
        status, data = error_response(404, f"No route for {method} {path}")
        self._send_json(status, data)

    def _method_not_allowed(self, method: str, path: str) -> None:
        status, data = error_response(405, f"{method} not supported on {path}")
        self._send_json(status, data)

    def _send_json(self, status: int, data: dict[str, object]) -> None:
        """Serialize *data* to JSON and send an HTTP response with *status*."""
        body = json.dumps(data, default=str).encode("utf-8")
        self.send_response(status)
        self.send_header("Content-Type", "application/json; charset=utf-8")
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    def _read_body(self) -> bytes | None:
        """Read the raw request body.

        Returns None (and sends a 400 or 413 error response) if the
        Content-Length header is invalid or too large.
        """
        try:
            content_length = int(self.headers.get("Content-Length", 0))
        except ValueError:
            status, data = error_response(400, "Invalid Content-Length header")
            self._send_json(status, data)
            return None
        if content_length < 0:
            status, data = error_response(400, "Invalid Content-Length header")
            self._send_json(status, data)
            return None
        if content_length > _MAX_BODY_BYTES:
            status, data = error_response(413, "Request body too large")
            self._send_json(status, data)
            return None
        return self.rfile.read(content_length) if content_length else b""


def build_registry(settings: RegistrySettings, store: DapStore | None = None) -> DapRegistry:
    """Wire a :class:`DapRegistry` from *settings*.

    The store is created from ``settings.database`` unless one is given,
    and is opened before returning.
    """
    if store is None:
        store = SqliteDapStore(settings.database)
    store.open()
    metadata = RegistrationMetadata(
        enabled=settings.enabled,
        supported_did_methods=tuple(settings.supported_did_methods),
    )
    return DapRegistry(store, PortableDidIdentity(settings.portable_did), metadata)


def create_server(
    registry: DapRegistry, host: str = "0.0.0.0", port: int = 3000
) -> DapRegistryServer:
    """Create (but do not start) the DAP registry HTTP server.

    Parameters
    ----------
    registry:
        The registry serving requests. Its store is closed when the server
        is closed.
    host:
        Bind address (default ``"0.0.0.0"`` — all interfaces).
    port:
        TCP port to listen on (default 3000; 0 picks a free port).

    Returns
    -------
    DapRegistryServer
        A configured server instance ready to call ``serve_forever()`` on.
    """
    server = DapRegistryServer((host, port), DapRoutes(registry))
    logger.info(
        "DAP registry server created at http://%s:%d", host, server.server_address[1]
    )
    return server


def run_server(settings: RegistrySettings) -> None:
    """Create and run the DAP registry HTTP server (blocking).

    The store is closed once on shutdown, whether the server stops on
    Ctrl-C or on an error.
    """
    registry = build_registry(settings)
    try:
        server = create_server(registry, host=settings.host, port=settings.port)
    except OSError:
        registry.store.close()
        raise
    logger.info(
        "Serving DAP registry on http://%s:%d — press Ctrl-C to stop",
        settings.host,
        server.server_address[1],
    )
    try:
        server.serve_forever()
    except KeyboardInterrupt:
        logger.info("Shutting down DAP registry server.")
    finally:
        server.server_close()


def main() -> None:
    settings = RegistrySettings()
    logging.basicConfig(level=getattr(logging, settings.log_level))
    run_server(settings)


if __name__ == "__main__":
    main()
