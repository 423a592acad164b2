import errno
import socket
import logging
import threading
from enum import Enum
from typing import Optional

from flask import Flask, Response
from werkzeug.serving import BaseWSGIServer, WSGIRequestHandler, make_server


class PortInUseError(OSError):
    """Raised when the server port is already bound by another program."""

    def __init__(self, port: int):
        super().__init__(
            errno.EADDRINUSE,
            f"Port {port} is in use by another program. Either stop that "
            "program, or start the server with a different --port.",
        )
        self.port = port


class StaticPageRequestHandler(WSGIRequestHandler):
    """Answer requests the HTTP parser rejects with the page as well."""

    page = b""
    # Two-word "GET /" requests still get a status line and headers
    default_request_version = "HTTP/1.0"

    def send_error(self, code, message=None, explain=None):
        self.log_error("code %d, message %s", code, message)
        self.close_connection = True
        head = (
            f"{self.protocol_version} 200 OK\r\n"
            "Content-Type: text/html; charset=utf-8\r\n"
            f"Content-Length: {len(self.page)}\r\n"
            "Connection: keep-alive\r\n"
            "\r\n"
        )
        self.wfile.write(head.encode("latin-1") + self.page)


class ServerState(Enum):
    IDLE = "idle"
    LISTENING = "listening"
    TERMINATED = "terminated"


class PageServer:
    """Serve one pre-rendered page to every connection until stopped.

    Requests are never routed or parsed: any method, path or header set
    gets the same ``200 OK`` response with the same body.
    """

    def __init__(
        self,
        page: bytes,
        host: str = "127.0.0.1",
        port: int = 3210,
        threaded: bool = False,
    ):
        self.page = bytes(page)
        self.host = host
        self.port = port
        self.threaded = threaded
        self.state = ServerState.IDLE
        self.logger = logging.getLogger(__name__)
        self._server: Optional[BaseWSGIServer] = None
        self._serving = threading.Event()

        self.app = Flask(__name__)
        self._setup_routes()

    def _setup_routes(self):
        """Answer every request before URL matching gets a say."""

        @self.app.before_request
        def serve_page():
            return Response(
                self.page,
                status=200,
                headers={"Connection": "keep-alive"},
                content_type="text/html; charset=utf-8",
            )

    def bind(self):
        """Bind and listen on the configured port."""
        if self.state is not ServerState.IDLE:
            raise RuntimeError(f"Cannot bind a server in state {self.state.value}")

        try:
            sock = socket.create_server((self.host, self.port))
        except OSError as e:
            if e.errno == errno.EADDRINUSE:
                raise PortInUseError(self.port) from e
            raise

        # werkzeug duplicates the listening descriptor, so ours can be closed
        try:
            self._server = make_server(
                self.host,
                self.port,
                self.app,
                threaded=self.threaded,
                request_handler=type(
                    "PageRequestHandler", (StaticPageRequestHandler,), {"page": self.page}
                ),
                fd=sock.fileno(),
            )
        finally:
            sock.close()

        self.port = self._server.server_address[1]
        self.state = ServerState.LISTENING
        self.logger.info(f"Listening on http://{self.host}:{self.port}")

    def serve_forever(self):
        """Serve until shutdown() is called or the process is interrupted."""
        if self.state is ServerState.IDLE:
            self.bind()
        if self.state is not ServerState.LISTENING:
            raise RuntimeError(f"Cannot serve from state {self.state.value}")

        self._serving.set()
        try:
            # werkzeug swallows KeyboardInterrupt and closes the socket
            self._server.serve_forever()
        finally:
            self._serving.clear()
            self.state = ServerState.TERMINATED
            self.logger.info("Server stopped")

    def shutdown(self):
        """Stop serving and release the port."""
        if self._server is None:
            self.state = ServerState.TERMINATED
            return
        if self._serving.is_set():
            self._server.shutdown()
        self._server.server_close()
        self.state = ServerState.TERMINATED
