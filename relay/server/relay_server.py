"""HTTP relay holding the most recently accepted command.

Endpoints:
    GET  /     : raw bytes of the stored command payload (empty until first accept)
    POST /cmd  : submit a signed command; replaces the stored payload
    POST /log  : submit a signed log entry from an agent
"""

import threading
from typing import Callable, Optional

from flask import Flask, Response, current_app, request
from werkzeug.serving import make_server

from config import (
    RELAY_ACCEPT_TTL,
    RELAY_MAX_MESSAGE_SIZE,
    RELAY_SERVER_HOST,
    RELAY_SERVER_PORT,
)
from relay.errors import DecodeError
from relay.server.protocol import Command, Endpoint, LogEntry
from security.authenticator import AuthenticationError, Authenticator
from utils.logger import get_logger

logger = get_logger(__name__)

LogCallback = Callable[[LogEntry], None]


class CommandSlot:
    """Thread-safe single-entry mailbox for the current command payload."""

    def __init__(self):
        self._payload = b""
        self._lock = threading.Lock()
        self.accepted = 0

    def load(self) -> bytes:
        with self._lock:
            return self._payload

    def store(self, payload: bytes) -> None:
        with self._lock:
            self._payload = payload
            self.accepted += 1


def _text(body: str, status: int) -> Response:
    return Response(body, status=status, mimetype="text/plain")


def _verified(message_cls, ttl: float):
    """Decode and verify the request body, or return an error response."""
    authenticator: Authenticator = current_app.config["AUTHENTICATOR"]
    try:
        message = message_cls.from_json(request.get_data())
    except DecodeError as e:
        logger.warning(f"Rejected {request.path} from {request.remote_addr}: {e}")
        return None, _text(str(e), 500)

    try:
        authenticator.verify(message, ttl)
    except AuthenticationError as e:
        logger.warning(f"Rejected {request.path} from {request.remote_addr}: {e}")
        return None, _text(str(e), 401)

    return message, None


def create_app(
    authenticator: Authenticator,
    slot: Optional[CommandSlot] = None,
    accept_ttl: float = RELAY_ACCEPT_TTL,
    on_log: Optional[LogCallback] = None,
) -> Flask:
    """Create and configure the relay Flask application.

    Args:
        authenticator: Verifies submitted commands and log entries.
        slot: Shared command slot; a fresh one is created if omitted.
        accept_ttl: Max age in seconds for submitted messages.
        on_log: Called with every accepted LogEntry.
    """
    app = Flask(__name__)

    app.config["AUTHENTICATOR"] = authenticator
    app.config["COMMAND_SLOT"] = slot or CommandSlot()
    app.config["ACCEPT_TTL"] = accept_ttl
    app.config["MAX_CONTENT_LENGTH"] = RELAY_MAX_MESSAGE_SIZE

    @app.route(Endpoint.FETCH.value, methods=["GET"])
    def fetch():
        payload = current_app.config["COMMAND_SLOT"].load()
        return Response(payload, status=200, mimetype="application/json")

    @app.route(Endpoint.COMMAND.value, methods=["POST"])
    def submit_command():
        command, error = _verified(Command, current_app.config["ACCEPT_TTL"])
        if error is not None:
            return error

        current_app.config["COMMAND_SLOT"].store(command.to_json().encode("utf-8"))
        logger.info(f"Accepted command {command.name} {list(command.args)} from {request.remote_addr}")
        return _text("ok", 200)

    @app.route(Endpoint.LOG.value, methods=["POST"])
    def submit_log():
        entry, error = _verified(LogEntry, current_app.config["ACCEPT_TTL"])
        if error is not None:
            return error

        logger.info(f"Agent log from {request.remote_addr}: {entry.message}")
        if on_log:
            on_log(entry)
        return _text("ok", 200)

    return app


class RelayServer:
    """Threaded HTTP server wrapping the relay application.

    Each request is handled on its own thread; the command slot and the
    authenticator are the only state shared between them.
    """

    def __init__(
        self,
        authenticator: Authenticator,
        host: str = RELAY_SERVER_HOST,
        port: int = RELAY_SERVER_PORT,
        accept_ttl: float = RELAY_ACCEPT_TTL,
        on_log: Optional[LogCallback] = None,
    ):
        self.host = host
        self.slot = CommandSlot()
        self.app = create_app(authenticator, self.slot, accept_ttl, on_log)
        self._server = make_server(host, port, self.app, threaded=True)
        self._thread: Optional[threading.Thread] = None

    @property
    def port(self) -> int:
        """Bound port (resolved when constructed with port 0)."""
        return self._server.server_port

    @property
    def url(self) -> str:
        host = "127.0.0.1" if self.host in ("0.0.0.0", "") else self.host
        return f"http://{host}:{self.port}"

    def serve_forever(self) -> None:
        """Serve requests until interrupted (blocking)."""
        logger.info(f"Relay server listening on {self.host}:{self.port}")
        try:
            self._server.serve_forever()
        finally:
            self._server.server_close()

    def start(self) -> None:
        """Start serving on a background thread."""
        if self._thread and self._thread.is_alive():
            return
        self._thread = threading.Thread(target=self._server.serve_forever, daemon=True)
        self._thread.start()
        logger.info(f"Relay server listening on {self.host}:{self.port}")

    def stop(self) -> None:
        """Stop the background server."""
        if self._thread:
            self._server.shutdown()
            self._thread.join(timeout=5)
            self._thread = None
        self._server.server_close()
