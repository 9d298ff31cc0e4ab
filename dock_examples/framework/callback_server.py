"""
================================================================================
One-shot Webhook Callback Server
================================================================================

A local Flask application that answers Dock Health webhook callbacks:

    GET  /<any>?message=<m>  -> 200 {"digest": HMAC-SHA256(secret, m)}
    POST /<any>              -> verifies X-Dock-Signature-256, 200 {}

It runs on a werkzeug server in a background thread for the duration of one
test and is made public through a tunnel (see tunnel.py).

Usage:
    with CallbackServer(secret, port=3000) as server:
        ...  # register the webhook, wait for verification
        assert server.events

================================================================================
"""

from __future__ import annotations

import threading
from typing import Any, Dict, List, Optional

from flask import Flask, jsonify, request
from loguru import logger
from werkzeug.serving import make_server

from .config_loader import ConfigLoader
from .signature import SIGNATURE_HEADER, SignatureError, sign, verify_signature


DEFAULT_CALLBACK_PORT = 3000


def callback_port(config: ConfigLoader) -> int:
    """
    Port for the callback server.

    An external proxy (CALLBACK_URL) forwards to the fixed CALLBACK_LOCAL_PORT.
    Otherwise the tunnel forwards whatever port was bound, so 0 lets parallel
    workers each get their own.
    """
    if config.get("callback.url"):
        return int(config.get("callback.local_port", DEFAULT_CALLBACK_PORT))
    return 0


def create_callback_app(state: "CallbackServer") -> Flask:
    """
    Build the Flask app answering challenges and event deliveries.

    Args:
        state: Object exposing ``secret``, ``events`` and ``challenges``.
    """
    app = Flask(__name__)

    @app.route("/", defaults={"path": ""}, methods=["GET", "POST"])
    @app.route("/<path:path>", methods=["GET", "POST"])
    def callback(path: str):
        if request.method == "GET":
            return _answer_challenge(state)
        return _receive_event(state)

    return app


def _answer_challenge(state: "CallbackServer"):
    message = request.args.get("message")
    if not message:
        logger.warning("Webhook called with empty message!")
        return jsonify(error="message is required"), 400

    logger.info(f"Webhook called with message: {message}")
    signed = sign(state.secret, message)
    if not signed:
        logger.error("Unable to sign message!")
        return jsonify(error="unable to sign message"), 500

    state.challenges.append(message)
    logger.debug(f"Returning signed message digest: {signed}")
    return jsonify(digest=signed), 200


def _receive_event(state: "CallbackServer"):
    body = request.get_data()
    if not body:
        logger.warning("Webhook called with empty event!")
        return jsonify(error="empty event"), 400

    # Werkzeug header lookup is case-insensitive.
    header = request.headers.get(SIGNATURE_HEADER)
    if not header:
        logger.error(f"{SIGNATURE_HEADER} header missing.")
        return jsonify(error=f"{SIGNATURE_HEADER} header missing"), 500

    if not state.secret:
        logger.error("Unable to create verification signature!")
        return jsonify(error="no secret"), 500

    try:
        valid = verify_signature(state.secret, body, header)
    except SignatureError as e:
        logger.error(str(e))
        return jsonify(error=str(e)), 400

    if not valid:
        logger.error("Signature invalid.")
        return jsonify(error="signature invalid"), 400

    event = request.get_json(silent=True)
    state.events.append(event)
    logger.debug(f"Signature valid. Received event: {event}")
    return jsonify({}), 200


class CallbackServer:
    """
    Background callback server holding the webhook secret.

    Attributes:
        secret: Secret registered with the webhook; cleared on stop()
        events: Parsed bodies of deliveries whose signature verified
        challenges: Challenge messages answered
    """

    def __init__(
        self,
        secret: str,
        port: Optional[int] = None,
        host: Optional[str] = None,
        config: Optional[ConfigLoader] = None,
    ) -> None:
        config = config or ConfigLoader()
        self.secret: Optional[str] = secret
        if port is None:
            port = config.get("callback.local_port", DEFAULT_CALLBACK_PORT)
        self.port = int(port)
        self.host = host or config.get("callback.host", "127.0.0.1")
        self.events: List[Dict[str, Any]] = []
        self.challenges: List[str] = []
        self.app = create_callback_app(self)
        self._server = None
        self._thread: Optional[threading.Thread] = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> "CallbackServer":
        """Start listening; returns self."""
        if self.running:
            return self
        try:
            self._server = make_server(self.host, self.port, self.app, threaded=True)
        except SystemExit as e:
            # werkzeug exits the process when the port is taken
            raise OSError(f"Unable to bind callback server to {self.host}:{self.port}") from e
        # Port 0 binds an ephemeral port.
        self.port = self._server.server_port
        self._thread = threading.Thread(
            target=self._server.serve_forever,
            name="webhook-callback-server",
            daemon=True,
        )
        self._thread.start()
        logger.info(f"Webhook callback server listening on {self.port}")
        return self

    def stop(self) -> None:
        """Stop listening and forget the secret."""
        if self._server is not None:
            self._server.shutdown()
            self._server.server_close()
        if self._thread is not None:
            self._thread.join(timeout=5)
        self._server = None
        self._thread = None
        self.secret = None
        logger.info("Webhook callback server stopped")

    def __enter__(self) -> "CallbackServer":
        return self.start()

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.stop()


__all__ = [
    "CallbackServer",
    "DEFAULT_CALLBACK_PORT",
    "callback_port",
    "create_callback_app",
]
