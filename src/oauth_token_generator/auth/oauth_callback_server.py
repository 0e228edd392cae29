"""
OAuth Callback Server for the OAuth token generator.

Starts a minimal HTTP server on a local port that waits for exactly one valid
authorization redirect. Every other request is answered with a 404 and the
server keeps listening.
"""

import asyncio
import logging
import queue
import threading
import time
from typing import Optional
from urllib.parse import parse_qs

import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import PlainTextResponse
from starlette.background import BackgroundTask

from ..utils.constants import (
    BODY_MISSING_ARGS,
    BODY_NOT_FOUND,
    BODY_SUCCESS,
    BODY_WRONG_STATE,
    SERVER_START_TIMEOUT,
    SERVER_STOP_TIMEOUT,
)
from ..utils.errors import (
    CallbackServerError,
    CallbackTimeoutError,
    CallbackValidationError,
    ListenerCancelledError,
)
from ..utils.network import bind_listen_socket

logger = logging.getLogger(__name__)

ALL_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE", "HEAD", "OPTIONS"]

_CANCELLED = object()


def _first_value(params: dict, name: str) -> Optional[str]:
    values = params.get(name)
    if not values:
        return None
    return values[0]


def validate_callback_request(
    method: str,
    path: str,
    query_string: str,
    expected_path: str,
    expected_state: str,
) -> str:
    """
    Check one inbound request against the pending authorization.

    Args:
        method: HTTP method of the request.
        path: Decoded request path, compared exactly (case and trailing slash).
        query_string: Raw query string.
        expected_path: Callback path registered with the provider.
        expected_state: State value sent with the authorization request.

    Returns:
        The authorization code.

    Raises:
        CallbackValidationError: With the reply body to send when the request
            does not complete the authorization.
    """
    if method != "GET" or path != expected_path:
        raise CallbackValidationError(BODY_NOT_FOUND)

    params = parse_qs(query_string, keep_blank_values=True)
    state = _first_value(params, "state")
    code = _first_value(params, "code")
    if not state or not state.strip() or not code or not code.strip():
        raise CallbackValidationError(BODY_MISSING_ARGS)

    if state != expected_state:
        raise CallbackValidationError(BODY_WRONG_STATE)

    return code


class CallbackListener:
    """
    One-shot local HTTP listener for the OAuth redirect.

    Binds the port synchronously in start() and serves requests from a
    background thread. wait_for_code() blocks the caller until a request with
    the expected path and state delivers a code.
    """

    def __init__(self, port: int, callback_path: str, expected_state: str) -> None:
        self.port = port
        self.callback_path = callback_path
        self.expected_state = expected_state
        self.app = FastAPI(docs_url=None, redoc_url=None, openapi_url=None)
        self.server: Optional[uvicorn.Server] = None
        self.server_thread: Optional[threading.Thread] = None
        self.is_running = False

        self._codes: "queue.Queue[object]" = queue.Queue()
        self._completed = False
        self._sock = None

        self._setup_callback_route()

    def _setup_callback_route(self) -> None:
        """Setup the catch-all route that screens every request."""

        @self.app.exception_handler(405)
        async def method_not_allowed(request: Request, exc: Exception) -> PlainTextResponse:
            """Methods the route does not list are rejected like any other non-GET."""
            logger.warning(f"Rejected {request.method} {request.url.path}: {BODY_NOT_FOUND}")
            return PlainTextResponse(BODY_NOT_FOUND, status_code=404)

        @self.app.api_route("/{full_path:path}", methods=ALL_METHODS)
        async def oauth_callback(request: Request) -> PlainTextResponse:
            """Handle any request hitting the listener."""
            if self._completed:
                return PlainTextResponse(BODY_NOT_FOUND, status_code=404)

            try:
                code = validate_callback_request(
                    request.method,
                    request.url.path,
                    request.url.query,
                    self.callback_path,
                    self.expected_state,
                )
            except CallbackValidationError as e:
                logger.warning(
                    f"Rejected {request.method} {request.url.path}: {e.body}"
                )
                return PlainTextResponse(e.body, status_code=e.status_code)

            self._completed = True
            logger.info("OAuth callback: received authorization code")
            # Hand the code over only once the reply has gone out
            return PlainTextResponse(
                BODY_SUCCESS,
                status_code=200,
                background=BackgroundTask(self._codes.put, code),
            )

    def start(self) -> None:
        """
        Bind the port and start serving in a background thread.

        Raises:
            BindError: If the port is unavailable.
            CallbackServerError: If the server does not come up in time.
        """
        if self.is_running:
            logger.info("Callback listener is already running")
            return

        self._sock = bind_listen_socket(self.port)
        self.port = self._sock.getsockname()[1]

        config = uvicorn.Config(
            self.app,
            log_level="warning",
            access_log=False,
            lifespan="off",
        )
        self.server = uvicorn.Server(config)
        sock = self._sock

        def run_server() -> None:
            """Run the server in a separate thread."""
            try:
                asyncio.run(self.server.serve(sockets=[sock]))
            except Exception as e:
                logger.error(f"Callback listener error: {e}", exc_info=True)
                self.is_running = False

        # Start server in background thread
        self.server_thread = threading.Thread(
            target=run_server, name="oauth-callback-listener", daemon=True
        )
        self.server_thread.start()

        # Wait for server to start
        start_time = time.time()
        while time.time() - start_time < SERVER_START_TIMEOUT:
            if self.server.started:
                self.is_running = True
                logger.info(f"Callback listener started on localhost:{self.port}")
                return
            if not self.server_thread.is_alive():
                break
            time.sleep(0.05)

        self.stop()
        raise CallbackServerError(f"Failed to start callback listener on port {self.port}")

    def wait_for_code(self, timeout: Optional[float] = None) -> str:
        """
        Block until a valid redirect delivers an authorization code.

        Args:
            timeout: Seconds to wait, or None to wait indefinitely.

        Returns:
            The authorization code.

        Raises:
            CallbackTimeoutError: If the timeout elapses first.
            ListenerCancelledError: If the listener is stopped while waiting.
        """
        try:
            item = self._codes.get(timeout=timeout)
        except queue.Empty:
            logger.error(f"No valid callback within {timeout} seconds")
            raise CallbackTimeoutError(timeout)

        if item is _CANCELLED:
            raise ListenerCancelledError()
        return item

    def stop(self) -> None:
        """Stop the server and release the port. Safe to call more than once."""
        if self.server is not None:
            self.server.should_exit = True

        if self.server_thread and self.server_thread.is_alive():
            self.server_thread.join(timeout=SERVER_STOP_TIMEOUT)
            if self.server_thread.is_alive():
                logger.warning("Callback listener thread did not exit in time")

        if self._sock is not None:
            self._sock.close()
            self._sock = None

        # Wake any pending waiter
        self._codes.put(_CANCELLED)

        if self.is_running:
            logger.info("Callback listener stopped")
        self.is_running = False

    def __enter__(self) -> "CallbackListener":
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.stop()
