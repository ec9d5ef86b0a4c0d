"""Metrics server exposing /metrics and /health."""

import json
import logging
import threading
from collections.abc import Callable
from typing import Any
from wsgiref.simple_server import WSGIRequestHandler, make_server

from prometheus_client import CONTENT_TYPE_LATEST, REGISTRY, generate_latest

logger = logging.getLogger(__name__)

# Module-level state for idempotent server startup
_server_lock = threading.Lock()
_server_thread: threading.Thread | None = None

HealthCheck = Callable[[], tuple[bool, dict[str, Any]]]
_health_check: HealthCheck | None = None


class _QuietHandler(WSGIRequestHandler):
    """WSGI handler that doesn't log every request."""

    def log_message(self, format: str, *args: object) -> None:
        pass  # Suppress access logs


StartResponse = Callable[[str, list[tuple[str, str]]], Any]


def register_health_check(check: HealthCheck | None) -> None:
    """Set the function answering /health.

    Args:
        check: Returns (is_healthy, details); None restores the plain "ok"
    """
    global _health_check
    _health_check = check


def _health_response() -> tuple[str, bytes, str]:
    if _health_check is None:
        return "200 OK", b"ok", "text/plain"

    try:
        healthy, details = _health_check()
    except Exception:
        logger.exception("Health check failed")
        healthy, details = False, {}

    body = json.dumps({**details, "status": "ok" if healthy else "degraded"}).encode()
    status = "200 OK" if healthy else "503 Service Unavailable"
    return status, body, "application/json"


def metrics_app(environ: dict[str, Any], start_response: StartResponse) -> list[bytes]:
    """WSGI app that serves Prometheus metrics and the health probe."""
    path = environ.get("PATH_INFO", "/")

    if path == "/metrics":
        output = generate_latest(REGISTRY)
        status = "200 OK"
        content_type = CONTENT_TYPE_LATEST
    elif path == "/health":
        status, output, content_type = _health_response()
    else:
        output = b"Not Found"
        status = "404 Not Found"
        content_type = "text/plain"

    start_response(status, [("Content-Type", content_type)])
    return [output]


def start_metrics_server(port: int = 8000, host: str = "0.0.0.0") -> threading.Thread:
    """Start a background thread serving metrics.

    This function is idempotent. If called multiple times, it returns
    the existing running thread.

    Args:
        port: Port to listen on (default 8000)
        host: Host to bind to (default 0.0.0.0)

    Returns:
        The daemon thread running the server
    """
    global _server_thread
    with _server_lock:
        if _server_thread is not None and _server_thread.is_alive():
            logger.debug("Metrics server already running")
            return _server_thread

        server = make_server(host, port, metrics_app, handler_class=_QuietHandler)

        def serve_forever() -> None:
            try:
                logger.info(f"Metrics server listening on {host}:{port}")
                server.serve_forever()
            except Exception:
                logger.exception("Metrics server failed unexpectedly")

        thread = threading.Thread(target=serve_forever, daemon=True)
        thread.start()
        _server_thread = thread
        return thread
