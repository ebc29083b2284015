"""Server binding over the stdlib ``http.server``."""

from __future__ import annotations

import logging
import socket
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Callable

from ..engine import Sapient
from ..errors import SapientError
from ..message import MemoryAdapter, Request, Response
from ..policy import ProtectionPolicy

logger = logging.getLogger(__name__)

RequestHandlerFn = Callable[[Request], Response]

MAX_BODY_BYTES = 1_048_576


class BodyTooLargeError(ValueError):
    """Raised when a request declares a body above the configured limit."""


def request_from_handler(handler: BaseHTTPRequestHandler, *, max_bytes: int = MAX_BODY_BYTES) -> Request:
    length_header = handler.headers.get("Content-Length", "0")
    try:
        length = int(length_header)
    except ValueError as exc:
        raise ValueError("invalid Content-Length") from exc
    if length < 0:
        raise ValueError("negative Content-Length")
    if length > max_bytes:
        raise BodyTooLargeError(f"content-length exceeds max_bytes ({max_bytes})")

    body = handler.rfile.read(length) if length else b""
    return Request(
        method=handler.command,
        target=handler.path,
        headers=dict(handler.headers.items()),
        body=body,
    )


def write_response(handler: BaseHTTPRequestHandler, response: Response) -> None:
    try:
        handler.send_response(response.status)
        for name, value in response.headers.items():
            if name.lower() != "content-length":
                handler.send_header(name, value)
        handler.send_header("Content-Length", str(len(response.body)))
        handler.end_headers()
        handler.wfile.write(response.body)
    except (BrokenPipeError, ConnectionResetError):
        return


class ProtectedHTTPServer:
    """Threaded stdlib HTTP server that accepts and protects bodies per policy.

    Inbound requests that fail verification are answered with a bare 400 and
    never reach ``handler``.
    """

    def __init__(
        self,
        host: str,
        port: int,
        handler: RequestHandlerFn,
        policy: ProtectionPolicy,
        *,
        max_body_bytes: int = MAX_BODY_BYTES,
        read_timeout_s: float = 15.0,
    ) -> None:
        self.host = host
        self.port = port
        self.handler = handler
        self.policy = policy
        self.max_body_bytes = max_body_bytes
        self.read_timeout_s = read_timeout_s
        self.sapient = Sapient(MemoryAdapter())
        self._server = self._build_server()

    @property
    def server_address(self) -> tuple[str, int]:
        return self._server.server_address[:2]

    def handle(self, request: Request) -> Response:
        """Run one already-read request through policy and handler."""
        route = self.policy.lookup(request.target)
        if route is not None and route.request is not None:
            try:
                request = route.request.accept(self.sapient, request)
            except SapientError as exc:
                logger.warning("rejected request to %s: %s", request.target, exc.kind.value)
                return _plain_response(400, "invalid message")

        response = self.handler(request)
        if route is not None and route.response is not None:
            response = route.response.protect(self.sapient, response)
        return response

    def _build_server(self) -> ThreadingHTTPServer:
        owner = self

        class RequestHandler(BaseHTTPRequestHandler):
            def _dispatch(self) -> None:
                try:
                    self.connection.settimeout(owner.read_timeout_s)
                    request = request_from_handler(self, max_bytes=owner.max_body_bytes)
                except BodyTooLargeError as exc:
                    write_response(self, _plain_response(413, str(exc)))
                    return
                except ValueError as exc:
                    write_response(self, _plain_response(400, str(exc)))
                    return
                except (TimeoutError, socket.timeout):
                    write_response(self, _plain_response(408, "request read timeout"))
                    return

                try:
                    response = owner.handle(request)
                except Exception:
                    logger.exception("handler failed for %s %s", request.method, request.target)
                    response = _plain_response(500, "internal error")
                write_response(self, response)

            do_GET = do_POST = do_PUT = do_PATCH = do_DELETE = _dispatch  # noqa: N815

            def log_message(self, format: str, *args: object) -> None:
                logger.debug("%s - %s", self.address_string(), format % args)

        class ReusableServer(ThreadingHTTPServer):
            allow_reuse_address = True

        return ReusableServer((self.host, self.port), RequestHandler)

    def serve_forever(self) -> None:
        self._server.serve_forever()

    def shutdown(self) -> None:
        self._server.shutdown()
        self._server.server_close()


def _plain_response(status: int, text: str) -> Response:
    return Response(status=status, headers={"Content-Type": "text/plain; charset=utf-8"}, body=text.encode("utf-8"))
