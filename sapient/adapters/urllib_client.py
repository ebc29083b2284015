"""Client binding over ``urllib.request``."""

from __future__ import annotations

import logging
import time
import urllib.error
import urllib.parse
import urllib.request
from typing import Any, Mapping

from ..engine import Sapient
from ..message import MemoryAdapter, Response, find_header
from ..policy import ProtectionPolicy

logger = logging.getLogger(__name__)


class UrllibAdapter:
    """Requests are ``urllib.request.Request`` objects; responses are in-memory.

    ``urllib.request.Request`` is mutable, so ``with_header``/``with_body``
    update it in place and return it.
    """

    def __init__(self, base_url: str = "") -> None:
        self.base_url = base_url
        self._memory = MemoryAdapter()

    def create_request(
        self,
        method: str,
        target: str,
        headers: Mapping[str, str] | None = None,
        body: bytes = b"",
    ) -> urllib.request.Request:
        url = urllib.parse.urljoin(self.base_url, target) if self.base_url else target
        return urllib.request.Request(url, data=bytes(body), headers=dict(headers or {}), method=method.upper())

    def create_response(
        self,
        status: int,
        headers: Mapping[str, str] | None = None,
        body: bytes = b"",
    ) -> Response:
        return self._memory.create_response(status, headers, body)

    def get_header(self, message: Any, name: str) -> str | None:
        if isinstance(message, urllib.request.Request):
            return find_header(dict(message.header_items()), name)
        return self._memory.get_header(message, name)

    def with_header(self, message: Any, name: str, value: str) -> Any:
        if isinstance(message, urllib.request.Request):
            message.remove_header(name.capitalize())
            message.add_header(name, value)
            return message
        return self._memory.with_header(message, name, value)

    def get_body(self, message: Any) -> bytes:
        if isinstance(message, urllib.request.Request):
            data = message.data
            if data is None:
                return b""
            if not isinstance(data, (bytes, bytearray)):
                raise TypeError("only in-memory request bodies can be protected")
            return bytes(data)
        return self._memory.get_body(message)

    def with_body(self, message: Any, body: bytes) -> Any:
        if isinstance(message, urllib.request.Request):
            message.data = bytes(body)
            return message
        return self._memory.with_body(message, body)


def send(request: urllib.request.Request, *, timeout: float = 10.0) -> Response:
    """Perform ``request``; HTTP error statuses come back as responses too."""
    try:
        with urllib.request.urlopen(request, timeout=timeout) as raw:
            return Response(status=raw.status, headers=dict(raw.headers.items()), body=raw.read())
    except urllib.error.HTTPError as exc:
        headers = dict(exc.headers.items()) if exc.headers else {}
        return Response(status=exc.code, headers=headers, body=exc.read())


class ProtectedClient:
    """Applies a :class:`ProtectionPolicy` around each outgoing call."""

    def __init__(
        self,
        base_url: str,
        policy: ProtectionPolicy,
        *,
        timeout: float = 10.0,
        retry_attempts: int = 0,
        retry_backoff_s: float = 0.0,
    ) -> None:
        self.sapient = Sapient(UrllibAdapter(base_url))
        self.policy = policy
        self.timeout = timeout
        self.retry_attempts = max(0, int(retry_attempts))
        self.retry_backoff_s = retry_backoff_s

    def request(
        self,
        method: str,
        path: str,
        body: bytes | str = b"",
        headers: Mapping[str, str] | None = None,
    ) -> Response:
        """Send ``body`` to ``path`` and return the accepted (cleartext) response.

        Network failures are retried here, never cryptographic ones: a response
        that fails to verify raises immediately.
        """
        payload = body.encode("utf-8") if isinstance(body, str) else bytes(body)
        route = self.policy.lookup(path)

        request = self.sapient.adapter.create_request(method, path, headers, payload)
        if route is not None and route.request is not None:
            request = route.request.protect(self.sapient, request)

        response = self._send_with_retries(request)
        if route is None or route.response is None:
            return response
        return route.response.accept(self.sapient, response)

    def _send_with_retries(self, request: urllib.request.Request) -> Response:
        for attempt in range(self.retry_attempts + 1):
            try:
                return send(request, timeout=self.timeout)
            except (TimeoutError, urllib.error.URLError, ConnectionResetError) as exc:
                if attempt >= self.retry_attempts:
                    raise
                logger.info("retrying %s after network error: %s", request.full_url, exc)
                if self.retry_backoff_s > 0:
                    time.sleep(self.retry_backoff_s * (2**attempt))
        raise RuntimeError("unreachable")
