"""Message-capability boundary between the engine and concrete HTTP stacks."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Mapping, Protocol, TypeVar

M = TypeVar("M")


class MessageAdapter(Protocol):
    """What the engine needs from an HTTP abstraction, and nothing more.

    ``with_header`` and ``with_body`` return the updated message; adapters over
    mutable objects may update in place and return the same object.
    """

    def create_request(
        self,
        method: str,
        target: str,
        headers: Mapping[str, str] | None = None,
        body: bytes = b"",
    ) -> Any:
        ...

    def create_response(
        self,
        status: int,
        headers: Mapping[str, str] | None = None,
        body: bytes = b"",
    ) -> Any:
        ...

    def get_header(self, message: Any, name: str) -> str | None:
        ...

    def with_header(self, message: M, name: str, value: str) -> M:
        ...

    def get_body(self, message: Any) -> bytes:
        ...

    def with_body(self, message: M, body: bytes) -> M:
        ...


def merge_header(headers: Mapping[str, str] | None, name: str, value: str) -> dict[str, str]:
    """Copy ``headers`` with ``name`` set to ``value``, replacing any casing of it."""
    lowered = name.lower()
    merged = {key: val for key, val in (headers or {}).items() if key.lower() != lowered}
    merged[name] = value
    return merged


def find_header(headers: Mapping[str, str] | None, name: str) -> str | None:
    lowered = name.lower()
    for key, value in (headers or {}).items():
        if key.lower() == lowered:
            return value
    return None


@dataclass(frozen=True, slots=True)
class Request:
    method: str
    target: str
    headers: Mapping[str, str] = field(default_factory=dict)
    body: bytes = b""

    def header(self, name: str) -> str | None:
        return find_header(self.headers, name)


@dataclass(frozen=True, slots=True)
class Response:
    status: int
    headers: Mapping[str, str] = field(default_factory=dict)
    body: bytes = b""

    def header(self, name: str) -> str | None:
        return find_header(self.headers, name)


class MemoryAdapter:
    """Default adapter over the immutable :class:`Request` / :class:`Response`."""

    def create_request(
        self,
        method: str,
        target: str,
        headers: Mapping[str, str] | None = None,
        body: bytes = b"",
    ) -> Request:
        return Request(method=method.upper(), target=target, headers=dict(headers or {}), body=bytes(body))

    def create_response(
        self,
        status: int,
        headers: Mapping[str, str] | None = None,
        body: bytes = b"",
    ) -> Response:
        return Response(status=int(status), headers=dict(headers or {}), body=bytes(body))

    def get_header(self, message: Request | Response, name: str) -> str | None:
        return find_header(message.headers, name)

    def with_header(self, message: Any, name: str, value: str) -> Any:
        return replace(message, headers=merge_header(message.headers, name, value))

    def get_body(self, message: Request | Response) -> bytes:
        return message.body

    def with_body(self, message: Any, body: bytes) -> Any:
        return replace(message, body=bytes(body))
