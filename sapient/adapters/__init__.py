"""Concrete message-capability bindings."""

from ..message import MemoryAdapter
from .http_server import ProtectedHTTPServer, request_from_handler, write_response
from .urllib_client import ProtectedClient, UrllibAdapter, send

__all__ = [
    "MemoryAdapter",
    "ProtectedClient",
    "ProtectedHTTPServer",
    "UrllibAdapter",
    "request_from_handler",
    "send",
    "write_response",
]
