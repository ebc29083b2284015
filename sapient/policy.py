"""Out-of-band agreement on which mode protects each endpoint and direction."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from .constants import SUPPORTED_MODES
from .engine import Sapient
from .keys import (
    CryptographyKey,
    SealingPublicKey,
    SealingSecretKey,
    SharedAuthenticationKey,
    SharedEncryptionKey,
    SigningPublicKey,
    SigningSecretKey,
)

# mode -> (key type needed to protect, key type needed to accept)
MODE_KEY_TYPES: dict[str, tuple[type[CryptographyKey], type[CryptographyKey]]] = {
    "sign": (SigningSecretKey, SigningPublicKey),
    "seal": (SealingPublicKey, SealingSecretKey),
    "encrypt": (SharedEncryptionKey, SharedEncryptionKey),
    "authenticate": (SharedAuthenticationKey, SharedAuthenticationKey),
}


@dataclass(frozen=True, slots=True)
class Protection:
    """One direction of one endpoint, seen from the local party.

    ``protect_key`` is used for messages we send, ``accept_key`` for messages we
    receive. Either may be omitted when this party only does one of the two.
    """

    mode: str
    protect_key: CryptographyKey | None = None
    accept_key: CryptographyKey | None = None

    def __post_init__(self) -> None:
        if self.mode not in SUPPORTED_MODES:
            raise ValueError(f"unsupported protection mode: {self.mode}")
        protect_type, accept_type = MODE_KEY_TYPES[self.mode]
        if self.protect_key is not None and not isinstance(self.protect_key, protect_type):
            raise ValueError(f"{self.mode} mode protects with {protect_type.__name__}")
        if self.accept_key is not None and not isinstance(self.accept_key, accept_type):
            raise ValueError(f"{self.mode} mode accepts with {accept_type.__name__}")
        if self.protect_key is None and self.accept_key is None:
            raise ValueError("protection needs at least one key")

    def protect(self, sapient: Sapient, message: Any) -> Any:
        if self.protect_key is None:
            raise ValueError(f"no key configured to protect {self.mode}-mode messages")
        if self.mode == "sign":
            return sapient.sign(message, self.protect_key)
        if self.mode == "seal":
            return sapient.seal(message, self.protect_key)
        if self.mode == "encrypt":
            return sapient.encrypt(message, self.protect_key)
        return sapient.authenticate(message, self.protect_key)

    def accept(self, sapient: Sapient, message: Any) -> Any:
        """Verify or open ``message``; the returned message carries the cleartext body."""
        if self.accept_key is None:
            raise ValueError(f"no key configured to accept {self.mode}-mode messages")
        if self.mode == "sign":
            return sapient.verify_signed(message, self.accept_key)
        if self.mode == "seal":
            return sapient.unseal(message, self.accept_key)
        if self.mode == "encrypt":
            return sapient.decrypt_symmetric(message, self.accept_key)
        return sapient.verify_symmetric_authenticated(message, self.accept_key)


@dataclass(frozen=True, slots=True)
class RouteProtection:
    request: Protection | None = None
    response: Protection | None = None


@dataclass(slots=True)
class ProtectionPolicy:
    """Path -> protection table shared by client and server bindings."""

    routes: dict[str, RouteProtection] = field(default_factory=dict)
    default: RouteProtection | None = None

    def add(self, path: str, route: RouteProtection) -> None:
        self.routes[_normalize_path(path)] = route

    def lookup(self, path: str) -> RouteProtection | None:
        return self.routes.get(_normalize_path(path), self.default)


def _normalize_path(path: str) -> str:
    path = path.split("?", 1)[0].split("#", 1)[0]
    if not path.startswith("/"):
        path = "/" + path
    return path.rstrip("/") or "/"
