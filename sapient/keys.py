"""Typed key material for the four protection modes."""

from __future__ import annotations

import enum
import os
from pathlib import Path
from typing import Any, ClassVar, TypeVar

from cryptography.hazmat.primitives import constant_time, serialization
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey
from cryptography.hazmat.primitives.asymmetric.x25519 import X25519PrivateKey

from .constants import (
    SEALING_PUBLIC_KEY_BYTES,
    SEALING_SECRET_KEY_BYTES,
    SHARED_AUTHENTICATION_KEY_BYTES,
    SHARED_ENCRYPTION_KEY_BYTES,
    SIGNING_PUBLIC_KEY_BYTES,
    SIGNING_SECRET_KEY_BYTES,
    SUPPORTED_KEY_ENCODINGS,
)
from .entropy import RandomSource, random_bytes
from .errors import EncodingError, SizeError
from .utils import b64url_decode, b64url_encode, fingerprint, hex_decode, hex_encode

K = TypeVar("K", bound="CryptographyKey")


class KeyRole(str, enum.Enum):
    SIGNING_SECRET = "signing-secret"
    SIGNING_PUBLIC = "signing-public"
    SEALING_SECRET = "sealing-secret"
    SEALING_PUBLIC = "sealing-public"
    SHARED_ENCRYPTION = "shared-encryption"
    SHARED_AUTHENTICATION = "shared-authentication"


class CryptographyKey:
    """Immutable, fixed-length byte string tagged with its role and algorithm."""

    __slots__ = ("_key",)

    ROLE: ClassVar[KeyRole]
    ALGORITHM: ClassVar[str]
    KEY_SIZE: ClassVar[int]
    is_secret: ClassVar[bool] = True
    has_public_key: ClassVar[bool] = False

    def __init__(self, key: bytes) -> None:
        if not isinstance(key, (bytes, bytearray, memoryview)):
            raise TypeError(f"{type(self).__name__} expects bytes, got {type(key).__name__}")
        raw = bytes(key)
        if len(raw) != self.KEY_SIZE:
            raise SizeError(f"{type(self).__name__} must be {self.KEY_SIZE} bytes, got {len(raw)}")
        object.__setattr__(self, "_key", raw)

    def __setattr__(self, name: str, value: Any) -> None:
        raise AttributeError(f"{type(self).__name__} is immutable")

    def __delattr__(self, name: str) -> None:
        raise AttributeError(f"{type(self).__name__} is immutable")

    @classmethod
    def from_bytes(cls: type[K], raw: bytes) -> K:
        return cls(raw)

    @classmethod
    def decode(cls: type[K], text: str, encoding: str = "base64url") -> K:
        """Inverse of :meth:`encode`."""
        if not isinstance(text, str):
            raise EncodingError("key text must be a string")
        text = text.strip()
        if encoding == "base64url":
            return cls(b64url_decode(text))
        if encoding == "hex":
            return cls(hex_decode(text))
        raise EncodingError(f"unsupported key encoding: {encoding}")

    def encode(self, encoding: str = "base64url") -> str:
        if encoding == "base64url":
            return b64url_encode(self._key)
        if encoding == "hex":
            return hex_encode(self._key)
        raise EncodingError(f"unsupported key encoding: {encoding}")

    @property
    def role(self) -> KeyRole:
        return self.ROLE

    @property
    def algorithm(self) -> str:
        return self.ALGORITHM

    def get_bytes(self) -> bytes:
        return self._key

    def __bytes__(self) -> bytes:
        return self._key

    def __len__(self) -> int:
        return self.KEY_SIZE

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, CryptographyKey):
            return NotImplemented
        return self.ROLE is other.ROLE and constant_time.bytes_eq(self._key, other._key)

    def __hash__(self) -> int:
        return hash((self.ROLE, self._key))

    def __repr__(self) -> str:
        if self.is_secret:
            return f"<{type(self).__name__} {self.ALGORITHM} (redacted)>"
        return f"<{type(self).__name__} {self.ALGORITHM} {fingerprint(self._key)}>"

    def __reduce__(self) -> tuple[Any, ...]:
        return (type(self), (self._key,))


class _GeneratedKey(CryptographyKey):
    __slots__ = ()

    @classmethod
    def generate(cls: type[K], random: RandomSource | None = None) -> K:
        return cls(random_bytes(cls.KEY_SIZE, random))


class SigningPublicKey(CryptographyKey):
    __slots__ = ()
    ROLE = KeyRole.SIGNING_PUBLIC
    ALGORITHM = "ed25519"
    KEY_SIZE = SIGNING_PUBLIC_KEY_BYTES
    is_secret = False


class SigningSecretKey(_GeneratedKey):
    """Ed25519 seed; the public half is derived on demand."""

    __slots__ = ()
    ROLE = KeyRole.SIGNING_SECRET
    ALGORITHM = "ed25519"
    KEY_SIZE = SIGNING_SECRET_KEY_BYTES
    has_public_key = True

    def public_key(self) -> SigningPublicKey:
        raw = Ed25519PrivateKey.from_private_bytes(self._key).public_key().public_bytes(
            encoding=serialization.Encoding.Raw,
            format=serialization.PublicFormat.Raw,
        )
        return SigningPublicKey(raw)


class SealingPublicKey(CryptographyKey):
    __slots__ = ()
    ROLE = KeyRole.SEALING_PUBLIC
    ALGORITHM = "x25519"
    KEY_SIZE = SEALING_PUBLIC_KEY_BYTES
    is_secret = False


class SealingSecretKey(_GeneratedKey):
    """X25519 scalar used to open sealed boxes."""

    __slots__ = ()
    ROLE = KeyRole.SEALING_SECRET
    ALGORITHM = "x25519"
    KEY_SIZE = SEALING_SECRET_KEY_BYTES
    has_public_key = True

    def public_key(self) -> SealingPublicKey:
        raw = X25519PrivateKey.from_private_bytes(self._key).public_key().public_bytes(
            encoding=serialization.Encoding.Raw,
            format=serialization.PublicFormat.Raw,
        )
        return SealingPublicKey(raw)


class SharedEncryptionKey(_GeneratedKey):
    __slots__ = ()
    ROLE = KeyRole.SHARED_ENCRYPTION
    ALGORITHM = "xchacha20poly1305"
    KEY_SIZE = SHARED_ENCRYPTION_KEY_BYTES


class SharedAuthenticationKey(_GeneratedKey):
    __slots__ = ()
    ROLE = KeyRole.SHARED_AUTHENTICATION
    ALGORITHM = "hmac-sha512256"
    KEY_SIZE = SHARED_AUTHENTICATION_KEY_BYTES


def save_key(path: str | Path, key: CryptographyKey, *, encoding: str = "base64url") -> Path:
    """Write the text form of ``key``; secret material is made owner-only."""
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(key.encode(encoding) + "\n", encoding="ascii")
    if key.is_secret:
        os.chmod(target, 0o600)
    return target


def load_key(path: str | Path, key_cls: type[K], *, encoding: str = "base64url") -> K:
    if encoding not in SUPPORTED_KEY_ENCODINGS:
        raise EncodingError(f"unsupported key encoding: {encoding}")
    text = Path(path).read_text(encoding="ascii")
    return key_cls.decode(text, encoding=encoding)
