"""Typed failures raised by key handling, the codec and the engine."""

from __future__ import annotations

import enum


class ErrorKind(str, enum.Enum):
    SIZE = "size"
    HEADER_MISSING = "header_missing"
    INVALID_MESSAGE = "invalid_message"
    ENCODING = "encoding"


class SapientError(ValueError):
    """Base class; every failure means "reject the message"."""

    kind: ErrorKind = ErrorKind.INVALID_MESSAGE


class SizeError(SapientError):
    """Raised when a key, nonce or ciphertext has the wrong byte length."""

    kind = ErrorKind.SIZE


class HeaderMissingError(SapientError):
    """Raised when the expected envelope header is absent."""

    kind = ErrorKind.HEADER_MISSING


class InvalidMessageError(SapientError):
    """Raised when a signature, MAC or AEAD tag does not check out."""

    kind = ErrorKind.INVALID_MESSAGE


class EncodingError(SapientError):
    """Raised on malformed base64url or hex text."""

    kind = ErrorKind.ENCODING
