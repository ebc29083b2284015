"""Small utility helpers."""

from __future__ import annotations

import base64
import binascii
import hashlib
import json
import re
from typing import Any

from .errors import EncodingError

_B64URL_RE = re.compile(r"[A-Za-z0-9_-]*")
_HEX_RE = re.compile(r"(?:[0-9a-fA-F]{2})*")


def canonical_json_bytes(value: Any) -> bytes:
    return json.dumps(
        value,
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
        allow_nan=False,
    ).encode("utf-8")


def b64url_encode(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).decode("ascii").rstrip("=")


def b64url_decode(data: str) -> bytes:
    if not isinstance(data, str) or not _B64URL_RE.fullmatch(data):
        raise EncodingError("malformed base64url text")
    if len(data) % 4 == 1:
        raise EncodingError("malformed base64url text: impossible length")
    padding = "=" * ((4 - len(data) % 4) % 4)
    try:
        decoded = base64.b64decode(data + padding, altchars=b"-_", validate=True)
    except (binascii.Error, ValueError) as exc:
        raise EncodingError(f"malformed base64url text: {exc}") from exc
    # Unused trailing bits must be zero, so each byte string has one text form.
    if b64url_encode(decoded) != data:
        raise EncodingError("non-canonical base64url text")
    return decoded


def hex_encode(data: bytes) -> str:
    return data.hex()


def hex_decode(data: str) -> bytes:
    if not isinstance(data, str) or not _HEX_RE.fullmatch(data):
        raise EncodingError("malformed hex text")
    return bytes.fromhex(data)


def fingerprint(data: bytes) -> str:
    return f"sha256:{hashlib.sha256(data).hexdigest()[:16]}"
