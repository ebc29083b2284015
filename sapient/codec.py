"""Envelope codec: per-mode transforms over raw body bytes, and canonical JSON."""

from __future__ import annotations

import json
from typing import Any

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import constant_time, hashes, hmac
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey, Ed25519PublicKey
from nacl.bindings import (
    crypto_aead_xchacha20poly1305_ietf_decrypt,
    crypto_aead_xchacha20poly1305_ietf_encrypt,
)
from nacl.exceptions import CryptoError
from nacl.public import PrivateKey, PublicKey, SealedBox

from .constants import AEAD_TAG_BYTES, MAC_BYTES, SEAL_OVERHEAD_BYTES, SIGNATURE_BYTES, XCHACHA_NONCE_BYTES
from .entropy import random_bytes
from .errors import InvalidMessageError
from .keys import (
    SealingPublicKey,
    SealingSecretKey,
    SharedAuthenticationKey,
    SharedEncryptionKey,
    SigningPublicKey,
    SigningSecretKey,
)
from .utils import b64url_decode, b64url_encode, canonical_json_bytes


def _check_json_value(value: Any) -> None:
    if value is None or isinstance(value, (str, bool, int, float)):
        return
    if isinstance(value, list):
        for item in value:
            _check_json_value(item)
        return
    if isinstance(value, dict):
        for key, item in value.items():
            if not isinstance(key, str):
                raise TypeError(f"payload is not JSON-serializable: object key {key!r} is not a string")
            _check_json_value(item)
        return
    raise TypeError(f"payload is not JSON-serializable: {type(value).__name__}")


def encode_json(value: Any) -> bytes:
    """Canonical bytes; only values that decode back to an equal value are accepted."""
    _check_json_value(value)
    try:
        return canonical_json_bytes(value)
    except (TypeError, ValueError) as exc:
        raise TypeError(f"payload is not JSON-serializable: {exc}") from exc


def decode_json(data: bytes | str) -> Any:
    """Parse a body that has already passed its cryptographic check."""
    try:
        text = data.decode("utf-8") if isinstance(data, (bytes, bytearray)) else data
        return json.loads(text, object_pairs_hook=_unique_object, parse_constant=_reject_constant)
    except (UnicodeDecodeError, ValueError) as exc:
        raise InvalidMessageError(f"invalid JSON payload: {exc}") from exc


def _unique_object(pairs: list[tuple[str, Any]]) -> dict[str, Any]:
    obj: dict[str, Any] = {}
    for key, value in pairs:
        if key in obj:
            raise ValueError(f"duplicate object key: {key!r}")
        obj[key] = value
    return obj


def _reject_constant(name: str) -> Any:
    raise ValueError(f"non-finite number not allowed: {name}")


# -- sign -------------------------------------------------------------------


def sign_body(body: bytes, secret_key: SigningSecretKey) -> str:
    _expect_key(secret_key, SigningSecretKey)
    signing_key = Ed25519PrivateKey.from_private_bytes(secret_key.get_bytes())
    return b64url_encode(signing_key.sign(body))


def verify_body_signature(body: bytes, header_value: str, public_key: SigningPublicKey) -> None:
    _expect_key(public_key, SigningPublicKey)
    signature = b64url_decode(header_value)
    if len(signature) != SIGNATURE_BYTES:
        raise InvalidMessageError("signature has the wrong length")

    try:
        verify_key = Ed25519PublicKey.from_public_bytes(public_key.get_bytes())
        verify_key.verify(signature, body)
    except (InvalidSignature, ValueError) as exc:
        raise InvalidMessageError("invalid message signature") from exc


# -- seal -------------------------------------------------------------------


def seal(body: bytes, public_key: SealingPublicKey) -> bytes:
    _expect_key(public_key, SealingPublicKey)
    try:
        return SealedBox(PublicKey(public_key.get_bytes())).encrypt(body)
    except CryptoError as exc:
        raise InvalidMessageError("unable to seal message") from exc


def unseal(ciphertext: bytes, secret_key: SealingSecretKey) -> bytes:
    _expect_key(secret_key, SealingSecretKey)
    if len(ciphertext) < SEAL_OVERHEAD_BYTES:
        raise InvalidMessageError("sealed message is too short")

    try:
        return SealedBox(PrivateKey(secret_key.get_bytes())).decrypt(ciphertext)
    except CryptoError as exc:
        raise InvalidMessageError("unable to open sealed message") from exc


# -- symmetric encrypt ------------------------------------------------------


def encrypt(body: bytes, key: SharedEncryptionKey) -> bytes:
    """Return nonce || ciphertext. The nonce is drawn here and doubles as AAD."""
    _expect_key(key, SharedEncryptionKey)
    nonce = random_bytes(XCHACHA_NONCE_BYTES)
    ciphertext = crypto_aead_xchacha20poly1305_ietf_encrypt(body, nonce, nonce, key.get_bytes())
    return nonce + ciphertext


def decrypt(message: bytes, key: SharedEncryptionKey) -> bytes:
    _expect_key(key, SharedEncryptionKey)
    if len(message) < XCHACHA_NONCE_BYTES + AEAD_TAG_BYTES:
        raise InvalidMessageError("encrypted message is too short")

    nonce = message[:XCHACHA_NONCE_BYTES]
    ciphertext = message[XCHACHA_NONCE_BYTES:]
    try:
        return crypto_aead_xchacha20poly1305_ietf_decrypt(ciphertext, nonce, nonce, key.get_bytes())
    except CryptoError as exc:
        raise InvalidMessageError("unable to decrypt message") from exc


# -- symmetric authenticate -------------------------------------------------


def compute_mac(body: bytes, key: SharedAuthenticationKey) -> bytes:
    """HMAC-SHA-512 truncated to 256 bits (libsodium ``crypto_auth``)."""
    _expect_key(key, SharedAuthenticationKey)
    mac = hmac.HMAC(key.get_bytes(), hashes.SHA512())
    mac.update(body)
    return mac.finalize()[:MAC_BYTES]


def authenticate(body: bytes, key: SharedAuthenticationKey) -> str:
    return b64url_encode(compute_mac(body, key))


def verify_authentication(body: bytes, header_value: str, key: SharedAuthenticationKey) -> None:
    received = b64url_decode(header_value)
    expected = compute_mac(body, key)
    if len(received) != MAC_BYTES or not constant_time.bytes_eq(received, expected):
        raise InvalidMessageError("invalid message authentication code")


def _expect_key(key: Any, key_cls: type) -> None:
    if not isinstance(key, key_cls):
        raise TypeError(f"expected {key_cls.__name__}, got {type(key).__name__}")
