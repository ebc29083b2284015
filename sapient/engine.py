"""Protocol engine: protect, verify, decrypt and decode HTTP message bodies."""

from __future__ import annotations

import contextlib
import logging
from dataclasses import dataclass
from typing import Any, Callable, Iterator, Mapping

from . import codec
from .constants import HEADER_AUTH_NAME, HEADER_SIGNATURE_NAME, JSON_CONTENT_TYPE
from .errors import ErrorKind, HeaderMissingError, SapientError
from .keys import (
    SealingPublicKey,
    SealingSecretKey,
    SharedAuthenticationKey,
    SharedEncryptionKey,
    SigningPublicKey,
    SigningSecretKey,
)
from .message import MemoryAdapter, MessageAdapter, merge_header

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class VerificationResult:
    """Outcome of :meth:`Sapient.attempt`; exactly one of value/error is meaningful."""

    value: Any = None
    error: SapientError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def kind(self) -> ErrorKind | None:
        return self.error.kind if self.error is not None else None

    def unwrap(self) -> Any:
        if self.error is not None:
            raise self.error
        return self.value


class Sapient:
    """Body-bound envelopes over any :class:`MessageAdapter`.

    Cleartext modes (sign, symmetric authenticate) add one header and leave the
    body alone. Confidentiality modes (seal, symmetric encrypt) replace the body
    with ciphertext and add nothing. Which mode applies to an endpoint is agreed
    out of band.
    """

    HEADER_SIGNATURE_NAME = HEADER_SIGNATURE_NAME
    HEADER_AUTH_NAME = HEADER_AUTH_NAME

    def __init__(self, adapter: MessageAdapter | None = None) -> None:
        self.adapter: MessageAdapter = adapter or MemoryAdapter()

    # -- creating messages --------------------------------------------------

    def create_signed_request(
        self,
        method: str,
        target: str,
        payload: bytes | str,
        secret_key: SigningSecretKey,
        headers: Mapping[str, str] | None = None,
    ) -> Any:
        request = self._new_request(method, target, _payload_bytes(payload), headers)
        return self.sign_request(request, secret_key)

    def create_signed_json_request(
        self,
        method: str,
        target: str,
        payload: Any,
        secret_key: SigningSecretKey,
        headers: Mapping[str, str] | None = None,
    ) -> Any:
        request = self._new_request(method, target, codec.encode_json(payload), _json_headers(headers))
        return self.sign_request(request, secret_key)

    def create_signed_response(
        self,
        status: int,
        payload: bytes | str,
        secret_key: SigningSecretKey,
        headers: Mapping[str, str] | None = None,
    ) -> Any:
        response = self._new_response(status, _payload_bytes(payload), headers)
        return self.sign_response(response, secret_key)

    def create_signed_json_response(
        self,
        status: int,
        payload: Any,
        secret_key: SigningSecretKey,
        headers: Mapping[str, str] | None = None,
    ) -> Any:
        response = self._new_response(status, codec.encode_json(payload), _json_headers(headers))
        return self.sign_response(response, secret_key)

    def create_sealed_request(
        self,
        method: str,
        target: str,
        payload: bytes | str,
        public_key: SealingPublicKey,
        headers: Mapping[str, str] | None = None,
    ) -> Any:
        request = self._new_request(method, target, _payload_bytes(payload), headers)
        return self.seal_request(request, public_key)

    def create_sealed_json_request(
        self,
        method: str,
        target: str,
        payload: Any,
        public_key: SealingPublicKey,
        headers: Mapping[str, str] | None = None,
    ) -> Any:
        request = self._new_request(method, target, codec.encode_json(payload), headers)
        return self.seal_request(request, public_key)

    def create_sealed_response(
        self,
        status: int,
        payload: bytes | str,
        public_key: SealingPublicKey,
        headers: Mapping[str, str] | None = None,
    ) -> Any:
        response = self._new_response(status, _payload_bytes(payload), headers)
        return self.seal_response(response, public_key)

    def create_sealed_json_response(
        self,
        status: int,
        payload: Any,
        public_key: SealingPublicKey,
        headers: Mapping[str, str] | None = None,
    ) -> Any:
        response = self._new_response(status, codec.encode_json(payload), headers)
        return self.seal_response(response, public_key)

    def create_symmetric_encrypted_request(
        self,
        method: str,
        target: str,
        payload: bytes | str,
        key: SharedEncryptionKey,
        headers: Mapping[str, str] | None = None,
    ) -> Any:
        request = self._new_request(method, target, _payload_bytes(payload), headers)
        return self.encrypt_request(request, key)

    def create_symmetric_encrypted_json_request(
        self,
        method: str,
        target: str,
        payload: Any,
        key: SharedEncryptionKey,
        headers: Mapping[str, str] | None = None,
    ) -> Any:
        request = self._new_request(method, target, codec.encode_json(payload), headers)
        return self.encrypt_request(request, key)

    def create_symmetric_encrypted_response(
        self,
        status: int,
        payload: bytes | str,
        key: SharedEncryptionKey,
        headers: Mapping[str, str] | None = None,
    ) -> Any:
        response = self._new_response(status, _payload_bytes(payload), headers)
        return self.encrypt_response(response, key)

    def create_symmetric_encrypted_json_response(
        self,
        status: int,
        payload: Any,
        key: SharedEncryptionKey,
        headers: Mapping[str, str] | None = None,
    ) -> Any:
        response = self._new_response(status, codec.encode_json(payload), headers)
        return self.encrypt_response(response, key)

    def create_symmetric_authenticated_request(
        self,
        method: str,
        target: str,
        payload: bytes | str,
        key: SharedAuthenticationKey,
        headers: Mapping[str, str] | None = None,
    ) -> Any:
        request = self._new_request(method, target, _payload_bytes(payload), headers)
        return self.authenticate_request(request, key)

    def create_symmetric_authenticated_json_request(
        self,
        method: str,
        target: str,
        payload: Any,
        key: SharedAuthenticationKey,
        headers: Mapping[str, str] | None = None,
    ) -> Any:
        request = self._new_request(method, target, codec.encode_json(payload), _json_headers(headers))
        return self.authenticate_request(request, key)

    def create_symmetric_authenticated_response(
        self,
        status: int,
        payload: bytes | str,
        key: SharedAuthenticationKey,
        headers: Mapping[str, str] | None = None,
    ) -> Any:
        response = self._new_response(status, _payload_bytes(payload), headers)
        return self.authenticate_response(response, key)

    def create_symmetric_authenticated_json_response(
        self,
        status: int,
        payload: Any,
        key: SharedAuthenticationKey,
        headers: Mapping[str, str] | None = None,
    ) -> Any:
        response = self._new_response(status, codec.encode_json(payload), _json_headers(headers))
        return self.authenticate_response(response, key)

    # -- protecting existing messages ---------------------------------------

    def sign(self, message: Any, secret_key: SigningSecretKey) -> Any:
        """Attach a signature over the current body; the body is untouched."""
        signature = codec.sign_body(self.adapter.get_body(message), secret_key)
        logger.debug("signed message body")
        return self.adapter.with_header(message, HEADER_SIGNATURE_NAME, signature)

    def seal(self, message: Any, public_key: SealingPublicKey) -> Any:
        """Replace the body with an anonymous sealed box for ``public_key``."""
        sealed = codec.seal(self.adapter.get_body(message), public_key)
        logger.debug("sealed message body")
        return self.adapter.with_body(message, sealed)

    def encrypt(self, message: Any, key: SharedEncryptionKey) -> Any:
        """Replace the body with nonce || XChaCha20-Poly1305 ciphertext."""
        encrypted = codec.encrypt(self.adapter.get_body(message), key)
        logger.debug("encrypted message body with shared key")
        return self.adapter.with_body(message, encrypted)

    def authenticate(self, message: Any, key: SharedAuthenticationKey) -> Any:
        mac = codec.authenticate(self.adapter.get_body(message), key)
        logger.debug("authenticated message body with shared key")
        return self.adapter.with_header(message, HEADER_AUTH_NAME, mac)

    # -- receiving side ----------------------------------------------------------

    def verify_signed(self, message: Any, public_key: SigningPublicKey) -> Any:
        """Return ``message`` unchanged if its signature header checks out."""
        with _rejection_logged("sign"):
            header = self._require_header(message, HEADER_SIGNATURE_NAME)
            codec.verify_body_signature(self.adapter.get_body(message), header, public_key)
        return message

    def unseal(self, message: Any, secret_key: SealingSecretKey) -> Any:
        """Return ``message`` with its sealed body replaced by the plaintext."""
        with _rejection_logged("seal"):
            plaintext = codec.unseal(self.adapter.get_body(message), secret_key)
        return self.adapter.with_body(message, plaintext)

    def decrypt_symmetric(self, message: Any, key: SharedEncryptionKey) -> Any:
        with _rejection_logged("encrypt"):
            plaintext = codec.decrypt(self.adapter.get_body(message), key)
        return self.adapter.with_body(message, plaintext)

    def verify_symmetric_authenticated(self, message: Any, key: SharedAuthenticationKey) -> Any:
        with _rejection_logged("authenticate"):
            header = self._require_header(message, HEADER_AUTH_NAME)
            codec.verify_authentication(self.adapter.get_body(message), header, key)
        return message

    def decode_signed(self, message: Any, public_key: SigningPublicKey) -> bytes:
        return self.adapter.get_body(self.verify_signed(message, public_key))

    def decode_signed_json(self, message: Any, public_key: SigningPublicKey) -> Any:
        return self._decode_json(self.decode_signed(message, public_key), "sign")

    def decode_sealed(self, message: Any, secret_key: SealingSecretKey) -> bytes:
        return self.adapter.get_body(self.unseal(message, secret_key))

    def decode_sealed_json(self, message: Any, secret_key: SealingSecretKey) -> Any:
        return self._decode_json(self.decode_sealed(message, secret_key), "seal")

    def decode_symmetric_encrypted(self, message: Any, key: SharedEncryptionKey) -> bytes:
        return self.adapter.get_body(self.decrypt_symmetric(message, key))

    def decode_symmetric_encrypted_json(self, message: Any, key: SharedEncryptionKey) -> Any:
        return self._decode_json(self.decode_symmetric_encrypted(message, key), "encrypt")

    def decode_symmetric_authenticated(self, message: Any, key: SharedAuthenticationKey) -> bytes:
        return self.adapter.get_body(self.verify_symmetric_authenticated(message, key))

    def decode_symmetric_authenticated_json(self, message: Any, key: SharedAuthenticationKey) -> Any:
        return self._decode_json(self.decode_symmetric_authenticated(message, key), "authenticate")

    # Verification depends only on body and header, never on the direction, so
    # the request/response names share one implementation.
    sign_request = sign_response = sign
    seal_request = seal_response = seal
    encrypt_request = encrypt_response = encrypt
    authenticate_request = authenticate_response = authenticate

    verify_signed_request = verify_signed_response = verify_signed
    unseal_request = unseal_response = unseal
    decrypt_symmetric_request = decrypt_symmetric_response = decrypt_symmetric
    verify_symmetric_authenticated_request = verify_symmetric_authenticated
    verify_symmetric_authenticated_response = verify_symmetric_authenticated

    decode_signed_request = decode_signed_response = decode_signed
    decode_signed_json_request = decode_signed_json_response = decode_signed_json
    decode_sealed_request = decode_sealed_response = decode_sealed
    decode_sealed_json_request = decode_sealed_json_response = decode_sealed_json
    decode_symmetric_encrypted_request = decode_symmetric_encrypted
    decode_symmetric_encrypted_response = decode_symmetric_encrypted
    decode_symmetric_encrypted_json_request = decode_symmetric_encrypted_json
    decode_symmetric_encrypted_json_response = decode_symmetric_encrypted_json
    decode_symmetric_authenticated_request = decode_symmetric_authenticated
    decode_symmetric_authenticated_response = decode_symmetric_authenticated
    decode_symmetric_authenticated_json_request = decode_symmetric_authenticated_json
    decode_symmetric_authenticated_json_response = decode_symmetric_authenticated_json

    # -- result-style entry point ---------------------------------------------

    @staticmethod
    def attempt(operation: Callable[..., Any], *args: Any, **kwargs: Any) -> VerificationResult:
        """Run ``operation`` and capture a protocol failure instead of raising it."""
        try:
            return VerificationResult(value=operation(*args, **kwargs))
        except SapientError as exc:
            return VerificationResult(error=exc)

    # -- internals --------------------------------------------------------------

    def _new_request(
        self,
        method: str,
        target: str,
        body: bytes,
        headers: Mapping[str, str] | None,
    ) -> Any:
        return self.adapter.create_request(method, target, headers, body)

    def _new_response(self, status: int, body: bytes, headers: Mapping[str, str] | None) -> Any:
        return self.adapter.create_response(status, headers, body)

    def _require_header(self, message: Any, name: str) -> str:
        value = self.adapter.get_header(message, name)
        if value is None or not value.strip():
            raise HeaderMissingError(f"no {name} header present")
        return value.strip()

    @staticmethod
    def _decode_json(body: bytes, mode: str) -> Any:
        with _rejection_logged(mode):
            return codec.decode_json(body)


@contextlib.contextmanager
def _rejection_logged(mode: str) -> Iterator[None]:
    try:
        yield
    except SapientError as exc:
        logger.warning("rejected %s-mode message: %s", mode, exc.kind.value)
        raise


def _payload_bytes(payload: bytes | str) -> bytes:
    if isinstance(payload, str):
        return payload.encode("utf-8")
    if isinstance(payload, (bytes, bytearray, memoryview)):
        return bytes(payload)
    raise TypeError(f"payload must be bytes or str, got {type(payload).__name__}")


def _json_headers(headers: Mapping[str, str] | None) -> dict[str, str]:
    return merge_header(headers, "Content-Type", JSON_CONTENT_TYPE)
