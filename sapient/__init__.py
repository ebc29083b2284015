"""Body-bound signing, sealing, encryption and authentication for HTTP messages."""

from .codec import decode_json, encode_json
from .constants import HEADER_AUTH_NAME, HEADER_SIGNATURE_NAME
from .engine import Sapient, VerificationResult
from .errors import (
    EncodingError,
    ErrorKind,
    HeaderMissingError,
    InvalidMessageError,
    SapientError,
    SizeError,
)
from .keys import (
    CryptographyKey,
    KeyRole,
    SealingPublicKey,
    SealingSecretKey,
    SharedAuthenticationKey,
    SharedEncryptionKey,
    SigningPublicKey,
    SigningSecretKey,
    load_key,
    save_key,
)
from .message import MemoryAdapter, MessageAdapter, Request, Response
from .policy import Protection, ProtectionPolicy, RouteProtection

__all__ = [
    "HEADER_AUTH_NAME",
    "HEADER_SIGNATURE_NAME",
    "Sapient",
    "VerificationResult",
    "EncodingError",
    "ErrorKind",
    "HeaderMissingError",
    "InvalidMessageError",
    "SapientError",
    "SizeError",
    "CryptographyKey",
    "KeyRole",
    "SealingPublicKey",
    "SealingSecretKey",
    "SharedAuthenticationKey",
    "SharedEncryptionKey",
    "SigningPublicKey",
    "SigningSecretKey",
    "load_key",
    "save_key",
    "MemoryAdapter",
    "MessageAdapter",
    "Request",
    "Response",
    "Protection",
    "ProtectionPolicy",
    "RouteProtection",
    "decode_json",
    "encode_json",
]

__version__ = "0.1.0"
