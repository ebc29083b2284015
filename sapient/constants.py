"""Protocol constants."""

HEADER_SIGNATURE_NAME = "Body-Signature-Ed25519"
HEADER_AUTH_NAME = "Body-HMAC-SHA512256"

SIGNING_SECRET_KEY_BYTES = 32
SIGNING_PUBLIC_KEY_BYTES = 32
SIGNATURE_BYTES = 64

SEALING_SECRET_KEY_BYTES = 32
SEALING_PUBLIC_KEY_BYTES = 32
# ephemeral public key (32) + Poly1305 tag (16)
SEAL_OVERHEAD_BYTES = 48

SHARED_ENCRYPTION_KEY_BYTES = 32
XCHACHA_NONCE_BYTES = 24
AEAD_TAG_BYTES = 16

SHARED_AUTHENTICATION_KEY_BYTES = 32
MAC_BYTES = 32

JSON_CONTENT_TYPE = "application/json"

SUPPORTED_MODES = {"sign", "seal", "encrypt", "authenticate"}
SUPPORTED_KEY_ENCODINGS = {"base64url", "hex"}
