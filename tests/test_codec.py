from __future__ import annotations

import unittest

from sapient import codec
from sapient.constants import XCHACHA_NONCE_BYTES
from sapient.errors import EncodingError, InvalidMessageError
from sapient.keys import SealingPublicKey, SealingSecretKey, SharedAuthenticationKey, SharedEncryptionKey, SigningSecretKey

from tests.test_helpers import flip_byte, sample_objects


class CanonicalJSONTests(unittest.TestCase):
    def test_json_roundtrip(self) -> None:
        for obj in sample_objects():
            self.assertEqual(codec.decode_json(codec.encode_json(obj)), obj)

    def test_json_is_deterministic(self) -> None:
        a = codec.encode_json({"b": 1, "a": [True, None]})
        b = codec.encode_json({"a": [True, None], "b": 1})
        self.assertEqual(a, b)
        self.assertEqual(a, b'{"a":[true,null],"b":1}')

    def test_non_ascii_is_utf8(self) -> None:
        self.assertEqual(codec.encode_json({"k": "é"}), '{"k":"é"}'.encode("utf-8"))

    def test_non_finite_numbers_rejected(self) -> None:
        with self.assertRaises(TypeError):
            codec.encode_json({"x": float("nan")})
        with self.assertRaises(InvalidMessageError):
            codec.decode_json(b'{"x": NaN}')

    def test_values_without_exact_json_form_rejected(self) -> None:
        for value in ({"n": {1: "a"}}, {"t": (3, 4)}, [{"s"}], {"b": b"raw"}):
            with self.subTest(value=value), self.assertRaises(TypeError):
                codec.encode_json(value)

    def test_duplicate_keys_rejected(self) -> None:
        with self.assertRaises(InvalidMessageError):
            codec.decode_json(b'{"a": 1, "a": 2}')

    def test_invalid_json_rejected(self) -> None:
        with self.assertRaises(InvalidMessageError):
            codec.decode_json(b"{not json")
        with self.assertRaises(InvalidMessageError):
            codec.decode_json(b"\xff\xfe")


class EnvelopeCodecTests(unittest.TestCase):
    def test_signature_roundtrip_and_tamper(self) -> None:
        secret = SigningSecretKey.generate()
        header = codec.sign_body(b"hello world", secret)
        codec.verify_body_signature(b"hello world", header, secret.public_key())

        with self.assertRaises(InvalidMessageError):
            codec.verify_body_signature(b"hello worle", header, secret.public_key())
        with self.assertRaises(InvalidMessageError):
            codec.verify_body_signature(b"hello world", header[:-2], secret.public_key())
        with self.assertRaises(EncodingError):
            codec.verify_body_signature(b"hello world", "%%%", secret.public_key())

    def test_non_canonical_base64url_rejected(self) -> None:
        from sapient.utils import b64url_decode

        self.assertEqual(b64url_decode("AA"), b"\x00")
        for text in ("AA==", "AA=", "AA\n"):
            with self.assertRaises(EncodingError):
                b64url_decode(text)
        with self.assertRaises(EncodingError):
            b64url_decode("AB")
        with self.assertRaises(EncodingError):
            b64url_decode("A")
        with self.assertRaises(EncodingError):
            b64url_decode("ab+/")

    def test_wrong_key_type_rejected(self) -> None:
        with self.assertRaises(TypeError):
            codec.sign_body(b"x", SharedAuthenticationKey.generate())  # type: ignore[arg-type]

    def test_seal_roundtrip(self) -> None:
        secret = SealingSecretKey.generate()
        sealed = codec.seal(b"payload", secret.public_key())
        self.assertNotIn(b"payload", sealed)
        self.assertEqual(codec.unseal(sealed, secret), b"payload")

        with self.assertRaises(InvalidMessageError):
            codec.unseal(sealed, SealingSecretKey.generate())
        with self.assertRaises(InvalidMessageError):
            codec.unseal(sealed[:10], secret)

    def test_seal_to_low_order_public_key_fails_closed(self) -> None:
        with self.assertRaises(InvalidMessageError):
            codec.seal(b"payload", SealingPublicKey(bytes(32)))

    def test_seal_is_randomized(self) -> None:
        public = SealingSecretKey.generate().public_key()
        self.assertNotEqual(codec.seal(b"same", public), codec.seal(b"same", public))

    def test_encrypt_uses_fresh_nonce(self) -> None:
        key = SharedEncryptionKey.generate()
        first = codec.encrypt(b"same body", key)
        second = codec.encrypt(b"same body", key)
        self.assertNotEqual(first[:XCHACHA_NONCE_BYTES], second[:XCHACHA_NONCE_BYTES])
        self.assertEqual(codec.decrypt(first, key), b"same body")
        self.assertEqual(codec.decrypt(second, key), b"same body")

    def test_encrypt_rejects_tampering(self) -> None:
        key = SharedEncryptionKey.generate()
        message = codec.encrypt(b"secret body", key)
        for index in (0, XCHACHA_NONCE_BYTES, len(message) - 1):
            with self.assertRaises(InvalidMessageError):
                codec.decrypt(flip_byte(message, index), key)
        with self.assertRaises(InvalidMessageError):
            codec.decrypt(message[: XCHACHA_NONCE_BYTES + 8], key)
        with self.assertRaises(InvalidMessageError):
            codec.decrypt(message, SharedEncryptionKey.generate())

    def test_empty_body_encrypts(self) -> None:
        key = SharedEncryptionKey.generate()
        self.assertEqual(codec.decrypt(codec.encrypt(b"", key), key), b"")

    def test_mac_roundtrip_and_tamper(self) -> None:
        key = SharedAuthenticationKey.generate()
        header = codec.authenticate(b"body", key)
        self.assertEqual(len(codec.compute_mac(b"body", key)), 32)
        codec.verify_authentication(b"body", header, key)

        with self.assertRaises(InvalidMessageError):
            codec.verify_authentication(b"bodY", header, key)
        with self.assertRaises(InvalidMessageError):
            codec.verify_authentication(b"body", header, SharedAuthenticationKey.generate())
        with self.assertRaises(InvalidMessageError):
            codec.verify_authentication(b"body", "AAAA", key)

    def test_mac_matches_truncated_hmac_sha512(self) -> None:
        import hashlib
        import hmac

        key = SharedAuthenticationKey(b"\x01" * 32)
        expected = hmac.new(b"\x01" * 32, b"abc", hashlib.sha512).digest()[:32]
        self.assertEqual(codec.compute_mac(b"abc", key), expected)


if __name__ == "__main__":
    unittest.main()
