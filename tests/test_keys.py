from __future__ import annotations

import copy
import os
import pickle
import stat
import tempfile
import unittest
from pathlib import Path

from sapient.errors import EncodingError, SizeError
from sapient.keys import (
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

ALL_GENERATED = (SigningSecretKey, SealingSecretKey, SharedEncryptionKey, SharedAuthenticationKey)


class KeyTests(unittest.TestCase):
    def test_generate_has_fixed_length(self) -> None:
        for cls in ALL_GENERATED:
            key = cls.generate()
            self.assertEqual(len(key.get_bytes()), cls.KEY_SIZE)
            self.assertEqual(len(key), 32)

    def test_wrong_length_rejected(self) -> None:
        for cls in (*ALL_GENERATED, SigningPublicKey, SealingPublicKey):
            with self.assertRaises(SizeError):
                cls(b"\x00" * 31)
            with self.assertRaises(SizeError):
                cls.from_bytes(b"\x00" * 33)

    def test_non_bytes_rejected(self) -> None:
        with self.assertRaises(TypeError):
            SharedEncryptionKey("a" * 32)  # type: ignore[arg-type]

    def test_public_key_derivation_is_deterministic(self) -> None:
        secret = SigningSecretKey.generate()
        self.assertEqual(secret.public_key(), secret.public_key())
        self.assertIsInstance(secret.public_key(), SigningPublicKey)

        sealing = SealingSecretKey.generate()
        self.assertEqual(sealing.public_key(), SealingSecretKey(sealing.get_bytes()).public_key())
        self.assertIsInstance(sealing.public_key(), SealingPublicKey)

    def test_public_key_capability(self) -> None:
        self.assertTrue(SigningSecretKey.has_public_key)
        self.assertTrue(SealingSecretKey.has_public_key)
        self.assertFalse(SharedEncryptionKey.has_public_key)
        self.assertFalse(SharedAuthenticationKey.generate().has_public_key)
        self.assertFalse(hasattr(SharedEncryptionKey.generate(), "public_key"))
        self.assertFalse(hasattr(SigningPublicKey, "generate"))

    def test_text_roundtrip(self) -> None:
        for cls in ALL_GENERATED:
            key = cls.generate()
            self.assertEqual(cls.decode(key.encode()), key)
            self.assertEqual(cls.decode(key.encode("hex"), encoding="hex"), key)
            self.assertNotIn("=", key.encode())

    def test_malformed_text_rejected(self) -> None:
        with self.assertRaises(EncodingError):
            SharedEncryptionKey.decode("not*base64url!")
        with self.assertRaises(EncodingError):
            SharedEncryptionKey.decode("zz", encoding="hex")
        spaced = " ".join(SharedEncryptionKey.generate().encode("hex")[i : i + 2] for i in range(0, 64, 2))
        with self.assertRaises(EncodingError):
            SharedEncryptionKey.decode(spaced, encoding="hex")
        with self.assertRaises(EncodingError):
            SharedEncryptionKey.decode(SharedEncryptionKey.generate().encode() + "=")
        with self.assertRaises(EncodingError):
            SharedEncryptionKey.decode(SharedEncryptionKey.generate().encode(), encoding="base32")
        with self.assertRaises(SizeError):
            SharedEncryptionKey.decode("AAAA")

    def test_keys_are_immutable(self) -> None:
        key = SharedAuthenticationKey.generate()
        with self.assertRaises(AttributeError):
            key._key = b"\x00" * 32  # type: ignore[misc]
        with self.assertRaises(AttributeError):
            key.extra = 1  # type: ignore[attr-defined]

    def test_equality_respects_role(self) -> None:
        raw = os.urandom(32)
        self.assertEqual(SharedEncryptionKey(raw), SharedEncryptionKey(raw))
        self.assertNotEqual(SharedEncryptionKey(raw), SharedAuthenticationKey(raw))
        self.assertEqual(len({SharedEncryptionKey(raw), SharedEncryptionKey(raw)}), 1)

    def test_repr_redacts_secrets(self) -> None:
        secret = SigningSecretKey.generate()
        self.assertIn("redacted", repr(secret))
        self.assertNotIn(secret.encode(), repr(secret))
        self.assertIn("sha256:", repr(secret.public_key()))

    def test_copy_and_pickle(self) -> None:
        key = SealingSecretKey.generate()
        self.assertEqual(copy.deepcopy(key), key)
        self.assertEqual(pickle.loads(pickle.dumps(key)), key)

    def test_injected_random_source(self) -> None:
        key = SharedEncryptionKey.generate(random=lambda n: b"\x07" * n)
        self.assertEqual(key.get_bytes(), b"\x07" * 32)

        with self.assertRaises(ValueError):
            SharedEncryptionKey.generate(random=lambda n: b"\x07" * (n - 1))

    def test_role_tags(self) -> None:
        self.assertIs(SigningSecretKey.generate().role, KeyRole.SIGNING_SECRET)
        self.assertEqual(SealingSecretKey.generate().algorithm, "x25519")

    def test_save_and_load(self) -> None:
        secret = SigningSecretKey.generate()
        with tempfile.TemporaryDirectory() as tmp:
            secret_path = save_key(Path(tmp) / "keys" / "sign.secret", secret)
            public_path = save_key(Path(tmp) / "keys" / "sign.public", secret.public_key(), encoding="hex")

            self.assertEqual(load_key(secret_path, SigningSecretKey), secret)
            self.assertEqual(load_key(public_path, SigningPublicKey, encoding="hex"), secret.public_key())
            if os.name == "posix":
                self.assertEqual(stat.S_IMODE(secret_path.stat().st_mode), 0o600)


if __name__ == "__main__":
    unittest.main()
