"""CLI entrypoint for sapient."""

from __future__ import annotations

import argparse
import json
import logging
import pathlib
import sys
from typing import Any

from . import codec
from .constants import HEADER_AUTH_NAME, HEADER_SIGNATURE_NAME
from .errors import SapientError
from .keys import (
    CryptographyKey,
    SealingSecretKey,
    SharedAuthenticationKey,
    SharedEncryptionKey,
    SigningSecretKey,
    load_key,
    save_key,
)
from .policy import MODE_KEY_TYPES
from .utils import fingerprint

KEY_TYPES: dict[str, type[CryptographyKey]] = {
    "signing": SigningSecretKey,
    "sealing": SealingSecretKey,
    "shared-encryption": SharedEncryptionKey,
    "shared-authentication": SharedAuthenticationKey,
}


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(prog="sapient", description="Body-bound HTTP message protection")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    keygen = subparsers.add_parser("keygen", help="Generate a key (and its public half, if any)")
    keygen.add_argument("--type", choices=sorted(KEY_TYPES), required=True, dest="key_type")
    keygen.add_argument("--out-dir", default=".keys", help="Output directory")
    keygen.add_argument("--name", default=None, help="File name stem (defaults to the key type)")
    keygen.add_argument("--encoding", choices=["base64url", "hex"], default="base64url")
    keygen.set_defaults(func=_cmd_keygen)

    public = subparsers.add_parser("public-key", help="Print the public key of a signing or sealing secret key")
    public.add_argument("--type", choices=["signing", "sealing"], required=True, dest="key_type")
    public.add_argument("--secret-key-file", required=True)
    public.add_argument("--encoding", choices=["base64url", "hex"], default="base64url")
    public.set_defaults(func=_cmd_public_key)

    protect = subparsers.add_parser("protect", help="Protect a body file")
    protect.add_argument("--mode", choices=sorted(MODE_KEY_TYPES), required=True)
    protect.add_argument("--key-file", required=True)
    protect.add_argument("--in-file", required=True, help="Body to protect")
    protect.add_argument("--out-file", help="Ciphertext output for seal/encrypt (default: stdout)")
    protect.add_argument("--encoding", choices=["base64url", "hex"], default="base64url")
    protect.set_defaults(func=_cmd_protect)

    open_cmd = subparsers.add_parser("open", help="Verify or decrypt a protected body file")
    open_cmd.add_argument("--mode", choices=sorted(MODE_KEY_TYPES), required=True)
    open_cmd.add_argument("--key-file", required=True)
    open_cmd.add_argument("--in-file", required=True, help="Received body")
    open_cmd.add_argument("--header-value", help="Signature or MAC header value (sign/authenticate)")
    open_cmd.add_argument("--out-file", help="Plaintext output for seal/encrypt (default: stdout)")
    open_cmd.add_argument("--json", action="store_true", help="Parse the accepted body as JSON")
    open_cmd.add_argument("--encoding", choices=["base64url", "hex"], default="base64url")
    open_cmd.set_defaults(func=_cmd_open)

    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        return args.func(args)
    except SapientError as exc:
        print(f"rejected ({exc.kind.value}): {exc}", file=sys.stderr)
        return 1


def _cmd_keygen(args: argparse.Namespace) -> int:
    out_dir = pathlib.Path(args.out_dir)
    stem = args.name or args.key_type
    secret = KEY_TYPES[args.key_type].generate()

    summary: dict[str, Any] = {
        "type": args.key_type,
        "algorithm": secret.algorithm,
        "secret_key_file": str(save_key(out_dir / f"{stem}.secret", secret, encoding=args.encoding)),
    }
    if secret.has_public_key:
        public = secret.public_key()
        summary["public_key_file"] = str(save_key(out_dir / f"{stem}.public", public, encoding=args.encoding))
        summary["public_key"] = public.encode(args.encoding)
        summary["fingerprint"] = fingerprint(public.get_bytes())

    print(json.dumps(summary, indent=2, sort_keys=True))
    return 0


def _cmd_public_key(args: argparse.Namespace) -> int:
    secret = load_key(args.secret_key_file, KEY_TYPES[args.key_type], encoding=args.encoding)
    print(secret.public_key().encode(args.encoding))
    return 0


def _cmd_protect(args: argparse.Namespace) -> int:
    key_type, _ = MODE_KEY_TYPES[args.mode]
    key = load_key(args.key_file, key_type, encoding=args.encoding)
    body = pathlib.Path(args.in_file).read_bytes()

    if args.mode == "sign":
        print(f"{HEADER_SIGNATURE_NAME}: {codec.sign_body(body, key)}")
        return 0
    if args.mode == "authenticate":
        print(f"{HEADER_AUTH_NAME}: {codec.authenticate(body, key)}")
        return 0

    ciphertext = codec.seal(body, key) if args.mode == "seal" else codec.encrypt(body, key)
    _write_bytes(args.out_file, ciphertext)
    return 0


def _cmd_open(args: argparse.Namespace) -> int:
    _, key_type = MODE_KEY_TYPES[args.mode]
    key = load_key(args.key_file, key_type, encoding=args.encoding)
    body = pathlib.Path(args.in_file).read_bytes()

    if args.mode in {"sign", "authenticate"}:
        if not args.header_value:
            print(f"--header-value is required for {args.mode} mode", file=sys.stderr)
            return 2
        if args.mode == "sign":
            codec.verify_body_signature(body, args.header_value, key)
        else:
            codec.verify_authentication(body, args.header_value, key)
        plaintext = body
    elif args.mode == "seal":
        plaintext = codec.unseal(body, key)
    else:
        plaintext = codec.decrypt(body, key)

    if args.json:
        print(json.dumps(codec.decode_json(plaintext), indent=2, ensure_ascii=False, sort_keys=True))
        return 0
    _write_bytes(args.out_file, plaintext)
    return 0


def _write_bytes(path: str | None, data: bytes) -> None:
    if path:
        pathlib.Path(path).write_bytes(data)
        return
    sys.stdout.buffer.write(data)
    sys.stdout.buffer.flush()


if __name__ == "__main__":
    raise SystemExit(main())
