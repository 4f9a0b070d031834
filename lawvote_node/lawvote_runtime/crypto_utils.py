from __future__ import annotations

"""
Ed25519 helpers for signed submissions.

Holders are identified by the hex of their raw Ed25519 public key when the
ledger runs with signing required. The signed message is the submission
digest (see validator.submission_digest), never the raw state.
"""

from dataclasses import replace
from typing import Tuple

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey, Ed25519PublicKey

from .constraints import TxContext


def generate_keypair() -> Tuple[str, str]:
    """
    Returns
    -------
    (sk_hex, pk_hex) : Tuple[str, str]
        Raw 32-byte secret and public keys, hex-encoded.
    """
    sk = Ed25519PrivateKey.generate()
    sk_raw = sk.private_bytes(
        encoding=serialization.Encoding.Raw,
        format=serialization.PrivateFormat.Raw,
        encryption_algorithm=serialization.NoEncryption(),
    )
    return sk_raw.hex(), public_key_hex(sk_raw.hex())


def public_key_hex(secret_key_hex: str) -> str:
    sk = Ed25519PrivateKey.from_private_bytes(bytes.fromhex(secret_key_hex))
    raw = sk.public_key().public_bytes(
        encoding=serialization.Encoding.Raw,
        format=serialization.PublicFormat.Raw,
    )
    return raw.hex()


def sign_message(secret_key_hex: str, message: bytes) -> str:
    if not isinstance(message, (bytes, bytearray)):
        raise TypeError("message must be bytes")
    sk = Ed25519PrivateKey.from_private_bytes(bytes.fromhex(secret_key_hex))
    return sk.sign(bytes(message)).hex()


def verify_signature(public_key_hex: str, message: bytes, signature_hex: str) -> bool:
    try:
        pk = Ed25519PublicKey.from_public_bytes(bytes.fromhex(public_key_hex))
        pk.verify(bytes.fromhex(signature_hex), bytes(message))
        return True
    except (InvalidSignature, ValueError):
        return False


def sign_context(context: TxContext, secret_key_hex: str, digest: bytes) -> TxContext:
    return replace(context, signature=sign_message(secret_key_hex, digest))
