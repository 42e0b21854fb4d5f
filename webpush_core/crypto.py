"""
webpush_core.crypto
-------------------
Key material for VAPID (RFC 8292) application server identification:

- P-256 key pair generation
- Raw base64url encodings as expected by push services and browsers
  (uncompressed public point, 32-byte private scalar)
- Fingerprints for logging a key without printing it

Signing itself is done by py_vapid from these encodings.
"""

from __future__ import annotations
from typing import Tuple
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives import serialization
from .utils import b64u_encode, b64u_decode, sha256

PRIVATE_KEY_LENGTH = 32
PUBLIC_KEY_LENGTH = 65


def public_bytes(pk: ec.EllipticCurvePublicKey) -> bytes:
    return pk.public_bytes(
        encoding=serialization.Encoding.X962,
        format=serialization.PublicFormat.UncompressedPoint,
    )


def generate_vapid_keypair() -> Tuple[str, str]:
    """Returns ``(private_b64u, public_b64u)``."""
    sk = ec.generate_private_key(ec.SECP256R1())
    priv_raw = sk.private_numbers().private_value.to_bytes(PRIVATE_KEY_LENGTH, "big")
    return b64u_encode(priv_raw), b64u_encode(public_bytes(sk.public_key()))


def load_private_key(private_b64u: str) -> ec.EllipticCurvePrivateKey:
    raw = b64u_decode(private_b64u)
    if len(raw) != PRIVATE_KEY_LENGTH:
        raise ValueError("VAPID private key must be 32 bytes")
    return ec.derive_private_key(int.from_bytes(raw, "big"), ec.SECP256R1())


def public_key_matches(private_b64u: str, public_b64u: str) -> bool:
    try:
        derived = public_bytes(load_private_key(private_b64u).public_key())
        return derived == b64u_decode(public_b64u)
    except ValueError:
        return False


def compute_pubkey_fingerprint(public_b64u: str) -> str:
    # 16 bytes = 32 hex chars
    return sha256(b64u_decode(public_b64u))[:32]
