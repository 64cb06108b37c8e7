"""
RSA full-domain-hash VRF (in the spirit of RFC 9381, section 5).

The oracle signs ``SIGN_DOMAIN + alpha`` with RSA PKCS#1 v1.5 / SHA-256; the proof
is that signature and the random output is ``sha256(OUTPUT_DOMAIN + proof)``.
PKCS#1 v1.5 padding is deterministic and RSA is a permutation of [0, n), so for a
fixed key every alpha has exactly one proof of the modulus length below n, and
therefore exactly one output. Anyone holding the public key can check it.
"""
from __future__ import annotations

import hashlib
import hmac
from dataclasses import dataclass

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import padding
from cryptography.hazmat.primitives.asymmetric.rsa import RSAPublicKey


SIGN_DOMAIN = b"giveaway-vrf/rsa-fdh/v1:"
OUTPUT_DOMAIN = b"giveaway-vrf/rsa-fdh/v1/output:"
MIN_KEY_BITS = 2048


class ProofError(Exception):
    """The oracle's answer does not check out against the pinned key."""


@dataclass(frozen=True)
class VerifiedRandomness:
    alpha: bytes
    output: bytes
    proof: bytes


def derive_alpha(giveaway_id: str) -> bytes:
    """VRF input bound to a single giveaway, so a value can't be replayed for another draw."""
    return f"giveaway:{giveaway_id}".encode("utf-8")


def proof_message(alpha: bytes) -> bytes:
    return SIGN_DOMAIN + alpha


def output_from_proof(proof: bytes) -> bytes:
    return hashlib.sha256(OUTPUT_DOMAIN + proof).digest()


def load_public_key(value: str | bytes) -> RSAPublicKey:
    """Accepts a PEM block, or DER (SubjectPublicKeyInfo) as raw bytes or hex."""
    if isinstance(value, str):
        value = value.strip()
        if value.startswith("-----BEGIN"):
            key = serialization.load_pem_public_key(value.encode("ascii"))
        else:
            key = serialization.load_der_public_key(bytes.fromhex(value))
    else:
        key = serialization.load_der_public_key(value)

    if not isinstance(key, RSAPublicKey):
        raise ValueError("VRF public key must be an RSA key")
    if key.key_size < MIN_KEY_BITS:
        raise ValueError(f"VRF public key must be at least {MIN_KEY_BITS} bits, got {key.key_size}")
    return key


def verify_proof(public_key: RSAPublicKey, alpha: bytes, output: bytes, proof: bytes) -> VerifiedRandomness:
    # canonical encoding only: modulus length and below n
    k = (public_key.key_size + 7) // 8
    if len(proof) != k or int.from_bytes(proof, "big") >= public_key.public_numbers().n:
        raise ProofError("VRF proof is not a canonical signature")

    try:
        public_key.verify(proof, proof_message(alpha), padding.PKCS1v15(), hashes.SHA256())
    except InvalidSignature:
        raise ProofError("VRF proof signature is invalid")

    if not hmac.compare_digest(output_from_proof(proof), output):
        raise ProofError("VRF output does not match proof")

    return VerifiedRandomness(alpha=alpha, output=output, proof=proof)
