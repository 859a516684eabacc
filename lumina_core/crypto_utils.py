"""
Cryptographic helpers for Lumina.

  - SHA-256 / double-SHA-256 / RIPEMD-160 / Hash160
  - Base58 and Base58Check (Bitcoin alphabet)
  - secp256k1 public-key derivation, signing and verification (``ecdsa``)
  - Address derivation from a public key

Public keys are 65-byte uncompressed points (``0x04 || X || Y``);
signatures are 64-byte raw ``r || s`` over a SHA-256 digest, produced
deterministically (RFC 6979).
"""

from __future__ import annotations

import hashlib

from Crypto.Hash import RIPEMD160
from ecdsa import (
    BadSignatureError,
    MalformedPointError,
    SECP256k1,
    SigningKey,
    VerifyingKey,
)

ADDRESS_PREFIX = "LMT"

_B58_ALPHABET = "123456789ABCDEFGHJKLMNPQRSTUVWXYZabcdefghijkmnopqrstuvwxyz"
_B58_INDEX = {c: i for i, c in enumerate(_B58_ALPHABET)}


# ---- hashing ----

def sha256(data: bytes) -> bytes:
    return hashlib.sha256(data).digest()


def sha256d(data: bytes) -> bytes:
    return hashlib.sha256(hashlib.sha256(data).digest()).digest()


def ripemd160(data: bytes) -> bytes:
    # hashlib only exposes ripemd160 when the linked OpenSSL still ships it
    return RIPEMD160.new(data).digest()


def hash160(data: bytes) -> bytes:
    return ripemd160(sha256(data))


# ---- Base58 ----

def base58_encode(data: bytes) -> str:
    n = int.from_bytes(data, "big")
    out = []
    while n > 0:
        n, rem = divmod(n, 58)
        out.append(_B58_ALPHABET[rem])
    pad = len(data) - len(data.lstrip(b"\x00"))
    return "1" * pad + "".join(reversed(out))


def base58_decode(text: str) -> bytes:
    n = 0
    for ch in text:
        if ch not in _B58_INDEX:
            raise ValueError(f"Invalid Base58 character: {ch!r}")
        n = n * 58 + _B58_INDEX[ch]
    body = n.to_bytes((n.bit_length() + 7) // 8, "big") if n else b""
    pad = len(text) - len(text.lstrip("1"))
    return b"\x00" * pad + body


def base58check_encode(payload: bytes) -> str:
    return base58_encode(payload + sha256d(payload)[:4])


def base58check_decode(text: str) -> bytes:
    raw = base58_decode(text)
    if len(raw) < 4:
        raise ValueError("Base58Check string too short")
    payload, checksum = raw[:-4], raw[-4:]
    if sha256d(payload)[:4] != checksum:
        raise ValueError("Base58Check checksum mismatch")
    return payload


# ---- keys & signatures ----

def public_key_from_private(private_key: bytes) -> bytes:
    sk = SigningKey.from_string(private_key, curve=SECP256k1)
    return b"\x04" + sk.get_verifying_key().to_string()


def sign(private_key: bytes, msg_hash: bytes) -> bytes:
    sk = SigningKey.from_string(private_key, curve=SECP256k1)
    return sk.sign_digest_deterministic(msg_hash, hashfunc=hashlib.sha256)


def verify(public_key: bytes, msg_hash: bytes, signature: bytes) -> bool:
    try:
        vk = VerifyingKey.from_string(public_key, curve=SECP256k1)
        return vk.verify_digest(signature, msg_hash)
    except (BadSignatureError, MalformedPointError, ValueError):
        return False


def derive_address(public_key: bytes) -> str:
    """``"LMT" + Base58Check(Hash160(public_key))``."""
    return ADDRESS_PREFIX + base58check_encode(hash160(public_key))



def is_valid_address(address: str) -> bool:
    if not address.startswith(ADDRESS_PREFIX):
        return False
    try:
        return len(base58check_decode(address[len(ADDRESS_PREFIX):])) == 20
    except ValueError:
        return False
