"""
Tests for lumina_core.crypto_utils — hashing, Base58Check, secp256k1.

Covers:
  - SHA-256 / double-SHA-256 / Hash160 known vectors
  - Base58 leading-zero handling and Base58Check checksum rejection
  - Key derivation, deterministic signing, verification failures
  - Address derivation and validation
"""

import unittest

from ecdsa import SECP256k1, SigningKey

from lumina_core.crypto_utils import (
    ADDRESS_PREFIX,
    base58_decode,
    base58_encode,
    base58check_decode,
    base58check_encode,
    derive_address,
    hash160,
    is_valid_address,
    public_key_from_private,
    ripemd160,
    sha256,
    sha256d,
    sign,
    verify,
)


def _keypair():
    priv = SigningKey.generate(curve=SECP256k1).to_string()
    return priv, public_key_from_private(priv)


class TestHashing(unittest.TestCase):

    def test_sha256_empty(self):
        self.assertEqual(
            sha256(b"").hex(),
            "e3b0c44298fc1c149afbf4c8996fb92427ae41e4649b934ca495991b7852b855",
        )

    def test_sha256d_is_double(self):
        self.assertEqual(sha256d(b"lumina"), sha256(sha256(b"lumina")))

    def test_ripemd160_empty(self):
        self.assertEqual(
            ripemd160(b"").hex(), "9c1185a5c5e9fc54612808977ee8f548b2258d31"
        )

    def test_hash160_length(self):
        self.assertEqual(len(hash160(b"\x04" + b"\x01" * 64)), 20)


class TestBase58(unittest.TestCase):

    def test_known_value(self):
        self.assertEqual(base58_encode(b"hello world"), "StV1DL6CwTryKyV")
        self.assertEqual(base58_decode("StV1DL6CwTryKyV"), b"hello world")

    def test_leading_zeros_preserved(self):
        data = b"\x00\x00\x01\x02"
        encoded = base58_encode(data)
        self.assertTrue(encoded.startswith("11"))
        self.assertEqual(base58_decode(encoded), data)

    def test_invalid_character(self):
        with self.assertRaises(ValueError):
            base58_decode("0OIl")

    def test_check_detects_corruption(self):
        encoded = base58check_encode(b"\x00" * 20)
        last = encoded[-1]
        corrupted = encoded[:-1] + ("2" if last != "2" else "3")
        with self.assertRaises(ValueError):
            base58check_decode(corrupted)

    def test_check_too_short(self):
        with self.assertRaises(ValueError):
            base58check_decode("1")


class TestKeysAndSignatures(unittest.TestCase):

    def setUp(self):
        self.priv, self.pub = _keypair()
        self.digest = sha256(b"payload")

    def test_key_sizes(self):
        self.assertEqual(len(self.priv), 32)
        self.assertEqual(len(self.pub), 65)
        self.assertEqual(self.pub[0], 0x04)

    def test_public_from_private(self):
        self.assertEqual(public_key_from_private(self.priv), self.pub)

    def test_sign_verify(self):
        sig = sign(self.priv, self.digest)
        self.assertTrue(verify(self.pub, self.digest, sig))

    def test_signing_is_deterministic(self):
        self.assertEqual(sign(self.priv, self.digest), sign(self.priv, self.digest))

    def test_wrong_message(self):
        sig = sign(self.priv, self.digest)
        self.assertFalse(verify(self.pub, sha256(b"other"), sig))

    def test_wrong_key(self):
        _, other_pub = _keypair()
        sig = sign(self.priv, self.digest)
        self.assertFalse(verify(other_pub, self.digest, sig))

    def test_garbage_inputs_return_false(self):
        self.assertFalse(verify(b"\x04" + b"\x00" * 10, self.digest, b"\x00" * 64))
        self.assertFalse(verify(self.pub, self.digest, b"short"))


class TestAddresses(unittest.TestCase):

    def test_prefix_and_validity(self):
        _, pub = _keypair()
        addr = derive_address(pub)
        self.assertTrue(addr.startswith(ADDRESS_PREFIX))
        self.assertTrue(is_valid_address(addr))

    def test_deterministic(self):
        _, pub = _keypair()
        self.assertEqual(derive_address(pub), derive_address(pub))

    def test_invalid_addresses(self):
        self.assertFalse(is_valid_address("XYZ123"))
        self.assertFalse(is_valid_address("LMT"))
        self.assertFalse(is_valid_address("LMTDEVTEAM123456789ABCDEFGHIJKLMNOPQRSTUVW"))
