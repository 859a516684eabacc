"""
Seed custody for the Lumina wallet.

KeyVault owns everything that touches the mnemonic:
  - 12-word seed generation from a fixed dictionary (``secrets`` CSPRNG)
  - seed validation
  - password-based authenticated encryption of the seed
    (PBKDF2-HMAC-SHA256 -> AES-256-GCM)
  - deterministic key-pair and address derivation from a seed
"""

from __future__ import annotations

import hashlib
import hmac
import os
import secrets

from Crypto.Cipher import AES
from ecdsa import SECP256k1

from lumina_core.context import WalletContext
from lumina_core.crypto_utils import derive_address, public_key_from_private
from lumina_core.errors import AuthenticationError, ValidationError

SEED_WORD_COUNT = 12

SEED_WORDS: tuple[str, ...] = (
    "abandon", "ability", "able", "about", "above", "absent", "absorb", "abstract", "absurd", "abuse",
    "access", "accident", "account", "accuse", "achieve", "acid", "acoustic", "acquire", "across", "act",
    "action", "actor", "actress", "actual", "adapt", "add", "addict", "address", "adjust", "admit",
    "adult", "advance", "advice", "aerobic", "affair", "afford", "afraid", "again", "age", "agent",
    "agree", "ahead", "aim", "air", "airport", "aisle", "alarm", "album", "alcohol", "alert",
    "alien", "all", "alley", "allow", "almost", "alone", "alpha", "already", "also", "alter",
    "always", "amateur", "amazing", "among", "amount", "amused", "analyst", "anchor", "ancient", "anger",
    "angle", "angry", "animal", "ankle", "announce", "annual", "another", "answer", "antenna", "antique",
    "anxiety", "any", "apart", "apology", "appear", "apple", "approve", "april", "arch", "arctic",
    "area", "arena", "argue", "arm", "armed", "armor", "army", "around", "arrange", "arrest",
    "arrive", "arrow", "art", "artefact", "artist", "artwork", "ask", "aspect", "assault", "asset",
    "assist", "assume", "asthma", "athlete", "atom", "attack", "attend", "attitude", "attract", "auction",
)
_SEED_WORD_SET = frozenset(SEED_WORDS)

# Encrypted-seed blob: lmt1$<iterations>$<salt>$<nonce>$<tag>$<ciphertext>
BLOB_VERSION = "lmt1"
_SALT_BYTES = 16
_NONCE_BYTES = 12   # 96-bit GCM nonce, unique per encryption

# BIP-39 style stretching of the mnemonic into key material.
_MNEMONIC_SALT = b"mnemonic"
_MNEMONIC_ITERATIONS = 2048
_MASTER_KEY_TAG = b"Lumina seed"


def normalize_seed(phrase: str) -> str:
    """Collapse any run of whitespace to single spaces."""
    return " ".join(phrase.split())


class KeyVault:
    """Generates, validates, encrypts and decrypts seed phrases."""

    def __init__(self, context: WalletContext | None = None):
        self.context = context or WalletContext()
        self.log = self.context.get_logger("keyvault")

    # ---- seed phrases ----

    def generate_seed(self) -> str:
        words = [secrets.choice(SEED_WORDS) for _ in range(SEED_WORD_COUNT)]
        self.log.debug("Generated new seed phrase")
        return " ".join(words)

    def validate_seed(self, phrase: str) -> None:
        """Raise ValidationError unless *phrase* is 12 dictionary words."""
        if not isinstance(phrase, str):
            raise ValidationError("Seed phrase must be a string")
        words = phrase.split()
        if len(words) != SEED_WORD_COUNT:
            raise ValidationError(
                f"Invalid seed phrase: must contain exactly {SEED_WORD_COUNT} "
                f"words, got {len(words)}"
            )
        unknown = [w for w in words if w not in _SEED_WORD_SET]
        if unknown:
            raise ValidationError(
                f"Invalid seed phrase: {len(unknown)} word(s) not in dictionary"
            )

    # ---- key derivation ----

    def derive_keypair(self, phrase: str) -> tuple[bytes, bytes]:
        """
        Derive the wallet's secp256k1 key pair from a validated seed.

        The mnemonic is stretched BIP-39 style and the master key is the left
        half of an HMAC-SHA512, reduced into the curve order.
        """
        seed = hashlib.pbkdf2_hmac(
            "sha512",
            normalize_seed(phrase).encode("utf-8"),
            _MNEMONIC_SALT,
            _MNEMONIC_ITERATIONS,
            dklen=64,
        )
        digest = hmac.new(_MASTER_KEY_TAG, seed, hashlib.sha512).digest()
        key_int = int.from_bytes(digest[:32], "big") % (SECP256k1.order - 1) + 1
        private_key = key_int.to_bytes(32, "big")
        return private_key, public_key_from_private(private_key)

    def derive_address(self, phrase: str) -> str:
        _, public_key = self.derive_keypair(phrase)
        return derive_address(public_key)

    # ---- encryption ----

    def encrypt(self, seed: str, password: str) -> str:
        iterations = int(self.context.config.security.kdf_iterations)
        salt = os.urandom(_SALT_BYTES)
        key = self._derive_key(password, salt, iterations)
        nonce = os.urandom(_NONCE_BYTES)
        cipher = AES.new(key, AES.MODE_GCM, nonce=nonce)
        ciphertext, tag = cipher.encrypt_and_digest(normalize_seed(seed).encode("utf-8"))
        return "$".join([
            BLOB_VERSION,
            str(iterations),
            salt.hex(),
            nonce.hex(),
            tag.hex(),
            ciphertext.hex(),
        ])

    def decrypt(self, blob: str, password: str) -> str:
        """Decrypt a seed blob. Wrong password or tampering -> AuthenticationError."""
        iterations, salt, nonce, tag, ciphertext = self._parse_blob(blob)
        key = self._derive_key(password, salt, iterations)
        cipher = AES.new(key, AES.MODE_GCM, nonce=nonce)
        try:
            plain = cipher.decrypt_and_verify(ciphertext, tag)
        except ValueError as exc:
            self.log.warning("Seed decryption failed: authentication tag mismatch")
            raise AuthenticationError("Incorrect password") from exc
        return plain.decode("utf-8")

    @staticmethod
    def _derive_key(password: str, salt: bytes, iterations: int) -> bytes:
        return hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, iterations)

    @staticmethod
    def _parse_blob(blob: str) -> tuple[int, bytes, bytes, bytes, bytes]:
        parts = blob.strip().split("$") if isinstance(blob, str) else []
        if len(parts) != 6 or parts[0] != BLOB_VERSION:
            raise ValidationError("Malformed encrypted seed")
        try:
            iterations = int(parts[1])
            salt, nonce, tag, ciphertext = (bytes.fromhex(p) for p in parts[2:])
        except ValueError as exc:
            raise ValidationError("Malformed encrypted seed") from exc
        if iterations < 1 or len(nonce) != _NONCE_BYTES or len(tag) != 16:
            raise ValidationError("Malformed encrypted seed")
        return iterations, salt, nonce, tag, ciphertext
