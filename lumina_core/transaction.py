"""
Transactions and the per-wallet transaction ledger.

A Transaction's identity is derived from its content: the SHA-256 of the
canonical JSON encoding of (from, to, amount, token, timestamp, nonce).
Two parties holding the same fields compute the same id without trusting
a random source; the per-wallet nonce keeps otherwise identical transfers
within the same second apart.

The signature covers every field (id included) and is bound to the
sender: ``verify_signature`` also checks that the signer's public key
derives ``from_address``.
"""

from __future__ import annotations

import json
import logging
import threading
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterable

from ecdsa import MalformedPointError

from lumina_core.crypto_utils import derive_address, public_key_from_private, sha256, sign, verify
from lumina_core.errors import ValidationError
from lumina_core.precision import LMT_DECIMALS, NATIVE_TOKEN, is_valid_amount, normalize_amount

logger = logging.getLogger("lumina.transaction")


class TransactionStatus(str, Enum):
    PENDING = "PENDING"      # waiting to be included in a block
    CONFIRMED = "CONFIRMED"  # included in a block
    FAILED = "FAILED"        # rejected by the network

    @property
    def is_terminal(self) -> bool:
        return self is not TransactionStatus.PENDING


@dataclass
class Transaction:
    """A transfer of ``amount`` of ``token`` from one address to another."""
    tx_id: str
    from_address: str
    to_address: str
    amount: float
    token: str
    timestamp: int
    nonce: int
    status: TransactionStatus = TransactionStatus.PENDING
    signature: bytes = b""
    signing_pub_key: bytes = b""

    # ---- canonical encodings ----

    def content_fields(self) -> dict[str, Any]:
        """The fields the transaction id is derived from."""
        return {
            "from": self.from_address,
            "to": self.to_address,
            "amount": f"{self.amount:.{LMT_DECIMALS}f}",
            "token": self.token,
            "timestamp": self.timestamp,
            "nonce": self.nonce,
        }

    def serialize_for_signing(self) -> bytes:
        body = dict(self.content_fields(), id=self.tx_id)
        return json.dumps(body, sort_keys=True, separators=(",", ":")).encode("utf-8")

    def hash_for_signing(self) -> bytes:
        return sha256(self.serialize_for_signing())

    @property
    def is_signed(self) -> bool:
        return bool(self.signature) and bool(self.signing_pub_key)

    # ---- serialisation ----

    def to_dict(self) -> dict[str, Any]:
        return {
            "tx_id": self.tx_id,
            "from": self.from_address,
            "to": self.to_address,
            "amount": self.amount,
            "token": self.token,
            "timestamp": self.timestamp,
            "nonce": self.nonce,
            "status": self.status.value,
            "signature": self.signature.hex(),
            "signing_pub_key": self.signing_pub_key.hex(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Transaction:
        return cls(
            tx_id=data["tx_id"],
            from_address=data["from"],
            to_address=data["to"],
            amount=float(data["amount"]),
            token=data.get("token", NATIVE_TOKEN),
            timestamp=int(data["timestamp"]),
            nonce=int(data["nonce"]),
            status=TransactionStatus(data.get("status", "PENDING")),
            signature=bytes.fromhex(data.get("signature", "")),
            signing_pub_key=bytes.fromhex(data.get("signing_pub_key", "")),
        )

    def __str__(self) -> str:
        ts = time.strftime("%Y-%m-%d %H:%M:%S", time.localtime(self.timestamp))
        return (
            f"Transaction ID: {self.tx_id}\n"
            f"From: {self.from_address}\n"
            f"To: {self.to_address}\n"
            f"Amount: {self.amount:.{LMT_DECIMALS}f} {self.token}\n"
            f"Timestamp: {ts}\n"
            f"Status: {self.status.value}\n"
        )


def compute_tx_id(tx: Transaction) -> str:
    encoded = json.dumps(tx.content_fields(), sort_keys=True, separators=(",", ":"))
    return sha256(encoded.encode("utf-8")).hex()


class TransactionLedger:
    """
    Creates, signs and verifies one wallet's transactions and enforces the
    status state machine (PENDING -> CONFIRMED | FAILED, terminal after).
    """

    def __init__(self, clock=time.time):
        self._clock = clock
        self._nonce = 0
        self._ids: set[str] = set()
        self._lock = threading.Lock()

    @property
    def nonce(self) -> int:
        """Nonce the next transaction will receive."""
        return self._nonce

    def restore(self, history: Iterable[Transaction]) -> None:
        """Re-seed nonce and known ids from a loaded history."""
        with self._lock:
            for tx in history:
                self._ids.add(tx.tx_id)
                self._nonce = max(self._nonce, tx.nonce + 1)

    def create_transaction(
        self,
        from_address: str,
        to_address: str,
        amount: float,
        token: str = NATIVE_TOKEN,
    ) -> Transaction:
        if not is_valid_amount(amount):
            raise ValidationError(f"Amount must be a positive number, got {amount!r}")
        amount = normalize_amount(float(amount))
        if amount <= 0:
            raise ValidationError("Amount rounds to zero at 8 decimal places")
        if not from_address or not to_address:
            raise ValidationError("Sender and recipient addresses are required")
        if not token:
            raise ValidationError("Token symbol is required")

        with self._lock:
            tx = Transaction(
                tx_id="",
                from_address=from_address,
                to_address=to_address,
                amount=amount,
                token=token,
                timestamp=int(self._clock()),
                nonce=self._nonce,
            )
            tx.tx_id = compute_tx_id(tx)
            if tx.tx_id in self._ids:
                raise ValidationError(f"Duplicate transaction id {tx.tx_id}")
            self._ids.add(tx.tx_id)
            self._nonce += 1

        logger.debug(f"Created transaction {tx.tx_id[:16]}... nonce={tx.nonce}")
        return tx

    def release(self, tx: Transaction) -> None:
        """Forget a transaction that was created but never committed."""
        with self._lock:
            self._ids.discard(tx.tx_id)

    def sign(self, tx: Transaction, private_key: bytes) -> None:
        if tx.status.is_terminal:
            raise ValidationError(
                f"Transaction {tx.tx_id} is {tx.status.value}; cannot sign"
            )
        try:
            pub = public_key_from_private(private_key)
        except (MalformedPointError, ValueError) as exc:
            raise ValidationError("Invalid private key") from exc
        tx.signature = sign(private_key, tx.hash_for_signing())
        tx.signing_pub_key = pub
        logger.debug(f"Transaction {tx.tx_id[:16]}... signed")

    def verify_signature(self, tx: Transaction) -> bool:
        if not tx.is_signed:
            return False
        if tx.tx_id != compute_tx_id(tx):
            return False
        if derive_address(tx.signing_pub_key) != tx.from_address:
            return False
        return verify(tx.signing_pub_key, tx.hash_for_signing(), tx.signature)

    # ---- status state machine ----

    def set_status(self, tx: Transaction, status: TransactionStatus) -> None:
        status = TransactionStatus(status)
        if tx.status.is_terminal:
            raise ValidationError(
                f"Transaction {tx.tx_id} is already {tx.status.value}"
            )
        if status is TransactionStatus.PENDING:
            raise ValidationError("PENDING is only valid as the initial status")
        tx.status = status
        logger.info(f"Transaction {tx.tx_id[:16]}... status changed to {status.value}")

    def confirm(self, tx: Transaction) -> None:
        self.set_status(tx, TransactionStatus.CONFIRMED)

    def fail(self, tx: Transaction) -> None:
        self.set_status(tx, TransactionStatus.FAILED)
