"""
Test suite for lumina_core.transaction — Transaction and TransactionLedger.

Covers:
  - Content-derived ids (determinism, nonce separation, duplicates)
  - Signing and verification, including tampering and foreign keys
  - Status state machine (PENDING -> CONFIRMED | FAILED, terminal)
  - to_dict / from_dict
"""

import unittest

from ecdsa import SECP256k1, SigningKey

from lumina_core.crypto_utils import derive_address, public_key_from_private
from lumina_core.errors import ValidationError
from lumina_core.transaction import (
    Transaction,
    TransactionLedger,
    TransactionStatus,
    compute_tx_id,
)


def _fixed_clock():
    return 1_700_000_000.0


class _Sender:
    def __init__(self):
        self.priv = SigningKey.generate(curve=SECP256k1).to_string()
        self.pub = public_key_from_private(self.priv)
        self.address = derive_address(self.pub)


class TestTransactionIds(unittest.TestCase):

    def setUp(self):
        self.ledger = TransactionLedger(clock=_fixed_clock)

    def test_id_is_sha256_hex(self):
        tx = self.ledger.create_transaction("LMTa", "LMTb", 1.0)
        self.assertEqual(len(tx.tx_id), 64)
        int(tx.tx_id, 16)

    def test_id_matches_content(self):
        tx = self.ledger.create_transaction("LMTa", "LMTb", 1.0)
        self.assertEqual(tx.tx_id, compute_tx_id(tx))

    def test_same_content_same_id(self):
        a = TransactionLedger(clock=_fixed_clock).create_transaction("LMTa", "LMTb", 2.5)
        b = TransactionLedger(clock=_fixed_clock).create_transaction("LMTa", "LMTb", 2.5)
        self.assertEqual(a.tx_id, b.tx_id)

    def test_nonce_separates_identical_transfers(self):
        a = self.ledger.create_transaction("LMTa", "LMTb", 1.0)
        b = self.ledger.create_transaction("LMTa", "LMTb", 1.0)
        self.assertNotEqual(a.tx_id, b.tx_id)
        self.assertEqual((a.nonce, b.nonce), (0, 1))
        self.assertEqual(self.ledger.nonce, 2)

    def test_amount_change_changes_id(self):
        tx = self.ledger.create_transaction("LMTa", "LMTb", 1.0)
        original = tx.tx_id
        tx.amount = 1.00000001
        self.assertNotEqual(compute_tx_id(tx), original)

    def test_defaults(self):
        tx = self.ledger.create_transaction("LMTa", "LMTb", 1.0)
        self.assertEqual(tx.token, "LMT")
        self.assertEqual(tx.status, TransactionStatus.PENDING)
        self.assertEqual(tx.timestamp, 1_700_000_000)
        self.assertFalse(tx.is_signed)

    def test_amount_normalized(self):
        tx = self.ledger.create_transaction("LMTa", "LMTb", 0.123456789)
        self.assertEqual(tx.amount, 0.12345679)

    def test_invalid_inputs(self):
        for args in [
            ("LMTa", "LMTb", 0),
            ("LMTa", "LMTb", -1.0),
            ("", "LMTb", 1.0),
            ("LMTa", "", 1.0),
        ]:
            with self.assertRaises(ValidationError):
                self.ledger.create_transaction(*args)
        with self.assertRaises(ValidationError):
            self.ledger.create_transaction("LMTa", "LMTb", 1.0, token="")

    def test_amount_below_one_lumen_rejected(self):
        for amount in (1e-9, 4.9e-9):
            with self.assertRaises(ValidationError):
                self.ledger.create_transaction("LMTa", "LMTb", amount)
        self.assertEqual(self.ledger.nonce, 0)
        tx = self.ledger.create_transaction("LMTa", "LMTb", 1e-8)
        self.assertEqual(tx.amount, 1e-8)

    def test_restore_continues_nonce_and_rejects_known_ids(self):
        tx = self.ledger.create_transaction("LMTa", "LMTb", 1.0)
        fresh = TransactionLedger(clock=_fixed_clock)
        fresh.restore([tx])
        self.assertEqual(fresh.nonce, 1)
        nxt = fresh.create_transaction("LMTa", "LMTb", 1.0)
        self.assertNotEqual(nxt.tx_id, tx.tx_id)

    def test_release_forgets_id(self):
        tx = self.ledger.create_transaction("LMTa", "LMTb", 1.0)
        self.ledger.release(tx)
        self.assertNotIn(tx.tx_id, self.ledger._ids)


class TestSigning(unittest.TestCase):

    def setUp(self):
        self.ledger = TransactionLedger()
        self.sender = _Sender()
        self.tx = self.ledger.create_transaction(self.sender.address, "LMTdest", 3.0)

    def test_sign_and_verify(self):
        self.ledger.sign(self.tx, self.sender.priv)
        self.assertTrue(self.tx.is_signed)
        self.assertEqual(self.tx.signing_pub_key, self.sender.pub)
        self.assertTrue(self.ledger.verify_signature(self.tx))

    def test_unsigned_fails(self):
        self.assertFalse(self.ledger.verify_signature(self.tx))

    def test_tampered_amount_fails(self):
        self.ledger.sign(self.tx, self.sender.priv)
        self.tx.amount = 300.0
        self.assertFalse(self.ledger.verify_signature(self.tx))

    def test_tampered_recipient_with_recomputed_id_fails(self):
        self.ledger.sign(self.tx, self.sender.priv)
        self.tx.to_address = "LMTattacker"
        self.tx.tx_id = compute_tx_id(self.tx)
        self.assertFalse(self.ledger.verify_signature(self.tx))

    def test_foreign_key_fails(self):
        # signed by a key that does not own from_address
        other = _Sender()
        self.ledger.sign(self.tx, other.priv)
        self.assertFalse(self.ledger.verify_signature(self.tx))

    def test_invalid_private_key(self):
        with self.assertRaises(ValidationError):
            self.ledger.sign(self.tx, b"\x00" * 5)

    def test_cannot_sign_terminal(self):
        self.ledger.fail(self.tx)
        with self.assertRaises(ValidationError):
            self.ledger.sign(self.tx, self.sender.priv)


class TestStatusMachine(unittest.TestCase):

    def setUp(self):
        self.ledger = TransactionLedger()
        self.tx = self.ledger.create_transaction("LMTa", "LMTb", 1.0)

    def test_confirm(self):
        self.ledger.confirm(self.tx)
        self.assertEqual(self.tx.status, TransactionStatus.CONFIRMED)
        self.assertTrue(self.tx.status.is_terminal)

    def test_fail(self):
        self.ledger.fail(self.tx)
        self.assertEqual(self.tx.status, TransactionStatus.FAILED)

    def test_terminal_is_final(self):
        self.ledger.confirm(self.tx)
        with self.assertRaises(ValidationError):
            self.ledger.fail(self.tx)
        with self.assertRaises(ValidationError):
            self.ledger.confirm(self.tx)
        self.assertEqual(self.tx.status, TransactionStatus.CONFIRMED)

    def test_cannot_set_pending(self):
        with self.assertRaises(ValidationError):
            self.ledger.set_status(self.tx, TransactionStatus.PENDING)

    def test_set_status_accepts_string_value(self):
        self.ledger.set_status(self.tx, "FAILED")
        self.assertEqual(self.tx.status, TransactionStatus.FAILED)


class TestSerialisation(unittest.TestCase):

    def test_dict_round_trip_keeps_signature(self):
        ledger = TransactionLedger()
        sender = _Sender()
        tx = ledger.create_transaction(sender.address, "LMTdest", 1.25, token="USD")
        ledger.sign(tx, sender.priv)
        ledger.confirm(tx)

        restored = Transaction.from_dict(tx.to_dict())
        self.assertEqual(restored, tx)
        self.assertTrue(ledger.verify_signature(restored))

    def test_str(self):
        tx = TransactionLedger(clock=_fixed_clock).create_transaction("LMTa", "LMTb", 1.0)
        text = str(tx)
        self.assertIn(f"Transaction ID: {tx.tx_id}", text)
        self.assertIn("Amount: 1.00000000 LMT", text)
        self.assertIn("Status: PENDING", text)
