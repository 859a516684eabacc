"""
Text-file persistence for Lumina wallets.

File layout (one record per line, header fixed):

    LUMINA_WALLET_DATA
    ADDRESS:<address>
    BALANCE:<token>:<amount>
    SEED:<encrypted seed blob>
    TX:<transaction as compact JSON>

The header must match exactly; any other unrecognised line is ignored so
that newer writers stay readable by older readers.

Usage:
    store = WalletStore("lumina_wallet.dat")
    store.save(WalletRecord(address="LMT...", balances={"LMT": 10.0}))
    record = store.load()
"""

from __future__ import annotations

import json
import logging
import math
import os
import tempfile
from dataclasses import dataclass, field
from pathlib import Path

from lumina_core.crypto_utils import is_valid_address
from lumina_core.errors import PersistenceError
from lumina_core.precision import LMT_DECIMALS
from lumina_core.transaction import Transaction

logger = logging.getLogger("lumina.storage")

WALLET_HEADER = "LUMINA_WALLET_DATA"


@dataclass
class WalletRecord:
    """Everything a wallet file carries."""
    address: str = ""
    balances: dict[str, float] = field(default_factory=dict)
    encrypted_seed: str = ""
    history: list[Transaction] = field(default_factory=list)


def encode_record(record: WalletRecord) -> str:
    lines = [WALLET_HEADER, f"ADDRESS:{record.address}"]
    for token, amount in record.balances.items():
        lines.append(f"BALANCE:{token}:{amount:.{LMT_DECIMALS}f}")
    if record.encrypted_seed:
        lines.append(f"SEED:{record.encrypted_seed}")
    for tx in record.history:
        lines.append("TX:" + json.dumps(tx.to_dict(), sort_keys=True, separators=(",", ":")))
    return "\n".join(lines) + "\n"


def decode_record(text: str) -> WalletRecord:
    """Parse wallet-file text. Raises PersistenceError on a bad header or line."""
    lines = text.splitlines()
    if not lines or lines[0] != WALLET_HEADER:
        raise PersistenceError("Invalid wallet file format: missing header")

    record = WalletRecord()
    for lineno, line in enumerate(lines[1:], start=2):
        try:
            if line.startswith("ADDRESS:"):
                address = line[len("ADDRESS:"):]
                if address and not is_valid_address(address):
                    raise ValueError(f"malformed address {address!r}")
                record.address = address
            elif line.startswith("BALANCE:"):
                token, sep, amount = line[len("BALANCE:"):].partition(":")
                if not sep or not token:
                    raise ValueError("expected BALANCE:<token>:<amount>")
                value = float(amount)
                if not math.isfinite(value) or value < 0:
                    raise ValueError(f"balance must be finite and non-negative, got {amount}")
                record.balances[token] = value
            elif line.startswith("SEED:"):
                record.encrypted_seed = line[len("SEED:"):]
            elif line.startswith("TX:"):
                record.history.append(Transaction.from_dict(json.loads(line[len("TX:"):])))
        except (KeyError, TypeError, ValueError) as exc:
            raise PersistenceError(f"Invalid wallet file line {lineno}: {exc}") from exc

    ids = [tx.tx_id for tx in record.history]
    if len(ids) != len(set(ids)):
        raise PersistenceError("Invalid wallet file: duplicate transaction ids")
    return record


class WalletStore:
    """Reads and writes a single wallet file."""

    def __init__(self, path: str | os.PathLike):
        self.path = Path(path)

    def exists(self) -> bool:
        return self.path.is_file()

    def load(self) -> WalletRecord:
        try:
            text = self.path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise PersistenceError(f"Failed to read wallet file {self.path}: {exc}") from exc
        record = decode_record(text)
        logger.info(f"Wallet loaded from {self.path}")
        return record

    def save(self, record: WalletRecord) -> None:
        """Write *record* atomically (temp file + rename)."""
        data = encode_record(record)
        tmp_name = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{self.path.name}.", suffix=".tmp", dir=str(self.path.parent)
            )
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(data)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, self.path)
            tmp_name = None
        except OSError as exc:
            raise PersistenceError(f"Failed to write wallet file {self.path}: {exc}") from exc
        finally:
            if tmp_name is not None and os.path.exists(tmp_name):
                os.unlink(tmp_name)
        logger.info(f"Wallet saved to {self.path}")
