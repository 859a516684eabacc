"""
Wallet management for Lumina.

A Wallet owns one address, its token balances and its transaction
history, and is persisted to a single wallet file. It provides:
  - creation from a fresh seed and recovery from an existing one
  - balance queries
  - atomic transfers (debit + history append commit together)
  - password-protected seed export
  - synchronisation through a SyncEngine

Mutating operations and persistence share one re-entrant lock, so a
balance check and the debit that depends on it can never interleave with
another transfer or with a save.
"""

from __future__ import annotations

import os
import threading
from typing import Optional

from lumina_core.context import WalletContext
from lumina_core.crypto_utils import derive_address
from lumina_core.errors import (
    AlreadyInitialized,
    AuthenticationError,
    InsufficientBalance,
    NotInitialized,
    PersistenceError,
    ValidationError,
)
from lumina_core.keyvault import KeyVault, normalize_seed
from lumina_core.precision import (
    NATIVE_TOKEN,
    format_amount,
    is_valid_amount,
    lmt_to_lumens,
    lumens_to_lmt,
)
from lumina_core.storage import WalletRecord, WalletStore
from lumina_core.sync import ProgressCallback, SyncEngine, SyncStatus
from lumina_core.transaction import Transaction, TransactionLedger, TransactionStatus

# Development team address used by donate().
DEV_TEAM_ADDRESS = "LMTDEVTEAM123456789ABCDEFGHIJKLMNOPQRSTUVW"

STATUS_NOT_INITIALIZED = "Not initialized"
STATUS_NOT_SYNCHRONIZED = "Not synchronized with the network"
STATUS_READY = "Ready"


class Wallet:
    """User-facing wallet bound to one wallet file."""

    def __init__(
        self,
        wallet_path: str | os.PathLike,
        password: str,
        context: WalletContext | None = None,
        key_vault: KeyVault | None = None,
        ledger: TransactionLedger | None = None,
        sync_engine: SyncEngine | None = None,
    ):
        self.context = context or WalletContext()
        self.log = self.context.get_logger("wallet")
        self.store = WalletStore(wallet_path)
        self.key_vault = key_vault or KeyVault(self.context)
        self.ledger = ledger or TransactionLedger()
        self._password = password
        self._sync_engine = sync_engine

        self._lock = threading.RLock()
        self._address: str = ""
        self._encrypted_seed: str = ""
        self._private_key: bytes | None = None
        self._balances: dict[str, float] = {}
        self._history: list[Transaction] = []
        self._initialized = False
        self._synchronized = False

        if self.store.exists():
            self.load()
        else:
            self.log.info(f"No existing wallet found at {self.store.path}")

    # ---- read-only views ----

    @property
    def address(self) -> str:
        return self._address

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    @property
    def is_synchronized(self) -> bool:
        return self._synchronized

    @property
    def is_locked(self) -> bool:
        """True when the signing key is unavailable (wrong password or no seed)."""
        return self._private_key is None

    @property
    def balances(self) -> dict[str, float]:
        with self._lock:
            return dict(self._balances)

    @property
    def history(self) -> list[Transaction]:
        with self._lock:
            return list(self._history)

    def get_main_address(self) -> str:
        return self._address

    def get_balance(self, token: str = NATIVE_TOKEN) -> float:
        with self._lock:
            return self._balances.get(token, 0.0)

    def get_transaction(self, tx_id: str) -> Optional[Transaction]:
        with self._lock:
            for tx in self._history:
                if tx.tx_id == tx_id:
                    return tx
        return None

    def get_status(self) -> str:
        if not self._initialized:
            return STATUS_NOT_INITIALIZED
        if not self._synchronized:
            return STATUS_NOT_SYNCHRONIZED
        return STATUS_READY

    # ---- initialisation ----

    def create(self) -> str:
        """Initialise a brand-new wallet from a fresh seed. Returns the address."""
        with self._lock:
            if self._initialized:
                self.log.warning("Wallet is already initialized")
                raise AlreadyInitialized("Wallet is already initialized")
            seed = self.key_vault.generate_seed()
            self._initialize_from_seed(seed)
            self.log.info(f"Created new wallet {self._address}")
            return self._address

    def recover_from_seed(self, seed_phrase: str) -> str:
        """Initialise the wallet from an existing 12-word seed. Returns the address."""
        with self._lock:
            if self._initialized:
                self.log.warning("Wallet is already initialized")
                raise AlreadyInitialized("Wallet is already initialized")
            try:
                self.key_vault.validate_seed(seed_phrase)
            except ValidationError as exc:
                self.log.error(str(exc))
                raise
            self._initialize_from_seed(normalize_seed(seed_phrase))
            self.log.info(f"Recovered wallet {self._address}")
            return self._address

    def _initialize_from_seed(self, seed: str) -> None:
        # everything is computed before any field is assigned
        private_key, public_key = self.key_vault.derive_keypair(seed)
        encrypted = self.key_vault.encrypt(seed, self._password)
        address = derive_address(public_key)

        self._address = address
        self._private_key = private_key
        self._encrypted_seed = encrypted
        self._balances = {NATIVE_TOKEN: 0.0}
        self._history = []
        self._initialized = True
        self._synchronized = False
        self.save()

    # ---- transfers ----

    def transfer(self, to_address: str, amount: float, token: str = NATIVE_TOKEN) -> str:
        """
        Send *amount* of *token* to *to_address*; returns the transaction id.

        The transaction is built and signed before anything is mutated; the
        debit and history append then commit together.
        """
        with self._lock:
            if not self._initialized:
                self.log.error("Wallet is not initialized")
                raise NotInitialized("Wallet is not initialized")
            if not is_valid_amount(amount) or lmt_to_lumens(amount) < 1:
                raise ValidationError(f"Amount must be at least 1 lumen, got {amount!r}")
            if not isinstance(to_address, str) or not to_address.strip():
                raise ValidationError("Recipient address is required")
            if self._private_key is None:
                raise AuthenticationError("Wallet is locked: signing key unavailable")

            if not self._synchronized:
                self.log.warning("Wallet is not synchronized with the network")

            balance = self._balances.get(token, 0.0)
            if lmt_to_lumens(balance) < lmt_to_lumens(amount):
                self.log.error(
                    f"Insufficient balance for transfer: {format_amount(balance, token)} "
                    f"< {format_amount(amount, token)}"
                )
                raise InsufficientBalance(token, balance, amount)

            tx = self.ledger.create_transaction(self._address, to_address.strip(), amount, token)
            try:
                self.ledger.sign(tx, self._private_key)
            except Exception:
                self.ledger.release(tx)
                raise

            # commit
            # whole lumens, so repeated debits never drift
            self._balances[token] = lumens_to_lmt(lmt_to_lumens(balance) - lmt_to_lumens(tx.amount))
            self._history.append(tx)

            self.log.info(
                f"Transfer initiated: {format_amount(tx.amount, token)} to {tx.to_address} "
                f"(tx {tx.tx_id[:16]}...)"
            )
            self.save()
            return tx.tx_id

    def donate(self, amount: float) -> str:
        """Transfer *amount* LMT to the development team."""
        return self.transfer(DEV_TEAM_ADDRESS, amount, NATIVE_TOKEN)

    def set_transaction_status(self, tx_id: str, status: TransactionStatus) -> None:
        with self._lock:
            tx = self.get_transaction(tx_id)
            if tx is None:
                raise ValidationError(f"Unknown transaction {tx_id}")
            self.ledger.set_status(tx, status)
            self.save()

    # ---- seed export ----

    def get_seed_phrase(self, password: str) -> str:
        with self._lock:
            if not self._initialized:
                self.log.error("Wallet is not initialized")
                raise NotInitialized("Wallet is not initialized")
            if not self._encrypted_seed:
                raise NotInitialized("Wallet file carries no seed")
            encrypted = self._encrypted_seed
        return self.key_vault.decrypt(encrypted, password)

    # ---- synchronisation ----

    @property
    def sync_engine(self) -> SyncEngine:
        if self._sync_engine is None:
            self._sync_engine = SyncEngine(self.context, self._address)
        return self._sync_engine

    async def synchronize(self, callback: ProgressCallback | None = None) -> SyncStatus:
        """
        Catch up with the network through the sync engine.

        On completion the wallet is marked synchronized and pending
        transactions seen in processed blocks are confirmed.
        """
        if not self._initialized:
            self.log.error("Wallet is not initialized")
            raise NotInitialized("Wallet is not initialized")

        engine = self.sync_engine
        engine.wallet_address = self._address
        status = await engine.synchronize(callback)
        if status is not SyncStatus.SYNCED:
            self.log.warning(f"Synchronization ended in state {status.value}")
            return status

        with self._lock:
            self._synchronized = True
            confirmed = 0
            for tx in self._history:
                if tx.status is TransactionStatus.PENDING and tx.tx_id in engine.confirmed_tx_ids:
                    self.ledger.confirm(tx)
                    confirmed += 1
            if confirmed:
                self.save()
        self.log.info("Wallet synchronized with the network")
        return status

    # ---- persistence ----

    def save(self) -> bool:
        """Write the wallet file; failures are logged and reported as False."""
        with self._lock:
            record = WalletRecord(
                address=self._address,
                balances=dict(self._balances),
                encrypted_seed=self._encrypted_seed,
                history=list(self._history),
            )
            try:
                self.store.save(record)
            except PersistenceError as exc:
                self.log.error(f"Failed to save wallet: {exc}")
                return False
            return True

    def load(self) -> bool:
        """(Re)load state from the wallet file; False if it could not be read."""
        with self._lock:
            try:
                record = self.store.load()
            except PersistenceError as exc:
                self.log.error(f"Failed to load wallet: {exc}")
                return False

            private_key = None
            if record.encrypted_seed:
                try:
                    seed = self.key_vault.decrypt(record.encrypted_seed, self._password)
                    private_key, _ = self.key_vault.derive_keypair(seed)
                except (AuthenticationError, ValidationError) as exc:
                    self.log.error(f"Wallet loaded locked: {exc}")

            self._address = record.address
            self._balances = dict(record.balances)
            self._encrypted_seed = record.encrypted_seed
            self._history = list(record.history)
            self._private_key = private_key
            self._initialized = True
            self._synchronized = False
            self.ledger.restore(self._history)
            self.log.info(f"Wallet loaded successfully from {self.store.path}")
            return True

    def close(self) -> None:
        """Save before shutdown."""
        if self._initialized:
            self.save()

    def __enter__(self) -> Wallet:
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"Wallet({self._address or 'uninitialized'})"
