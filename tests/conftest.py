"""
Shared pytest fixtures for the Lumina test suite.
"""

from __future__ import annotations

import asyncio
import os
import sys

import pytest

# run_wallet.py lives at the project root, next to lumina_core
PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from lumina_core.config import LuminaConfig  # noqa: E402
from lumina_core.context import WalletContext  # noqa: E402
from lumina_core.errors import NetworkError  # noqa: E402
from lumina_core.keyvault import KeyVault  # noqa: E402
from lumina_core.storage import WalletStore  # noqa: E402
from lumina_core.sync import BlockInfo, NetworkClient  # noqa: E402
from lumina_core.wallet import Wallet  # noqa: E402

PASSWORD = "correct horse battery staple"

# A valid 12-word phrase from the seed dictionary.
FIXTURE_SEED = (
    "abandon ability able about above absent absorb abstract absurd abuse access accident"
)


def make_context(kdf_iterations: int = 1_000, batch_size: int = 100) -> WalletContext:
    """Context with cheap key stretching so wallet tests stay fast."""
    cfg = LuminaConfig()
    cfg.security.kdf_iterations = kdf_iterations
    cfg.sync.batch_size = batch_size
    return WalletContext(config=cfg)


def fund(wallet_path, password: str, context: WalletContext, lmt: float) -> Wallet:
    """Rewrite the LMT balance in the wallet file and reopen it."""
    store = WalletStore(wallet_path)
    record = store.load()
    record.balances["LMT"] = lmt
    store.save(record)
    return Wallet(wallet_path, password, context)


class FakeClient(NetworkClient):
    """In-memory chain used in place of the HTTP client."""

    def __init__(
        self,
        latest: int = 250,
        tx_ids: dict[int, list[str]] | None = None,
        fail_connect: bool = False,
        fail_height: bool = False,
        fail_at: int | None = None,
        gated: bool = False,
    ):
        self.latest = latest
        self.tx_ids = tx_ids or {}
        self.fail_connect = fail_connect
        self.fail_height = fail_height
        self.fail_at = fail_at
        self.fetches: list[tuple[int, int]] = []
        self.closed = False
        # gated: every fetch waits for ``gate`` after signalling ``fetch_started``
        self.gated = gated
        self.fetch_started = asyncio.Event()
        self.gate = asyncio.Event()

    async def connect(self) -> None:
        if self.fail_connect:
            raise NetworkError("connection refused")

    async def fetch_latest_height(self) -> int:
        if self.fail_height:
            raise NetworkError("height request timed out")
        return self.latest

    async def fetch_blocks(self, from_height: int, to_height: int) -> list[BlockInfo]:
        self.fetches.append((from_height, to_height))
        if self.gated:
            self.fetch_started.set()
            await self.gate.wait()
        if self.fail_at is not None and from_height <= self.fail_at < to_height:
            raise NetworkError(f"block {self.fail_at} could not be processed")
        return [
            BlockInfo(height=h, tx_ids=list(self.tx_ids.get(h, [])))
            for h in range(from_height + 1, to_height + 1)
        ]

    async def close(self) -> None:
        self.closed = True


@pytest.fixture
def context():
    return make_context()


@pytest.fixture
def key_vault(context):
    return KeyVault(context)


@pytest.fixture
def wallet_path(tmp_path):
    return tmp_path / "lumina_wallet.dat"


@pytest.fixture
def wallet(wallet_path, context):
    """Fresh, uninitialised wallet."""
    return Wallet(wallet_path, PASSWORD, context)


@pytest.fixture
def created_wallet(wallet):
    wallet.create()
    return wallet


@pytest.fixture
def funded_wallet(wallet_path, context):
    """Initialised wallet holding 10 LMT."""
    Wallet(wallet_path, PASSWORD, context).create()
    return fund(wallet_path, PASSWORD, context, 10.0)
