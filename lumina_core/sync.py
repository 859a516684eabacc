"""
Chain synchronisation for the Lumina wallet.

The wallet trusts a single configured endpoint for chain data. A sync run:

1. **Connect** — ``GET {endpoint}/status`` must answer.
2. **Height** — ``GET {endpoint}/height`` returns ``{"height": N}``.
3. **Batches** — heights ``current+1 .. N`` are fetched in fixed-size
   batches via ``GET {endpoint}/blocks?from=a&to=b``, which returns the
   blocks with ``a < height <= b``; each batch starts where the previous
   one ended. The progress callback runs inline after every batch with
   ``(progress, message)``.

Batches run in a background asyncio task. ``stop_sync`` only raises a flag
that the task checks between batches, so a batch is never cut in half.

State machine::

    NOT_SYNCED --start--> SYNCING --progress 1.0--> SYNCED
                          SYNCING --stop/failure--> NOT_SYNCED

Transaction ids found in processed blocks are collected in
``confirmed_tx_ids``; the wallet uses them to confirm pending transfers.
The engine itself never touches balances.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Optional

import aiohttp

from lumina_core.context import WalletContext
from lumina_core.errors import AlreadySyncing, NetworkError, NotSyncing

ProgressCallback = Callable[[float, str], None]


class SyncStatus(str, Enum):
    NOT_SYNCED = "NotSynced"
    SYNCING = "Syncing"
    SYNCED = "Synced"


@dataclass
class BlockInfo:
    """The part of a block the wallet cares about."""
    height: int
    tx_ids: list[str] = field(default_factory=list)


# ─── Network clients ─────────────────────────────────────────────────────


class NetworkClient:
    """Interface the engine drives; every failure surfaces as NetworkError."""

    async def connect(self) -> None:
        raise NotImplementedError

    async def fetch_latest_height(self) -> int:
        raise NotImplementedError

    async def fetch_blocks(self, from_height: int, to_height: int) -> list[BlockInfo]:
        """Blocks with ``from_height < height <= to_height``."""
        raise NotImplementedError

    async def close(self) -> None:
        return None


class HttpNetworkClient(NetworkClient):
    """JSON-over-HTTP client for a Lumina node, built on ``aiohttp``."""

    def __init__(
        self,
        endpoint: str,
        connect_timeout: float = 10.0,
        request_timeout: float = 30.0,
    ):
        self.endpoint = endpoint.rstrip("/")
        self.connect_timeout = connect_timeout
        self.request_timeout = request_timeout
        self._session: aiohttp.ClientSession | None = None

    async def connect(self) -> None:
        if self._session is None:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(
                    total=self.request_timeout, connect=self.connect_timeout
                )
            )
        await self._get_json("/status", timeout=self.connect_timeout, expect_json=False)

    async def fetch_latest_height(self) -> int:
        data = await self._get_json("/height")
        height = data.get("height") if isinstance(data, dict) else None
        if isinstance(height, bool) or not isinstance(height, int) or height < 0:
            raise NetworkError(f"Invalid height in response from {self.endpoint}")
        return height

    async def fetch_blocks(self, from_height: int, to_height: int) -> list[BlockInfo]:
        data = await self._get_json(
            "/blocks", params={"from": str(from_height), "to": str(to_height)}
        )
        raw_blocks = data.get("blocks") if isinstance(data, dict) else None
        if not isinstance(raw_blocks, list):
            raise NetworkError(f"Invalid blocks response from {self.endpoint}")
        blocks = []
        for raw in raw_blocks:
            try:
                blocks.append(BlockInfo(
                    height=int(raw["height"]),
                    tx_ids=[str(t) for t in raw.get("tx_ids", [])],
                ))
            except (KeyError, TypeError, ValueError, AttributeError) as exc:
                raise NetworkError(f"Malformed block in response: {exc}") from exc
        return blocks

    async def close(self) -> None:
        if self._session is not None:
            await self._session.close()
            self._session = None

    async def _get_json(
        self,
        path: str,
        params: dict[str, str] | None = None,
        timeout: float | None = None,
        expect_json: bool = True,
    ) -> Any:
        if self._session is None:
            raise NetworkError("Not connected")
        url = self.endpoint + path
        kwargs: dict[str, Any] = {"params": params}
        if timeout is not None:
            kwargs["timeout"] = aiohttp.ClientTimeout(total=timeout)
        try:
            async with self._session.get(url, **kwargs) as resp:
                if resp.status >= 400:
                    raise NetworkError(f"GET {url} returned HTTP {resp.status}")
                if not expect_json:
                    return None
                return await resp.json(content_type=None)
        except NetworkError:
            raise
        except asyncio.TimeoutError as exc:
            raise NetworkError(f"GET {url} timed out") from exc
        except (aiohttp.ClientError, ValueError) as exc:
            raise NetworkError(f"GET {url} failed: {exc}") from exc


# ═════════════════════════════════════════════════════════════════════════
#  SyncEngine: one synchronisation run at a time
# ═════════════════════════════════════════════════════════════════════════


class SyncEngine:
    """
    Tracks how far the wallet has caught up with the network.

    Lifecycle:
        1. ``await start_sync(callback)`` connects, reads the network
           height and spawns the batch task.
        2. ``await join()`` waits for the run; a failed run re-raises its
           NetworkError here.
        3. ``await stop_sync()`` cancels cooperatively at the next batch
           boundary.
    """

    def __init__(
        self,
        context: WalletContext | None = None,
        wallet_address: str = "",
        client_factory: Optional[Callable[[str], NetworkClient]] = None,
        start_height: int = 0,
    ):
        self.context = context or WalletContext()
        self.log = self.context.get_logger("sync")
        self.wallet_address = wallet_address

        cfg = self.context.config
        self._endpoint: str = cfg.network.endpoint
        self.batch_size: int = max(1, int(cfg.sync.batch_size))
        self.batch_delay: float = float(cfg.sync.batch_delay)
        self._client_factory = client_factory or self._http_client

        # Sync state
        self._status = SyncStatus.NOT_SYNCED
        self._progress: float = 0.0
        self._latest_height: int = 0
        self._current_height: int = max(0, start_height)
        self._callback: ProgressCallback | None = None
        self._last_error: NetworkError | None = None
        self.confirmed_tx_ids: set[str] = set()

        self._starting = False
        self._stop_requested = False
        self._task: asyncio.Task | None = None

        self.log.info(f"Network synchronizer initialized for wallet: {wallet_address or '-'}")

    def _http_client(self, endpoint: str) -> NetworkClient:
        net = self.context.config.network
        return HttpNetworkClient(endpoint, net.connect_timeout, net.request_timeout)

    # ── Read-only state ──────────────────────────────────────────────

    def get_status(self) -> SyncStatus:
        return self._status

    @property
    def progress(self) -> float:
        return self._progress

    @property
    def latest_height(self) -> int:
        return self._latest_height

    @property
    def current_height(self) -> int:
        return self._current_height

    @property
    def is_syncing(self) -> bool:
        return self._status is SyncStatus.SYNCING

    @property
    def last_error(self) -> NetworkError | None:
        return self._last_error

    def get_network_endpoint(self) -> str:
        return self._endpoint

    def set_network_endpoint(self, endpoint: str) -> None:
        """Use *endpoint* for future runs; an active run keeps its client."""
        if not isinstance(endpoint, str) or not endpoint.strip():
            raise ValueError("Network endpoint must be a non-empty string")
        self._endpoint = endpoint.strip()
        self.context.config.network.endpoint = self._endpoint
        self.log.info(f"Network endpoint set to: {self._endpoint}")

    # ── Lifecycle ────────────────────────────────────────────────────

    async def start_sync(self, callback: ProgressCallback | None = None) -> None:
        """
        Connect, read the network height and spawn the batch task.

        Passing ``callback=None`` keeps the callback registered by an earlier
        run; pass a new callable to replace it.
        """
        if self._starting or self._status is SyncStatus.SYNCING:
            self.log.warning("Synchronization is already in progress")
            raise AlreadySyncing("Synchronization is already in progress")

        self._starting = True
        try:
            endpoint = self._endpoint
            client = self._client_factory(endpoint)
            self.log.info(f"Connecting to network: {endpoint}")
            try:
                await client.connect()
                latest = await client.fetch_latest_height()
            except NetworkError as exc:
                await client.close()
                self.log.error(f"Failed to reach the network: {exc}")
                raise

            self.log.info(f"Latest block height: {latest}")
            if callback is not None:
                self._callback = callback
            self._latest_height = latest
            self._last_error = None
            self._stop_requested = False
            self._current_height = min(self._current_height, latest)

            if latest == 0 or self._current_height >= latest:
                await client.close()
                self._current_height = latest
                self._status = SyncStatus.SYNCING
                self._update_progress(1.0, "Already synchronized with the network")
                return

            self._status = SyncStatus.SYNCING
            self._progress = self._current_height / latest
            self._task = asyncio.create_task(self._run(client, latest))
        finally:
            self._starting = False

    async def stop_sync(self) -> None:
        if self._status is not SyncStatus.SYNCING:
            self.log.warning("Synchronization is not in progress")
            raise NotSyncing("Synchronization is not in progress")

        self._stop_requested = True
        if self._task is not None:
            await self._task
        self.log.info(f"Synchronization stopped ({self._status.value})")

    async def join(self) -> None:
        """Wait for the active run, if any; re-raise its failure."""
        if self._task is not None:
            await self._task
        if self._last_error is not None:
            raise self._last_error

    async def synchronize(self, callback: ProgressCallback | None = None) -> SyncStatus:
        """Run a full sync to completion and return the final status."""
        await self.start_sync(callback)
        await self.join()
        return self._status

    # ── Background task ──────────────────────────────────────────────

    async def _run(self, client: NetworkClient, latest: int) -> None:
        height = self._current_height
        try:
            while height < latest:
                if self._stop_requested:
                    break
                to_height = min(height + self.batch_size, latest)
                blocks = await client.fetch_blocks(height, to_height)
                for block in blocks:
                    self.confirmed_tx_ids.update(block.tx_ids)
                height = to_height
                self._current_height = height
                self._update_progress(height / latest, f"Processed blocks up to {height}")
                if self._status is SyncStatus.SYNCED:
                    break
                # batch boundary: let stop_sync and other tasks run
                await asyncio.sleep(self.batch_delay)
        except NetworkError as exc:
            self._last_error = exc
            self.log.error(f"Synchronization failed at height {height}: {exc}")
        except asyncio.CancelledError:
            self._status = SyncStatus.NOT_SYNCED
            raise
        finally:
            if self._status is SyncStatus.SYNCING:
                self._status = SyncStatus.NOT_SYNCED
            await client.close()

    def _update_progress(self, progress: float, message: str) -> None:
        progress = min(1.0, max(0.0, progress))
        self._progress = max(self._progress, progress) if self.is_syncing else progress
        if self._progress >= 1.0:
            self._status = SyncStatus.SYNCED
            self.log.info("Synchronization completed")

        if self._callback is not None:
            try:
                self._callback(self._progress, message)
            except Exception:
                self.log.exception("Progress callback raised")

    # ── Status ───────────────────────────────────────────────────────

    def status(self) -> dict:
        return {
            "status": self._status.value,
            "syncing": self.is_syncing,
            "progress": self._progress,
            "latest_height": self._latest_height,
            "current_height": self._current_height,
            "endpoint": self._endpoint,
            "last_error": str(self._last_error) if self._last_error else None,
        }
