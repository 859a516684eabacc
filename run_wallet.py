#!/usr/bin/env python3
"""
Lumina Wallet Runner — opens (or creates) a wallet file and starts an
interactive shell for:
  - creating / recovering the wallet
  - balances, transfers and donations
  - seed export
  - chain synchronisation against the configured endpoint

Usage:
    python run_wallet.py --wallet my_wallet.dat --config lumina_wallet.toml

Environment variables (alternative to flags):
    LUMINA_WALLET_FILE, LUMINA_NETWORK_ENDPOINT, LUMINA_WALLET_PASSWORD
"""

from __future__ import annotations

import argparse
import asyncio
import contextlib
import getpass
import json
import os
import sys
from typing import Awaitable, Callable

# ---------------------------------------------------------------------------
# Ensure the project root is in sys.path so imports work before pip install
# ---------------------------------------------------------------------------
PROJECT_ROOT = os.path.dirname(os.path.abspath(__file__))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from lumina_core import __version__  # noqa: E402
from lumina_core.config import load_config  # noqa: E402
from lumina_core.context import WalletContext  # noqa: E402
from lumina_core.errors import LuminaError  # noqa: E402
from lumina_core.logging_config import setup_logging  # noqa: E402
from lumina_core.precision import NATIVE_TOKEN, format_amount  # noqa: E402
from lumina_core.wallet import Wallet  # noqa: E402

WALLET_NAME = "LuminaChain Wallet"

Handler = Callable[[list[str]], Awaitable[str]]


# ===================================================================
#  Command shell
# ===================================================================

class WalletShell:
    """
    Maps command names to handlers. Each handler takes the argument list
    and returns the text to print; wallet errors become messages.
    """

    def __init__(self, wallet: Wallet, password: str):
        self.wallet = wallet
        self._password = password
        self.sync_task: asyncio.Task | None = None
        self.running = True
        self.commands: dict[str, tuple[Handler, str]] = {
            "help": (self.cmd_help, "help                     - Show this help"),
            "status": (self.cmd_status, "status                   - Wallet and sync status"),
            "create": (self.cmd_create, "create                   - Create a new wallet"),
            "recover": (self.cmd_recover, "recover <12 words>       - Recover wallet from seed"),
            "address": (self.cmd_address, "address                  - Show wallet address"),
            "balance": (self.cmd_balance, "balance [token]          - Show balance"),
            "send": (self.cmd_send, "send <to> <amt> [token]  - Transfer tokens"),
            "donate": (self.cmd_donate, "donate <amount>          - Donate LMT to the developers"),
            "seed": (self.cmd_seed, "seed                     - Reveal seed phrase"),
            "history": (self.cmd_history, "history                  - List transactions"),
            "sync": (self.cmd_sync, "sync                     - Synchronize with the network"),
            "stop": (self.cmd_stop, "stop                     - Stop synchronization"),
            "endpoint": (self.cmd_endpoint, "endpoint [url]           - Show / set network endpoint"),
            "exit": (self.cmd_exit, "exit                     - Save and quit"),
        }
        self.commands["quit"] = self.commands["exit"]

    async def execute(self, line: str) -> str:
        parts = line.strip().split()
        if not parts:
            return ""
        name, args = parts[0].lower(), parts[1:]
        entry = self.commands.get(name)
        if entry is None:
            return f"  Unknown command: {name}. Type 'help'."
        handler, _ = entry
        try:
            return await handler(args)
        except LuminaError as exc:
            return f"  Error [{exc.code}]: {exc.message}"
        except (TypeError, ValueError) as exc:
            return f"  Invalid arguments: {exc}"
        except Exception as exc:
            self.wallet.log.exception(f"Command failed: {name}")
            return f"  Error: {exc}"

    # ---- handlers ----

    async def cmd_help(self, args: list[str]) -> str:
        seen = set()
        lines = [f"  {WALLET_NAME} v{__version__}"]
        for _, usage in self.commands.values():
            if usage not in seen:
                seen.add(usage)
                lines.append("  " + usage)
        return "\n".join(lines)

    async def cmd_status(self, args: list[str]) -> str:
        s = {"wallet": self.wallet.get_status(), "sync": self.wallet.sync_engine.status()}
        return json.dumps(s, indent=2, default=str)

    async def cmd_create(self, args: list[str]) -> str:
        address = self.wallet.create()
        seed = self.wallet.get_seed_phrase(self._password)
        return (
            f"  Wallet created: {address}\n"
            f"  Write down your seed phrase and keep it offline:\n  {seed}"
        )

    async def cmd_recover(self, args: list[str]) -> str:
        address = self.wallet.recover_from_seed(" ".join(args))
        return f"  Wallet recovered: {address}"

    async def cmd_address(self, args: list[str]) -> str:
        return f"  {self.wallet.address or '(not initialized)'}"

    async def cmd_balance(self, args: list[str]) -> str:
        token = args[0] if args else NATIVE_TOKEN
        return f"  {format_amount(self.wallet.get_balance(token), token)}"

    async def cmd_send(self, args: list[str]) -> str:
        if len(args) < 2:
            return "  Usage: send <to_address> <amount> [token]"
        token = args[2] if len(args) > 2 else NATIVE_TOKEN
        tx_id = self.wallet.transfer(args[0], float(args[1]), token)
        return f"  TX submitted: {tx_id[:16]}..."

    async def cmd_donate(self, args: list[str]) -> str:
        if not args:
            return "  Usage: donate <amount>"
        tx_id = self.wallet.donate(float(args[0]))
        return f"  Thank you! Donation TX: {tx_id[:16]}..."

    async def cmd_seed(self, args: list[str]) -> str:
        loop = asyncio.get_running_loop()
        password = await loop.run_in_executor(None, getpass.getpass, "  Password: ")
        return f"  {self.wallet.get_seed_phrase(password)}"

    async def cmd_history(self, args: list[str]) -> str:
        history = self.wallet.history
        if not history:
            return "  No transactions"
        return "\n".join(
            f"  {tx.tx_id[:16]}... {tx.status.value:<9} "
            f"{format_amount(tx.amount, tx.token)} -> {tx.to_address}"
            for tx in history
        )

    async def cmd_sync(self, args: list[str]) -> str:
        if self.sync_task is not None and not self.sync_task.done():
            return "  Synchronization is already in progress"

        def on_progress(progress: float, message: str) -> None:
            print(f"  [{progress * 100:5.1f}%] {message}")

        self.sync_task = asyncio.create_task(self._sync(on_progress))
        return "  Synchronization started"

    async def _sync(self, callback) -> None:
        try:
            status = await self.wallet.synchronize(callback)
            print(f"  Synchronization finished: {status.value}")
        except LuminaError as exc:
            print(f"  Synchronization failed [{exc.code}]: {exc.message}")

    async def cmd_stop(self, args: list[str]) -> str:
        await self.wallet.sync_engine.stop_sync()
        return f"  Synchronization stopped ({self.wallet.sync_engine.get_status().value})"

    async def cmd_endpoint(self, args: list[str]) -> str:
        engine = self.wallet.sync_engine
        if args:
            engine.set_network_endpoint(args[0])
        return f"  Endpoint: {engine.get_network_endpoint()}"

    async def cmd_exit(self, args: list[str]) -> str:
        self.running = False
        if self.sync_task is not None and not self.sync_task.done():
            with contextlib.suppress(LuminaError):
                await self.wallet.sync_engine.stop_sync()
            await self.sync_task
        self.wallet.close()
        return "Exiting LuminaChain Wallet. Goodbye!"


async def interactive_cli(shell: WalletShell) -> None:
    """Read commands until exit/EOF."""
    loop = asyncio.get_running_loop()
    print((await shell.cmd_help([])))
    while shell.running:
        try:
            line = await loop.run_in_executor(None, lambda: input("lumina> "))
        except (EOFError, KeyboardInterrupt):
            print(await shell.cmd_exit([]))
            break
        output = await shell.execute(line)
        if output:
            print(output)


# ===================================================================
#  Main entry point
# ===================================================================

def parse_args(argv: list[str] | None = None):
    p = argparse.ArgumentParser(description=WALLET_NAME)
    p.add_argument("--config", default=None, help="Path to lumina_wallet.toml config file")
    p.add_argument("--wallet", default=None, help="Wallet file path")
    p.add_argument("--endpoint", default=None, help="Network endpoint URL")
    p.add_argument("--log-level", default=None, help="DEBUG, INFO, WARNING, ERROR")
    return p.parse_args(argv)


async def main(argv: list[str] | None = None) -> None:
    args = parse_args(argv)

    # Load config (TOML + env overrides); CLI flags override config
    cfg = load_config(args.config)
    if args.wallet:
        cfg.wallet.wallet_file = args.wallet
    if args.endpoint:
        cfg.network.endpoint = args.endpoint
    if args.log_level:
        cfg.logging.level = args.log_level.upper()

    logger = setup_logging(cfg.logging.level, cfg.logging.format, cfg.logging.file)
    logger.info(f"Starting {WALLET_NAME} v{__version__}")
    context = WalletContext(config=cfg, logger=logger)

    password = os.environ.get("LUMINA_WALLET_PASSWORD") or getpass.getpass("Wallet password: ")
    wallet = Wallet(cfg.wallet.wallet_file, password, context)
    shell = WalletShell(wallet, password)
    try:
        await interactive_cli(shell)
    finally:
        wallet.close()
        logger.info("Application terminated normally")


if __name__ == "__main__":
    with contextlib.suppress(KeyboardInterrupt):
        asyncio.run(main())


def main_sync():
    """Synchronous entry point for console_scripts."""
    with contextlib.suppress(KeyboardInterrupt):
        asyncio.run(main())
