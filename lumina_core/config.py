"""
TOML-based configuration for the Lumina wallet.

Loads settings from a TOML file and/or environment variables.
Environment variables take precedence over file values.

Usage:
    from lumina_core.config import load_config
    cfg = load_config("lumina_wallet.toml")
"""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

if sys.version_info >= (3, 11):
    import tomllib
else:
    try:
        import tomllib  # type: ignore[import]
    except ModuleNotFoundError:
        import tomli as tomllib  # type: ignore[import,no-redef]

DEFAULT_ENDPOINT = "https://node.luminachain.network"


@dataclass
class NetworkConfig:
    """Remote endpoint the sync engine talks to."""
    endpoint: str = DEFAULT_ENDPOINT
    connect_timeout: float = 10.0   # seconds, initial status check
    request_timeout: float = 30.0   # seconds, any single HTTP call


@dataclass
class SyncConfig:
    """Batch processing settings for chain synchronisation."""
    batch_size: int = 100
    batch_delay: float = 0.0   # pause between batches (seconds)


@dataclass
class WalletConfig:
    """Wallet file location."""
    wallet_file: str = "lumina_wallet.dat"


@dataclass
class SecurityConfig:
    """Seed encryption settings.

    ``kdf_iterations`` is only used for *new* blobs; every blob records the
    count it was written with, so lowering it never breaks old wallets.
    """
    kdf_iterations: int = 600_000


@dataclass
class LoggingConfig:
    """Logging settings."""
    level: str = "INFO"
    format: str = "human"   # "human" or "json"
    file: str | None = None


@dataclass
class LuminaConfig:
    """Top-level configuration container."""
    network: NetworkConfig = field(default_factory=NetworkConfig)
    sync: SyncConfig = field(default_factory=SyncConfig)
    wallet: WalletConfig = field(default_factory=WalletConfig)
    security: SecurityConfig = field(default_factory=SecurityConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def _merge(dc: Any, raw: dict[str, Any]) -> None:
    """Merge a raw dict into a dataclass instance (in-place)."""
    for key, value in raw.items():
        key_under = key.replace("-", "_")
        if hasattr(dc, key_under):
            setattr(dc, key_under, value)


def load_config(path: str | None = None) -> LuminaConfig:
    """
    Load configuration from a TOML file, then overlay environment variables.

    The top-level ``network_endpoint`` key is accepted as a shorthand for
    ``[network] endpoint``; the section wins when both are present.

    Env-var mapping:
        LUMINA_NETWORK_ENDPOINT -> network.endpoint
        LUMINA_WALLET_FILE      -> wallet.wallet_file
        LUMINA_SYNC_BATCH_SIZE  -> sync.batch_size
        LUMINA_KDF_ITERATIONS   -> security.kdf_iterations
        LUMINA_LOG_LEVEL        -> logging.level
        LUMINA_LOG_FMT          -> logging.format
        LUMINA_LOG_FILE         -> logging.file
    """
    cfg = LuminaConfig()

    # ── TOML file ────────────────────────────────────────────────
    if path is not None:
        p = Path(path)
        if p.exists():
            with open(p, "rb") as f:
                data = tomllib.load(f)
            if isinstance(data.get("network_endpoint"), str):
                cfg.network.endpoint = data["network_endpoint"]
            for section_name, section_dc in [
                ("network", cfg.network),
                ("sync", cfg.sync),
                ("wallet", cfg.wallet),
                ("security", cfg.security),
                ("logging", cfg.logging),
            ]:
                if isinstance(data.get(section_name), dict):
                    _merge(section_dc, data[section_name])

    # ── Environment variable overrides ───────────────────────────
    if v := os.environ.get("LUMINA_NETWORK_ENDPOINT"):
        cfg.network.endpoint = v
    if v := os.environ.get("LUMINA_WALLET_FILE"):
        cfg.wallet.wallet_file = v
    if v := os.environ.get("LUMINA_SYNC_BATCH_SIZE"):
        cfg.sync.batch_size = int(v)
    if v := os.environ.get("LUMINA_KDF_ITERATIONS"):
        cfg.security.kdf_iterations = int(v)
    if v := os.environ.get("LUMINA_LOG_LEVEL"):
        cfg.logging.level = v.upper()
    if v := os.environ.get("LUMINA_LOG_FMT"):
        cfg.logging.format = v
    if v := os.environ.get("LUMINA_LOG_FILE"):
        cfg.logging.file = v

    if cfg.sync.batch_size < 1:
        raise ValueError(f"sync.batch_size must be >= 1, got {cfg.sync.batch_size}")

    return cfg
