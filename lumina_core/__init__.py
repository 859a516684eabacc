"""
Lumina - client-side wallet core for the LuminaChain network.

Key features:
- 12-word seed phrases with AES-256-GCM password encryption
- secp256k1 transaction signing with content-derived transaction ids
- Atomic, lock-protected balance mutation and a text wallet file
- Cancelable, batch-based chain synchronisation over HTTP (aiohttp)
"""

__version__ = "0.1.0"
__all__ = [
    "errors",
    "crypto_utils",
    "precision",
    "context",
    "keyvault",
    "transaction",
    "storage",
    "wallet",
    "sync",
    "config",
    "logging_config",
]
