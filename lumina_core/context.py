"""
Application context shared by the wallet components.

The entry point builds one ``WalletContext`` and hands it to KeyVault,
Wallet and SyncEngine; nothing in the core reaches for a global.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from lumina_core.config import LuminaConfig
from lumina_core.logging_config import ROOT_LOGGER_NAME


@dataclass
class WalletContext:
    """Configuration plus the base logger components derive theirs from."""
    config: LuminaConfig = field(default_factory=LuminaConfig)
    logger: logging.Logger = field(
        default_factory=lambda: logging.getLogger(ROOT_LOGGER_NAME)
    )

    def get_logger(self, component: str) -> logging.Logger:
        return self.logger.getChild(component)
