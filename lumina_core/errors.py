"""
Error taxonomy for the Lumina wallet core.

Every failure a core operation can report is one of the classes below.
They are ordinary exceptions: callers (the CLI, a contract runner, tests)
catch ``LuminaError`` or a specific subclass and render it.
"""

from __future__ import annotations


class LuminaError(Exception):
    """Base class for all recoverable wallet-core failures."""

    code = "error"

    def __init__(self, message: str = ""):
        super().__init__(message or self.__class__.__name__)
        self.message = message or self.__class__.__name__


class ValidationError(LuminaError, ValueError):
    """Malformed input: bad seed length or word, non-positive amount, ..."""
    code = "validation_error"


class AuthenticationError(LuminaError):
    """Wrong password, tampered ciphertext or a locked wallet."""
    code = "authentication_error"


class InsufficientBalance(LuminaError):
    code = "insufficient_balance"

    def __init__(self, token: str, balance: float, requested: float):
        super().__init__(
            f"Insufficient {token} balance: have {balance}, need {requested}"
        )
        self.token = token
        self.balance = balance
        self.requested = requested


class AlreadyInitialized(LuminaError):
    code = "already_initialized"


class NotInitialized(LuminaError):
    code = "not_initialized"


class AlreadySyncing(LuminaError):
    code = "already_syncing"


class NotSyncing(LuminaError):
    code = "not_syncing"


class NetworkError(LuminaError):
    """Connect, fetch or block-processing failure (timeouts included)."""
    code = "network_error"


class PersistenceError(LuminaError):
    """Wallet file read, write or format failure."""
    code = "persistence_error"
