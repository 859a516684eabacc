"""
Precision constants and helpers for Lumina.

Every token amount is tracked with 8 decimal places of precision:

    1 LMT = 100,000,000 lumens (smallest indivisible unit)

All display formatting and the wallet file use 8 decimal places (``:.8f``).
"""

from __future__ import annotations

import math

# Native token symbol of the network.
NATIVE_TOKEN: str = "LMT"

# Number of decimal places for all token amounts.
LMT_DECIMALS: int = 8

# Smallest representable unit: 1 lumen = 0.00000001 LMT.
LUMENS_PER_LMT: int = 10 ** LMT_DECIMALS


def normalize_amount(value: float) -> float:
    """Round *value* to ``LMT_DECIMALS`` decimal places.

    Keeps floating-point dust from accumulating across repeated debits.

    >>> normalize_amount(1.000000005)
    1.00000001
    >>> normalize_amount(0.123456789)
    0.12345679
    """
    return round(value, LMT_DECIMALS)


def is_valid_amount(value: float) -> bool:
    """True for finite, strictly positive amounts."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value) and value > 0


def lumens_to_lmt(lumens: int) -> float:
    return lumens / LUMENS_PER_LMT


def lmt_to_lumens(value: float) -> int:
    return int(round(value * LUMENS_PER_LMT))


def format_amount(value: float, token: str = NATIVE_TOKEN) -> str:
    """Return a human-readable string with 8 decimal places."""
    return f"{value:.{LMT_DECIMALS}f} {token}"
