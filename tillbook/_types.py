"""
Core types for tillbook.

Re-exports from kungfu + money helpers shared by every package.
"""

from __future__ import annotations

from decimal import Decimal, ROUND_HALF_UP

# Re-export from kungfu
from kungfu import Result, Ok, Error, LazyCoroResult

# ═══════════════════════════════════════════════════════════════════════════════
# Money
# ═══════════════════════════════════════════════════════════════════════════════

type Money = Decimal
"""Amount in the store currency. Always two decimal places once computed."""

CENT = Decimal("0.01")
ZERO = Decimal("0.00")


def money(value: Decimal | int | str) -> Money:
    """
    Quantize to cents, half-up.

    Note: floats are rejected; binary fractions are not money.
    """
    if isinstance(value, float):
        raise TypeError("money() does not accept float; pass str or Decimal")
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def floor_zero(value: Money) -> Money:
    """max(0, value), quantized."""
    return money(value) if value > 0 else ZERO


# ═══════════════════════════════════════════════════════════════════════════════
# Exports
# ═══════════════════════════════════════════════════════════════════════════════

__all__ = (
    # Re-exports from kungfu
    "Result",
    "Ok",
    "Error",
    "LazyCoroResult",
    # Type aliases
    "Money",
    # Money helpers
    "CENT",
    "ZERO",
    "money",
    "floor_zero",
)
