"""Constants shared by the accounting, engine and configuration modules.

Rates and weights are 18-decimal fixed point integers (``WAD`` is 100%) so the
ledger never touches floating point. Human friendly helpers convert to and
from decimal fractions for configuration files and reports.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Final

__all__ = [
    "WAD",
    "SECONDS_PER_DAY",
    "SECONDS_PER_YEAR",
    "UNLIMITED",
    "MAX_MANAGEMENT_FEE",
    "MAX_PERFORMANCE_FEE",
    "MAX_DEPOSIT_FEE",
    "MAX_WITHDRAW_FEE",
    "MAX_VAULTS",
    "DEFAULT_ASSET_DECIMALS",
    "DEFAULT_DEVIATION_THRESHOLD",
    "DEFAULT_MAX_SLIPPAGE",
    "DEFAULT_COOLDOWN_PERIOD",
    "to_wad",
    "from_wad",
]


# Fixed point ----------------------------------------------------------------

WAD: Final[int] = 10**18
"""100% expressed in fixed point."""

SECONDS_PER_DAY: Final[int] = 86_400
SECONDS_PER_YEAR: Final[int] = 365 * SECONDS_PER_DAY
"""Accrual year used by the management fee."""

UNLIMITED: Final[int] = 2**256 - 1
"""Sentinel for unlimited allowances and caps."""


# Fee ceilings ---------------------------------------------------------------

MAX_MANAGEMENT_FEE: Final[int] = WAD * 20 // 100
MAX_PERFORMANCE_FEE: Final[int] = WAD * 50 // 100
MAX_DEPOSIT_FEE: Final[int] = WAD * 5 // 100
MAX_WITHDRAW_FEE: Final[int] = WAD * 5 // 100

MAX_VAULTS: Final[int] = 20
"""Upper bound on registered sub-vaults."""

DEFAULT_ASSET_DECIMALS: Final[int] = 6


# Rebalance defaults ---------------------------------------------------------

DEFAULT_DEVIATION_THRESHOLD: Final[int] = WAD * 5 // 100
DEFAULT_MAX_SLIPPAGE: Final[int] = WAD // 100
DEFAULT_COOLDOWN_PERIOD: Final[int] = SECONDS_PER_DAY


def to_wad(fraction: float | str | Decimal) -> int:
    """Convert a decimal fraction (``0.02`` = 2%) into fixed point.

    The conversion goes through :class:`~decimal.Decimal` so ``0.1`` maps to
    exactly ``10**17`` instead of inheriting binary float noise.
    """

    value = Decimal(str(fraction)) * WAD
    return int(value.to_integral_value())


def from_wad(value: int) -> float:
    """Convert a fixed point value back to a float fraction for display."""

    return float(Decimal(value) / WAD)
