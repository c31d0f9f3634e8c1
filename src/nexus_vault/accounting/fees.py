"""Management and performance fee accrual."""

from __future__ import annotations

from dataclasses import dataclass

from nexus_vault.config.constants import SECONDS_PER_YEAR, WAD
from nexus_vault.accounting.books import Books
from nexus_vault.accounting.conversions import convert_to_shares

__all__ = [
    "FeeAccrual",
    "calculate_management_fee",
    "calculate_performance_fee",
]


@dataclass(frozen=True)
class FeeAccrual:
    """Fee owed expressed in assets and in the shares that would be minted.

    ``high_water_mark`` is only meaningful for the performance fee and is the
    value the mark moves to once the fee is collected.
    """

    assets: int = 0
    shares: int = 0
    high_water_mark: int | None = None

    @property
    def is_zero(self) -> bool:
        return self.shares == 0


def calculate_management_fee(books: Books) -> FeeAccrual:
    """Time-based fee on total assets since ``last_fee_timestamp``."""

    elapsed = books.now - books.last_fee_timestamp
    total_assets = books.total_assets
    if elapsed <= 0 or total_assets == 0 or books.management_fee_rate == 0:
        return FeeAccrual()
    assets = total_assets * books.management_fee_rate * elapsed // (WAD * SECONDS_PER_YEAR)
    return FeeAccrual(assets=assets, shares=convert_to_shares(books, assets))


def calculate_performance_fee(books: Books) -> FeeAccrual:
    """Fee on total assets above the high-water mark.

    The proposed mark equals the current total assets; it is adopted only when
    the fee is actually collected.
    """

    total_assets = books.total_assets
    if books.performance_fee_rate == 0 or total_assets <= books.high_water_mark:
        return FeeAccrual(high_water_mark=books.high_water_mark)
    profit = total_assets - books.high_water_mark
    assets = profit * books.performance_fee_rate // WAD
    return FeeAccrual(
        assets=assets,
        shares=convert_to_shares(books, assets),
        high_water_mark=total_assets,
    )
