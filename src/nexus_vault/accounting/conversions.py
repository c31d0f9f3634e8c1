"""Asset/share conversions, fee-aware previews and operation limits.

Every rounding decision favours the pool: fees coming in round up, assets
going out round down, and the shares or assets a user must provide round up.
"""

from __future__ import annotations

from dataclasses import dataclass

from nexus_vault.config.constants import UNLIMITED, WAD
from nexus_vault.accounting.books import Books
from nexus_vault.accounting.math import Rounding, mul_div

__all__ = [
    "DepositQuote",
    "WithdrawQuote",
    "convert_to_shares",
    "convert_to_assets",
    "quote_deposit",
    "quote_mint",
    "quote_withdraw",
    "quote_redeem",
    "preview_deposit",
    "preview_mint",
    "preview_withdraw",
    "preview_redeem",
    "max_deposit",
    "max_mint",
    "max_withdraw",
    "max_redeem",
]


@dataclass(frozen=True)
class DepositQuote:
    """Gross assets pulled from the user, fee skimmed, net kept, shares minted."""

    assets: int
    fee: int
    net: int
    shares: int


@dataclass(frozen=True)
class WithdrawQuote:
    """Net assets paid out, fee skimmed, gross drained from the pool, shares burnt."""

    assets: int
    fee: int
    gross: int
    shares: int


def _bootstrapping(books: Books) -> bool:
    return books.total_supply == 0 or books.total_assets == 0


def convert_to_shares(books: Books, assets: int, rounding: Rounding = Rounding.FLOOR) -> int:
    if _bootstrapping(books):
        return assets
    return mul_div(assets, books.total_supply, books.total_assets, rounding)


def convert_to_assets(books: Books, shares: int, rounding: Rounding = Rounding.FLOOR) -> int:
    if _bootstrapping(books):
        return shares
    return mul_div(shares, books.total_assets, books.total_supply, rounding)


# Quotes -------------------------------------------------------------------------


def quote_deposit(books: Books, assets: int) -> DepositQuote:
    fee = mul_div(assets, books.deposit_fee_rate, WAD, Rounding.CEIL)
    net = assets - fee
    return DepositQuote(assets=assets, fee=fee, net=net, shares=convert_to_shares(books, net))


def quote_mint(books: Books, shares: int) -> DepositQuote:
    net = convert_to_assets(books, shares, Rounding.CEIL)
    gross = mul_div(net, WAD, WAD - books.deposit_fee_rate, Rounding.CEIL)
    return DepositQuote(assets=gross, fee=gross - net, net=net, shares=shares)


def quote_withdraw(books: Books, assets: int) -> WithdrawQuote:
    gross = mul_div(assets, WAD, WAD - books.withdraw_fee_rate, Rounding.CEIL)
    shares = convert_to_shares(books, gross, Rounding.CEIL)
    return WithdrawQuote(assets=assets, fee=gross - assets, gross=gross, shares=shares)


def quote_redeem(books: Books, shares: int) -> WithdrawQuote:
    gross = convert_to_assets(books, shares)
    fee = mul_div(gross, books.withdraw_fee_rate, WAD, Rounding.CEIL)
    return WithdrawQuote(assets=gross - fee, fee=fee, gross=gross, shares=shares)


def preview_deposit(books: Books, assets: int) -> int:
    """Shares minted for ``assets`` after the deposit fee."""
    return quote_deposit(books, assets).shares


def preview_mint(books: Books, shares: int) -> int:
    """Gross assets required to mint exactly ``shares``."""
    return quote_mint(books, shares).assets


def preview_withdraw(books: Books, assets: int) -> int:
    """Shares burnt to receive exactly ``assets`` net of the withdraw fee."""
    return quote_withdraw(books, assets).shares


def preview_redeem(books: Books, shares: int) -> int:
    """Net assets received for burning ``shares``."""
    return quote_redeem(books, shares).assets


# Limits -------------------------------------------------------------------------


def max_deposit(books: Books, receiver_shares: int = 0) -> int:
    """Largest gross deposit accepted for a receiver holding ``receiver_shares``."""

    if books.paused or books.shutdown:
        return 0
    limit = UNLIMITED
    if books.max_total_deposits != UNLIMITED:
        limit = max(0, books.max_total_deposits - books.total_assets)
    if books.max_deposit_per_user != UNLIMITED:
        position = convert_to_assets(books, receiver_shares)
        limit = min(limit, max(0, books.max_deposit_per_user - position))
    return limit


def max_mint(books: Books, receiver_shares: int = 0) -> int:
    limit = max_deposit(books, receiver_shares)
    if limit == UNLIMITED:
        return UNLIMITED
    return preview_deposit(books, limit)


def max_withdraw(books: Books, owner_shares: int) -> int:
    if books.paused:
        return 0
    return preview_redeem(books, owner_shares)


def max_redeem(books: Books, owner_shares: int) -> int:
    if books.paused:
        return 0
    return owner_shares
