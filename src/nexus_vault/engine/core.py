"""Deposit, mint, withdraw and redeem.

Each handler validates in a fixed order (lifecycle, then input, then
economics) and computes its quote from one :class:`~nexus_vault.accounting.Books`
snapshot before anything is mutated. Shares are burnt before any asset leaves
the vault. Atomicity and the reentrancy flag are provided by the caller
(:class:`~nexus_vault.vault.NexusVault`).
"""

from __future__ import annotations

import logging

from nexus_vault import accounting
from nexus_vault.access.guard import (
    enforce_initialized,
    enforce_operational,
    enforce_withdrawable,
)
from nexus_vault.accounting import Allocation, Books, DepositQuote, WithdrawQuote
from nexus_vault.config.constants import UNLIMITED
from nexus_vault.engine.context import VaultContext
from nexus_vault.engine.views import assets_in_vault, build_books
from nexus_vault.errors import (
    DepositCapExceeded,
    InsufficientAllowance,
    InsufficientBalance,
    InsufficientShares,
    WithdrawLimitExceeded,
    ZeroAddress,
    ZeroAmount,
)
from nexus_vault.ledger import events

__all__ = ["deposit", "mint", "withdraw", "redeem", "deploy_assets", "pull_assets"]

logger = logging.getLogger(__name__)


# Entry points -----------------------------------------------------------------


def deposit(ctx: VaultContext, caller: str, assets: int, receiver: str | None) -> int:
    """Pull ``assets`` from ``caller`` and mint shares to ``receiver``.

    Returns the number of shares minted.
    """

    enforce_initialized(ctx.state)
    enforce_operational(ctx.state)
    if assets <= 0:
        raise ZeroAmount("assets")
    if receiver is None:
        raise ZeroAddress("receiver")

    books = build_books(ctx)
    limit = accounting.max_deposit(books, ctx.shares.balance_of(receiver))
    if assets > limit:
        raise DepositCapExceeded(assets, limit)
    quote = accounting.quote_deposit(books, assets)
    if quote.shares == 0:
        raise ZeroAmount("shares")

    _settle_deposit(ctx, books, caller, receiver, quote)
    return quote.shares


def mint(ctx: VaultContext, caller: str, shares: int, receiver: str | None) -> int:
    """Mint exactly ``shares`` to ``receiver``; returns the gross assets pulled."""

    enforce_initialized(ctx.state)
    enforce_operational(ctx.state)
    if shares <= 0:
        raise ZeroAmount("shares")
    if receiver is None:
        raise ZeroAddress("receiver")

    books = build_books(ctx)
    quote = accounting.quote_mint(books, shares)
    limit = accounting.max_deposit(books, ctx.shares.balance_of(receiver))
    if quote.assets > limit:
        raise DepositCapExceeded(quote.assets, limit)

    _settle_deposit(ctx, books, caller, receiver, quote)
    return quote.assets


def withdraw(
    ctx: VaultContext, caller: str, assets: int, receiver: str | None, owner: str | None
) -> int:
    """Send exactly ``assets`` (net of fee) to ``receiver``; returns shares burnt."""

    enforce_initialized(ctx.state)
    enforce_withdrawable(ctx.state)
    if assets <= 0:
        raise ZeroAmount("assets")
    if receiver is None:
        raise ZeroAddress("receiver")
    if owner is None:
        raise ZeroAddress("owner")

    books = build_books(ctx)
    limit = accounting.max_withdraw(books, ctx.shares.balance_of(owner))
    if assets > limit:
        raise WithdrawLimitExceeded(assets, limit)
    quote = accounting.quote_withdraw(books, assets)

    _settle_withdraw(ctx, books, caller, receiver, owner, quote)
    return quote.shares


def redeem(
    ctx: VaultContext, caller: str, shares: int, receiver: str | None, owner: str | None
) -> int:
    """Burn ``shares`` of ``owner``; returns the net assets sent to ``receiver``."""

    enforce_initialized(ctx.state)
    enforce_withdrawable(ctx.state)
    if shares <= 0:
        raise ZeroAmount("shares")
    if receiver is None:
        raise ZeroAddress("receiver")
    if owner is None:
        raise ZeroAddress("owner")

    books = build_books(ctx)
    quote = accounting.quote_redeem(books, shares)
    if quote.assets == 0:
        raise ZeroAmount("assets")

    _settle_withdraw(ctx, books, caller, receiver, owner, quote)
    return quote.assets


# Settlement -------------------------------------------------------------------


def _settle_deposit(
    ctx: VaultContext, books: Books, caller: str, receiver: str, quote: DepositQuote
) -> None:
    state = ctx.state
    balance = ctx.asset.balance_of(caller)
    if balance < quote.assets:
        raise InsufficientBalance(caller, balance, quote.assets)
    allowance = ctx.asset.allowance(caller, ctx.address)
    if allowance < quote.assets:
        raise InsufficientAllowance(caller, ctx.address, allowance, quote.assets)

    ctx.asset.transfer_from(ctx.address, caller, ctx.address, quote.assets)
    if quote.fee > 0:
        ctx.asset.transfer(ctx.address, state.fees.fee_recipient, quote.fee)

    placed = deploy_assets(ctx, accounting.calculate_deposit_allocation(books, quote.net))

    if state.total_supply == 0:
        # A fresh pool owes no management fee for the time it sat empty.
        state.last_fee_timestamp = ctx.now()
    ctx.shares.mint(receiver, quote.shares)
    state.total_deposited += quote.net
    state.high_water_mark += quote.net

    ctx.emit(
        events.DEPOSIT,
        sender=caller,
        owner=receiver,
        assets=quote.assets,
        shares=quote.shares,
        fee=quote.fee,
        allocation=placed,
    )
    logger.info(
        "Deposit of %d assets by %s minted %d shares to %s",
        quote.assets,
        caller,
        quote.shares,
        receiver,
        extra={"assets": quote.assets, "shares": quote.shares, "fee": quote.fee},
    )


def _settle_withdraw(
    ctx: VaultContext,
    books: Books,
    caller: str,
    receiver: str,
    owner: str,
    quote: WithdrawQuote,
) -> None:
    state = ctx.state
    shares = ctx.shares
    balance = shares.balance_of(owner)
    if balance < quote.shares:
        raise InsufficientShares(owner, balance, quote.shares)
    plan = accounting.calculate_withdraw_allocation(books, quote.gross)

    # Effects first: the shares are gone before any asset moves.
    if caller != owner:
        shares.spend_allowance(owner, caller, quote.shares)
    shares.burn(owner, quote.shares)
    state.total_withdrawn += quote.gross

    pulled = pull_assets(ctx, Allocation(vaults=plan.vaults, amounts=plan.amounts))
    if quote.fee > 0:
        ctx.asset.transfer(ctx.address, state.fees.fee_recipient, quote.fee)
    ctx.asset.transfer(ctx.address, receiver, quote.assets)

    ctx.emit(
        events.WITHDRAW,
        sender=caller,
        receiver=receiver,
        owner=owner,
        assets=quote.assets,
        shares=quote.shares,
        fee=quote.fee,
        from_idle=plan.from_idle,
        allocation=pulled,
    )
    logger.info(
        "Withdrawal of %d assets to %s burnt %d shares of %s",
        quote.assets,
        receiver,
        quote.shares,
        owner,
        extra={"assets": quote.assets, "shares": quote.shares, "fee": quote.fee},
    )


# Value movement ---------------------------------------------------------------


def deploy_assets(ctx: VaultContext, allocation: Allocation) -> dict[str, int]:
    """Push idle assets into sub-vaults; returns what each vault accepted.

    Every part is clamped to the vault's remaining deposit cap and to what the
    sub-vault itself accepts. Anything that does not fit stays idle.
    """

    placed: dict[str, int] = {}
    for vault, amount in zip(allocation.vaults, allocation.amounts):
        cfg = ctx.state.sub_vaults[vault]
        adapter = ctx.sub_vaults[vault]
        room = adapter.max_deposit(ctx.address)
        if cfg.deposit_cap != UNLIMITED:
            room = min(room, max(0, cfg.deposit_cap - assets_in_vault(ctx, vault)))
        amount = min(amount, room)
        if amount <= 0:
            continue
        ctx.asset.approve(ctx.address, vault, amount)
        adapter.deposit(ctx.address, amount, ctx.address)
        placed[vault] = amount
    return placed


def pull_assets(ctx: VaultContext, allocation: Allocation) -> dict[str, int]:
    """Withdraw the allocated amounts from sub-vaults back to the idle balance."""

    pulled: dict[str, int] = {}
    for vault, amount in zip(allocation.vaults, allocation.amounts):
        if amount <= 0:
            continue
        ctx.sub_vaults[vault].withdraw(ctx.address, amount, ctx.address, ctx.address)
        pulled[vault] = amount
    return pulled
