"""Rebalancing and fee collection.

A rebalance runs in two passes, withdrawals first and deposits second, then
compares total assets before and after. A drop beyond ``max_slippage`` raises
:class:`~nexus_vault.errors.SlippageExceeded`, which makes the surrounding
atomic wrapper discard every move of the pass.
"""

from __future__ import annotations

import logging

from nexus_vault import accounting
from nexus_vault.access.guard import (
    enforce_initialized,
    enforce_is_admin,
    enforce_is_keeper,
    enforce_is_owner,
    enforce_operational,
)
from nexus_vault.accounting import Allocation, FeeAccrual
from nexus_vault.config.constants import WAD
from nexus_vault.engine.context import VaultContext
from nexus_vault.engine.core import deploy_assets, pull_assets
from nexus_vault.engine.views import build_books, idle_assets, total_assets
from nexus_vault.errors import CooldownActive, SlippageExceeded
from nexus_vault.ledger import events

__all__ = [
    "rebalance",
    "force_rebalance",
    "collect_management_fee",
    "collect_performance_fee",
    "collect_all_fees",
    "reset_high_water_mark",
]

logger = logging.getLogger(__name__)


def rebalance(ctx: VaultContext, caller: str) -> dict[str, dict[str, int]]:
    """Move assets towards target weights once the cooldown has elapsed."""

    enforce_is_keeper(ctx.state, caller)
    enforce_initialized(ctx.state)
    enforce_operational(ctx.state)
    cfg = ctx.state.rebalance
    ready_at = cfg.last_rebalance_time + cfg.cooldown_period
    if cfg.last_rebalance_time and ctx.now() < ready_at:
        raise CooldownActive(ready_at)
    return _execute(ctx, caller, forced=False)


def force_rebalance(ctx: VaultContext, caller: str) -> dict[str, dict[str, int]]:
    """Same as :func:`rebalance` without the cooldown; admin only."""

    enforce_is_admin(ctx.state, caller)
    enforce_initialized(ctx.state)
    enforce_operational(ctx.state)
    return _execute(ctx, caller, forced=True)


def _execute(ctx: VaultContext, caller: str, *, forced: bool) -> dict[str, dict[str, int]]:
    state = ctx.state
    books = build_books(ctx)
    before = books.total_assets
    plan = accounting.calculate_rebalance_plan(books)

    pull_assets(ctx, plan.withdrawals)

    available = idle_assets(ctx)
    vaults: list[str] = []
    amounts: list[int] = []
    for vault, wanted in zip(plan.deposits.vaults, plan.deposits.amounts):
        amount = min(wanted, available)
        if amount <= 0:
            break
        vaults.append(vault)
        amounts.append(amount)
        available -= amount
    deploy_assets(ctx, Allocation(vaults=tuple(vaults), amounts=tuple(amounts)))

    after = total_assets(ctx)
    max_slippage = state.rebalance.max_slippage
    if after * WAD < before * (WAD - max_slippage):
        raise SlippageExceeded(before, after, max_slippage)

    state.rebalance.last_rebalance_time = ctx.now()
    new_holdings = dict(build_books(ctx).holdings)
    result = {"old": dict(books.holdings), "new": new_holdings}
    ctx.emit(
        events.REBALANCED,
        caller=caller,
        forced=forced,
        old_allocation=result["old"],
        new_allocation=new_holdings,
        total_assets_before=before,
        total_assets_after=after,
    )
    logger.info(
        "Rebalanced %d vaults (forced=%s): total assets %d -> %d",
        len(plan.targets),
        forced,
        before,
        after,
        extra={"forced": forced, "before": before, "after": after},
    )
    return result


# Fees -------------------------------------------------------------------------


def _mint_fee(ctx: VaultContext, kind: str, accrual: FeeAccrual) -> None:
    recipient = ctx.state.fees.fee_recipient
    ctx.shares.mint(recipient, accrual.shares)
    ctx.emit(
        events.FEES_COLLECTED,
        kind=kind,
        recipient=recipient,
        assets=accrual.assets,
        shares=accrual.shares,
    )
    logger.info(
        "Collected %s fee: %d shares (%d assets) to %s",
        kind,
        accrual.shares,
        accrual.assets,
        recipient,
        extra={"kind": kind, "shares": accrual.shares, "assets": accrual.assets},
    )


def _collect_management(ctx: VaultContext) -> int:
    accrual = accounting.calculate_management_fee(build_books(ctx))
    if accrual.is_zero:
        return 0
    _mint_fee(ctx, "management", accrual)
    ctx.state.last_fee_timestamp = ctx.now()
    return accrual.shares


def _collect_performance(ctx: VaultContext) -> int:
    accrual = accounting.calculate_performance_fee(build_books(ctx))
    if accrual.is_zero:
        return 0
    _mint_fee(ctx, "performance", accrual)
    ctx.state.high_water_mark = accrual.high_water_mark
    return accrual.shares


def collect_management_fee(ctx: VaultContext, caller: str) -> int:
    """Mint the accrued management fee; returns the shares minted (0 is a no-op)."""

    enforce_is_keeper(ctx.state, caller)
    enforce_initialized(ctx.state)
    return _collect_management(ctx)


def collect_performance_fee(ctx: VaultContext, caller: str) -> int:
    enforce_is_keeper(ctx.state, caller)
    enforce_initialized(ctx.state)
    return _collect_performance(ctx)


def collect_all_fees(ctx: VaultContext, caller: str) -> int:
    enforce_is_keeper(ctx.state, caller)
    enforce_initialized(ctx.state)
    return _collect_management(ctx) + _collect_performance(ctx)


def reset_high_water_mark(ctx: VaultContext, caller: str) -> int:
    """Set the high-water mark to current total assets, forfeiting pending profit."""

    enforce_is_owner(ctx.state, caller)
    enforce_initialized(ctx.state)
    previous = ctx.state.high_water_mark
    current = total_assets(ctx)
    ctx.state.high_water_mark = current
    ctx.emit(events.CONFIG_CHANGED, key="high_water_mark", old=previous, new=current)
    logger.warning(
        "High-water mark reset from %d to %d by %s",
        previous,
        current,
        caller,
        extra={"old": previous, "new": current},
    )
    return current
