"""Read surface: totals, conversions, limits and allocation status.

Nothing in here mutates the ledger or a collaborator. :func:`build_books`
captures the figures the pure accounting functions need at one instant.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, replace
from typing import Any

import pandas as pd

from nexus_vault import accounting
from nexus_vault.accounting import Books, Rounding
from nexus_vault.config.constants import WAD
from nexus_vault.engine.context import VaultContext
from nexus_vault.errors import VaultNotFound
from nexus_vault.ledger.state import FeeConfig, RebalanceConfig, SubVaultConfig

__all__ = [
    "AllocationStatus",
    "PendingFees",
    "build_books",
    "idle_assets",
    "assets_in_vault",
    "total_assets",
    "convert_to_shares",
    "convert_to_assets",
    "preview_deposit",
    "preview_mint",
    "preview_withdraw",
    "preview_redeem",
    "max_deposit",
    "max_mint",
    "max_withdraw",
    "max_redeem",
    "get_allocation_status",
    "allocation_frame",
    "needs_rebalance",
    "pending_fees",
    "get_fee_config",
    "get_rebalance_config",
    "get_vault_config",
]


@dataclass(frozen=True)
class AllocationStatus:
    """Target versus current position of one registered sub-vault."""

    vault: str
    active: bool
    target_weight: int
    current_weight: int
    current_assets: int
    target_assets: int
    deviation: int

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class PendingFees:
    management_shares: int
    performance_shares: int
    management_assets: int = 0
    performance_assets: int = 0

    @property
    def total_shares(self) -> int:
        return self.management_shares + self.performance_shares


def idle_assets(ctx: VaultContext) -> int:
    return ctx.asset.balance_of(ctx.address)


def assets_in_vault(ctx: VaultContext, vault: str) -> int:
    """Assets the vault could withdraw from ``vault`` right now."""

    adapter = ctx.sub_vaults.get(vault)
    if adapter is None or vault not in ctx.state.sub_vaults:
        raise VaultNotFound(vault)
    return adapter.max_withdraw(ctx.address)


def build_books(ctx: VaultContext) -> Books:
    state = ctx.state
    active = state.active_vaults()
    fees = state.fees
    return Books(
        total_supply=state.total_supply,
        idle_assets=idle_assets(ctx),
        holdings={cfg.vault: assets_in_vault(ctx, cfg.vault) for cfg in active},
        targets={cfg.vault: cfg.target_weight for cfg in active},
        management_fee_rate=fees.management_fee_rate,
        performance_fee_rate=fees.performance_fee_rate,
        deposit_fee_rate=fees.deposit_fee_rate,
        withdraw_fee_rate=fees.withdraw_fee_rate,
        high_water_mark=state.high_water_mark,
        last_fee_timestamp=state.last_fee_timestamp,
        now=ctx.now(),
        paused=state.paused,
        shutdown=state.shutdown,
        max_total_deposits=state.max_total_deposits,
        max_deposit_per_user=state.max_deposit_per_user,
    )


def total_assets(ctx: VaultContext) -> int:
    return build_books(ctx).total_assets


# Conversions and previews -----------------------------------------------------


def convert_to_shares(ctx: VaultContext, assets: int) -> int:
    return accounting.convert_to_shares(build_books(ctx), assets, Rounding.FLOOR)


def convert_to_assets(ctx: VaultContext, shares: int) -> int:
    return accounting.convert_to_assets(build_books(ctx), shares, Rounding.FLOOR)


def preview_deposit(ctx: VaultContext, assets: int) -> int:
    return accounting.preview_deposit(build_books(ctx), assets)


def preview_mint(ctx: VaultContext, shares: int) -> int:
    return accounting.preview_mint(build_books(ctx), shares)


def preview_withdraw(ctx: VaultContext, assets: int) -> int:
    return accounting.preview_withdraw(build_books(ctx), assets)


def preview_redeem(ctx: VaultContext, shares: int) -> int:
    return accounting.preview_redeem(build_books(ctx), shares)


def max_deposit(ctx: VaultContext, receiver: str | None) -> int:
    return accounting.max_deposit(build_books(ctx), ctx.shares.balance_of(receiver))


def max_mint(ctx: VaultContext, receiver: str | None) -> int:
    return accounting.max_mint(build_books(ctx), ctx.shares.balance_of(receiver))


def max_withdraw(ctx: VaultContext, owner: str | None) -> int:
    return accounting.max_withdraw(build_books(ctx), ctx.shares.balance_of(owner))


def max_redeem(ctx: VaultContext, owner: str | None) -> int:
    return accounting.max_redeem(build_books(ctx), ctx.shares.balance_of(owner))


# Allocation -------------------------------------------------------------------


def get_allocation_status(ctx: VaultContext) -> list[AllocationStatus]:
    """Per registered sub-vault: target and current weight, in registration order.

    Target weights are normalised over the active set so they always describe
    a full allocation of total assets. Inactive vaults report a zero target.
    """

    books = build_books(ctx)
    total = books.total_assets
    total_weight = books.total_target_weight
    records: list[AllocationStatus] = []
    for cfg in ctx.state.sub_vaults.values():
        if cfg.active:
            current = books.holdings.get(cfg.vault, 0)
        else:
            current = assets_in_vault(ctx, cfg.vault)
        if cfg.active and total_weight > 0:
            target_weight = cfg.target_weight * WAD // total_weight
        else:
            target_weight = 0
        current_weight = current * WAD // total if total > 0 else 0
        records.append(
            AllocationStatus(
                vault=cfg.vault,
                active=cfg.active,
                target_weight=target_weight,
                current_weight=current_weight,
                current_assets=current,
                target_assets=total * target_weight // WAD,
                deviation=current_weight - target_weight,
            )
        )
    return records


def allocation_frame(ctx: VaultContext) -> pd.DataFrame:
    """Allocation status as a DataFrame indexed by sub-vault address."""

    records = [status.to_dict() for status in get_allocation_status(ctx)]
    columns = list(AllocationStatus.__dataclass_fields__)
    frame = pd.DataFrame.from_records(records, columns=columns)
    return frame.set_index("vault")


def needs_rebalance(ctx: VaultContext) -> bool:
    threshold = ctx.state.rebalance.deviation_threshold
    for status in get_allocation_status(ctx):
        if status.active and abs(status.deviation) > threshold:
            return True
    return False


# Fees and configuration -------------------------------------------------------


def pending_fees(ctx: VaultContext) -> PendingFees:
    """Shares that collecting every fee right now would mint.

    Management is minted first, so the performance fee is priced against the
    supply that collection leaves behind.
    """

    books = build_books(ctx)
    management = accounting.calculate_management_fee(books)
    after_management = replace(books, total_supply=books.total_supply + management.shares)
    performance = accounting.calculate_performance_fee(after_management)
    return PendingFees(
        management_shares=management.shares,
        performance_shares=performance.shares,
        management_assets=management.assets,
        performance_assets=performance.assets,
    )


def get_fee_config(ctx: VaultContext) -> FeeConfig:
    fees = ctx.state.fees
    return FeeConfig(*fees.as_tuple())


def get_rebalance_config(ctx: VaultContext) -> RebalanceConfig:
    cfg = ctx.state.rebalance
    return RebalanceConfig(
        deviation_threshold=cfg.deviation_threshold,
        max_slippage=cfg.max_slippage,
        cooldown_period=cfg.cooldown_period,
        last_rebalance_time=cfg.last_rebalance_time,
    )


def get_vault_config(ctx: VaultContext, vault: str) -> SubVaultConfig:
    cfg = ctx.state.sub_vaults.get(vault)
    if cfg is None:
        raise VaultNotFound(vault)
    return SubVaultConfig(
        vault=cfg.vault,
        target_weight=cfg.target_weight,
        max_weight=cfg.max_weight,
        min_weight=cfg.min_weight,
        active=cfg.active,
        deposit_cap=cfg.deposit_cap,
    )
