"""Administrative surface: initialization, registry, parameters, roles, lifecycle."""

from __future__ import annotations

import logging
from typing import Any

from nexus_vault.access.guard import (
    enforce_initialized,
    enforce_is_admin,
    enforce_is_owner,
    enforce_not_shutdown,
)
from nexus_vault.accounting import Allocation
from nexus_vault.config.constants import (
    MAX_DEPOSIT_FEE,
    MAX_MANAGEMENT_FEE,
    MAX_PERFORMANCE_FEE,
    MAX_VAULTS,
    MAX_WITHDRAW_FEE,
    UNLIMITED,
    WAD,
)
from nexus_vault.engine.context import VaultContext
from nexus_vault.engine.core import pull_assets
from nexus_vault.engine.views import assets_in_vault
from nexus_vault.errors import (
    AlreadyInitialized,
    AssetMismatch,
    CannotRecoverAsset,
    FeeExceedsMaximum,
    InsufficientBalance,
    InvalidConfig,
    InvalidWeights,
    TooManyVaults,
    VaultAlreadyActive,
    VaultAlreadyExists,
    VaultHasBalance,
    VaultNotActive,
    VaultNotFound,
    VaultNotPaused,
    VaultPaused,
    ZeroAddress,
    ZeroAmount,
)
from nexus_vault.interfaces import AssetToken, SubVault
from nexus_vault.ledger import events
from nexus_vault.ledger.state import SubVaultConfig

__all__ = [
    "initialize",
    "add_vault",
    "remove_vault",
    "activate_vault",
    "deactivate_vault",
    "update_vault_weights",
    "set_vault_deposit_cap",
    "set_fee_config",
    "set_rebalance_config",
    "set_deposit_caps",
    "transfer_ownership",
    "set_admin",
    "add_keeper",
    "remove_keeper",
    "pause",
    "unpause",
    "shutdown",
    "recover_token",
]

logger = logging.getLogger(__name__)

_FEE_MAXIMA = {
    "management_fee": MAX_MANAGEMENT_FEE,
    "performance_fee": MAX_PERFORMANCE_FEE,
    "deposit_fee": MAX_DEPOSIT_FEE,
    "withdraw_fee": MAX_WITHDRAW_FEE,
}


def _changed(ctx: VaultContext, caller: str, key: str, **values: Any) -> None:
    ctx.emit(events.CONFIG_CHANGED, key=key, caller=caller, **values)
    logger.info("%s changed by %s", key, caller, extra={"config_key": key, "values": values})


def _config_of(ctx: VaultContext, vault: str | None) -> SubVaultConfig:
    cfg = ctx.state.sub_vaults.get(vault) if vault is not None else None
    if cfg is None:
        raise VaultNotFound(vault)
    return cfg


def _validate_weights(target: int, maximum: int, minimum: int) -> None:
    if not 0 <= minimum <= target <= maximum <= WAD:
        raise InvalidWeights(
            f"weights must satisfy 0 <= min ({minimum}) <= target ({target}) "
            f"<= max ({maximum}) <= {WAD}"
        )


def _check_active_weight(ctx: VaultContext, vault: str, target: int) -> None:
    others = sum(
        cfg.target_weight for cfg in ctx.state.active_vaults() if cfg.vault != vault
    )
    if others + target > WAD:
        raise InvalidWeights(f"active target weights would sum to {others + target} > {WAD}")


def _recount(ctx: VaultContext) -> None:
    ctx.state.active_vault_count = ctx.state.count_active()


# Initialization ---------------------------------------------------------------


def initialize(
    ctx: VaultContext,
    caller: str,
    name: str,
    symbol: str,
    admin: str | None,
    fee_recipient: str | None,
) -> None:
    """One-time setup of the share token metadata, admin and fee recipient."""

    enforce_is_owner(ctx.state, caller)
    if ctx.state.initialized:
        raise AlreadyInitialized("vault is already initialized")
    if admin is None:
        raise ZeroAddress("admin")
    if fee_recipient is None:
        raise ZeroAddress("fee_recipient")

    state = ctx.state
    state.name = name
    state.symbol = symbol
    state.admin = admin
    state.fees.fee_recipient = fee_recipient
    state.last_fee_timestamp = ctx.now()
    state.initialized = True
    _changed(ctx, caller, "initialized", share_name=name, share_symbol=symbol, admin=admin)


# Sub-vault registry -----------------------------------------------------------


def add_vault(
    ctx: VaultContext,
    caller: str,
    vault: SubVault | None,
    target_weight: int,
    max_weight: int,
    min_weight: int = 0,
    deposit_cap: int = UNLIMITED,
    active: bool = True,
) -> SubVaultConfig:
    """Register ``vault``; an inactive registration does not count towards weights."""

    enforce_is_admin(ctx.state, caller)
    enforce_initialized(ctx.state)
    if vault is None:
        raise ZeroAddress("vault")
    address = vault.address
    if address in ctx.state.sub_vaults:
        raise VaultAlreadyExists(address)
    if len(ctx.state.sub_vaults) >= MAX_VAULTS:
        raise TooManyVaults(f"at most {MAX_VAULTS} sub-vaults can be registered")
    if vault.asset() != ctx.asset.address:
        raise AssetMismatch(ctx.asset.address, vault.asset())
    _validate_weights(target_weight, max_weight, min_weight)
    if active:
        _check_active_weight(ctx, address, target_weight)
    if deposit_cap < 0:
        raise InvalidConfig("deposit cap must be non-negative")

    cfg = SubVaultConfig(
        vault=address,
        target_weight=target_weight,
        max_weight=max_weight,
        min_weight=min_weight,
        active=active,
        deposit_cap=deposit_cap,
    )
    ctx.state.sub_vaults[address] = cfg
    ctx.sub_vaults[address] = vault
    _recount(ctx)
    _changed(
        ctx,
        caller,
        "vault_added",
        vault=address,
        target_weight=target_weight,
        max_weight=max_weight,
        min_weight=min_weight,
        active=active,
    )
    return cfg


def remove_vault(ctx: VaultContext, caller: str, vault: str) -> None:
    """Unregister ``vault``; only allowed once nothing is held there."""

    enforce_is_admin(ctx.state, caller)
    enforce_initialized(ctx.state)
    _config_of(ctx, vault)
    balance = assets_in_vault(ctx, vault)
    if balance > 0:
        raise VaultHasBalance(vault, balance)

    del ctx.state.sub_vaults[vault]
    ctx.sub_vaults.pop(vault, None)
    _recount(ctx)
    _changed(ctx, caller, "vault_removed", vault=vault)


def activate_vault(ctx: VaultContext, caller: str, vault: str) -> None:
    enforce_is_admin(ctx.state, caller)
    enforce_initialized(ctx.state)
    cfg = _config_of(ctx, vault)
    if cfg.active:
        raise VaultAlreadyActive(vault)
    _check_active_weight(ctx, vault, cfg.target_weight)

    cfg.active = True
    _recount(ctx)
    _changed(ctx, caller, "vault_activated", vault=vault)


def deactivate_vault(ctx: VaultContext, caller: str, vault: str) -> int:
    """Stop allocating to ``vault`` and pull what it holds back to idle.

    Returns the amount pulled.
    """

    enforce_is_admin(ctx.state, caller)
    enforce_initialized(ctx.state)
    cfg = _config_of(ctx, vault)
    if not cfg.active:
        raise VaultNotActive(vault)

    held = assets_in_vault(ctx, vault)
    pull_assets(ctx, Allocation(vaults=(vault,), amounts=(held,)))
    cfg.active = False
    _recount(ctx)
    _changed(ctx, caller, "vault_deactivated", vault=vault, pulled=held)
    return held


def update_vault_weights(
    ctx: VaultContext,
    caller: str,
    vault: str,
    target_weight: int,
    max_weight: int,
    min_weight: int,
) -> None:
    enforce_is_admin(ctx.state, caller)
    enforce_initialized(ctx.state)
    cfg = _config_of(ctx, vault)
    _validate_weights(target_weight, max_weight, min_weight)
    if cfg.active:
        _check_active_weight(ctx, vault, target_weight)

    cfg.target_weight = target_weight
    cfg.max_weight = max_weight
    cfg.min_weight = min_weight
    _changed(
        ctx,
        caller,
        "vault_weights",
        vault=vault,
        target_weight=target_weight,
        max_weight=max_weight,
        min_weight=min_weight,
    )


def set_vault_deposit_cap(ctx: VaultContext, caller: str, vault: str, cap: int) -> None:
    enforce_is_admin(ctx.state, caller)
    enforce_initialized(ctx.state)
    cfg = _config_of(ctx, vault)
    if cap < 0:
        raise InvalidConfig("deposit cap must be non-negative")
    cfg.deposit_cap = cap
    _changed(ctx, caller, "vault_deposit_cap", vault=vault, cap=cap)


# Parameters -------------------------------------------------------------------


def set_fee_config(
    ctx: VaultContext,
    caller: str,
    management_fee_rate: int,
    performance_fee_rate: int,
    deposit_fee_rate: int,
    withdraw_fee_rate: int,
    fee_recipient: str | None,
) -> None:
    enforce_is_admin(ctx.state, caller)
    enforce_initialized(ctx.state)
    rates = {
        "management_fee": management_fee_rate,
        "performance_fee": performance_fee_rate,
        "deposit_fee": deposit_fee_rate,
        "withdraw_fee": withdraw_fee_rate,
    }
    for fee, rate in rates.items():
        if rate < 0:
            raise InvalidConfig(f"{fee} rate must be non-negative")
        if rate > _FEE_MAXIMA[fee]:
            raise FeeExceedsMaximum(fee, rate, _FEE_MAXIMA[fee])
    if fee_recipient is None and any(rates.values()):
        raise ZeroAddress("fee_recipient")

    fees = ctx.state.fees
    fees.management_fee_rate = management_fee_rate
    fees.performance_fee_rate = performance_fee_rate
    fees.deposit_fee_rate = deposit_fee_rate
    fees.withdraw_fee_rate = withdraw_fee_rate
    fees.fee_recipient = fee_recipient
    _changed(ctx, caller, "fee_config", recipient=fee_recipient, **rates)


def set_rebalance_config(
    ctx: VaultContext,
    caller: str,
    deviation_threshold: int,
    max_slippage: int,
    cooldown_period: int,
) -> None:
    enforce_is_admin(ctx.state, caller)
    enforce_initialized(ctx.state)
    if not 0 <= deviation_threshold <= WAD:
        raise InvalidConfig("deviation threshold must lie within [0, WAD]")
    if not 0 <= max_slippage <= WAD:
        raise InvalidConfig("max slippage must lie within [0, WAD]")
    if cooldown_period < 0:
        raise InvalidConfig("cooldown period must be non-negative")

    cfg = ctx.state.rebalance
    cfg.deviation_threshold = deviation_threshold
    cfg.max_slippage = max_slippage
    cfg.cooldown_period = cooldown_period
    _changed(
        ctx,
        caller,
        "rebalance_config",
        deviation_threshold=deviation_threshold,
        max_slippage=max_slippage,
        cooldown_period=cooldown_period,
    )


def set_deposit_caps(
    ctx: VaultContext, caller: str, max_total_deposits: int, max_deposit_per_user: int
) -> None:
    enforce_is_admin(ctx.state, caller)
    enforce_initialized(ctx.state)
    if max_total_deposits < 0 or max_deposit_per_user < 0:
        raise InvalidConfig("deposit caps must be non-negative")
    ctx.state.max_total_deposits = max_total_deposits
    ctx.state.max_deposit_per_user = max_deposit_per_user
    _changed(
        ctx,
        caller,
        "deposit_caps",
        max_total_deposits=max_total_deposits,
        max_deposit_per_user=max_deposit_per_user,
    )


# Roles ------------------------------------------------------------------------


def transfer_ownership(ctx: VaultContext, caller: str, new_owner: str | None) -> None:
    enforce_is_owner(ctx.state, caller)
    if new_owner is None:
        raise ZeroAddress("owner")
    previous = ctx.state.owner
    ctx.state.owner = new_owner
    _changed(ctx, caller, "owner", old=previous, new=new_owner)


def set_admin(ctx: VaultContext, caller: str, new_admin: str | None) -> None:
    enforce_is_owner(ctx.state, caller)
    if new_admin is None:
        raise ZeroAddress("admin")
    previous = ctx.state.admin
    ctx.state.admin = new_admin
    _changed(ctx, caller, "admin", old=previous, new=new_admin)


def add_keeper(ctx: VaultContext, caller: str, keeper: str | None) -> None:
    enforce_is_admin(ctx.state, caller)
    if keeper is None:
        raise ZeroAddress("keeper")
    ctx.state.keepers.add(keeper)
    _changed(ctx, caller, "keeper_added", keeper=keeper)


def remove_keeper(ctx: VaultContext, caller: str, keeper: str | None) -> None:
    enforce_is_admin(ctx.state, caller)
    if keeper is None:
        raise ZeroAddress("keeper")
    ctx.state.keepers.discard(keeper)
    _changed(ctx, caller, "keeper_removed", keeper=keeper)


# Lifecycle --------------------------------------------------------------------


def pause(ctx: VaultContext, caller: str) -> None:
    enforce_is_admin(ctx.state, caller)
    enforce_not_shutdown(ctx.state)
    if ctx.state.paused:
        raise VaultPaused("vault is already paused")
    ctx.state.paused = True
    ctx.emit(events.PAUSED, caller=caller)
    logger.warning("Vault paused by %s", caller)


def unpause(ctx: VaultContext, caller: str) -> None:
    enforce_is_admin(ctx.state, caller)
    enforce_not_shutdown(ctx.state)
    if not ctx.state.paused:
        raise VaultNotPaused("vault is not paused")
    ctx.state.paused = False
    ctx.emit(events.UNPAUSED, caller=caller)
    logger.info("Vault unpaused by %s", caller)


def shutdown(ctx: VaultContext, caller: str) -> None:
    """Terminal transition: deposits stop for good, withdrawals stay open."""

    enforce_is_owner(ctx.state, caller)
    enforce_not_shutdown(ctx.state)
    ctx.state.shutdown = True
    ctx.state.paused = False
    ctx.emit(events.SHUTDOWN, caller=caller)
    logger.warning("Vault shut down by %s", caller)


def recover_token(
    ctx: VaultContext, caller: str, token: AssetToken, to: str | None, amount: int
) -> None:
    """Send stray ``token`` balance held by the vault to ``to``.

    The managed asset and registered sub-vault share tokens back user
    positions and are never recoverable.
    """

    enforce_is_owner(ctx.state, caller)
    if token.address == ctx.asset.address or token.address in ctx.state.sub_vaults:
        raise CannotRecoverAsset(token.address)
    if to is None:
        raise ZeroAddress("receiver")
    if amount <= 0:
        raise ZeroAmount("amount")
    balance = token.balance_of(ctx.address)
    if balance < amount:
        raise InsufficientBalance(ctx.address, balance, amount)
    token.transfer(ctx.address, to, amount)
    _changed(ctx, caller, "token_recovered", token=token.address, to=to, amount=amount)
