"""``NexusVault``: the public face of the engine.

Every mutating method takes the calling address first, acquires the
engine-wide reentrancy flag and runs its handler inside an atomic block. The
block checkpoints the ledger, every transactional collaborator, the sub-vault
registry and the event log; on any exception all of them are restored before
the exception propagates.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any, Callable, Iterator, Mapping, TypeVar

import pandas as pd

from nexus_vault.access.guard import Role, non_reentrant, role_of
from nexus_vault.adapters.memory import SystemClock
from nexus_vault.config.constants import UNLIMITED
from nexus_vault.config.logging_conf import operation_scope
from nexus_vault.engine import admin as admin_ops
from nexus_vault.engine import core, views
from nexus_vault.engine import rebalance as rebalance_ops
from nexus_vault.engine.context import VaultContext
from nexus_vault.engine.views import AllocationStatus, PendingFees
from nexus_vault.interfaces import AssetToken, Clock, SubVault, Transactional
from nexus_vault.ledger.events import EventLog
from nexus_vault.ledger.state import (
    FeeConfig,
    OperationalState,
    RebalanceConfig,
    SubVaultConfig,
    VaultState,
)

__all__ = ["NexusVault"]

logger = logging.getLogger(__name__)

T = TypeVar("T")


class NexusVault:
    """Pooled vault allocating one asset across registered sub-vaults."""

    def __init__(
        self,
        asset: AssetToken,
        owner: str,
        *,
        address: str = "nexus-vault",
        clock: Clock | None = None,
        decimals: int | None = None,
    ) -> None:
        state = VaultState(asset=asset.address, owner=owner)
        if decimals is not None:
            state.decimals = decimals
        elif isinstance(getattr(asset, "decimals", None), int):
            state.decimals = asset.decimals
        self._ctx = VaultContext(
            address=address,
            state=state,
            asset=asset,
            clock=clock if clock is not None else SystemClock(),
        )

    @classmethod
    def from_state(
        cls,
        state: VaultState,
        asset: AssetToken,
        sub_vaults: Mapping[str, SubVault],
        *,
        address: str = "nexus-vault",
        clock: Clock | None = None,
    ) -> "NexusVault":
        """Rebuild a vault around a previously exported ledger.

        ``sub_vaults`` must provide an adapter for every registered address.
        """

        missing = set(state.sub_vaults) - set(sub_vaults)
        if missing:
            raise ValueError(f"no adapter for registered sub-vaults: {sorted(missing)}")
        vault = cls(asset, state.owner, address=address, clock=clock)
        vault._ctx.state = state
        vault._ctx.sub_vaults = {key: sub_vaults[key] for key in state.sub_vaults}
        return vault

    # Plumbing ------------------------------------------------------------------

    @property
    def address(self) -> str:
        return self._ctx.address

    @property
    def state(self) -> VaultState:
        return self._ctx.state

    @property
    def events(self) -> EventLog:
        return self._ctx.events

    @property
    def clock(self) -> Clock:
        return self._ctx.clock

    def _collaborators(self) -> list[Transactional]:
        candidates: list[Any] = [self._ctx.asset, *self._ctx.sub_vaults.values()]
        seen: set[int] = set()
        found: list[Transactional] = []
        for candidate in candidates:
            if id(candidate) in seen or not isinstance(candidate, Transactional):
                continue
            seen.add(id(candidate))
            found.append(candidate)
        return found

    @contextmanager
    def _atomic(self) -> Iterator[None]:
        ctx = self._ctx
        state_snapshot = ctx.state.snapshot()
        registry = dict(ctx.sub_vaults)
        event_count = len(ctx.events)
        collaborators = [(item, item.snapshot()) for item in self._collaborators()]
        try:
            yield
        except Exception as exc:
            for item, snapshot in collaborators:
                item.restore(snapshot)
            ctx.sub_vaults.clear()
            ctx.sub_vaults.update(registry)
            ctx.events.rollback(event_count)
            ctx.state.restore(state_snapshot)
            logger.debug("Rolled back after %s", type(exc).__name__)
            raise

    def _run(
        self,
        handler: Callable[..., T],
        *args: Any,
        operation: str | None = None,
        caller: str | None = None,
    ) -> T:
        operation = operation or handler.__name__
        if caller is None and args:
            caller = args[0]
        with operation_scope(self._ctx.address, operation, caller):
            with non_reentrant(self._ctx.state):
                with self._atomic():
                    return handler(self._ctx, *args)

    # Core ----------------------------------------------------------------------

    def deposit(self, caller: str, assets: int, receiver: str | None) -> int:
        return self._run(core.deposit, caller, assets, receiver)

    def mint(self, caller: str, shares: int, receiver: str | None) -> int:
        return self._run(core.mint, caller, shares, receiver)

    def withdraw(
        self, caller: str, assets: int, receiver: str | None, owner: str | None
    ) -> int:
        return self._run(core.withdraw, caller, assets, receiver, owner)

    def redeem(
        self, caller: str, shares: int, receiver: str | None, owner: str | None
    ) -> int:
        return self._run(core.redeem, caller, shares, receiver, owner)

    # Share token ---------------------------------------------------------------

    def transfer(self, caller: str, to: str | None, amount: int) -> bool:
        self._run(
            lambda ctx: ctx.shares.transfer(caller, to, amount),
            operation="transfer",
            caller=caller,
        )
        return True

    def approve(self, caller: str, spender: str | None, amount: int) -> bool:
        self._run(
            lambda ctx: ctx.shares.approve(caller, spender, amount),
            operation="approve",
            caller=caller,
        )
        return True

    def transfer_from(
        self, caller: str, owner: str | None, to: str | None, amount: int
    ) -> bool:
        self._run(
            lambda ctx: ctx.shares.transfer_from(caller, owner, to, amount),
            operation="transfer_from",
            caller=caller,
        )
        return True

    # Rebalance and fees --------------------------------------------------------

    def rebalance(self, caller: str) -> dict[str, dict[str, int]]:
        return self._run(rebalance_ops.rebalance, caller)

    def force_rebalance(self, caller: str) -> dict[str, dict[str, int]]:
        return self._run(rebalance_ops.force_rebalance, caller)

    def collect_management_fee(self, caller: str) -> int:
        return self._run(rebalance_ops.collect_management_fee, caller)

    def collect_performance_fee(self, caller: str) -> int:
        return self._run(rebalance_ops.collect_performance_fee, caller)

    def collect_all_fees(self, caller: str) -> int:
        return self._run(rebalance_ops.collect_all_fees, caller)

    def reset_high_water_mark(self, caller: str) -> int:
        return self._run(rebalance_ops.reset_high_water_mark, caller)

    # Administration ------------------------------------------------------------

    def initialize(
        self,
        caller: str,
        name: str,
        symbol: str,
        admin_address: str | None,
        fee_recipient: str | None,
    ) -> None:
        self._run(admin_ops.initialize, caller, name, symbol, admin_address, fee_recipient)

    def add_vault(
        self,
        caller: str,
        vault: SubVault | None,
        target_weight: int,
        max_weight: int,
        min_weight: int = 0,
        deposit_cap: int = UNLIMITED,
        active: bool = True,
    ) -> SubVaultConfig:
        return self._run(
            admin_ops.add_vault,
            caller,
            vault,
            target_weight,
            max_weight,
            min_weight,
            deposit_cap,
            active,
        )

    def remove_vault(self, caller: str, vault: str) -> None:
        self._run(admin_ops.remove_vault, caller, vault)

    def activate_vault(self, caller: str, vault: str) -> None:
        self._run(admin_ops.activate_vault, caller, vault)

    def deactivate_vault(self, caller: str, vault: str) -> int:
        return self._run(admin_ops.deactivate_vault, caller, vault)

    def update_vault_weights(
        self, caller: str, vault: str, target_weight: int, max_weight: int, min_weight: int
    ) -> None:
        self._run(
            admin_ops.update_vault_weights,
            caller,
            vault,
            target_weight,
            max_weight,
            min_weight,
        )

    def set_vault_deposit_cap(self, caller: str, vault: str, cap: int) -> None:
        self._run(admin_ops.set_vault_deposit_cap, caller, vault, cap)

    def set_fee_config(
        self,
        caller: str,
        management_fee_rate: int,
        performance_fee_rate: int,
        deposit_fee_rate: int,
        withdraw_fee_rate: int,
        fee_recipient: str | None,
    ) -> None:
        self._run(
            admin_ops.set_fee_config,
            caller,
            management_fee_rate,
            performance_fee_rate,
            deposit_fee_rate,
            withdraw_fee_rate,
            fee_recipient,
        )

    def set_rebalance_config(
        self, caller: str, deviation_threshold: int, max_slippage: int, cooldown_period: int
    ) -> None:
        self._run(
            admin_ops.set_rebalance_config,
            caller,
            deviation_threshold,
            max_slippage,
            cooldown_period,
        )

    def set_deposit_caps(
        self, caller: str, max_total_deposits: int, max_deposit_per_user: int
    ) -> None:
        self._run(admin_ops.set_deposit_caps, caller, max_total_deposits, max_deposit_per_user)

    def transfer_ownership(self, caller: str, new_owner: str | None) -> None:
        self._run(admin_ops.transfer_ownership, caller, new_owner)

    def set_admin(self, caller: str, new_admin: str | None) -> None:
        self._run(admin_ops.set_admin, caller, new_admin)

    def add_keeper(self, caller: str, keeper: str | None) -> None:
        self._run(admin_ops.add_keeper, caller, keeper)

    def remove_keeper(self, caller: str, keeper: str | None) -> None:
        self._run(admin_ops.remove_keeper, caller, keeper)

    def pause(self, caller: str) -> None:
        self._run(admin_ops.pause, caller)

    def unpause(self, caller: str) -> None:
        self._run(admin_ops.unpause, caller)

    def shutdown(self, caller: str) -> None:
        self._run(admin_ops.shutdown, caller)

    def recover_token(
        self, caller: str, token: AssetToken, to: str | None, amount: int
    ) -> None:
        self._run(admin_ops.recover_token, caller, token, to, amount)

    # Views ---------------------------------------------------------------------

    @property
    def asset(self) -> str:
        return self._ctx.state.asset

    @property
    def name(self) -> str:
        return self._ctx.state.name

    @property
    def symbol(self) -> str:
        return self._ctx.state.symbol

    @property
    def decimals(self) -> int:
        return self._ctx.state.decimals

    @property
    def owner(self) -> str:
        return self._ctx.state.owner

    @property
    def admin(self) -> str | None:
        return self._ctx.state.admin

    @property
    def paused(self) -> bool:
        return self._ctx.state.paused

    @property
    def is_shutdown(self) -> bool:
        return self._ctx.state.shutdown

    @property
    def operational_state(self) -> OperationalState:
        return self._ctx.state.operational_state

    @property
    def active_vault_count(self) -> int:
        return self._ctx.state.active_vault_count

    @property
    def high_water_mark(self) -> int:
        return self._ctx.state.high_water_mark

    @property
    def last_fee_timestamp(self) -> int:
        return self._ctx.state.last_fee_timestamp

    def is_keeper(self, account: str | None) -> bool:
        return role_of(self._ctx.state, account) >= Role.KEEPER

    def total_supply(self) -> int:
        return self._ctx.state.total_supply

    def balance_of(self, account: str | None) -> int:
        return self._ctx.shares.balance_of(account)

    def allowance(self, owner: str | None, spender: str | None) -> int:
        return self._ctx.shares.allowance(owner, spender)

    def total_assets(self) -> int:
        return views.total_assets(self._ctx)

    def idle_assets(self) -> int:
        return views.idle_assets(self._ctx)

    def assets_in_vault(self, vault: str) -> int:
        return views.assets_in_vault(self._ctx, vault)

    def convert_to_shares(self, assets: int) -> int:
        return views.convert_to_shares(self._ctx, assets)

    def convert_to_assets(self, shares: int) -> int:
        return views.convert_to_assets(self._ctx, shares)

    def preview_deposit(self, assets: int) -> int:
        return views.preview_deposit(self._ctx, assets)

    def preview_mint(self, shares: int) -> int:
        return views.preview_mint(self._ctx, shares)

    def preview_withdraw(self, assets: int) -> int:
        return views.preview_withdraw(self._ctx, assets)

    def preview_redeem(self, shares: int) -> int:
        return views.preview_redeem(self._ctx, shares)

    def max_deposit(self, receiver: str | None) -> int:
        return views.max_deposit(self._ctx, receiver)

    def max_mint(self, receiver: str | None) -> int:
        return views.max_mint(self._ctx, receiver)

    def max_withdraw(self, owner: str | None) -> int:
        return views.max_withdraw(self._ctx, owner)

    def max_redeem(self, owner: str | None) -> int:
        return views.max_redeem(self._ctx, owner)

    def get_allocation_status(self) -> list[AllocationStatus]:
        return views.get_allocation_status(self._ctx)

    def allocation_frame(self) -> pd.DataFrame:
        return views.allocation_frame(self._ctx)

    def needs_rebalance(self) -> bool:
        return views.needs_rebalance(self._ctx)

    def pending_fees(self) -> PendingFees:
        return views.pending_fees(self._ctx)

    def get_fee_config(self) -> FeeConfig:
        return views.get_fee_config(self._ctx)

    def get_rebalance_config(self) -> RebalanceConfig:
        return views.get_rebalance_config(self._ctx)

    def get_vault_config(self, vault: str) -> SubVaultConfig:
        return views.get_vault_config(self._ctx, vault)

    def export_state(self) -> dict[str, Any]:
        return self._ctx.state.to_dict()
