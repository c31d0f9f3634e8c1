"""Splitting deposits and withdrawals across active sub-vaults.

Both algorithms are exact: the parts always add up to the requested amount.
Floor division leaves a remainder which the last vault in registration order
absorbs.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Mapping, Sequence

from nexus_vault.accounting.books import Books
from nexus_vault.errors import InsufficientLiquidity

__all__ = [
    "Allocation",
    "WithdrawAllocation",
    "split_proportionally",
    "calculate_deposit_allocation",
    "calculate_withdraw_allocation",
    "RebalancePlan",
    "calculate_rebalance_plan",
]


@dataclass(frozen=True)
class Allocation:
    vaults: tuple[str, ...] = ()
    amounts: tuple[int, ...] = ()

    @property
    def total(self) -> int:
        return sum(self.amounts)

    def as_dict(self) -> dict[str, int]:
        return dict(zip(self.vaults, self.amounts))


@dataclass(frozen=True)
class WithdrawAllocation:
    from_idle: int = 0
    vaults: tuple[str, ...] = ()
    amounts: tuple[int, ...] = field(default_factory=tuple)

    @property
    def total(self) -> int:
        return self.from_idle + sum(self.amounts)

    def as_dict(self) -> dict[str, int]:
        return dict(zip(self.vaults, self.amounts))


def split_proportionally(
    amount: int, keys: Sequence[str], weights: Sequence[int]
) -> Allocation:
    """Split ``amount`` by ``weights``; the last key takes the rounding remainder."""

    total_weight = sum(weights)
    if amount <= 0 or not keys or total_weight <= 0:
        return Allocation()

    parts: list[int] = []
    allocated = 0
    last = len(keys) - 1
    for index, weight in enumerate(weights):
        if index == last:
            part = amount - allocated
        else:
            part = amount * weight // total_weight
        parts.append(part)
        allocated += part
    return Allocation(vaults=tuple(keys), amounts=tuple(parts))


def calculate_deposit_allocation(books: Books, amount: int) -> Allocation:
    """Split ``amount`` by target weight over the active sub-vaults."""

    return split_proportionally(amount, list(books.targets), list(books.targets.values()))


def _spill_excess(parts: list[int], capacities: Sequence[int]) -> list[int]:
    # The remainder can push the last part above what the vault holds.
    excess = parts[-1] - capacities[-1]
    if excess <= 0:
        return parts
    parts[-1] = capacities[-1]
    for index in range(len(parts) - 1):
        headroom = capacities[index] - parts[index]
        if headroom <= 0:
            continue
        take = min(headroom, excess)
        parts[index] += take
        excess -= take
        if excess == 0:
            break
    return parts


def calculate_withdraw_allocation(books: Books, amount: int) -> WithdrawAllocation:
    """Source ``amount`` from idle assets first, then pro rata to current holdings.

    Raises
    ------
    InsufficientLiquidity
        If idle plus deployed assets cannot cover ``amount``.
    """

    from_idle = min(books.idle_assets, max(amount, 0))
    remainder = amount - from_idle
    if remainder <= 0:
        return WithdrawAllocation(from_idle=from_idle)

    holdings: Mapping[str, int] = {
        vault: held for vault, held in books.holdings.items() if held > 0
    }
    available = sum(holdings.values())
    if available < remainder:
        raise InsufficientLiquidity(from_idle + available, amount)

    split = split_proportionally(remainder, list(holdings), list(holdings.values()))
    parts = _spill_excess(list(split.amounts), list(holdings.values()))
    return WithdrawAllocation(from_idle=from_idle, vaults=split.vaults, amounts=tuple(parts))


@dataclass(frozen=True)
class RebalancePlan:
    """Moves that bring every active vault to its target share of total assets.

    ``targets`` holds the target amount per active vault. Withdrawals always
    run before deposits so freed assets can be redeployed.
    """

    targets: Mapping[str, int] = field(default_factory=dict)
    withdrawals: Allocation = field(default_factory=Allocation)
    deposits: Allocation = field(default_factory=Allocation)

    @property
    def is_empty(self) -> bool:
        return not self.withdrawals.vaults and not self.deposits.vaults


def calculate_rebalance_plan(books: Books) -> RebalancePlan:
    """Deltas between target and current holdings for every active vault.

    Targets apply the normalised target weights to total assets, idle
    included, so idle assets are deployed and over-weight vaults trimmed.
    """

    split = split_proportionally(
        books.total_assets, list(books.targets), list(books.targets.values())
    ).as_dict()
    targets = {vault: split.get(vault, 0) for vault in books.targets}

    out_vaults: list[str] = []
    out_amounts: list[int] = []
    in_vaults: list[str] = []
    in_amounts: list[int] = []
    for vault, target in targets.items():
        delta = target - books.holdings.get(vault, 0)
        if delta < 0:
            out_vaults.append(vault)
            out_amounts.append(-delta)
        elif delta > 0:
            in_vaults.append(vault)
            in_amounts.append(delta)
    return RebalancePlan(
        targets=targets,
        withdrawals=Allocation(vaults=tuple(out_vaults), amounts=tuple(out_amounts)),
        deposits=Allocation(vaults=tuple(in_vaults), amounts=tuple(in_amounts)),
    )
