"""In-memory collaborators used by the simulator and the test-suite.

:class:`InMemoryToken` mimics a fungible asset with balances and allowances,
:class:`InMemorySubVault` a share-based yield vault over such an asset. Both
implement ``snapshot``/``restore`` so the engine can unwind them atomically.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field

from nexus_vault.config.constants import DEFAULT_ASSET_DECIMALS, UNLIMITED, WAD
from nexus_vault.accounting.math import Rounding, mul_div

__all__ = ["InMemoryToken", "InMemorySubVault", "ManualClock", "SystemClock"]


@dataclass
class _TokenBook:
    balances: dict[str, int] = field(default_factory=dict)
    allowances: dict[tuple[str, str], int] = field(default_factory=dict)
    total_supply: int = 0


class InMemoryToken:
    """Fungible token keeping balances and allowances in dictionaries."""

    def __init__(self, address: str, decimals: int = DEFAULT_ASSET_DECIMALS) -> None:
        self.address = address
        self.decimals = decimals
        self._book = _TokenBook()

    @property
    def total_supply(self) -> int:
        return self._book.total_supply

    def balance_of(self, account: str) -> int:
        return self._book.balances.get(account, 0)

    def allowance(self, owner: str, spender: str) -> int:
        return self._book.allowances.get((owner, spender), 0)

    def mint(self, to: str, amount: int) -> None:
        self._book.balances[to] = self.balance_of(to) + amount
        self._book.total_supply += amount

    def burn(self, account: str, amount: int) -> None:
        balance = self.balance_of(account)
        if balance < amount:
            raise ValueError(f"{self.address}: burn of {amount} exceeds balance {balance}")
        self._book.balances[account] = balance - amount
        self._book.total_supply -= amount

    def approve(self, owner: str, spender: str, amount: int) -> None:
        self._book.allowances[(owner, spender)] = amount

    def transfer(self, sender: str, to: str, amount: int) -> None:
        balance = self.balance_of(sender)
        if balance < amount:
            raise ValueError(f"{self.address}: transfer of {amount} exceeds balance {balance}")
        self._book.balances[sender] = balance - amount
        self._book.balances[to] = self.balance_of(to) + amount

    def transfer_from(self, spender: str, owner: str, to: str, amount: int) -> None:
        if spender != owner:
            allowed = self.allowance(owner, spender)
            if allowed < amount:
                raise ValueError(
                    f"{self.address}: allowance {allowed} of {spender} below {amount}"
                )
            if allowed != UNLIMITED:
                self._book.allowances[(owner, spender)] = allowed - amount
        self.transfer(owner, to, amount)

    def snapshot(self) -> _TokenBook:
        return _TokenBook(
            balances=dict(self._book.balances),
            allowances=dict(self._book.allowances),
            total_supply=self._book.total_supply,
        )

    def restore(self, snapshot: _TokenBook) -> None:
        self._book = _TokenBook(
            balances=dict(snapshot.balances),
            allowances=dict(snapshot.allowances),
            total_supply=snapshot.total_supply,
        )


class InMemorySubVault:
    """Share-based vault over an :class:`InMemoryToken`.

    ``haircut`` is a fixed point fraction of every deposit that is lost on the
    way in (entry slippage). ``deposit_limit`` caps the assets it accepts.
    Yield and losses are simulated with :meth:`accrue_yield` and
    :meth:`realize_loss`.
    """

    def __init__(
        self,
        address: str,
        asset: InMemoryToken,
        *,
        haircut: int = 0,
        deposit_limit: int = UNLIMITED,
    ) -> None:
        self.address = address
        self._asset = asset
        self.haircut = haircut
        self.deposit_limit = deposit_limit
        self._shares: dict[str, int] = {}
        self._total_shares = 0

    # Views ---------------------------------------------------------------------

    def asset(self) -> str:
        return self._asset.address

    def total_assets(self) -> int:
        return self._asset.balance_of(self.address)

    @property
    def total_shares(self) -> int:
        return self._total_shares

    def balance_of(self, account: str) -> int:
        return self._shares.get(account, 0)

    def convert_to_shares(self, assets: int, rounding: Rounding = Rounding.FLOOR) -> int:
        if self._total_shares == 0 or self.total_assets() == 0:
            return assets
        return mul_div(assets, self._total_shares, self.total_assets(), rounding)

    def convert_to_assets(self, shares: int) -> int:
        if self._total_shares == 0:
            return shares
        return mul_div(shares, self.total_assets(), self._total_shares)

    def max_deposit(self, receiver: str) -> int:
        if self.deposit_limit == UNLIMITED:
            return UNLIMITED
        return max(0, self.deposit_limit - self.total_assets())

    def max_withdraw(self, owner: str) -> int:
        return self.convert_to_assets(self.balance_of(owner))

    # Mutations -----------------------------------------------------------------

    def deposit(self, caller: str, assets: int, receiver: str) -> int:
        if assets > self.max_deposit(receiver):
            raise ValueError(f"{self.address}: deposit of {assets} exceeds limit")
        shares = self.convert_to_shares(assets)
        self._asset.transfer_from(self.address, caller, self.address, assets)
        lost = mul_div(assets, self.haircut, WAD)
        if lost:
            self._asset.burn(self.address, lost)
        self._shares[receiver] = self.balance_of(receiver) + shares
        self._total_shares += shares
        return shares

    def withdraw(self, caller: str, assets: int, receiver: str, owner: str) -> int:
        if caller != owner:
            raise ValueError(f"{self.address}: {caller} cannot withdraw for {owner}")
        shares = self.convert_to_shares(assets, Rounding.CEIL)
        balance = self.balance_of(owner)
        if shares > balance:
            raise ValueError(f"{self.address}: {owner} holds {balance} shares, needs {shares}")
        self._shares[owner] = balance - shares
        self._total_shares -= shares
        self._asset.transfer(self.address, receiver, assets)
        return shares

    def accrue_yield(self, amount: int) -> None:
        self._asset.mint(self.address, amount)

    def realize_loss(self, amount: int) -> None:
        self._asset.burn(self.address, amount)

    def snapshot(self) -> tuple[dict[str, int], int]:
        return dict(self._shares), self._total_shares

    def restore(self, snapshot: tuple[dict[str, int], int]) -> None:
        shares, total = snapshot
        self._shares = dict(shares)
        self._total_shares = total


class ManualClock:
    """Clock advanced explicitly by tests and scenarios."""

    def __init__(self, start: int = 0) -> None:
        self._now = int(start)

    def now(self) -> int:
        return self._now

    def advance(self, seconds: int) -> int:
        if seconds < 0:
            raise ValueError("cannot move the clock backwards")
        self._now += int(seconds)
        return self._now

    def set(self, timestamp: int) -> None:
        if timestamp < self._now:
            raise ValueError("cannot move the clock backwards")
        self._now = int(timestamp)


class SystemClock:
    def now(self) -> int:
        return int(time.time())
