"""Plain fungible share bookkeeping.

:class:`ShareLedger` mutates the ``total_supply``/``balances``/``allowances``
part of :class:`~nexus_vault.ledger.state.VaultState`. Every method keeps the
sum of balances equal to the total supply.
"""

from __future__ import annotations

import logging

from nexus_vault.config.constants import UNLIMITED
from nexus_vault.errors import InsufficientAllowance, InsufficientShares, ZeroAddress
from nexus_vault.ledger.state import VaultState

__all__ = ["ShareLedger"]

logger = logging.getLogger(__name__)


class ShareLedger:
    """Mint/burn/transfer/allowance hooks over a :class:`VaultState`."""

    def __init__(self, state: VaultState) -> None:
        self._state = state

    # Views ---------------------------------------------------------------------

    @property
    def total_supply(self) -> int:
        return self._state.total_supply

    def balance_of(self, account: str | None) -> int:
        if account is None:
            return 0
        return self._state.balances.get(account, 0)

    def allowance(self, owner: str | None, spender: str | None) -> int:
        if owner is None or spender is None:
            return 0
        return self._state.allowances.get(owner, {}).get(spender, 0)

    # Supply --------------------------------------------------------------------

    def mint(self, to: str | None, amount: int) -> None:
        if to is None:
            raise ZeroAddress("receiver")
        self._state.balances[to] = self.balance_of(to) + amount
        self._state.total_supply += amount

    def burn(self, account: str | None, amount: int) -> None:
        if account is None:
            raise ZeroAddress("owner")
        balance = self.balance_of(account)
        if balance < amount:
            raise InsufficientShares(account, balance, amount)
        remaining = balance - amount
        if remaining:
            self._state.balances[account] = remaining
        else:
            self._state.balances.pop(account, None)
        self._state.total_supply -= amount

    # Transfers -----------------------------------------------------------------

    def transfer(self, sender: str | None, to: str | None, amount: int) -> None:
        if sender is None:
            raise ZeroAddress("sender")
        if to is None:
            raise ZeroAddress("receiver")
        balance = self.balance_of(sender)
        if balance < amount:
            raise InsufficientShares(sender, balance, amount)
        if sender == to:
            return
        remaining = balance - amount
        if remaining:
            self._state.balances[sender] = remaining
        else:
            self._state.balances.pop(sender, None)
        self._state.balances[to] = self.balance_of(to) + amount
        logger.debug("share transfer", extra={"sender": sender, "to": to, "shares": amount})

    def approve(self, owner: str | None, spender: str | None, amount: int) -> None:
        if owner is None:
            raise ZeroAddress("owner")
        if spender is None:
            raise ZeroAddress("spender")
        self._state.allowances.setdefault(owner, {})[spender] = amount

    def spend_allowance(self, owner: str, spender: str, amount: int) -> None:
        """Consume ``amount`` of allowance; the unlimited sentinel is never decremented."""

        current = self.allowance(owner, spender)
        if current == UNLIMITED:
            return
        if current < amount:
            raise InsufficientAllowance(owner, spender, current, amount)
        self._state.allowances.setdefault(owner, {})[spender] = current - amount

    def transfer_from(
        self, spender: str | None, owner: str | None, to: str | None, amount: int
    ) -> None:
        if spender is None:
            raise ZeroAddress("spender")
        if owner is None:
            raise ZeroAddress("owner")
        if to is None:
            raise ZeroAddress("receiver")
        # Validate the balance before touching the allowance so a failure leaves both intact.
        balance = self.balance_of(owner)
        if balance < amount:
            raise InsufficientShares(owner, balance, amount)
        if spender != owner:
            self.spend_allowance(owner, spender, amount)
        self.transfer(owner, to, amount)
