"""Collaborator protocols consumed by the engine.

The vault talks to the managed asset through a fungible token interface and
to each sub-vault through a tokenized-vault interface. Anything implementing
:class:`Transactional` is snapshotted before a mutation and restored if the
mutation fails, so its effects unwind together with the ledger.
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

__all__ = ["AssetToken", "SubVault", "Clock", "Transactional"]


@runtime_checkable
class AssetToken(Protocol):
    address: str

    def balance_of(self, account: str) -> int: ...

    def allowance(self, owner: str, spender: str) -> int: ...

    def transfer(self, sender: str, to: str, amount: int) -> None: ...

    def transfer_from(self, spender: str, owner: str, to: str, amount: int) -> None: ...

    def approve(self, owner: str, spender: str, amount: int) -> None: ...


@runtime_checkable
class SubVault(Protocol):
    address: str

    def asset(self) -> str: ...

    def deposit(self, caller: str, assets: int, receiver: str) -> int: ...

    def withdraw(self, caller: str, assets: int, receiver: str, owner: str) -> int: ...

    def max_deposit(self, receiver: str) -> int: ...

    def max_withdraw(self, owner: str) -> int: ...

    def balance_of(self, account: str) -> int: ...


@runtime_checkable
class Clock(Protocol):
    def now(self) -> int: ...


@runtime_checkable
class Transactional(Protocol):
    def snapshot(self) -> Any: ...

    def restore(self, snapshot: Any) -> None: ...
