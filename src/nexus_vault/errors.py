"""Exception taxonomy of the vault engine.

Every failure aborts the whole operation. Errors are grouped in four families
so callers can react per category while tests and scenarios can still address
each condition by its class name:

- :class:`VaultValidationError` - malformed input, rejected before any mutation
- :class:`AuthorizationError` - caller lacks the required role, checked first
- :class:`StateError` - lifecycle/registry state forbids the operation
- :class:`EconomicError` - balances, allowances, caps or slippage
"""

from __future__ import annotations

__all__ = [
    "VaultError",
    "VaultValidationError",
    "ZeroAmount",
    "ZeroAddress",
    "AssetMismatch",
    "InvalidWeights",
    "FeeExceedsMaximum",
    "InvalidConfig",
    "AuthorizationError",
    "OnlyOwner",
    "OnlyAdmin",
    "OnlyKeeper",
    "StateError",
    "NotInitialized",
    "AlreadyInitialized",
    "VaultPaused",
    "VaultIsShutdown",
    "VaultNotPaused",
    "CooldownActive",
    "VaultNotFound",
    "VaultAlreadyExists",
    "VaultAlreadyActive",
    "VaultNotActive",
    "VaultHasBalance",
    "TooManyVaults",
    "ReentrantCall",
    "UnsupportedSchema",
    "EconomicError",
    "InsufficientShares",
    "InsufficientAllowance",
    "InsufficientBalance",
    "InsufficientLiquidity",
    "DepositCapExceeded",
    "WithdrawLimitExceeded",
    "SlippageExceeded",
    "CannotRecoverAsset",
]


class VaultError(Exception):
    """Root of every error raised by the engine."""


# Validation -------------------------------------------------------------------


class VaultValidationError(VaultError):
    """Input rejected before touching the ledger."""


class ZeroAmount(VaultValidationError):
    def __init__(self, what: str = "amount") -> None:
        super().__init__(f"{what} must be greater than zero")
        self.what = what


class ZeroAddress(VaultValidationError):
    def __init__(self, what: str = "address") -> None:
        super().__init__(f"{what} must not be the null address")
        self.what = what


class AssetMismatch(VaultValidationError):
    def __init__(self, expected: str, actual: str) -> None:
        super().__init__(f"sub-vault asset {actual!r} does not match vault asset {expected!r}")
        self.expected = expected
        self.actual = actual


class InvalidWeights(VaultValidationError):
    pass


class FeeExceedsMaximum(VaultValidationError):
    def __init__(self, fee: str, rate: int, maximum: int) -> None:
        super().__init__(f"{fee} rate {rate} exceeds maximum {maximum}")
        self.fee = fee
        self.rate = rate
        self.maximum = maximum


class InvalidConfig(VaultValidationError):
    pass


# Authorization ----------------------------------------------------------------


class AuthorizationError(VaultError):
    """Caller does not hold the role required by the entry point."""

    def __init__(self, caller: str | None) -> None:
        super().__init__(f"{caller!r} is not allowed to perform this operation")
        self.caller = caller


class OnlyOwner(AuthorizationError):
    pass


class OnlyAdmin(AuthorizationError):
    pass


class OnlyKeeper(AuthorizationError):
    pass


# State ------------------------------------------------------------------------


class StateError(VaultError):
    """The current lifecycle or registry state forbids the operation."""


class NotInitialized(StateError):
    pass


class AlreadyInitialized(StateError):
    pass


class VaultPaused(StateError):
    pass


class VaultIsShutdown(StateError):
    pass


class VaultNotPaused(StateError):
    pass


class CooldownActive(StateError):
    def __init__(self, ready_at: int) -> None:
        super().__init__(f"rebalance cooldown active until {ready_at}")
        self.ready_at = ready_at


class VaultNotFound(StateError):
    def __init__(self, vault: str | None) -> None:
        super().__init__(f"sub-vault {vault!r} is not registered")
        self.vault = vault


class VaultAlreadyExists(StateError):
    def __init__(self, vault: str) -> None:
        super().__init__(f"sub-vault {vault!r} is already registered")
        self.vault = vault


class VaultAlreadyActive(StateError):
    def __init__(self, vault: str) -> None:
        super().__init__(f"sub-vault {vault!r} is already active")
        self.vault = vault


class VaultNotActive(StateError):
    def __init__(self, vault: str) -> None:
        super().__init__(f"sub-vault {vault!r} is not active")
        self.vault = vault


class VaultHasBalance(StateError):
    def __init__(self, vault: str, balance: int) -> None:
        super().__init__(f"sub-vault {vault!r} still holds {balance} assets")
        self.vault = vault
        self.balance = balance


class TooManyVaults(StateError):
    pass


class ReentrantCall(StateError):
    """A mutating entry point was entered while another one was running."""


class UnsupportedSchema(StateError):
    pass


# Economic ---------------------------------------------------------------------


class EconomicError(VaultError):
    """Computed effect rejected before being applied."""


class InsufficientShares(EconomicError):
    def __init__(self, account: str | None, balance: int, needed: int) -> None:
        super().__init__(f"{account!r} holds {balance} shares, needs {needed}")
        self.account = account
        self.balance = balance
        self.needed = needed


class InsufficientAllowance(EconomicError):
    def __init__(self, owner: str | None, spender: str | None, allowance: int, needed: int) -> None:
        super().__init__(
            f"allowance of {spender!r} over {owner!r} is {allowance}, needs {needed}"
        )
        self.owner = owner
        self.spender = spender
        self.allowance = allowance
        self.needed = needed


class InsufficientBalance(EconomicError):
    def __init__(self, account: str | None, balance: int, needed: int) -> None:
        super().__init__(f"{account!r} holds {balance} assets, needs {needed}")
        self.account = account
        self.balance = balance
        self.needed = needed


class InsufficientLiquidity(EconomicError):
    def __init__(self, available: int, needed: int) -> None:
        super().__init__(f"only {available} assets withdrawable, needs {needed}")
        self.available = available
        self.needed = needed


class DepositCapExceeded(EconomicError):
    def __init__(self, amount: int, limit: int) -> None:
        super().__init__(f"deposit of {amount} exceeds limit {limit}")
        self.amount = amount
        self.limit = limit


class WithdrawLimitExceeded(EconomicError):
    def __init__(self, amount: int, limit: int) -> None:
        super().__init__(f"withdrawal of {amount} exceeds limit {limit}")
        self.amount = amount
        self.limit = limit


class SlippageExceeded(EconomicError):
    def __init__(self, before: int, after: int, max_slippage: int) -> None:
        super().__init__(
            f"total assets fell from {before} to {after}, beyond max slippage {max_slippage}"
        )
        self.before = before
        self.after = after
        self.max_slippage = max_slippage


class CannotRecoverAsset(VaultValidationError):
    def __init__(self, token: str) -> None:
        super().__init__(f"token {token!r} is managed by the vault and cannot be recovered")
        self.token = token
