"""Role, lifecycle and reentrancy checks shared by every entry point.

Roles are hierarchical: the owner is always an admin and admins are always
keepers. Each entry point evaluates one :class:`Authorization` for the role it
requires and consumes it through :meth:`Authorization.enforce`.
"""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass
from enum import IntEnum
from typing import Iterator

from nexus_vault.errors import (
    AuthorizationError,
    NotInitialized,
    OnlyAdmin,
    OnlyKeeper,
    OnlyOwner,
    ReentrantCall,
    VaultIsShutdown,
    VaultPaused,
)
from nexus_vault.ledger.state import ReentrancyStatus, VaultState

__all__ = [
    "Role",
    "Authorization",
    "role_of",
    "authorize",
    "enforce_is_owner",
    "enforce_is_admin",
    "enforce_is_keeper",
    "enforce_initialized",
    "enforce_operational",
    "enforce_withdrawable",
    "enforce_not_shutdown",
    "non_reentrant",
]


class Role(IntEnum):
    NONE = 0
    KEEPER = 1
    ADMIN = 2
    OWNER = 3


_DENIALS: dict[Role, type[AuthorizationError]] = {
    Role.OWNER: OnlyOwner,
    Role.ADMIN: OnlyAdmin,
    Role.KEEPER: OnlyKeeper,
}


@dataclass(frozen=True)
class Authorization:
    """Outcome of evaluating ``caller`` against a required role."""

    caller: str | None
    role: Role
    required: Role

    @property
    def granted(self) -> bool:
        return self.role >= self.required

    def enforce(self) -> "Authorization":
        if not self.granted:
            raise _DENIALS[self.required](self.caller)
        return self


def role_of(state: VaultState, caller: str | None) -> Role:
    """Highest role held by ``caller``."""

    if caller is None:
        return Role.NONE
    if caller == state.owner:
        return Role.OWNER
    if state.admin is not None and caller == state.admin:
        return Role.ADMIN
    if caller in state.keepers:
        return Role.KEEPER
    return Role.NONE


def authorize(state: VaultState, caller: str | None, required: Role) -> Authorization:
    return Authorization(caller=caller, role=role_of(state, caller), required=required)


def enforce_is_owner(state: VaultState, caller: str | None) -> Authorization:
    return authorize(state, caller, Role.OWNER).enforce()


def enforce_is_admin(state: VaultState, caller: str | None) -> Authorization:
    return authorize(state, caller, Role.ADMIN).enforce()


def enforce_is_keeper(state: VaultState, caller: str | None) -> Authorization:
    return authorize(state, caller, Role.KEEPER).enforce()


def enforce_initialized(state: VaultState) -> None:
    if not state.initialized:
        raise NotInitialized("vault has not been initialized")


def enforce_operational(state: VaultState) -> None:
    """Block when paused or shut down."""

    if state.shutdown:
        raise VaultIsShutdown("vault is shut down")
    if state.paused:
        raise VaultPaused("vault is paused")


def enforce_withdrawable(state: VaultState) -> None:
    """Block only when paused; shutdown keeps withdrawals open."""

    if state.paused:
        raise VaultPaused("vault is paused")


def enforce_not_shutdown(state: VaultState) -> None:
    if state.shutdown:
        raise VaultIsShutdown("vault is shut down")


@contextmanager
def non_reentrant(state: VaultState) -> Iterator[None]:
    """Hold the engine-wide reentrancy flag for the duration of the block."""

    if state.reentrancy is ReentrancyStatus.ENTERED:
        raise ReentrantCall("reentrant call into the vault")
    state.reentrancy = ReentrancyStatus.ENTERED
    try:
        yield
    finally:
        state.reentrancy = ReentrancyStatus.NOT_ENTERED
