"""Access control, lifecycle checks and the reentrancy guard."""

from .guard import (
    Authorization,
    Role,
    authorize,
    enforce_initialized,
    enforce_is_admin,
    enforce_is_keeper,
    enforce_is_owner,
    enforce_not_shutdown,
    enforce_operational,
    enforce_withdrawable,
    non_reentrant,
    role_of,
)

__all__ = [
    "Authorization",
    "Role",
    "authorize",
    "enforce_initialized",
    "enforce_is_admin",
    "enforce_is_keeper",
    "enforce_is_owner",
    "enforce_not_shutdown",
    "enforce_operational",
    "enforce_withdrawable",
    "non_reentrant",
    "role_of",
]
