"""Ledger state, share bookkeeping and the event log."""

from .events import EventLog, VaultEvent
from .shares import ShareLedger
from .state import (
    SCHEMA_VERSION,
    FeeConfig,
    OperationalState,
    RebalanceConfig,
    ReentrancyStatus,
    SubVaultConfig,
    VaultState,
)

__all__ = [
    "EventLog",
    "VaultEvent",
    "ShareLedger",
    "SCHEMA_VERSION",
    "FeeConfig",
    "OperationalState",
    "RebalanceConfig",
    "ReentrancyStatus",
    "SubVaultConfig",
    "VaultState",
]
