"""Read-only view of the ledger consumed by the accounting functions."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Mapping

from nexus_vault.config.constants import UNLIMITED

__all__ = ["Books"]


@dataclass(frozen=True)
class Books:
    """Frozen figures the pure accounting functions operate on.

    ``holdings`` and ``targets`` are keyed by active sub-vault in registration
    order; ``holdings`` carries the amount withdrawable from each one.
    """

    total_supply: int
    idle_assets: int
    holdings: Mapping[str, int] = field(default_factory=dict)
    targets: Mapping[str, int] = field(default_factory=dict)
    management_fee_rate: int = 0
    performance_fee_rate: int = 0
    deposit_fee_rate: int = 0
    withdraw_fee_rate: int = 0
    high_water_mark: int = 0
    last_fee_timestamp: int = 0
    now: int = 0
    paused: bool = False
    shutdown: bool = False
    max_total_deposits: int = UNLIMITED
    max_deposit_per_user: int = UNLIMITED

    @property
    def deployed_assets(self) -> int:
        return sum(self.holdings.values())

    @property
    def total_assets(self) -> int:
        return self.idle_assets + self.deployed_assets

    @property
    def total_target_weight(self) -> int:
        return sum(self.targets.values())
