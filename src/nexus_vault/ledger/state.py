"""Persistent ledger record owned by the vault engine.

:class:`VaultState` is the single aggregate every handler receives by
reference. It only holds plain data (addresses, integers, flags) so it can be
snapshotted, restored and serialised; live collaborator objects such as
sub-vault adapters stay outside of it.

Schema evolution is append-only: new fields get a default and
:meth:`VaultState.from_dict` fills them in when reading an older payload.
"""

from __future__ import annotations

import copy
from dataclasses import asdict, dataclass, field, fields
from enum import Enum
from typing import Any, Mapping

from nexus_vault.config.constants import (
    DEFAULT_ASSET_DECIMALS,
    DEFAULT_COOLDOWN_PERIOD,
    DEFAULT_DEVIATION_THRESHOLD,
    DEFAULT_MAX_SLIPPAGE,
    UNLIMITED,
)
from nexus_vault.errors import UnsupportedSchema

__all__ = [
    "SCHEMA_VERSION",
    "OperationalState",
    "ReentrancyStatus",
    "SubVaultConfig",
    "FeeConfig",
    "RebalanceConfig",
    "VaultState",
]

SCHEMA_VERSION = 1


class OperationalState(str, Enum):
    ACTIVE = "active"
    PAUSED = "paused"
    SHUTDOWN = "shutdown"


class ReentrancyStatus(str, Enum):
    NOT_ENTERED = "not_entered"
    ENTERED = "entered"


@dataclass(slots=True)
class SubVaultConfig:
    """Registration of one sub-vault.

    Weights are fixed point fractions of ``WAD`` and always satisfy
    ``min_weight <= target_weight <= max_weight <= WAD``.
    """

    vault: str
    target_weight: int
    max_weight: int
    min_weight: int
    active: bool = True
    deposit_cap: int = UNLIMITED


@dataclass(slots=True)
class FeeConfig:
    management_fee_rate: int = 0
    performance_fee_rate: int = 0
    deposit_fee_rate: int = 0
    withdraw_fee_rate: int = 0
    fee_recipient: str | None = None

    def as_tuple(self) -> tuple[int, int, int, int, str | None]:
        return (
            self.management_fee_rate,
            self.performance_fee_rate,
            self.deposit_fee_rate,
            self.withdraw_fee_rate,
            self.fee_recipient,
        )


@dataclass(slots=True)
class RebalanceConfig:
    deviation_threshold: int = DEFAULT_DEVIATION_THRESHOLD
    max_slippage: int = DEFAULT_MAX_SLIPPAGE
    cooldown_period: int = DEFAULT_COOLDOWN_PERIOD
    last_rebalance_time: int = 0


@dataclass
class VaultState:
    """The ledger: registry, share balances, fee and rebalance settings, flags."""

    asset: str
    owner: str
    schema_version: int = SCHEMA_VERSION
    initialized: bool = False
    name: str = ""
    symbol: str = ""
    decimals: int = DEFAULT_ASSET_DECIMALS
    admin: str | None = None
    keepers: set[str] = field(default_factory=set)
    sub_vaults: dict[str, SubVaultConfig] = field(default_factory=dict)
    active_vault_count: int = 0
    fees: FeeConfig = field(default_factory=FeeConfig)
    rebalance: RebalanceConfig = field(default_factory=RebalanceConfig)
    max_total_deposits: int = UNLIMITED
    max_deposit_per_user: int = UNLIMITED
    total_supply: int = 0
    balances: dict[str, int] = field(default_factory=dict)
    allowances: dict[str, dict[str, int]] = field(default_factory=dict)
    total_deposited: int = 0
    total_withdrawn: int = 0
    high_water_mark: int = 0
    last_fee_timestamp: int = 0
    paused: bool = False
    shutdown: bool = False
    reentrancy: ReentrancyStatus = ReentrancyStatus.NOT_ENTERED

    # Lifecycle -----------------------------------------------------------------

    @property
    def operational_state(self) -> OperationalState:
        if self.shutdown:
            return OperationalState.SHUTDOWN
        if self.paused:
            return OperationalState.PAUSED
        return OperationalState.ACTIVE

    # Registry ------------------------------------------------------------------

    def active_vaults(self) -> list[SubVaultConfig]:
        """Active sub-vault configs in registration order."""

        return [cfg for cfg in self.sub_vaults.values() if cfg.active]

    def total_active_weight(self) -> int:
        return sum(cfg.target_weight for cfg in self.active_vaults())

    def count_active(self) -> int:
        return sum(1 for cfg in self.sub_vaults.values() if cfg.active)

    # Snapshots -----------------------------------------------------------------

    def snapshot(self) -> "VaultState":
        return copy.deepcopy(self)

    def restore(self, snapshot: "VaultState") -> None:
        """Overwrite every field in place with the values of ``snapshot``."""

        for item in fields(self):
            setattr(self, item.name, copy.deepcopy(getattr(snapshot, item.name)))

    # Serialisation -------------------------------------------------------------

    def to_dict(self) -> dict[str, Any]:
        payload = asdict(self)
        payload["keepers"] = sorted(self.keepers)
        payload["sub_vaults"] = [asdict(cfg) for cfg in self.sub_vaults.values()]
        payload["reentrancy"] = self.reentrancy.value
        return payload

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "VaultState":
        version = int(payload.get("schema_version", 1))
        if version > SCHEMA_VERSION:
            raise UnsupportedSchema(
                f"state schema {version} is newer than supported {SCHEMA_VERSION}"
            )

        known = {item.name for item in fields(cls)}
        data = {key: value for key, value in payload.items() if key in known}
        data["schema_version"] = SCHEMA_VERSION
        data["keepers"] = set(data.get("keepers", ()))
        data["sub_vaults"] = {
            entry["vault"]: SubVaultConfig(**entry) for entry in data.get("sub_vaults", ())
        }
        data["fees"] = FeeConfig(**data.get("fees", {}))
        data["rebalance"] = RebalanceConfig(**data.get("rebalance", {}))
        data["balances"] = dict(data.get("balances", {}))
        data["allowances"] = {
            owner: dict(spenders) for owner, spenders in data.get("allowances", {}).items()
        }
        data["reentrancy"] = ReentrancyStatus(
            data.get("reentrancy", ReentrancyStatus.NOT_ENTERED.value)
        )
        return cls(**data)
