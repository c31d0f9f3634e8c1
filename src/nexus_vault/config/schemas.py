"""Pydantic schemas for vault setup and scenario files.

This module defines typed configuration schemas using Pydantic v2 for:
- Fee rates and recipient
- Rebalance thresholds, slippage and cooldown
- Sub-vault registrations with their weight bands and caps
- Complete vault setups (roles, caps, sub-vaults)
- Scenario scripts replayed by :mod:`nexus_vault.simulation`

Rates and weights are written as decimal fractions (``0.02`` = 2%) and turned
into 18-decimal fixed point with :func:`nexus_vault.config.constants.to_wad`.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field, field_validator, model_validator

from .constants import (
    DEFAULT_ASSET_DECIMALS,
    DEFAULT_COOLDOWN_PERIOD,
    DEFAULT_DEVIATION_THRESHOLD,
    DEFAULT_MAX_SLIPPAGE,
    MAX_VAULTS,
    from_wad,
    to_wad,
)

__all__ = [
    "FeeSettings",
    "RebalanceSettings",
    "SubVaultSpec",
    "VaultSetupConfig",
    "ScenarioStep",
    "ScenarioConfig",
]


class FeeSettings(BaseModel):
    """Fee schedule.

    Attributes
    ----------
    management_fee : float
        Annual management fee (0-0.20)
    performance_fee : float
        Share of profit above the high-water mark (0-0.50)
    deposit_fee : float
        Entry fee taken from deposits (0-0.05)
    withdraw_fee : float
        Exit fee taken from withdrawals (0-0.05)
    fee_recipient : Optional[str]
        Receiver of every fee; required when any rate is positive
    """

    management_fee: float = Field(default=0.0, ge=0, le=0.20, description="Annual management fee")
    performance_fee: float = Field(default=0.0, ge=0, le=0.50, description="Performance fee")
    deposit_fee: float = Field(default=0.0, ge=0, le=0.05, description="Deposit fee")
    withdraw_fee: float = Field(default=0.0, ge=0, le=0.05, description="Withdraw fee")
    fee_recipient: str | None = Field(default=None, description="Fee recipient address")

    @model_validator(mode="after")
    def validate_recipient(self) -> "FeeSettings":
        """A positive rate needs somewhere to send the fee."""
        rates = (self.management_fee, self.performance_fee, self.deposit_fee, self.withdraw_fee)
        if any(rate > 0 for rate in rates) and not self.fee_recipient:
            raise ValueError("fee_recipient is required when any fee rate is positive")
        return self

    def to_wad(self) -> dict[str, int]:
        return {
            "management_fee_rate": to_wad(self.management_fee),
            "performance_fee_rate": to_wad(self.performance_fee),
            "deposit_fee_rate": to_wad(self.deposit_fee),
            "withdraw_fee_rate": to_wad(self.withdraw_fee),
        }


class RebalanceSettings(BaseModel):
    """Rebalance trigger and safety parameters."""

    deviation_threshold: float = Field(
        default=from_wad(DEFAULT_DEVIATION_THRESHOLD),
        ge=0,
        le=1,
        description="Weight deviation that flags a rebalance",
    )
    max_slippage: float = Field(
        default=from_wad(DEFAULT_MAX_SLIPPAGE),
        ge=0,
        le=1,
        description="Maximum tolerated loss of total assets during a rebalance",
    )
    cooldown_seconds: int = Field(
        default=DEFAULT_COOLDOWN_PERIOD, ge=0, description="Minimum time between rebalances"
    )


class SubVaultSpec(BaseModel):
    """Registration of one yield-bearing sub-vault.

    Attributes
    ----------
    address : str
        Sub-vault identifier
    target_weight : float
        Share of total assets the vault should hold after a rebalance
    max_weight, min_weight : float
        Allowed weight band
    deposit_cap : Optional[int]
        Maximum assets deployed into this vault (base units), None for unlimited
    """

    address: str = Field(min_length=1, description="Sub-vault address")
    target_weight: float = Field(ge=0, le=1, description="Target weight")
    max_weight: float = Field(default=1.0, ge=0, le=1, description="Maximum weight")
    min_weight: float = Field(default=0.0, ge=0, le=1, description="Minimum weight")
    deposit_cap: int | None = Field(default=None, ge=0, description="Per-vault deposit cap")
    active: bool = Field(default=True, description="Register as active")
    haircut: float = Field(
        default=0.0, ge=0, lt=1, description="Fraction of each deposit lost on entry (simulation)"
    )

    @model_validator(mode="after")
    def validate_band(self) -> "SubVaultSpec":
        """Ensure min_weight <= target_weight <= max_weight."""
        if not self.min_weight <= self.target_weight <= self.max_weight:
            raise ValueError("weights must satisfy min_weight <= target_weight <= max_weight")
        return self


class VaultSetupConfig(BaseModel):
    """Complete vault setup used by the simulator and the CLI."""

    name: str = Field(default="Nexus Vault", description="Share token name")
    symbol: str = Field(default="nxVAULT", description="Share token symbol")
    asset: str = Field(default="USDC", description="Managed asset address")
    asset_decimals: int = Field(default=DEFAULT_ASSET_DECIMALS, ge=0, le=36)
    owner: str = Field(default="owner", min_length=1)
    admin: str = Field(default="admin", min_length=1)
    keepers: list[str] = Field(default_factory=list)
    fees: FeeSettings = Field(default_factory=FeeSettings)
    rebalance: RebalanceSettings = Field(default_factory=RebalanceSettings)
    max_total_deposits: int | None = Field(default=None, ge=0)
    max_deposit_per_user: int | None = Field(default=None, ge=0)
    sub_vaults: list[SubVaultSpec] = Field(default_factory=list, max_length=MAX_VAULTS)

    @field_validator("sub_vaults")
    @classmethod
    def validate_sub_vaults(cls, v: list[SubVaultSpec]) -> list[SubVaultSpec]:
        """Ensure addresses are unique and active targets fit in 100%."""
        addresses = [spec.address for spec in v]
        if len(addresses) != len(set(addresses)):
            raise ValueError("Duplicate sub-vault addresses found")
        total = sum(to_wad(spec.target_weight) for spec in v if spec.active)
        if total > to_wad(1):
            raise ValueError("Active target weights exceed 100%")
        return v


ScenarioAction = Literal[
    "deposit",
    "mint",
    "withdraw",
    "redeem",
    "transfer_shares",
    "approve",
    "advance_time",
    "accrue_yield",
    "realize_loss",
    "rebalance",
    "force_rebalance",
    "collect_management_fee",
    "collect_performance_fee",
    "collect_all_fees",
    "reset_high_water_mark",
    "pause",
    "unpause",
    "shutdown",
]


class ScenarioStep(BaseModel):
    """One action replayed against a simulated vault."""

    action: ScenarioAction
    caller: str | None = Field(default=None, description="Account performing the call")
    amount: int | None = Field(default=None, ge=0)
    receiver: str | None = None
    owner: str | None = None
    vault: str | None = Field(
        default=None, description="Sub-vault target (accrue_yield, realize_loss)"
    )
    seconds: int | None = Field(default=None, ge=0)
    expect_error: str | None = Field(
        default=None, description="Name of the error the step must raise"
    )


class ScenarioConfig(BaseModel):
    """Scripted sequence of operations with initial asset balances."""

    name: str = Field(default="scenario")
    start_time: int = Field(default=1_700_000_000, ge=0)
    balances: dict[str, int] = Field(default_factory=dict, description="Initial asset balances")
    steps: list[ScenarioStep] = Field(default_factory=list)
