"""Tests for Pydantic configuration schemas."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from nexus_vault.config.constants import WAD
from nexus_vault.config.schemas import (
    FeeSettings,
    RebalanceSettings,
    ScenarioConfig,
    ScenarioStep,
    SubVaultSpec,
    VaultSetupConfig,
)

# Tests for FeeSettings


def test_fee_settings_to_wad():
    fees = FeeSettings(management_fee=0.02, performance_fee=0.2, fee_recipient="treasury")
    assert fees.to_wad() == {
        "management_fee_rate": 2 * WAD // 100,
        "performance_fee_rate": 2 * WAD // 10,
        "deposit_fee_rate": 0,
        "withdraw_fee_rate": 0,
    }


def test_fee_settings_caps():
    with pytest.raises(ValidationError):
        FeeSettings(management_fee=0.25, fee_recipient="treasury")
    with pytest.raises(ValidationError):
        FeeSettings(deposit_fee=0.06, fee_recipient="treasury")


def test_fee_settings_need_recipient_for_positive_rates():
    with pytest.raises(ValidationError, match="fee_recipient"):
        FeeSettings(withdraw_fee=0.01)
    assert FeeSettings().fee_recipient is None


# Tests for RebalanceSettings


def test_rebalance_settings_defaults():
    settings = RebalanceSettings()
    assert settings.deviation_threshold == pytest.approx(0.05)
    assert settings.max_slippage == pytest.approx(0.01)
    assert settings.cooldown_seconds == 86_400


# Tests for SubVaultSpec


def test_sub_vault_spec_band():
    spec = SubVaultSpec(address="aave", target_weight=0.5, max_weight=0.7, min_weight=0.3)
    assert spec.active
    assert spec.deposit_cap is None

    with pytest.raises(ValidationError, match="min_weight"):
        SubVaultSpec(address="aave", target_weight=0.8, max_weight=0.7)
    with pytest.raises(ValidationError):
        SubVaultSpec(address="aave", target_weight=0.5, haircut=1.0)


# Tests for VaultSetupConfig


def test_setup_rejects_duplicate_sub_vaults():
    with pytest.raises(ValidationError, match="Duplicate"):
        VaultSetupConfig(
            sub_vaults=[
                {"address": "aave", "target_weight": 0.5},
                {"address": "aave", "target_weight": 0.5},
            ]
        )


def test_setup_rejects_active_weights_above_one():
    with pytest.raises(ValidationError, match="exceed"):
        VaultSetupConfig(
            sub_vaults=[
                {"address": "aave", "target_weight": 0.6},
                {"address": "morpho", "target_weight": 0.6},
            ]
        )

    setup = VaultSetupConfig(
        sub_vaults=[
            {"address": "aave", "target_weight": 0.6},
            {"address": "morpho", "target_weight": 0.6, "active": False},
        ]
    )
    assert len(setup.sub_vaults) == 2


def test_setup_defaults():
    setup = VaultSetupConfig()
    assert setup.owner == "owner"
    assert setup.asset_decimals == 6
    assert setup.max_total_deposits is None
    assert setup.sub_vaults == []


# Tests for scenarios


def test_scenario_step_validation():
    step = ScenarioStep(action="deposit", caller="alice", amount=100)
    assert step.receiver is None
    with pytest.raises(ValidationError):
        ScenarioStep(action="liquidate")
    with pytest.raises(ValidationError):
        ScenarioStep(action="deposit", amount=-1)


def test_scenario_config_from_mapping():
    scenario = ScenarioConfig.model_validate(
        {
            "name": "smoke",
            "balances": {"alice": 1_000},
            "steps": [
                {"action": "deposit", "caller": "alice", "amount": 1_000},
                {"action": "advance_time", "seconds": 60},
                {"action": "pause", "caller": "admin", "expect_error": "OnlyAdmin"},
            ],
        }
    )
    assert scenario.name == "smoke"
    assert [step.action for step in scenario.steps] == ["deposit", "advance_time", "pause"]
    assert scenario.steps[2].expect_error == "OnlyAdmin"
