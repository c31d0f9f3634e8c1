from __future__ import annotations

import json
from pathlib import Path

import pytest

from nexus_vault.config import ScenarioConfig, VaultSetupConfig, load_config
from nexus_vault.config.constants import WAD, to_wad
from nexus_vault.simulation import SimulationError, build_simulation, run_scenario, run_step
from nexus_vault.config.schemas import ScenarioStep

PROJECT_ROOT = Path(__file__).resolve().parents[1]


@pytest.fixture
def example_setup() -> VaultSetupConfig:
    return load_config("configs/vault_example.yaml", VaultSetupConfig, project_root=PROJECT_ROOT)


def _scenario(name: str) -> ScenarioConfig:
    return load_config(f"configs/scenarios/{name}.yaml", ScenarioConfig, project_root=PROJECT_ROOT)


def test_build_simulation_wires_the_vault(example_setup: VaultSetupConfig) -> None:
    sim = build_simulation(example_setup, start_time=1_000)
    vault = sim.vault

    assert vault.symbol == "nxVAULT"
    assert vault.is_keeper("keeper")
    assert vault.last_fee_timestamp == 1_000
    fees = vault.get_fee_config()
    assert fees.management_fee_rate == to_wad(0.02)
    assert fees.performance_fee_rate == to_wad(0.20)
    assert fees.fee_recipient == "treasury"
    assert sorted(sim.sub_vaults) == ["aave-usdc", "morpho-usdc"]
    assert vault.get_vault_config("aave-usdc").min_weight == to_wad(0.3)
    assert vault.active_vault_count == 2


def test_fee_year_scenario(example_setup: VaultSetupConfig) -> None:
    report = run_scenario(example_setup, _scenario("fee_year"))

    outcomes = {outcome.index: outcome for outcome in report.outcomes}
    assert outcomes[0].result == 10**12
    assert outcomes[2].result == 20_000_000_000
    assert outcomes[4].result == 18_545_454_545
    assert outcomes[6].error == "VaultPaused"

    summary = report.summary
    assert summary["state"] == "shutdown"
    assert summary["high_water_mark"] == 1_100_000_000_000
    assert summary["share_balances"]["treasury"] == 20_000_000_000 + 18_545_454_545
    assert summary["share_balances"]["alice"] == 500_000_000_000
    assert summary["asset_balances"]["alice"] > 0
    assert report.state["shutdown"] is True


def test_rebalance_scenario(example_setup: VaultSetupConfig) -> None:
    report = run_scenario(example_setup, _scenario("rebalance"))

    rebalanced = report.outcomes[3].result
    assert rebalanced["old"] == {"aave-usdc": 7_500_000_000, "morpho-usdc": 9_500_000_000}
    assert rebalanced["new"] == {"aave-usdc": 8_500_000_000, "morpho-usdc": 8_500_000_000}
    assert report.outcomes[4].error == "CooldownActive"

    allocation = report.allocation
    assert list(allocation["current_assets"]) == [8_000_000_000, 8_000_000_000]
    assert report.summary["total_assets"] == 16_000_000_000
    assert list(report.events["name"]).count("Rebalanced") == 1


def test_report_is_json_serialisable(example_setup: VaultSetupConfig) -> None:
    report = run_scenario(example_setup, _scenario("rebalance"))
    payload = json.loads(json.dumps(report.to_dict(), default=str))
    assert payload["scenario"] == "rebalance"
    assert len(payload["steps"]) == 7


def test_haircut_and_loss_steps() -> None:
    setup = VaultSetupConfig(
        sub_vaults=[{"address": "lossy", "target_weight": 1.0, "haircut": 0.01}],
        rebalance={"max_slippage": 0.05},
    )
    scenario = ScenarioConfig(
        balances={"alice": 10_000},
        steps=[
            {"action": "deposit", "caller": "alice", "amount": 10_000},
            {"action": "realize_loss", "vault": "lossy", "amount": 900},
        ],
    )
    report = run_scenario(setup, scenario)
    assert report.summary["total_assets"] == 10_000 - 100 - 900
    assert report.summary["share_balances"]["alice"] == 10_000


def test_unexpected_failure_aborts_the_run(example_setup: VaultSetupConfig) -> None:
    scenario = ScenarioConfig(steps=[{"action": "deposit", "caller": "carol", "amount": 5}])
    with pytest.raises(SimulationError, match="InsufficientBalance"):
        run_scenario(example_setup, scenario)


def test_expected_failure_that_does_not_happen(example_setup: VaultSetupConfig) -> None:
    sim = build_simulation(example_setup)
    step = ScenarioStep(action="pause", caller="admin", expect_error="OnlyAdmin")
    with pytest.raises(SimulationError, match="succeeded"):
        run_step(sim, step, 0)


def test_malformed_steps(example_setup: VaultSetupConfig) -> None:
    sim = build_simulation(example_setup)
    with pytest.raises(SimulationError, match="needs 'amount'"):
        run_step(sim, ScenarioStep(action="deposit", caller="alice"), 0)
    with pytest.raises(SimulationError, match="unknown sub-vault"):
        run_step(sim, ScenarioStep(action="accrue_yield", vault="nowhere", amount=1), 1)


def test_caller_defaults_to_owner(example_setup: VaultSetupConfig) -> None:
    sim = build_simulation(example_setup)
    outcome = run_step(sim, ScenarioStep(action="shutdown"), 0)
    assert outcome.caller == "owner"
    assert outcome.result is None
    assert sim.vault.is_shutdown
    assert sim.vault.get_rebalance_config().max_slippage == WAD // 100


def test_adapter_failure_is_wrapped() -> None:
    setup = VaultSetupConfig(sub_vaults=[{"address": "a", "target_weight": 1.0}])
    scenario = ScenarioConfig(
        balances={"alice": 1_000},
        steps=[
            {"action": "deposit", "caller": "alice", "amount": 1_000},
            {"action": "realize_loss", "vault": "a", "amount": 5_000},
        ],
    )
    with pytest.raises(SimulationError, match="could not run") as excinfo:
        run_scenario(setup, scenario)
    assert isinstance(excinfo.value.__cause__, ValueError)
