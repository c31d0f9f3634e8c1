"""Build an in-memory vault from a setup file and replay scenario scripts.

The simulator wires :class:`~nexus_vault.vault.NexusVault` to the in-memory
adapters, funds every account listed in the scenario, approves the vault to
pull their assets and then runs the steps in order under a manual clock. A
step carrying ``expect_error`` must fail with exactly that error class.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable

import pandas as pd

from nexus_vault.adapters.memory import InMemorySubVault, InMemoryToken, ManualClock
from nexus_vault.config.constants import UNLIMITED, to_wad
from nexus_vault.config.schemas import ScenarioConfig, ScenarioStep, VaultSetupConfig
from nexus_vault.errors import VaultError
from nexus_vault.vault import NexusVault

__all__ = [
    "SimulationError",
    "StepOutcome",
    "SimulationReport",
    "Simulation",
    "build_simulation",
    "run_step",
    "run_scenario",
]

logger = logging.getLogger(__name__)


class SimulationError(Exception):
    """A scenario step could not be run or did not behave as scripted."""


@dataclass(frozen=True)
class StepOutcome:
    index: int
    action: str
    caller: str
    result: Any = None
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "index": self.index,
            "action": self.action,
            "caller": self.caller,
            "result": self.result,
            "error": self.error,
        }


@dataclass
class Simulation:
    """A vault and the in-memory world around it."""

    setup: VaultSetupConfig
    vault: NexusVault
    token: InMemoryToken
    clock: ManualClock
    sub_vaults: dict[str, InMemorySubVault] = field(default_factory=dict)

    def fund(self, account: str, amount: int) -> None:
        self.token.mint(account, amount)
        self.token.approve(account, self.vault.address, UNLIMITED)


@dataclass
class SimulationReport:
    scenario: str
    outcomes: list[StepOutcome]
    summary: dict[str, Any]
    events: pd.DataFrame
    allocation: pd.DataFrame
    state: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "scenario": self.scenario,
            "steps": [outcome.to_dict() for outcome in self.outcomes],
            "summary": self.summary,
            "events": self.events.reset_index().to_dict(orient="records"),
            "allocation": self.allocation.reset_index().to_dict(orient="records"),
        }


def _optional_cap(value: int | None) -> int:
    return UNLIMITED if value is None else value


def build_simulation(
    setup: VaultSetupConfig, *, start_time: int = 0, address: str = "nexus-vault"
) -> Simulation:
    """Create, initialise and configure a vault as described by ``setup``."""

    token = InMemoryToken(setup.asset, setup.asset_decimals)
    clock = ManualClock(start_time)
    vault = NexusVault(token, setup.owner, address=address, clock=clock)
    owner = setup.owner
    fees = setup.fees

    vault.initialize(owner, setup.name, setup.symbol, setup.admin, fees.fee_recipient or owner)
    rates = fees.to_wad()
    if any(rates.values()) or fees.fee_recipient:
        vault.set_fee_config(
            owner,
            rates["management_fee_rate"],
            rates["performance_fee_rate"],
            rates["deposit_fee_rate"],
            rates["withdraw_fee_rate"],
            fees.fee_recipient or owner,
        )
    vault.set_rebalance_config(
        owner,
        to_wad(setup.rebalance.deviation_threshold),
        to_wad(setup.rebalance.max_slippage),
        setup.rebalance.cooldown_seconds,
    )
    if setup.max_total_deposits is not None or setup.max_deposit_per_user is not None:
        vault.set_deposit_caps(
            owner,
            _optional_cap(setup.max_total_deposits),
            _optional_cap(setup.max_deposit_per_user),
        )
    for keeper in setup.keepers:
        vault.add_keeper(owner, keeper)

    simulation = Simulation(setup=setup, vault=vault, token=token, clock=clock)
    for spec in setup.sub_vaults:
        adapter = InMemorySubVault(spec.address, token, haircut=to_wad(spec.haircut))
        vault.add_vault(
            owner,
            adapter,
            to_wad(spec.target_weight),
            to_wad(spec.max_weight),
            to_wad(spec.min_weight),
            _optional_cap(spec.deposit_cap),
            spec.active,
        )
        simulation.sub_vaults[spec.address] = adapter
    logger.info(
        "Built vault %s with %d sub-vaults", setup.symbol, len(simulation.sub_vaults)
    )
    return simulation


def _require(step: ScenarioStep, index: int, attribute: str) -> Any:
    value = getattr(step, attribute)
    if value is None:
        raise SimulationError(f"step {index} ({step.action}) needs '{attribute}'")
    return value


def _sub_vault(sim: Simulation, step: ScenarioStep, index: int) -> InMemorySubVault:
    address = _require(step, index, "vault")
    try:
        return sim.sub_vaults[address]
    except KeyError:
        raise SimulationError(f"step {index}: unknown sub-vault {address!r}") from None


def _dispatch(sim: Simulation, step: ScenarioStep, index: int, caller: str) -> Callable[[], Any]:
    vault = sim.vault
    action = step.action
    receiver = step.receiver or caller
    owner = step.owner or caller

    if action in {"deposit", "mint"}:
        amount = _require(step, index, "amount")
        return lambda: getattr(vault, action)(caller, amount, receiver)
    if action in {"withdraw", "redeem"}:
        amount = _require(step, index, "amount")
        return lambda: getattr(vault, action)(caller, amount, receiver, owner)
    if action == "transfer_shares":
        amount = _require(step, index, "amount")
        to = _require(step, index, "receiver")
        return lambda: vault.transfer(caller, to, amount)
    if action == "approve":
        amount = _require(step, index, "amount")
        spender = _require(step, index, "receiver")
        return lambda: vault.approve(caller, spender, amount)
    if action == "advance_time":
        seconds = _require(step, index, "seconds")
        return lambda: sim.clock.advance(seconds)
    if action == "accrue_yield":
        amount = _require(step, index, "amount")
        target = _sub_vault(sim, step, index)
        return lambda: target.accrue_yield(amount)
    if action == "realize_loss":
        amount = _require(step, index, "amount")
        target = _sub_vault(sim, step, index)
        return lambda: target.realize_loss(amount)
    # Remaining actions are caller-only vault operations.
    return lambda: getattr(vault, action)(caller)


def run_step(sim: Simulation, step: ScenarioStep, index: int) -> StepOutcome:
    caller = step.caller or sim.setup.owner
    call = _dispatch(sim, step, index, caller)
    try:
        result = call()
    except VaultError as exc:
        name = type(exc).__name__
        if step.expect_error != name:
            raise SimulationError(f"step {index} ({step.action}) failed: {name}: {exc}") from exc
        logger.info("Step %d (%s) failed as expected with %s", index, step.action, name)
        return StepOutcome(index=index, action=step.action, caller=caller, error=name)
    except Exception as exc:
        # Adapter or clock failure: the scripted world itself is inconsistent.
        raise SimulationError(
            f"step {index} ({step.action}) could not run: {type(exc).__name__}: {exc}"
        ) from exc

    if step.expect_error is not None:
        raise SimulationError(
            f"step {index} ({step.action}) succeeded but {step.expect_error} was expected"
        )
    if isinstance(result, bool):
        result = None
    return StepOutcome(index=index, action=step.action, caller=caller, result=result)


def _summary(sim: Simulation, accounts: list[str]) -> dict[str, Any]:
    vault = sim.vault
    return {
        "time": sim.clock.now(),
        "state": vault.operational_state.value,
        "total_assets": vault.total_assets(),
        "idle_assets": vault.idle_assets(),
        "total_supply": vault.total_supply(),
        "high_water_mark": vault.high_water_mark,
        "share_balances": {account: vault.balance_of(account) for account in accounts},
        "asset_balances": {account: sim.token.balance_of(account) for account in accounts},
    }


def run_scenario(setup: VaultSetupConfig, scenario: ScenarioConfig) -> SimulationReport:
    """Replay ``scenario`` against a fresh vault built from ``setup``."""

    sim = build_simulation(setup, start_time=scenario.start_time)
    for account, amount in scenario.balances.items():
        sim.fund(account, amount)

    outcomes = [run_step(sim, step, index) for index, step in enumerate(scenario.steps)]

    accounts = sorted(
        set(scenario.balances)
        | {fee for fee in [sim.vault.get_fee_config().fee_recipient] if fee}
    )
    report = SimulationReport(
        scenario=scenario.name,
        outcomes=outcomes,
        summary=_summary(sim, accounts),
        events=sim.vault.events.to_frame(),
        allocation=sim.vault.allocation_frame(),
        state=sim.vault.export_state(),
    )
    logger.info(
        "Scenario %s finished after %d steps",
        scenario.name,
        len(outcomes),
        extra={"total_assets": report.summary["total_assets"]},
    )
    return report
