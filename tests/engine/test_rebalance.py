from __future__ import annotations

import pytest

from nexus_vault import NexusVault
from nexus_vault.adapters import InMemorySubVault, InMemoryToken, ManualClock
from nexus_vault.config.constants import SECONDS_PER_DAY, SECONDS_PER_YEAR, WAD
from nexus_vault.errors import (
    CooldownActive,
    OnlyAdmin,
    OnlyKeeper,
    OnlyOwner,
    SlippageExceeded,
    VaultPaused,
)
from nexus_vault.ledger import events

TWO_PERCENT = 2 * WAD // 100
TWENTY_PERCENT = 20 * WAD // 100


def test_management_fee_after_one_year(vault: NexusVault, clock: ManualClock) -> None:
    vault.set_fee_config("admin", TWO_PERCENT, 0, 0, 0, "treasury")
    vault.deposit("alice", 1_000_000, "alice")
    clock.advance(SECONDS_PER_YEAR)

    assert vault.pending_fees().management_assets == 20_000
    minted = vault.collect_management_fee("keeper")

    assert minted == 20_000
    assert vault.balance_of("treasury") == 20_000
    assert vault.last_fee_timestamp == clock.now()
    assert vault.collect_management_fee("keeper") == 0

    event = vault.events.last(events.FEES_COLLECTED)
    assert event.payload["kind"] == "management"
    assert event.payload["assets"] == 20_000


def test_performance_fee_on_profit_above_mark(
    two_vaults: NexusVault, vault_a: InMemorySubVault
) -> None:
    two_vaults.set_fee_config("admin", 0, TWENTY_PERCENT, 0, 0, "treasury")
    two_vaults.deposit("alice", 1_000_000, "alice")
    assert two_vaults.high_water_mark == 1_000_000

    vault_a.accrue_yield(100_000)
    assert two_vaults.pending_fees().performance_assets == 20_000

    minted = two_vaults.collect_performance_fee("keeper")
    assert minted == 18_181
    assert two_vaults.balance_of("treasury") == 18_181
    assert two_vaults.high_water_mark == 1_100_000
    assert two_vaults.collect_performance_fee("keeper") == 0


def test_collect_all_fees_runs_management_first(
    two_vaults: NexusVault, vault_a: InMemorySubVault, clock: ManualClock
) -> None:
    two_vaults.set_fee_config("admin", TWO_PERCENT, TWENTY_PERCENT, 0, 0, "treasury")
    two_vaults.deposit("alice", 1_000_000, "alice")
    vault_a.accrue_yield(100_000)
    clock.advance(SECONDS_PER_YEAR)

    pending = two_vaults.pending_fees()
    minted = two_vaults.collect_all_fees("keeper")

    assert minted == 20_000 + 18_545
    assert pending.management_shares == 20_000
    assert pending.performance_shares == 18_545
    assert pending.total_shares == minted
    kinds = [event.payload["kind"] for event in two_vaults.events.named(events.FEES_COLLECTED)]
    assert kinds == ["management", "performance"]
    assert two_vaults.high_water_mark == 1_100_000


def test_fee_collection_without_rates_is_a_no_op(vault: NexusVault, clock: ManualClock) -> None:
    vault.deposit("alice", 1_000_000, "alice")
    clock.advance(SECONDS_PER_YEAR)
    before = vault.last_fee_timestamp

    assert vault.collect_all_fees("keeper") == 0
    assert vault.events.named(events.FEES_COLLECTED) == []
    assert vault.last_fee_timestamp == before
    assert vault.total_supply() == 1_000_000


def test_fee_collection_requires_keeper(vault: NexusVault) -> None:
    with pytest.raises(OnlyKeeper):
        vault.collect_management_fee("alice")
    with pytest.raises(OnlyKeeper):
        vault.collect_all_fees("alice")


def test_fees_still_collectable_while_paused(vault: NexusVault, clock: ManualClock) -> None:
    vault.set_fee_config("admin", TWO_PERCENT, 0, 0, 0, "treasury")
    vault.deposit("alice", 1_000_000, "alice")
    vault.pause("admin")
    clock.advance(SECONDS_PER_YEAR)
    assert vault.collect_management_fee("keeper") == 20_000


def test_rebalance_restores_target_weights(
    two_vaults: NexusVault,
    vault_a: InMemorySubVault,
    vault_b: InMemorySubVault,
    clock: ManualClock,
) -> None:
    two_vaults.deposit("alice", 1_000, "alice")
    vault_a.accrue_yield(200)
    assert two_vaults.needs_rebalance()

    result = two_vaults.rebalance("keeper")

    assert result["old"] == {"vault-a": 700, "vault-b": 500}
    assert result["new"] == {"vault-a": 600, "vault-b": 600}
    assert vault_a.total_assets() == 600
    assert vault_b.total_assets() == 600
    assert two_vaults.total_assets() == 1_200
    assert not two_vaults.needs_rebalance()
    assert two_vaults.get_rebalance_config().last_rebalance_time == clock.now()


def test_rebalance_deploys_idle_assets(
    vault: NexusVault, vault_a: InMemorySubVault, vault_b: InMemorySubVault
) -> None:
    vault.deposit("alice", 1_000, "alice")
    vault.add_vault("admin", vault_a, WAD // 2, WAD)
    vault.add_vault("admin", vault_b, WAD // 2, WAD)

    vault.rebalance("keeper")
    assert vault.idle_assets() == 0
    assert vault_a.total_assets() == 500
    assert vault_b.total_assets() == 500


def test_rebalance_cooldown(two_vaults: NexusVault, clock: ManualClock) -> None:
    two_vaults.deposit("alice", 1_000, "alice")
    two_vaults.rebalance("keeper")

    with pytest.raises(CooldownActive) as excinfo:
        two_vaults.rebalance("keeper")
    assert excinfo.value.ready_at == clock.now() + SECONDS_PER_DAY

    clock.advance(SECONDS_PER_DAY)
    two_vaults.rebalance("keeper")


def test_force_rebalance_ignores_cooldown(two_vaults: NexusVault) -> None:
    two_vaults.deposit("alice", 1_000, "alice")
    two_vaults.rebalance("keeper")

    with pytest.raises(OnlyAdmin):
        two_vaults.force_rebalance("keeper")
    two_vaults.force_rebalance("admin")
    assert two_vaults.events.last(events.REBALANCED).payload["forced"] is True


def test_rebalance_access_and_lifecycle(two_vaults: NexusVault) -> None:
    with pytest.raises(OnlyKeeper):
        two_vaults.rebalance("alice")
    two_vaults.pause("admin")
    with pytest.raises(VaultPaused):
        two_vaults.rebalance("keeper")


def test_slippage_beyond_limit_rolls_back(
    vault: NexusVault, vault_a: InMemorySubVault, usdc: InMemoryToken
) -> None:
    lossy = InMemorySubVault("vault-c", usdc, haircut=WAD // 20)
    vault.add_vault("admin", vault_a, WAD // 2, WAD)
    vault.add_vault("admin", lossy, WAD // 2, WAD, active=False)
    vault.deposit("alice", 1_000, "alice")
    vault.activate_vault("admin", "vault-c")
    supply_before = usdc.total_supply
    events_before = len(vault.events)

    with pytest.raises(SlippageExceeded) as excinfo:
        vault.rebalance("keeper")

    assert excinfo.value.after == 975
    assert vault_a.total_assets() == 1_000
    assert lossy.total_assets() == 0
    assert usdc.total_supply == supply_before
    assert len(vault.events) == events_before
    assert vault.get_rebalance_config().last_rebalance_time == 0

    vault.set_rebalance_config("admin", WAD // 20, WAD // 20, SECONDS_PER_DAY)
    vault.rebalance("keeper")
    assert vault.total_assets() == 975
    assert lossy.total_assets() == 475


def test_reset_high_water_mark(two_vaults: NexusVault, vault_a: InMemorySubVault) -> None:
    two_vaults.set_fee_config("admin", 0, TWENTY_PERCENT, 0, 0, "treasury")
    two_vaults.deposit("alice", 1_000_000, "alice")
    vault_a.realize_loss(100_000)

    with pytest.raises(OnlyOwner):
        two_vaults.reset_high_water_mark("admin")
    assert two_vaults.reset_high_water_mark("owner") == 900_000
    assert two_vaults.high_water_mark == 900_000

    vault_a.accrue_yield(50_000)
    assert two_vaults.collect_performance_fee("keeper") > 0
