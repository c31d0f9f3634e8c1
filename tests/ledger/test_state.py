from __future__ import annotations

import json

import pytest

from nexus_vault.config.constants import WAD
from nexus_vault.errors import UnsupportedSchema
from nexus_vault.ledger import (
    SCHEMA_VERSION,
    OperationalState,
    ReentrancyStatus,
    SubVaultConfig,
    VaultState,
)


def _populated_state() -> VaultState:
    state = VaultState(asset="USDC", owner="owner", initialized=True, admin="admin")
    state.keepers.update({"k2", "k1"})
    state.sub_vaults["a"] = SubVaultConfig("a", WAD // 2, WAD, 0)
    state.sub_vaults["b"] = SubVaultConfig("b", WAD // 2, WAD, 0, active=False)
    state.balances["alice"] = 10
    state.allowances["alice"] = {"bob": 5}
    state.total_supply = 10
    return state


def test_operational_state_priority() -> None:
    state = VaultState(asset="USDC", owner="owner")
    assert state.operational_state is OperationalState.ACTIVE
    state.paused = True
    assert state.operational_state is OperationalState.PAUSED
    state.shutdown = True
    assert state.operational_state is OperationalState.SHUTDOWN


def test_registry_helpers_only_count_active_vaults() -> None:
    state = _populated_state()
    assert [cfg.vault for cfg in state.active_vaults()] == ["a"]
    assert state.total_active_weight() == WAD // 2
    assert state.count_active() == 1


def test_snapshot_is_independent_and_restores_in_place() -> None:
    state = _populated_state()
    snapshot = state.snapshot()

    state.balances["alice"] = 0
    state.sub_vaults["a"].target_weight = 0
    state.keepers.clear()
    state.paused = True

    same_object = state
    state.restore(snapshot)
    assert state is same_object
    assert state.balances["alice"] == 10
    assert state.sub_vaults["a"].target_weight == WAD // 2
    assert state.keepers == {"k1", "k2"}
    assert not state.paused


def test_to_dict_round_trip_is_json_safe() -> None:
    state = _populated_state()
    payload = json.loads(json.dumps(state.to_dict()))

    assert payload["keepers"] == ["k1", "k2"]
    assert payload["reentrancy"] == "not_entered"
    restored = VaultState.from_dict(payload)
    assert restored == state


def test_from_dict_fills_defaults_and_ignores_unknown_keys() -> None:
    restored = VaultState.from_dict(
        {"asset": "USDC", "owner": "owner", "schema_version": 1, "legacy_field": True}
    )
    assert restored.schema_version == SCHEMA_VERSION
    assert restored.sub_vaults == {}
    assert restored.reentrancy is ReentrancyStatus.NOT_ENTERED


def test_from_dict_rejects_newer_schema() -> None:
    with pytest.raises(UnsupportedSchema):
        VaultState.from_dict({"asset": "USDC", "owner": "o", "schema_version": SCHEMA_VERSION + 1})
