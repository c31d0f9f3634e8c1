from __future__ import annotations

import pytest

from nexus_vault import NexusVault
from nexus_vault.adapters import InMemorySubVault, InMemoryToken, ManualClock
from nexus_vault.config.constants import UNLIMITED, WAD

START_TIME = 1_700_000_000
USER_FUNDS = 10**12


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock(START_TIME)


@pytest.fixture
def usdc() -> InMemoryToken:
    return InMemoryToken("USDC", decimals=6)


@pytest.fixture
def vault_a(usdc: InMemoryToken) -> InMemorySubVault:
    return InMemorySubVault("vault-a", usdc)


@pytest.fixture
def vault_b(usdc: InMemoryToken) -> InMemorySubVault:
    return InMemorySubVault("vault-b", usdc)


@pytest.fixture
def vault(usdc: InMemoryToken, clock: ManualClock) -> NexusVault:
    """Initialised vault with an admin, a keeper and two funded users."""

    nexus = NexusVault(usdc, "owner", address="nexus", clock=clock)
    nexus.initialize("owner", "Nexus Vault", "nxVAULT", "admin", "treasury")
    nexus.add_keeper("admin", "keeper")
    for user in ("alice", "bob"):
        usdc.mint(user, USER_FUNDS)
        usdc.approve(user, "nexus", UNLIMITED)
    return nexus


@pytest.fixture
def two_vaults(
    vault: NexusVault, vault_a: InMemorySubVault, vault_b: InMemorySubVault
) -> NexusVault:
    """Vault allocating 50/50 between ``vault-a`` and ``vault-b``."""

    vault.add_vault("admin", vault_a, WAD // 2, WAD, 0)
    vault.add_vault("admin", vault_b, WAD // 2, WAD, 0)
    return vault
