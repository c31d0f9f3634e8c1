"""Everything an operation handler needs, bundled in one object."""

from __future__ import annotations

from dataclasses import dataclass, field

from nexus_vault.interfaces import AssetToken, Clock, SubVault
from nexus_vault.ledger.events import EventLog
from nexus_vault.ledger.shares import ShareLedger
from nexus_vault.ledger.state import VaultState

__all__ = ["VaultContext"]


@dataclass
class VaultContext:
    """Ledger plus the live collaborators it refers to.

    ``address`` is the vault's own account on the asset token (where idle
    assets sit) and on every sub-vault (where its shares are held).
    ``sub_vaults`` maps each registered address to its adapter.
    """

    address: str
    state: VaultState
    asset: AssetToken
    clock: Clock
    events: EventLog = field(default_factory=EventLog)
    sub_vaults: dict[str, SubVault] = field(default_factory=dict)

    @property
    def shares(self) -> ShareLedger:
        return ShareLedger(self.state)

    def now(self) -> int:
        return int(self.clock.now())

    def emit(self, name: str, **payload) -> None:
        self.events.emit(name, self.now(), **payload)
