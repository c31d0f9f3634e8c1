"""Append-only audit trail of vault operations."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterator, Mapping

import pandas as pd

__all__ = [
    "DEPOSIT",
    "WITHDRAW",
    "REBALANCED",
    "FEES_COLLECTED",
    "CONFIG_CHANGED",
    "PAUSED",
    "UNPAUSED",
    "SHUTDOWN",
    "VaultEvent",
    "EventLog",
]

DEPOSIT = "Deposit"
WITHDRAW = "Withdraw"
REBALANCED = "Rebalanced"
FEES_COLLECTED = "FeesCollected"
CONFIG_CHANGED = "ConfigChanged"
PAUSED = "Paused"
UNPAUSED = "Unpaused"
SHUTDOWN = "Shutdown"


@dataclass(frozen=True)
class VaultEvent:
    sequence: int
    name: str
    timestamp: int
    payload: Mapping[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "sequence": self.sequence,
            "name": self.name,
            "timestamp": self.timestamp,
            **dict(self.payload),
        }


class EventLog:
    """Ordered list of :class:`VaultEvent` records.

    Records are only ever appended. The sole way to drop entries is
    :meth:`rollback`, used by the engine to discard events emitted by an
    operation that failed and was unwound.
    """

    def __init__(self) -> None:
        self._events: list[VaultEvent] = []

    def __len__(self) -> int:
        return len(self._events)

    def __iter__(self) -> Iterator[VaultEvent]:
        return iter(self._events)

    def __getitem__(self, index: int) -> VaultEvent:
        return self._events[index]

    def emit(self, name: str, timestamp: int, **payload: Any) -> VaultEvent:
        event = VaultEvent(
            sequence=len(self._events), name=name, timestamp=timestamp, payload=payload
        )
        self._events.append(event)
        return event

    def named(self, name: str) -> list[VaultEvent]:
        return [event for event in self._events if event.name == name]

    def last(self, name: str | None = None) -> VaultEvent | None:
        candidates = self._events if name is None else self.named(name)
        return candidates[-1] if candidates else None

    def rollback(self, length: int) -> None:
        del self._events[length:]

    def to_frame(self) -> pd.DataFrame:
        """Flatten the log into a DataFrame indexed by sequence number."""

        columns = ["sequence", "name", "timestamp"]
        if not self._events:
            return pd.DataFrame(columns=columns).set_index("sequence")
        frame = pd.DataFrame.from_records([event.to_dict() for event in self._events])
        return frame.set_index("sequence")
