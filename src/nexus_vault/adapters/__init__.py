"""Concrete collaborators for simulation and tests."""

from .memory import InMemorySubVault, InMemoryToken, ManualClock, SystemClock

__all__ = ["InMemorySubVault", "InMemoryToken", "ManualClock", "SystemClock"]
