"""Operation handlers. Each takes a :class:`VaultContext` and the caller."""

from . import admin, core, rebalance, views
from .context import VaultContext

__all__ = ["VaultContext", "admin", "core", "rebalance", "views"]
