"""Nexus Vault.

Pooled-capital vault that takes deposits of one asset, issues shares and
allocates the pool across yield-bearing sub-vaults by target weight. The
source lives in `src/nexus_vault/` and is consumed mainly via:

- Library: `nexus_vault.NexusVault` with the adapters in `nexus_vault.adapters`
- CLI: `nexus-vault simulate --setup ... --scenario ...`
"""

from __future__ import annotations

from importlib.metadata import PackageNotFoundError, version

from nexus_vault.vault import NexusVault

try:  # pragma: no cover - depends on the package being installed
    __version__ = version("nexus-vault")
except PackageNotFoundError:  # pragma: no cover - fallback for source checkouts
    __version__ = "0.0.0"

__all__ = ["NexusVault", "__version__"]
