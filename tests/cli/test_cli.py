from __future__ import annotations

import json
import logging
from pathlib import Path

import pytest

from nexus_vault.cli import main
from nexus_vault.config import reset_settings_cache

PROJECT_ROOT = Path(__file__).resolve().parents[2]
SETUP = PROJECT_ROOT / "configs" / "vault_example.yaml"
FEE_YEAR = PROJECT_ROOT / "configs" / "scenarios" / "fee_year.yaml"
REBALANCE = PROJECT_ROOT / "configs" / "scenarios" / "rebalance.yaml"


def setup_function() -> None:  # pragma: no cover - helper
    reset_settings_cache()


def teardown_function() -> None:  # pragma: no cover - helper
    root = logging.getLogger()
    for handler in root.handlers[:]:
        handler.close()
        root.removeHandler(handler)
    reset_settings_cache()


@pytest.fixture
def isolated_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> Path:
    monkeypatch.setenv("NEXUS_VAULT_PROJECT_ROOT", str(tmp_path))
    monkeypatch.setenv("NEXUS_VAULT_LOGS_DIR", str(tmp_path / "logs"))
    monkeypatch.setenv("NEXUS_VAULT_STATE_DIR", str(tmp_path / "state"))
    return tmp_path


def test_show_settings_json(isolated_env: Path, capsys: pytest.CaptureFixture[str]) -> None:
    exit_code = main(["show-settings", "--json"])
    assert exit_code == 0

    payload = json.loads(capsys.readouterr().out)
    assert Path(payload["project_root"]) == isolated_env.resolve()
    assert payload["logs_dir"].endswith("logs")
    assert payload["asset_decimals"] == 6


def test_simulate_json(isolated_env: Path, capsys: pytest.CaptureFixture[str]) -> None:
    exit_code = main(
        ["--plain-logs", "simulate", "--setup", str(SETUP), "--scenario", str(FEE_YEAR), "--json"]
    )
    assert exit_code == 0

    payload = json.loads(capsys.readouterr().out)
    assert payload["scenario"] == "fee_year"
    assert payload["summary"]["state"] == "shutdown"
    assert payload["steps"][6]["error"] == "VaultPaused"
    assert (isolated_env / "logs" / "nexus_vault.log").exists()


def test_simulate_saves_state(isolated_env: Path, capsys: pytest.CaptureFixture[str]) -> None:
    exit_code = main(
        ["simulate", "--setup", str(SETUP), "--scenario", str(REBALANCE), "--save-state"]
    )
    assert exit_code == 0

    out = capsys.readouterr().out
    assert "total_assets: 16000000000" in out
    saved = json.loads((isolated_env / "state" / "rebalance.json").read_text(encoding="utf-8"))
    assert saved["symbol"] == "nxVAULT"
    assert [entry["vault"] for entry in saved["sub_vaults"]] == ["aave-usdc", "morpho-usdc"]


def test_simulate_reports_failed_scenario(
    isolated_env: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    scenario = isolated_env / "broken.yaml"
    scenario.write_text(
        "name: broken\nsteps:\n  - action: deposit\n    caller: nobody\n    amount: 10\n",
        encoding="utf-8",
    )
    exit_code = main(["simulate", "--setup", str(SETUP), "--scenario", str(scenario)])
    assert exit_code == 1
    assert "InsufficientBalance" in capsys.readouterr().err


def test_simulate_missing_config(isolated_env: Path, capsys: pytest.CaptureFixture[str]) -> None:
    exit_code = main(["simulate", "--setup", "missing.yaml", "--scenario", str(FEE_YEAR)])
    assert exit_code == 2
    assert "Configuration file not found" in capsys.readouterr().err


def test_validate(isolated_env: Path, capsys: pytest.CaptureFixture[str]) -> None:
    assert main(["validate", "--setup", str(SETUP), "--scenario", str(REBALANCE)]) == 0
    out = capsys.readouterr().out
    assert "nxVAULT with 2 sub-vaults" in out
    assert "rebalance with 7 steps" in out

    assert main(["validate"]) == 2

    invalid = isolated_env / "invalid.yaml"
    invalid.write_text("sub_vaults:\n  - address: a\n    target_weight: 2\n", encoding="utf-8")
    assert main(["validate", "--setup", str(invalid)]) == 2


def test_simulate_reports_adapter_failure(
    isolated_env: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    setup = isolated_env / "single.yaml"
    setup.write_text(
        "sub_vaults:\n  - address: a\n    target_weight: 1.0\n", encoding="utf-8"
    )
    scenario = isolated_env / "overdrawn.yaml"
    scenario.write_text(
        "name: overdrawn\n"
        "balances:\n  alice: 1000\n"
        "steps:\n"
        "  - action: deposit\n    caller: alice\n    amount: 1000\n"
        "  - action: realize_loss\n    vault: a\n    amount: 5000\n",
        encoding="utf-8",
    )
    exit_code = main(["simulate", "--setup", str(setup), "--scenario", str(scenario)])
    assert exit_code == 1
    err = capsys.readouterr().err
    assert "step 1 (realize_loss) could not run" in err
    assert "ValueError" in err
