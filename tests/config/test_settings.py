from __future__ import annotations

from pathlib import Path

import pytest

from nexus_vault.config.settings import (
    Settings,
    get_settings,
    load_env_file,
    reset_settings_cache,
)


def teardown_module() -> None:  # pragma: no cover - test helper
    reset_settings_cache()


def test_load_env_file_parses_key_value(tmp_path: Path) -> None:
    env_path = tmp_path / "custom.env"
    env_path.write_text(
        """
        # comment
        NEXUS_VAULT_ENVIRONMENT=production
        NEXUS_VAULT_ASSET_DECIMALS=18
        INVALID_LINE
        """.strip(),
        encoding="utf-8",
    )

    data = load_env_file(env_path)
    assert data["NEXUS_VAULT_ENVIRONMENT"] == "production"
    assert data["NEXUS_VAULT_ASSET_DECIMALS"] == "18"
    assert "INVALID_LINE" not in data
    assert load_env_file(tmp_path / "missing.env") == {}


def test_settings_from_env_uses_project_root_and_env_file(tmp_path: Path) -> None:
    (tmp_path / ".env").write_text(
        "NEXUS_VAULT_ASSET_DECIMALS=18\nNEXUS_VAULT_STRUCTURED_LOGGING=false\n",
        encoding="utf-8",
    )

    settings = Settings.from_env(overrides={"project_root": tmp_path}, environ={})

    assert settings.project_root == tmp_path.resolve()
    assert settings.asset_decimals == 18
    assert settings.configs_dir == tmp_path / "configs"
    assert settings.state_dir == tmp_path / "state"
    assert not settings.structured_logging
    assert not settings.is_production


def test_settings_overrides_beat_environment(tmp_path: Path) -> None:
    settings = Settings.from_env(
        overrides={
            "project_root": tmp_path,
            "LOGS_DIR": "logs_alt",
            "STRUCTURED_LOGGING": "false",
        },
        environ={
            "NEXUS_VAULT_STATE_DIR": "ledgers",
            "NEXUS_VAULT_STRUCTURED_LOGGING": "1",
            "NEXUS_VAULT_ENVIRONMENT": "production",
        },
    )

    assert settings.state_dir == tmp_path / "ledgers"
    assert settings.logs_dir == tmp_path / "logs_alt"
    assert not settings.structured_logging
    assert settings.is_production
    assert settings.to_dict()["state_dir"] == str(tmp_path / "ledgers")


def test_settings_rejects_bad_values(tmp_path: Path) -> None:
    with pytest.raises(KeyError):
        Settings.from_env(overrides={"project_root": tmp_path, "UNKNOWN": 10}, environ={})
    with pytest.raises(ValueError):
        Settings.from_env(
            overrides={"project_root": tmp_path},
            environ={"NEXUS_VAULT_STRUCTURED_LOGGING": "maybe"},
        )


def test_get_settings_caches_until_reset(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    reset_settings_cache()
    monkeypatch.setenv("NEXUS_VAULT_PROJECT_ROOT", str(tmp_path))

    first = get_settings()
    assert first is get_settings()
    assert first.project_root == tmp_path.resolve()

    fresh = get_settings(overrides={"project_root": tmp_path, "ASSET_DECIMALS": 8})
    assert fresh.asset_decimals == 8
    assert get_settings() is first

    reset_settings_cache()
    assert get_settings() is not first
