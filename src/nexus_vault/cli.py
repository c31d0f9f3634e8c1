"""Command line interface for the project.

Commands:
- show-settings: print the resolved :class:`~nexus_vault.config.Settings`
- simulate: build a vault from a setup YAML and replay a scenario YAML
- validate: check setup and scenario files without running anything
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Any, Iterable

from nexus_vault.config import (
    ConfigError,
    ScenarioConfig,
    Settings,
    VaultSetupConfig,
    configure_logging,
    get_settings,
    load_config,
)

__all__ = ["build_parser", "main"]


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="nexus_vault CLI")
    parser.add_argument(
        "--structured-logs",
        dest="structured_logs",
        action="store_true",
        help="force JSON structured logs",
    )
    parser.add_argument(
        "--plain-logs",
        dest="structured_logs",
        action="store_false",
        help="force plain text logs",
    )
    parser.set_defaults(structured_logs=None)

    subparsers = parser.add_subparsers(dest="command", required=True)

    show = subparsers.add_parser("show-settings", help="Print the resolved settings")
    show.add_argument("--json", action="store_true", help="JSON output")

    sim = subparsers.add_parser("simulate", help="Replay a scenario against a simulated vault")
    sim.add_argument("--setup", type=str, required=True, help="Vault setup YAML")
    sim.add_argument("--scenario", type=str, required=True, help="Scenario YAML")
    sim.add_argument("--json", action="store_true", help="JSON output")
    sim.add_argument(
        "--save-state",
        action="store_true",
        help="write the final ledger to <state_dir>/<scenario>.json",
    )

    check = subparsers.add_parser("validate", help="Validate setup/scenario files")
    check.add_argument("--setup", type=str, help="Vault setup YAML")
    check.add_argument("--scenario", type=str, help="Scenario YAML")

    return parser


def _configure_logging(structured: bool | None, settings: Settings, command: str) -> None:
    configure_logging(settings=settings, structured=structured, context={"command": command})


def _print_payload(payload: dict[str, Any], *, as_json: bool) -> None:
    if as_json:
        print(json.dumps(payload, indent=2, sort_keys=True, default=str))
    else:
        for key, value in payload.items():
            print(f"{key}: {value}")


def _save_state(state: dict[str, Any], name: str, settings: Settings) -> Path:
    settings.state_dir.mkdir(parents=True, exist_ok=True)
    path = settings.state_dir / f"{name}.json"
    path.write_text(json.dumps(state, indent=2, default=str), encoding="utf-8")
    return path


def _simulate(args: argparse.Namespace, settings: Settings) -> int:
    from nexus_vault.simulation import SimulationError, run_scenario

    setup = load_config(args.setup, VaultSetupConfig, project_root=settings.project_root)
    if "asset_decimals" not in setup.model_fields_set:
        setup = setup.model_copy(update={"asset_decimals": settings.asset_decimals})
    scenario = load_config(args.scenario, ScenarioConfig, project_root=settings.project_root)
    try:
        report = run_scenario(setup, scenario)
    except SimulationError as exc:
        print(f"Scenario failed: {exc}", file=sys.stderr)
        return 1

    if args.json:
        _print_payload(report.to_dict(), as_json=True)
    else:
        _print_payload(report.summary, as_json=False)
        if not report.allocation.empty:
            print()
            print(report.allocation.to_string())
    if args.save_state:
        path = _save_state(report.state, scenario.name, settings)
        print(f"state saved to {path}", file=sys.stderr)
    return 0


def _validate(args: argparse.Namespace, settings: Settings) -> int:
    checked: dict[str, Any] = {}
    if args.setup:
        setup = load_config(args.setup, VaultSetupConfig, project_root=settings.project_root)
        checked["setup"] = f"{setup.symbol} with {len(setup.sub_vaults)} sub-vaults"
    if args.scenario:
        scenario = load_config(
            args.scenario, ScenarioConfig, project_root=settings.project_root
        )
        checked["scenario"] = f"{scenario.name} with {len(scenario.steps)} steps"
    if not checked:
        print("nothing to validate: pass --setup and/or --scenario", file=sys.stderr)
        return 2
    _print_payload(checked, as_json=False)
    return 0


def main(argv: Iterable[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)

    settings = get_settings()
    _configure_logging(args.structured_logs, settings, args.command)

    try:
        if args.command == "show-settings":
            _print_payload(settings.to_dict(), as_json=args.json)
        elif args.command == "simulate":
            return _simulate(args, settings)
        elif args.command == "validate":
            return _validate(args, settings)
        else:  # pragma: no cover - defensive fallback
            parser.error(f"Unknown command: {args.command}")
    except ConfigError as exc:
        print(str(exc), file=sys.stderr)
        return 2

    return 0


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
