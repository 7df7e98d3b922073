#!/usr/bin/env python3
"""
Scenario asset checker.

Loads every asset in the configured folder and reports steps whose domain
or verb no router recognizes, so typos show up before a show instead of as
skipped steps in the log.
"""

import argparse
import sys
from pathlib import Path

from buttonboard.actions.keys import parse_action_key
from buttonboard.config import OperationMode, get_config_path, load_config
from buttonboard.errors import AssetInvalid, ScenarioNotFound
from buttonboard.services import build_services


def main() -> int:
    """Main entry point for the asset checker."""
    parser = argparse.ArgumentParser(description="Check scenario assets for unknown actions")
    parser.add_argument("--config", type=Path, default=None, help="Configuration file (TOML)")
    parser.add_argument("--assets", type=Path, default=None, help="Override the asset folder")
    args = parser.parse_args()

    config = load_config(args.config or get_config_path())
    config.application.operation_mode = OperationMode.SIMULATED
    if args.assets is not None:
        config.application.scenario_assets_folder = str(args.assets)

    services = build_services(config)
    loader, registry = services.loader, services.registry

    keys = loader.keys()
    if not keys:
        print(f"No assets found in {loader.folder}", file=sys.stderr)
        return 1

    problems = 0
    for key in keys:
        try:
            asset = loader.load_scenario(key)
        except (ScenarioNotFound, AssetInvalid) as e:
            print(f"{key}: {e}")
            problems += 1
            continue

        for index, step in enumerate(asset.steps, start=1):
            action = parse_action_key(step.action)
            router = registry.try_resolve(action.domain) if action else None
            if action is None:
                reason = "malformed action key"
            elif router is None:
                reason = f"unknown domain '{action.domain}'"
            elif not router.can_handle(action.verb):
                reason = f"unknown verb '{action.verb}' (known: {', '.join(sorted(router.verbs))})"
            else:
                continue
            print(f"{key} step {index} ({step.label}): {step.action!r}: {reason}")
            problems += 1

        print(f"{key}: {asset.kind.value}, {len(asset.steps)} steps")

    print(f"\n{len(keys)} assets checked, {problems} problem(s)")
    return 1 if problems else 0


if __name__ == "__main__":
    sys.exit(main())
