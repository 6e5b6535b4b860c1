"""Maintenance commands for the feature_toggles collection.

    feature-toggles seed                      # create missing default toggles
    feature-toggles list [--category events]
    feature-toggles set dark_mode off
    feature-toggles export --file toggles.json
    feature-toggles import --file toggles.json [--dry-run]
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import Any, TextIO

from dotenv import load_dotenv
from motor.motor_asyncio import AsyncIOMotorClient
from pydantic import TypeAdapter

from .config import get_settings
from .models.dto import ImportEntry
from .services.feature_toggles import FeatureToggleService
from .services.store import MongoToggleStore

IMPORT_ADAPTER = TypeAdapter(list[ImportEntry])
TRUTHY = {"on", "true", "1", "yes", "enable", "enabled"}
FALSY = {"off", "false", "0", "no", "disable", "disabled"}


def parse_state(value: str) -> bool:
    normalized = value.strip().lower()
    if normalized in TRUTHY:
        return True
    if normalized in FALSY:
        return False
    raise argparse.ArgumentTypeError(f"Expected on/off, got {value!r}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Manage TeamMove feature toggles in MongoDB")
    parser.add_argument("--admin-id", default=None, help="Recorded as updated_by on writes")
    commands = parser.add_subparsers(dest="command", required=True)

    commands.add_parser("seed", help="Create default toggles that are missing")

    list_cmd = commands.add_parser("list", help="Print toggles")
    list_cmd.add_argument("--category", default=None)

    set_cmd = commands.add_parser("set", help="Enable or disable one toggle")
    set_cmd.add_argument("feature_key")
    set_cmd.add_argument("state", type=parse_state)

    export_cmd = commands.add_parser("export", help="Dump toggles as JSON")
    export_cmd.add_argument("--file", type=Path, default=None)

    import_cmd = commands.add_parser("import", help="Apply an exported JSON configuration")
    import_cmd.add_argument("--file", type=Path, required=True)
    import_cmd.add_argument(
        "--dry-run",
        action="store_true",
        help="Validate the file without writing to the database",
    )
    return parser


def load_configuration(path: Path) -> list[ImportEntry]:
    with path.open("r", encoding="utf-8") as handle:
        raw: Any = json.load(handle)
    if isinstance(raw, dict):
        raw = raw.get("configuration", [])
    return IMPORT_ADAPTER.validate_python(raw)


async def run_command(
    service: FeatureToggleService, args: argparse.Namespace, out: TextIO = sys.stdout
) -> int:
    if args.command == "seed":
        created = await service.reset_defaults()
        print(f"[+] Created {created} default toggle(s)", file=out)
        return 0

    if args.command == "list":
        if args.category:
            toggles = await service.get_features_by_category(args.category)
        else:
            toggles = await service.get_all_features()
        for toggle in toggles:
            state = "on " if toggle.is_enabled else "off"
            print(f"{state} {toggle.category:<15} {toggle.feature_key}", file=out)
        return 0

    if args.command == "set":
        if not await service.update_feature(args.feature_key, args.state, args.admin_id):
            print(f"[!] Unknown feature `{args.feature_key}`", file=out)
            return 1
        print(f"[+] {args.feature_key} -> {'on' if args.state else 'off'}", file=out)
        return 0

    if args.command == "export":
        toggles = await service.export_configuration()
        payload = json.dumps(
            [toggle.model_dump(mode="json") for toggle in toggles],
            ensure_ascii=False,
            indent=2,
        )
        if args.file:
            args.file.write_text(payload + "\n", encoding="utf-8")
            print(f"[+] Exported {len(toggles)} toggle(s) to {args.file}", file=out)
        else:
            print(payload, file=out)
        return 0

    if args.command == "import":
        entries = load_configuration(args.file)
        if args.dry_run:
            print(f"[DRY RUN] Would import {len(entries)} toggle(s)", file=out)
            return 0
        result = await service.import_configuration(entries, updated_by=args.admin_id)
        print(f"[+] Imported {result.success} toggle(s)", file=out)
        for error in result.errors:
            print(f"[!] {error}", file=out)
        return 1 if result.errors else 0

    raise ValueError(f"Unknown command: {args.command}")


async def _main(args: argparse.Namespace) -> int:
    settings = get_settings()
    client: AsyncIOMotorClient = AsyncIOMotorClient(settings.mongodb_uri)
    try:
        store = MongoToggleStore(client[settings.mongodb_db][settings.feature_toggle_collection])
        await store.ensure_indexes()
        service = FeatureToggleService(store, ttl_seconds=settings.feature_toggle_cache_ttl_seconds)
        return await run_command(service, args)
    finally:
        client.close()


def main() -> None:
    load_dotenv()
    args = build_parser().parse_args()
    if args.command == "import" and not args.file.exists():
        raise SystemExit(f"Configuration file not found: {args.file}")
    sys.exit(asyncio.run(_main(args)))


if __name__ == "__main__":
    main()
