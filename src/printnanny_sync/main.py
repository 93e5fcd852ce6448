"""CLI entrypoint for PrintNanny settings and device state.

Command output goes to stdout; logs go to stderr.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from pydantic import ValidationError

from printnanny_sync import __version__
from printnanny_sync.core.config import SyncConfig
from printnanny_sync.exceptions import PrintNannyError
from printnanny_sync.service import ApiService, api_client_from_config
from printnanny_sync.settings.formats import SettingsFormat, dumps, to_canonical
from printnanny_sync.settings.resolver import SettingsResolver
from printnanny_sync.settings.vcs import VersionedSettingsStore

logger = logging.getLogger(__name__)

FORMAT_CHOICES = [f.value for f in SettingsFormat]


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="printnanny-sync",
        description="PrintNanny settings and device state synchronization",
    )
    parser.add_argument("--version", action="version", version=f"printnanny-sync {__version__}")

    subparsers = parser.add_subparsers(dest="command", required=True)

    settings = subparsers.add_parser("settings", help="Read and edit versioned settings")
    settings_sub = settings.add_subparsers(dest="action", required=True)

    clone = settings_sub.add_parser("clone", help="Clone the settings repository")
    clone.add_argument("dir", type=Path, help="Destination directory")

    get = settings_sub.add_parser("get", help="Print one settings value (or all settings)")
    get.add_argument("key", nargs="?", default=None, help="Dotted key, e.g. 'git.remote'")
    get.add_argument("--format", "-F", choices=FORMAT_CHOICES, default=SettingsFormat.JSON.value)

    set_ = settings_sub.add_parser("set", help="Set one value and commit the settings file")
    set_.add_argument("key", help="Dotted key, e.g. 'camera.width'")
    set_.add_argument("value", help="New value (coerced to the key's type)")

    show = settings_sub.add_parser("show", help="Print the effective settings")
    show.add_argument("--format", "-F", choices=FORMAT_CHOICES, default=SettingsFormat.TOML.value)

    device = subparsers.add_parser("device", help="Device record")
    device_sub = device.add_subparsers(dest="action", required=True)
    device_sub.add_parser("show", help="Print the cached device record")

    license_ = subparsers.add_parser("license", help="License record")
    license_sub = license_.add_subparsers(dest="action", required=True)
    license_sub.add_parser("check", help="Verify and activate the device license")

    return parser


async def _settings_command(args: argparse.Namespace, config: SyncConfig) -> str:
    resolver = SettingsResolver.from_config(config)

    if args.action == "get":
        if args.key is None:
            return dumps(resolver.resolve(), args.format)
        return dumps(resolver.find_value(args.key), args.format, key=args.key)

    if args.action == "show":
        return dumps(resolver.resolve(), args.format)

    if args.action == "set":
        updated = resolver.with_override(args.key, args.value)
        store = VersionedSettingsStore.from_config(config, updated.git)
        sha = await store.save_and_commit(
            to_canonical(updated), key=f"PrintNannySettings.{args.key}"
        )
        return f"{args.key} updated ({sha[:12]})\n"

    if args.action == "clone":
        settings = resolver.resolve()
        store = VersionedSettingsStore.from_config(config, settings.git)
        directory = await store.clone_into(args.dir)
        return f"Settings repository at {directory}\n"

    raise PrintNannyError(f"Unknown settings command: {args.action}")


async def _remote_command(args: argparse.Namespace, config: SyncConfig) -> str:
    settings = SettingsResolver.from_config(config).resolve()

    async with api_client_from_config(config, settings.api) as api:
        service = await ApiService.create(api, config)

        if args.command == "device" and args.action == "show":
            device = service.require_device()
            return device.model_dump_json(indent=2) + "\n"

        if args.command == "license" and args.action == "check":
            activated = await service.license_check()
            return activated.model_dump_json(indent=2) + "\n"

    raise PrintNannyError(f"Unknown command: {args.command} {args.action}")


async def run(args: argparse.Namespace, config: SyncConfig) -> str:
    """Run one command and return its complete stdout text."""

    if args.command == "settings":
        return await _settings_command(args, config)
    return await _remote_command(args, config)


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config = SyncConfig()
    except ValidationError as e:
        # Logging isn't configured yet.
        print("Configuration error (check your environment / .env):", file=sys.stderr)
        print(e, file=sys.stderr)
        return 2

    config.setup_logging()

    try:
        output = asyncio.run(run(args, config))
    except PrintNannyError as e:
        logger.error(str(e), extra={"error_type": type(e).__name__})
        print(str(e), file=sys.stderr)
        return 1
    except Exception:
        logger.exception("Command failed")
        return 1

    sys.stdout.write(output)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
