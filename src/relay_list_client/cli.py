"""
Command-line interface for the relay list client.

Commands:
- fetch: Fetch the relay list and print a summary
- config: Configuration management
"""

import argparse
import asyncio
import json
import sys
from collections import Counter
from pathlib import Path
from typing import Optional

import httpx

from . import __version__
from .audit_logger import AuditLogger
from .client import RelayListClient
from .config import (
    SystemConfig,
    apply_env_overrides,
    load_config_from_file,
    save_config_to_file,
)
from .exceptions import RelayListError
from .models import RelayList

DEFAULT_CONFIG_PATH = Path.home() / ".relay_list_client" / "config.json"


def summarize(relay_list: RelayList) -> list[str]:
    """Human-readable summary lines for a relay list."""
    by_type = Counter(relay.endpoint_type.value for relay in relay_list.relays())
    cities = sum(len(country.cities) for country in relay_list.countries)

    lines = [
        f"ETag: {relay_list.etag or '(none)'}",
        f"Countries: {len(relay_list.countries)}",
        f"Cities: {cities}",
        f"Relays: {sum(by_type.values())}",
    ]
    for endpoint_type in ("openvpn", "wireguard", "bridge"):
        lines.append(f"  {endpoint_type}: {by_type.get(endpoint_type, 0)}")
    return lines


async def fetch_relay_list(
    config: SystemConfig,
    etag: Optional[str] = None,
    output_file: Optional[Path] = None,
    verbose: bool = False,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> int:
    """
    Fetch the relay list and report the result.

    Args:
        config: System configuration
        etag: ETag of a previously fetched list
        output_file: Optional path to write the relay list as JSON
        verbose: Enable log output
        transport: Optional httpx transport (for testing)

    Returns:
        Exit code (0 on success or not modified, 1 on error)
    """
    logger = AuditLogger.from_config(config.logging) if verbose else None

    try:
        async with RelayListClient(
            config=config.client,
            logger=logger,
            transport=transport,
        ) as client:
            relay_list = await client.fetch(etag)
    except RelayListError as e:
        print(f"Error: {e.message}", file=sys.stderr)
        return 1

    if relay_list is None:
        print("Relay list not modified.")
        return 0

    for line in summarize(relay_list):
        print(line)

    if output_file:
        try:
            with open(output_file, "w", encoding="utf-8") as f:
                json.dump(relay_list.to_dict(), f, indent=2, ensure_ascii=False)
        except OSError as e:
            print(f"Error writing output: {e}", file=sys.stderr)
            return 1
        print(f"Relay list written to: {output_file}")

    return 0


def _load_config(path: Optional[str]) -> SystemConfig:
    config = load_config_from_file(Path(path) if path else DEFAULT_CONFIG_PATH)
    return apply_env_overrides(config)


def cmd_fetch(args: argparse.Namespace) -> int:
    """Handle the 'fetch' command."""
    try:
        config = _load_config(args.config)
    except RelayListError as e:
        print(f"Error: {e.message}", file=sys.stderr)
        return 1

    output_file = Path(args.output) if args.output else None

    return asyncio.run(fetch_relay_list(
        config=config,
        etag=args.etag,
        output_file=output_file,
        verbose=args.verbose,
    ))


def cmd_config(args: argparse.Namespace) -> int:
    """Handle the 'config' command."""
    config_path = Path(args.path) if args.path else DEFAULT_CONFIG_PATH

    if args.action == "show":
        try:
            config = _load_config(args.path)
        except RelayListError as e:
            print(f"Error: {e.message}", file=sys.stderr)
            return 1

        print(f"Configuration from: {config_path}")
        print(f"  API URL: {config.client.api_base_url}")
        print(f"  Timeout: {config.client.timeout_seconds}s")
        print(f"  Verify TLS: {config.client.verify_tls}")
        print(f"  Log level: {config.logging.level}")
        print(f"  Log format: {config.logging.output_format}")
        return 0

    elif args.action == "init":
        if config_path.exists() and not args.force:
            print(f"Configuration already exists at: {config_path}")
            print("Use --force to overwrite.")
            return 1

        try:
            save_config_to_file(SystemConfig(), config_path)
        except RelayListError as e:
            print(f"Error: {e.message}", file=sys.stderr)
            return 1
        print(f"Configuration created at: {config_path}")
        return 0

    return 1


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser for the CLI."""
    parser = argparse.ArgumentParser(
        prog="relay-list",
        description="Fetch and normalize a VPN relay list",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # 'fetch' command
    fetch_parser = subparsers.add_parser(
        "fetch",
        help="Fetch the relay list",
    )
    fetch_parser.add_argument(
        "--etag", "-e",
        help="ETag of the relay list you already have",
    )
    fetch_parser.add_argument(
        "--output", "-o",
        help="Path to write the relay list as JSON",
    )
    fetch_parser.add_argument(
        "--config", "-c",
        help="Path to configuration file",
    )
    fetch_parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable log output",
    )
    fetch_parser.set_defaults(func=cmd_fetch)

    # 'config' command
    config_parser = subparsers.add_parser(
        "config",
        help="Configuration management",
    )
    config_parser.add_argument(
        "action",
        choices=["show", "init"],
        help="Configuration action",
    )
    config_parser.add_argument(
        "--path", "-p",
        help="Path to configuration file",
    )
    config_parser.add_argument(
        "--force", "-f",
        action="store_true",
        help="Force overwrite existing configuration",
    )
    config_parser.set_defaults(func=cmd_config)

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    """
    Main entry point for the CLI.

    Args:
        argv: Command line arguments (defaults to sys.argv[1:])

    Returns:
        Exit code
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
