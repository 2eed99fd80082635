from __future__ import annotations

import argparse
import asyncio
import logging
import os
import sys
from pathlib import Path
from typing import Optional, Sequence

import yaml
from rich.console import Console
from rich.table import Table

from .config import Settings, build_settings, load_config
from .errors import ConfigError, FeedError
from .feed.client import FeedClient
from .formatting import format_duration, format_timestamp
from .models import BattleEvent
from .monitor import run_monitor
from .persistence.subscriber_store import SubscriberStore
from .utils import ensure_directory, load_yaml_file
from .validation import ValidationReport, validate_config_data
from .version import __version__

LOGGER = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path(os.getenv("BATTLEWATCH_CONFIG", "./battlewatch.yaml"))
LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s\n%(message)s\n"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def configure_logging(level: int, log_file: Optional[Path] = None) -> None:
    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if log_file is not None:
        ensure_directory(log_file.parent)
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))
    logging.basicConfig(level=level, format=LOG_FORMAT, datefmt=LOG_DATE_FORMAT, handlers=handlers, force=True)
    # httpx logs full request URLs at INFO, and Telegram URLs embed the bot token
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


def _resolve_level(args: argparse.Namespace) -> int:
    if args.log_level:
        return getattr(logging, str(args.log_level).upper(), logging.INFO)
    return logging.DEBUG if args.verbose else logging.INFO


def _load_settings(path: Path) -> Settings:
    if not path.exists() and path == DEFAULT_CONFIG_PATH:
        LOGGER.info("No config file at %s; using defaults and environment variables", path)
        return build_settings({})
    return load_config(path)


def run_monitor_command(args: argparse.Namespace) -> int:
    configure_logging(_resolve_level(args), args.log_file)
    try:
        settings = _load_settings(args.config)
    except ConfigError as exc:
        LOGGER.error("%s", exc)
        return 1
    LOGGER.info("battlewatch %s watching %s", __version__, settings.feed.url)
    return asyncio.run(run_monitor(settings, once=args.once))


def _render_validation(report: ValidationReport, console: Console) -> None:
    issues = [*report.errors, *report.warnings]
    if not issues:
        console.print("[bold green]✓ Configuration passed validation.[/bold green]")
        return
    table = Table(title="Configuration issues")
    table.add_column("Severity")
    table.add_column("Path")
    table.add_column("Message")
    for issue in issues:
        style = "red" if issue.severity == "error" else "yellow"
        table.add_row(f"[{style}]{issue.severity}[/{style}]", issue.path, issue.message)
    console.print(table)


def run_validate_config(args: argparse.Namespace, console: Optional[Console] = None) -> int:
    console = console or Console()
    try:
        data = load_yaml_file(args.config)
    except FileNotFoundError:
        console.print(f"[red]Configuration file not found: {args.config}[/red]")
        return 1
    except yaml.YAMLError as exc:
        console.print(f"Configuration file {args.config} is not valid YAML: {exc}", style="red", markup=False)
        return 1
    report = validate_config_data(data)
    if report.is_valid:
        try:
            build_settings(data)
        except ConfigError as exc:
            console.print(f"[red]{exc}[/red]")
            return 1
    _render_validation(report, console)
    return 0 if report.is_valid else 1


def _battles_table(events: Sequence[BattleEvent], settings: Settings) -> Table:
    tz = settings.render.tzinfo()
    table = Table(title=f"Open battles ({len(events)})")
    for column in ("Battle", "Attacker", "Defender", "Structure", "Location", "Ends in", "Started"):
        table.add_column(column)
    for event in events:
        table.add_row(
            event.battle_id,
            event.attacker.name,
            event.defender.name,
            event.structure_type,
            f"({event.x}, {event.y})",
            format_duration(event.duration_left),
            format_timestamp(event.timestamp, tz),
        )
    return table


async def _fetch_battles(settings: Settings) -> list[BattleEvent]:
    async with FeedClient(
        settings.feed.url,
        timeout=settings.feed.timeout,
        max_retries=settings.feed.max_retries,
    ) as feed:
        return await feed.fetch_battles()


def run_list_battles(args: argparse.Namespace, console: Optional[Console] = None) -> int:
    console = console or Console()
    configure_logging(_resolve_level(args), args.log_file)
    try:
        settings = _load_settings(args.config)
    except ConfigError as exc:
        LOGGER.error("%s", exc)
        return 1
    try:
        events = asyncio.run(_fetch_battles(settings))
    except FeedError as exc:
        LOGGER.error("Unable to fetch battles: %s", exc)
        return 2
    console.print(_battles_table(events, settings))
    return 0


def run_subscribers(args: argparse.Namespace, console: Optional[Console] = None) -> int:
    console = console or Console()
    try:
        settings = _load_settings(args.config)
    except ConfigError as exc:
        console.print(f"[red]{exc}[/red]")
        return 1

    store = SubscriberStore(settings.directory.path)
    try:
        if args.action == "add":
            subscriber = store.upsert(args.handle, args.display_name)
            console.print(f"Subscribed {subscriber.handle} to battles involving '{subscriber.display_name}'")
            return 0
        if args.action == "remove":
            if store.delete(args.handle):
                console.print(f"Removed {args.handle}")
                return 0
            console.print(f"[yellow]No subscriber with handle {args.handle}[/yellow]")
            return 1

        table = Table(title="Subscribers")
        table.add_column("Handle")
        table.add_column("Display name")
        table.add_column("Since")
        for subscriber in store.list_all():
            table.add_row(subscriber.handle, subscriber.display_name, subscriber.created_at.isoformat(timespec="seconds"))
        console.print(table)
        return 0
    finally:
        store.close()


def _add_common_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--config",
        type=Path,
        default=DEFAULT_CONFIG_PATH,
        help="Path to the battlewatch YAML config (default: $BATTLEWATCH_CONFIG or ./battlewatch.yaml)",
    )
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    parser.add_argument("--log-level", default=None, help="Explicit log level (overrides --verbose)")
    parser.add_argument("--log-file", type=Path, default=None, help="Also write logs to this file")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="battlewatch", description="Battle-start notifications for Eternum.")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    subparsers = parser.add_subparsers(dest="command", required=True)

    run_parser = subparsers.add_parser("run", help="Poll the feed and notify subscribers")
    _add_common_arguments(run_parser)
    run_parser.add_argument("--once", action="store_true", help="Run a single poll cycle and exit")
    run_parser.set_defaults(func=run_monitor_command)

    validate_parser = subparsers.add_parser("validate-config", help="Validate a config file")
    _add_common_arguments(validate_parser)
    validate_parser.set_defaults(func=run_validate_config)

    battles_parser = subparsers.add_parser("battles", help="Show the currently open battles")
    _add_common_arguments(battles_parser)
    battles_parser.set_defaults(func=run_list_battles)

    subscribers_parser = subparsers.add_parser("subscribers", help="Manage subscriber registrations")
    _add_common_arguments(subscribers_parser)
    actions = subscribers_parser.add_subparsers(dest="action", required=True)
    actions.add_parser("list", help="List registered subscribers")
    add_parser = actions.add_parser("add", help="Register a chat for a display name")
    add_parser.add_argument("handle", help="Telegram chat id")
    add_parser.add_argument("display_name", help="In-game name to be alerted for")
    remove_parser = actions.add_parser("remove", help="Remove a registration")
    remove_parser.add_argument("handle", help="Telegram chat id")
    subscribers_parser.set_defaults(func=run_subscribers)

    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
