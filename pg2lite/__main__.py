"""CLI entry point: python -m pg2lite <sqlite-file> [postgres-url] [options]"""

from __future__ import annotations

import argparse
import dataclasses
import logging
import sys
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler

console = Console()

FILE_LOG_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"


def setup_logging(level: str = "INFO", log_file: Path | None = None):
    handlers: list[logging.Handler] = [RichHandler(console=console, rich_tracebacks=True)]
    if log_file is not None:
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(logging.Formatter(FILE_LOG_FORMAT))
        handlers.append(file_handler)
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=handlers,
        force=True,
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pg2lite",
        description="Migrate PostgreSQL data into a SQLite file or a Cloudflare D1 database",
    )
    parser.add_argument("destination", nargs="?", help="SQLite database file (or D1 database name with --remote)")
    parser.add_argument(
        "connection", nargs="?", help="PostgreSQL connection string (default: DATABASE_URL; omit to reuse the dump)"
    )
    parser.add_argument("--reset", action="store_true", help="Delete the previous dump and destination first")
    parser.add_argument(
        "--remote",
        nargs="?",
        const="",
        default=None,
        metavar="NAME",
        help="Import into a Cloudflare D1 database (default name: D1_DATABASE_NAME)",
    )
    parser.add_argument("--schema-file", type=Path, help="SQLite schema file (local flow)")
    parser.add_argument("--dump-file", type=Path, help="Where the PostgreSQL dump is written/reused")
    parser.add_argument("--log-file", type=Path, help="Log file (local flow)")
    parser.add_argument(
        "--exclude-table",
        action="append",
        metavar="TABLE",
        help="Table to leave out of the dump (repeatable; replaces the default list)",
    )
    parser.add_argument("--log-level", type=str, help="Logging level (default: LOG_LEVEL or INFO)")
    return parser


def _looks_like_connection(value: str) -> bool:
    """PostgreSQL URI or keyword/value DSN; D1 database names contain neither."""
    return value.startswith(("postgres://", "postgresql://")) or "=" in value


def settings_from_args(args: argparse.Namespace):
    from pg2lite.config import load_settings

    settings = load_settings()
    overrides: dict = {"reset": args.reset}
    # "--remote <connection>": the flag swallowed the connection string, the name comes from elsewhere
    if args.remote and _looks_like_connection(args.remote) and not args.connection:
        args.remote, args.connection = "", args.remote
    # "--remote NAME <connection>": the only positional is the connection string
    if args.remote and args.destination and not args.connection:
        args.destination, args.connection = None, args.destination
    if args.destination:
        overrides["destination"] = args.destination
    if args.connection:
        overrides["source_url"] = args.connection
    if args.remote is not None:
        overrides["remote"] = True
        if args.remote:
            overrides["remote_name"] = args.remote
    if args.schema_file:
        overrides["schema_file"] = args.schema_file
    if args.dump_file:
        overrides["dump_file"] = args.dump_file
    if args.log_file:
        overrides["log_file"] = args.log_file
    if args.log_level:
        overrides["log_level"] = args.log_level.upper()
    settings = dataclasses.replace(settings, **overrides)

    if args.exclude_table:
        field_name = "remote_exclude_tables" if settings.remote else "exclude_tables"
        settings = dataclasses.replace(settings, **{field_name: list(args.exclude_table)})
    return settings


def main(argv: list[str] | None = None):
    from pg2lite.confirm import TerminalConfirmer
    from pg2lite.models import RunStatus
    from pg2lite.runner import MigrationRun

    args = build_parser().parse_args(argv)
    settings = settings_from_args(args)

    errors = settings.validate()
    if errors:
        for err in errors:
            console.print(f"[red]Error: {err}[/red]")
        sys.exit(1)

    setup_logging(settings.log_level, None if settings.remote else settings.log_file)

    console.print("\n[bold cyan]PG2LITE[/bold cyan] - PostgreSQL to SQLite migration")
    console.print("━" * 50)
    try:
        outcome = MigrationRun(settings, confirmer=TerminalConfirmer(console)).run()
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted.[/yellow]")
        sys.exit(130)
    console.print("━" * 50)

    if outcome.status == RunStatus.COMPLETED:
        console.print(f"[green]Import completed successfully in {outcome.duration_text}.[/green]")
    elif outcome.status == RunStatus.ABORTED:
        console.print("[yellow]Aborted: destination left untouched.[/yellow]")
    else:
        console.print(f"[red]Migration failed: {outcome.error}[/red]")
    sys.exit(outcome.exit_code)


if __name__ == "__main__":
    main()
