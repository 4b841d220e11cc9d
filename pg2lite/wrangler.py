"""Cloudflare D1 platform CLI (wrangler) and schema-migration CLI (drizzle-kit) wrappers."""

from __future__ import annotations

import json
import logging
import re
from pathlib import Path

from pg2lite.commands import run_cmd, split_command
from pg2lite.errors import CommandError

logger = logging.getLogger("pg2lite.wrangler")

LIST_TABLES_SQL = "SELECT name FROM sqlite_master WHERE type='table'"

# Tables D1 and SQLite manage themselves; their presence does not make a store "in use".
SYSTEM_TABLE_PREFIXES = ("sqlite_", "_cf_")
SYSTEM_TABLES = frozenset({"d1_migrations"})

_DATABASE_ID = re.compile(r'database_id"?\s*[=:]\s*"([0-9a-fA-F-]{8,})"')


def is_system_table(name: str) -> bool:
    return name in SYSTEM_TABLES or name.startswith(SYSTEM_TABLE_PREFIXES)


def _parse_json(output: str):
    """Parse wrangler --json output, skipping any banner printed before the payload."""
    try:
        return json.loads(output)
    except json.JSONDecodeError:
        start = min((i for i in (output.find("["), output.find("{")) if i >= 0), default=-1)
        if start < 0:
            raise
        return json.loads(output[start:])


class WranglerCli:
    """Thin wrapper around ``wrangler d1`` subcommands."""

    def __init__(self, command: str = "npx wrangler"):
        self.prefix = split_command(command)

    def _d1(self, *args: str):
        return run_cmd(self.prefix + ["d1", *args])

    def list_databases(self) -> list[dict]:
        result = self._d1("list", "--json")
        try:
            return _parse_json(result.stdout)
        except json.JSONDecodeError as e:
            raise CommandError(self.prefix + ["d1", "list"], 0, f"Unparseable output: {e}") from e

    def database_exists(self, name: str) -> bool:
        return any(db.get("name") == name for db in self.list_databases())

    def create_database(self, name: str) -> str | None:
        """Create a database. Returns its id when wrangler prints one."""
        result = self._d1("create", name)
        m = _DATABASE_ID.search(result.stdout)
        database_id = m.group(1) if m else None
        logger.info("Created D1 database %s (id %s)", name, database_id or "unknown")
        return database_id

    def delete_database(self, name: str) -> None:
        self._d1("delete", name, "--skip-confirmation")
        logger.info("Deleted D1 database %s", name)

    def list_tables(self, name: str) -> list[str]:
        """Return every table name in the remote database, system tables included."""
        result = self._d1("execute", name, "--remote", "--json", "--command", LIST_TABLES_SQL)
        try:
            payload = _parse_json(result.stdout)
        except json.JSONDecodeError as e:
            raise CommandError(self.prefix + ["d1", "execute", name], 0, f"Unparseable output: {e}") from e
        tables = []
        for block in payload if isinstance(payload, list) else [payload]:
            for row in block.get("results", []):
                tables.append(row["name"])
        return tables

    def user_tables(self, name: str) -> list[str]:
        return [t for t in self.list_tables(name) if not is_system_table(t)]

    def execute_file(self, name: str, sql_file: Path, remote: bool) -> None:
        """Execute a statement file against the remote store or its local replica."""
        target = "--remote" if remote else "--local"
        self._d1("execute", name, target, "--yes", f"--file={sql_file}")

    def apply_migrations(self, name: str, remote: bool) -> None:
        target = "--remote" if remote else "--local"
        self._d1("migrations", "apply", name, target)


class DrizzleKit:
    """``drizzle-kit`` wrapper: regenerate schema migrations from the project's schema."""

    def __init__(self, command: str = "npx drizzle-kit"):
        self.prefix = split_command(command)

    def generate(self) -> None:
        run_cmd(self.prefix + ["generate"])
