"""sqlite3 command-line client wrapper."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from pathlib import Path

from pg2lite.commands import run_cmd

logger = logging.getLogger("pg2lite.sqlite_cli")


class SqliteCli:
    """Runs SQL against a database file through the ``sqlite3`` binary.

    ``-bail`` makes the client stop at the first failing statement, so an open
    transaction is never committed after an error.
    """

    def __init__(self, binary: str = "sqlite3"):
        self.binary = binary

    def execute(self, database: Path, sql: str) -> None:
        """Run a single SQL string against *database*."""
        run_cmd([self.binary, "-bail", str(database), sql])

    def execute_file(self, database: Path, sql_file: Path, pre_commands: Iterable[str] = ()) -> None:
        """Feed *sql_file* to the client on stdin, after *pre_commands* on the same connection."""
        cmd = [self.binary, "-bail"]
        for command in pre_commands:
            cmd.extend(["-cmd", command])
        cmd.append(str(database))
        logger.debug("Loading %s into %s", sql_file, database)
        run_cmd(cmd, stdin_path=sql_file)
