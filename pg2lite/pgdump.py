"""pg_dump wrapper: produce a data-only INSERT dump of the source database."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from pathlib import Path

from pg2lite.commands import run_cmd

logger = logging.getLogger("pg2lite.pgdump")


def build_dump_command(
    source_url: str,
    excluded_tables: Iterable[str] = (),
    column_inserts: bool = True,
    pg_dump_bin: str = "pg_dump",
) -> list[str]:
    """Return the argv for a data-only dump as INSERT statements."""
    cmd = [pg_dump_bin, "--data-only", "--column-inserts" if column_inserts else "--inserts"]
    cmd.extend(f"--exclude-table={table}" for table in excluded_tables)
    cmd.append(source_url)
    return cmd


def create_dump(
    source_url: str,
    dump_file: Path,
    excluded_tables: Iterable[str] = (),
    column_inserts: bool = True,
    pg_dump_bin: str = "pg_dump",
) -> Path:
    """Run pg_dump into *dump_file*.

    The dump is written to a sibling ``.partial`` file and moved into place only
    when pg_dump succeeds, so a failed or interrupted dump never leaves a
    truncated file where a later run would reuse it.
    """
    excluded = list(excluded_tables)
    logger.info("Creating PostgreSQL dump file: %s (excluding %s)", dump_file, ", ".join(excluded) or "nothing")
    dump_file.parent.mkdir(parents=True, exist_ok=True)
    cmd = build_dump_command(source_url, excluded, column_inserts, pg_dump_bin)
    partial = dump_file.with_name(dump_file.name + ".partial")
    try:
        run_cmd(cmd, stdout_path=partial)
    except BaseException:
        partial.unlink(missing_ok=True)
        raise
    partial.replace(dump_file)
    logger.info("Dump written: %s (%d bytes)", dump_file, dump_file.stat().st_size)
    return dump_file
