"""Wrap a translated statement stream so the destination applies it as one unit."""

from __future__ import annotations

import logging
import os
import tempfile
from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from pathlib import Path

logger = logging.getLogger("pg2lite.wrapper")

BEGIN = "BEGIN TRANSACTION;\n"
COMMIT = "COMMIT;\n"

# D1 rejects explicit transactions from the client; defer FK checks instead.
DEFER_FOREIGN_KEYS = ("PRAGMA foreign_keys = OFF;\n", "PRAGMA defer_foreign_keys = ON;\n")
RESTORE_FOREIGN_KEYS = ("PRAGMA foreign_keys = ON;\n",)


def _terminated(lines: Iterable[str]) -> Iterator[str]:
    """Guarantee each chunk ends with a newline so markers land on their own line."""
    for line in lines:
        yield line if line.endswith("\n") else line + "\n"


def wrap_in_transaction(lines: Iterable[str]) -> Iterator[str]:
    """Local flow: exactly one BEGIN before and one COMMIT after the whole stream."""
    yield BEGIN
    yield from _terminated(lines)
    yield COMMIT


def wrap_with_deferred_foreign_keys(lines: Iterable[str]) -> Iterator[str]:
    """Remote flow: pragmas instead of a transaction.

    Atomicity is not guaranteed here; a statement failure mid-load leaves the
    rows before it applied.
    """
    yield from DEFER_FOREIGN_KEYS
    yield from _terminated(lines)
    yield from RESTORE_FOREIGN_KEYS


def wrap(lines: Iterable[str], remote: bool = False) -> Iterator[str]:
    return wrap_with_deferred_foreign_keys(lines) if remote else wrap_in_transaction(lines)


def write_statements(path: Path, lines: Iterable[str]) -> int:
    """Write *lines* to *path*. Returns the number of chunks written."""
    count = 0
    with path.open("w", encoding="utf-8", errors="surrogateescape") as f:
        for line in lines:
            f.write(line)
            count += 1
    logger.debug("Wrote %d statement lines to %s", count, path)
    return count


@contextmanager
def scratch_file(suffix: str = ".sql") -> Iterator[Path]:
    """Yield a temporary file path that is removed however the block exits."""
    fd, name = tempfile.mkstemp(prefix="pg2lite-", suffix=suffix)
    os.close(fd)
    path = Path(name)
    try:
        yield path
    finally:
        path.unlink(missing_ok=True)
        logger.debug("Removed temporary file %s", path)
