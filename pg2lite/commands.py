"""Shared subprocess runner used by every external collaborator (pg_dump, sqlite3, wrangler, drizzle-kit)."""

from __future__ import annotations

import logging
import shlex
import shutil
import subprocess
from pathlib import Path

from pg2lite.errors import CommandError

logger = logging.getLogger("pg2lite.commands")


def split_command(command: str) -> list[str]:
    """Split a configured command prefix such as ``npx wrangler`` into argv form."""
    return shlex.split(command)


def is_available(program: str) -> bool:
    """Return True if *program* resolves on PATH (or is an existing executable path)."""
    return shutil.which(program) is not None


def run_cmd(
    args: list[str],
    *,
    stdin_path: Path | None = None,
    stdout_path: Path | None = None,
    check: bool = True,
) -> subprocess.CompletedProcess:
    """Run an external command and block until it exits.

    stdin/stdout can be redirected from/to files, mirroring ``cmd < in > out``.
    When stdout goes to a file only stderr is captured. Raises CommandError on a
    non-zero exit when *check* is set; no retry, no timeout.
    """
    logger.debug("exec %s", shlex.join(args))
    stdin = stdin_path.open("rb") if stdin_path is not None else None
    stdout = stdout_path.open("wb") if stdout_path is not None else subprocess.PIPE
    try:
        result = subprocess.run(args, stdin=stdin, stdout=stdout, stderr=subprocess.PIPE, check=False)
    except OSError as e:
        raise CommandError(args, 127, str(e)) from e
    finally:
        if stdin is not None:
            stdin.close()
        if stdout_path is not None:
            stdout.close()

    out = _decode(result.stdout)
    err = _decode(result.stderr)
    completed = subprocess.CompletedProcess(args, result.returncode, out, err)
    if result.returncode != 0:
        logger.error("%s failed (exit %d): %s", args[0], result.returncode, err.strip() or out.strip())
        if check:
            raise CommandError(args, result.returncode, err or out)
    return completed


def _decode(data: bytes | None) -> str:
    if not data:
        return ""
    return data.decode("utf-8", errors="replace")
