"""Exception taxonomy for a migration run."""

from __future__ import annotations


class MigrationError(Exception):
    """Base class for failures that halt the pipeline."""


class PreconditionError(MigrationError):
    """A required tool, file or setting is missing. Raised before any destructive action."""


class CommandError(MigrationError):
    """An external command exited non-zero."""

    def __init__(self, command: list[str], returncode: int, stderr: str = ""):
        self.command = command
        self.returncode = returncode
        self.stderr = stderr
        message = f"{command[0]} exited with status {returncode}"
        if stderr.strip():
            message += f": {stderr.strip().splitlines()[-1]}"
        super().__init__(message)
