"""Local import: recreate a SQLite file, load the schema, bulk-load the translated dump."""

from __future__ import annotations

import logging
from pathlib import Path

from pg2lite.errors import CommandError, PreconditionError
from pg2lite.sqlite_cli import SqliteCli

logger = logging.getLogger("pg2lite.local_import")

FOREIGN_KEYS_OFF = "PRAGMA foreign_keys=OFF;"
FOREIGN_KEYS_ON = "PRAGMA foreign_keys=ON;"


def recreate_database(path: Path) -> None:
    """Destroy *path* if present and leave an empty file in its place."""
    if path.exists():
        logger.info("Recreating SQLite3 database: %s", path)
        path.unlink()
    else:
        logger.info("Creating SQLite3 database: %s", path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.touch()


class LocalImporter:
    """Applies schema + wrapped statements to a local SQLite file. Every step is fatal on failure."""

    def __init__(self, sqlite: SqliteCli, schema_file: Path):
        self.sqlite = sqlite
        self.schema_file = schema_file

    def run(self, database: Path, statements_file: Path) -> None:
        # Never append to a populated file
        recreate_database(database)

        if not self.schema_file.is_file():
            raise PreconditionError(f"SQLite schema file '{self.schema_file}' not found.")

        logger.info("Creating schema in SQLite3 database from file: %s", self.schema_file)
        self.sqlite.execute_file(database, self.schema_file)

        # Foreign keys are re-enabled even when the load fails
        logger.info("Disabling foreign key checks for the import...")
        self.sqlite.execute(database, FOREIGN_KEYS_OFF)
        loaded = False
        try:
            logger.info("Importing SQL statements into SQLite3 database...")
            self.sqlite.execute_file(database, statements_file, pre_commands=[FOREIGN_KEYS_OFF])
            loaded = True
        finally:
            logger.info("Re-enabling foreign key checks...")
            try:
                self.sqlite.execute(database, FOREIGN_KEYS_ON)
            except CommandError as e:
                if loaded:
                    raise
                # Keep the import failure as the reported error
                logger.error("Could not re-enable foreign key checks: %s", e)
