"""Remote import: a state machine that prepares a Cloudflare D1 database and loads the dump into it.

CheckExists -> (Create | CheckTables)
CheckTables -> (ProvisionSchema | Delete | AbortedByOperator)
Delete -> Create -> ProvisionSchema -> Import -> Completed

Operator decisions go through an injected Confirmer, so the machine itself is
deterministic. Any failing command ends the run in Failed; resources already
created remotely are not rolled back.
"""

from __future__ import annotations

import logging
import shutil
from pathlib import Path

from pg2lite.confirm import Confirmer
from pg2lite.errors import CommandError, MigrationError
from pg2lite.models import TERMINAL_REMOTE_STATES, RemoteState
from pg2lite.wrangler import DrizzleKit, WranglerCli

logger = logging.getLogger("pg2lite.remote_import")


class RemoteImporter:
    def __init__(
        self,
        wrangler: WranglerCli,
        drizzle: DrizzleKit,
        confirmer: Confirmer,
        migrations_dir: Path,
    ):
        self.wrangler = wrangler
        self.drizzle = drizzle
        self.confirmer = confirmer
        self.migrations_dir = migrations_dir
        self.history: list[RemoteState] = []
        self._handlers = {
            RemoteState.CHECK_EXISTS: self._check_exists,
            RemoteState.CREATE: self._create,
            RemoteState.CHECK_TABLES: self._check_tables,
            RemoteState.DELETE: self._delete,
            RemoteState.PROVISION_SCHEMA: self._provision_schema,
            RemoteState.IMPORT: self._import,
        }

    def run(self, name: str, statements_file: Path) -> RemoteState:
        """Drive the machine to a terminal state. Returns it, or raises after recording Failed."""
        state = RemoteState.CHECK_EXISTS
        while state not in TERMINAL_REMOTE_STATES:
            self.history.append(state)
            logger.info("[%s] %s", name, state.value)
            try:
                state = self._handlers[state](name, statements_file)
            except MigrationError:
                self.history.append(RemoteState.FAILED)
                raise
        self.history.append(state)
        return state

    # ------------------------------------------------------------------
    # States
    # ------------------------------------------------------------------

    def _check_exists(self, name: str, statements_file: Path) -> RemoteState:
        if self.wrangler.database_exists(name):
            logger.info("D1 database '%s' exists", name)
            return RemoteState.CHECK_TABLES
        logger.info("D1 database '%s' does not exist", name)
        return RemoteState.CREATE

    def _create(self, name: str, statements_file: Path) -> RemoteState:
        database_id = self.wrangler.create_database(name)
        self.confirmer.acknowledge(
            f"Created D1 database '{name}' (database_id = {database_id or 'see wrangler output'}). "
            "Bind it in wrangler.toml before continuing."
        )
        return RemoteState.PROVISION_SCHEMA

    def _check_tables(self, name: str, statements_file: Path) -> RemoteState:
        tables = self.wrangler.user_tables(name)
        if not tables:
            logger.info("D1 database '%s' has no tables", name)
            return RemoteState.PROVISION_SCHEMA

        preview = ", ".join(sorted(tables)[:10])
        more = f" and {len(tables) - 10} more" if len(tables) > 10 else ""
        logger.warning("D1 database '%s' already has %d tables: %s%s", name, len(tables), preview, more)
        if self.confirmer.confirm(f"Delete and recreate D1 database '{name}'? All existing data will be lost."):
            return RemoteState.DELETE
        logger.info("Operator declined to reset '%s'; stopping", name)
        return RemoteState.ABORTED_BY_OPERATOR

    def _delete(self, name: str, statements_file: Path) -> RemoteState:
        self.wrangler.delete_database(name)
        return RemoteState.CREATE

    def _provision_schema(self, name: str, statements_file: Path) -> RemoteState:
        if self.migrations_dir.exists():
            logger.info("Removing existing migrations in %s", self.migrations_dir)
            shutil.rmtree(self.migrations_dir)
        logger.info("Generating initial schema migration...")
        self.drizzle.generate()
        logger.info("Applying migrations to local development database...")
        self.wrangler.apply_migrations(name, remote=False)
        logger.info("Applying migrations to remote production database...")
        self.wrangler.apply_migrations(name, remote=True)
        return RemoteState.IMPORT

    def _import(self, name: str, statements_file: Path) -> RemoteState:
        logger.info("Importing data into remote D1 database '%s'...", name)
        try:
            self.wrangler.execute_file(name, statements_file, remote=True)
        except CommandError as e:
            # No transaction on D1: rows before the failing statement stay applied
            raise MigrationError(
                f"Remote import into '{name}' failed and may have left it partially loaded "
                f"({e}). Re-run to reset the database."
            ) from e
        logger.info("Importing data into local D1 replica of '%s'...", name)
        self.wrangler.execute_file(name, statements_file, remote=False)
        return RemoteState.COMPLETED
