"""Run controller - sequences preflight, dump, translation and the chosen import flow."""

from __future__ import annotations

import logging
import time
from datetime import datetime
from pathlib import Path

from pg2lite.config import Settings
from pg2lite.confirm import Confirmer, TerminalConfirmer
from pg2lite.errors import MigrationError, PreconditionError
from pg2lite.local_import import LocalImporter
from pg2lite.models import Flow, RemoteState, RunOutcome, RunStatus
from pg2lite.pgdump import create_dump
from pg2lite.preflight import run_preflight
from pg2lite.remote_import import RemoteImporter
from pg2lite.sqlite_cli import SqliteCli
from pg2lite.translator import translate_lines
from pg2lite.wrangler import DrizzleKit, WranglerCli
from pg2lite.wrapper import scratch_file, wrap, write_statements

logger = logging.getLogger("pg2lite.runner")


class MigrationRun:
    """One single-shot migration from PostgreSQL into SQLite or D1.

    Collaborators default to the real CLIs and can be injected for tests.
    """

    def __init__(
        self,
        settings: Settings,
        confirmer: Confirmer | None = None,
        sqlite: SqliteCli | None = None,
        wrangler: WranglerCli | None = None,
        drizzle: DrizzleKit | None = None,
        check_preflight: bool = True,
    ):
        self.settings = settings
        self.confirmer = confirmer or TerminalConfirmer()
        self.sqlite = sqlite or SqliteCli(settings.sqlite_bin)
        self.wrangler = wrangler or WranglerCli(settings.wrangler_cmd)
        self.drizzle = drizzle or DrizzleKit(settings.drizzle_kit_cmd)
        self.check_preflight = check_preflight
        self.remote_states: list[RemoteState] = []

    def run(self) -> RunOutcome:
        """Run the whole pipeline. Failures become a FAILED outcome; interrupts propagate."""
        started_at = datetime.now()
        start = time.monotonic()
        flow = self.settings.flow
        logger.info("Starting %s migration into %s", flow.value, self._target_label())
        try:
            status = self._run()
            error = ""
        except MigrationError as e:
            logger.error("Migration failed: %s", e)
            status, error = RunStatus.FAILED, str(e)

        outcome = RunOutcome(
            flow=flow,
            status=status,
            started_at=started_at,
            duration_seconds=time.monotonic() - start,
            error=error,
            remote_states=self.remote_states,
        )
        if status == RunStatus.COMPLETED:
            logger.info("Import completed successfully in %s.", outcome.duration_text)
        elif status == RunStatus.ABORTED:
            logger.info("Migration aborted by operator after %s.", outcome.duration_text)
        else:
            logger.error("Migration failed after %s.", outcome.duration_text)
        return outcome

    # ------------------------------------------------------------------
    # Phases
    # ------------------------------------------------------------------

    def _target_label(self) -> str:
        if self.settings.flow == Flow.REMOTE:
            return f"D1 database '{self.settings.store_name}'"
        return f"SQLite file {self.settings.destination}"

    def _run(self) -> RunStatus:
        if self.check_preflight:
            self._preflight()
        if self.settings.reset:
            self.reset_artifacts()

        dump_file = self.prepare_dump()
        remote = self.settings.flow == Flow.REMOTE

        with scratch_file() as statements_file:
            self.translate_dump(dump_file, statements_file, remote=remote)
            if remote:
                return self._import_remote(statements_file)
            self._import_local(statements_file)
            return RunStatus.COMPLETED

    def _preflight(self) -> None:
        result = run_preflight(self.settings)
        if not result.passed:
            raise PreconditionError("; ".join(i.message for i in result.blocking_issues))

    def reset_artifacts(self) -> None:
        """Full reset: delete the previous dump and (local flow) the destination file."""
        paths = [self.settings.dump_file]
        if self.settings.flow == Flow.LOCAL:
            paths.append(Path(self.settings.destination))
        for path in paths:
            if path.exists():
                path.unlink()
                logger.info("Reset: removed %s", path)

    def prepare_dump(self) -> Path:
        """Produce the dump, or reuse the one on disk when no connection string is set (local only)."""
        dump_file = self.settings.dump_file
        if self.settings.source_url:
            return create_dump(
                self.settings.source_url,
                dump_file,
                excluded_tables=self.settings.excluded_tables,
                column_inserts=self.settings.column_inserts,
                pg_dump_bin=self.settings.pg_dump_bin,
            )
        if self.settings.flow == Flow.REMOTE:
            raise PreconditionError("A PostgreSQL connection string is required for the remote flow")
        if not dump_file.is_file():
            raise PreconditionError(f"PostgreSQL dump file '{dump_file}' not found and no connection string given")
        logger.info("Using existing PostgreSQL dump file: %s", dump_file)
        return dump_file

    def translate_dump(self, dump_file: Path, statements_file: Path, remote: bool = False) -> int:
        logger.info("Converting PostgreSQL dump file to SQLite3 compatible SQL...")
        with dump_file.open(encoding="utf-8", errors="surrogateescape") as src:
            lines = translate_lines(src, remote=remote, excluded_tables=self.settings.excluded_tables)
            count = write_statements(statements_file, wrap(lines, remote=remote))
        logger.info("Conversion completed (%d lines, wrapped for %s import).", count, "remote" if remote else "local")
        return count

    def _import_local(self, statements_file: Path) -> None:
        importer = LocalImporter(self.sqlite, self.settings.schema_file)
        importer.run(Path(self.settings.destination), statements_file)

    def _import_remote(self, statements_file: Path) -> RunStatus:
        importer = RemoteImporter(self.wrangler, self.drizzle, self.confirmer, self.settings.migrations_dir)
        self.remote_states = importer.history
        final = importer.run(self.settings.store_name, statements_file)
        if final == RemoteState.ABORTED_BY_OPERATOR:
            return RunStatus.ABORTED
        return RunStatus.COMPLETED
