"""Shared test fixtures."""

from __future__ import annotations

import sqlite3
from pathlib import Path

import pytest

from pg2lite.config import Settings
from pg2lite.confirm import Confirmer
from pg2lite.errors import CommandError

SCHEMA_SQL = """
CREATE TABLE users (
    id INTEGER PRIMARY KEY,
    name TEXT NOT NULL,
    active INTEGER NOT NULL DEFAULT 1
);
CREATE TABLE posts (
    id INTEGER PRIMARY KEY,
    user_id INTEGER NOT NULL REFERENCES users(id),
    body TEXT NOT NULL,
    created_at TEXT
);
"""

SAMPLE_DUMP = """--
-- PostgreSQL database dump
--

SET statement_timeout = 0;
SET client_encoding = 'UTF8';
SET standard_conforming_strings = on;
SELECT pg_catalog.set_config('search_path', '', false);
SET check_function_bodies = false;

--
-- Data for Name: posts; Type: TABLE DATA; Schema: public; Owner: app
--

INSERT INTO public.posts (id, user_id, body, created_at) VALUES (1, 1, 'hello
SET this is not a directive', '2024-01-02 03:04:05.123+00');

--
-- Data for Name: users; Type: TABLE DATA; Schema: public; Owner: app
--

INSERT INTO public.users (id, name, active) VALUES (1, 'Ada', 'true');
INSERT INTO public.users (id, name, active) VALUES (2, 'Bob', 'false');

--
-- Data for Name: audit_log; Type: TABLE DATA; Schema: public; Owner: app
--

INSERT INTO public.audit_log (id, action) VALUES (1, 'login');

--
-- Name: users_id_seq; Type: SEQUENCE SET; Schema: public; Owner: app
--

SELECT pg_catalog.setval('public.users_id_seq', 2, true);
"""


@pytest.fixture
def schema_file(tmp_path) -> Path:
    path = tmp_path / "sqlite_schema.sql"
    path.write_text(SCHEMA_SQL)
    return path


@pytest.fixture
def dump_file(tmp_path) -> Path:
    path = tmp_path / "postgres_dump.sql"
    path.write_text(SAMPLE_DUMP)
    return path


@pytest.fixture
def test_settings(tmp_path, schema_file, dump_file):
    """Local-flow settings pointing at temporary artifacts; no source database."""
    return Settings(
        destination=str(tmp_path / "app.db"),
        schema_file=schema_file,
        dump_file=dump_file,
        log_file=tmp_path / "pg2lite.log",
        migrations_dir=tmp_path / "drizzle",
        exclude_tables=["_drizzle_migrations", "audit_log"],
        remote_exclude_tables=["__drizzle_migrations", "audit_log"],
    )


@pytest.fixture
def remote_settings(test_settings):
    from dataclasses import replace

    return replace(
        test_settings,
        remote=True,
        remote_name="app-db",
        source_url="postgresql://app@localhost/app",
    )


@pytest.fixture(autouse=True)
def isolated_tempdir(tmp_path, monkeypatch):
    """Keep scratch files inside the test's tmp_path so their cleanup can be asserted."""
    import tempfile

    scratch = tmp_path / "scratch"
    scratch.mkdir()
    monkeypatch.setattr(tempfile, "tempdir", str(scratch))
    return scratch


# ---------------------------------------------------------------------------
# Collaborator fakes
# ---------------------------------------------------------------------------


class ScriptedConfirmer(Confirmer):
    """Returns fixed decisions and records every prompt."""

    def __init__(self, decision: bool = True, events: list | None = None):
        self.decision = decision
        self.questions: list[str] = []
        self.acknowledged: list[str] = []
        self.events = events if events is not None else []

    def confirm(self, question: str) -> bool:
        self.questions.append(question)
        self.events.append("confirm")
        return self.decision

    def acknowledge(self, message: str) -> None:
        self.acknowledged.append(message)
        self.events.append("acknowledge")


class FakeSqliteCli:
    """Stands in for the sqlite3 binary using Python's sqlite3 module, with -bail semantics."""

    def __init__(self):
        self.calls: list[tuple[str, str]] = []

    def _connect(self, database: Path) -> sqlite3.Connection:
        return sqlite3.connect(str(database), isolation_level=None)

    def execute(self, database: Path, sql: str) -> None:
        self.calls.append(("execute", sql))
        conn = self._connect(database)
        try:
            conn.executescript(sql)
        except sqlite3.Error as e:
            raise CommandError(["sqlite3", str(database)], 1, str(e)) from e
        finally:
            conn.close()

    def execute_file(self, database: Path, sql_file: Path, pre_commands=()) -> None:
        self.calls.append(("execute_file", str(sql_file)))
        conn = self._connect(database)
        try:
            for command in pre_commands:
                conn.execute(command)
            conn.executescript(sql_file.read_text())
        except sqlite3.Error as e:
            if conn.in_transaction:
                conn.rollback()
            raise CommandError(["sqlite3", str(database)], 1, str(e)) from e
        finally:
            conn.close()


class FakeWrangler:
    """In-memory D1 platform. Records calls in order on a shared event list."""

    def __init__(self, exists: bool = False, tables: list[str] | None = None, events: list | None = None):
        self.exists = exists
        self.tables = tables or []
        self.events = events if events is not None else []
        self.executed: list[tuple[bool, str]] = []
        self.fail_remote_execute = False

    def database_exists(self, name: str) -> bool:
        self.events.append("list")
        return self.exists

    def create_database(self, name: str) -> str:
        self.events.append("create")
        self.exists = True
        self.tables = []
        return "0b5a8c3e-1111-2222-3333-444455556666"

    def delete_database(self, name: str) -> None:
        self.events.append("delete")
        self.exists = False
        self.tables = []

    def user_tables(self, name: str) -> list[str]:
        from pg2lite.wrangler import is_system_table

        self.events.append("tables")
        return [t for t in self.tables if not is_system_table(t)]

    def apply_migrations(self, name: str, remote: bool) -> None:
        self.events.append("migrate-remote" if remote else "migrate-local")

    def execute_file(self, name: str, sql_file: Path, remote: bool) -> None:
        self.events.append("execute-remote" if remote else "execute-local")
        if remote and self.fail_remote_execute:
            raise CommandError(["wrangler", "d1", "execute", name], 1, "SQLITE_CONSTRAINT")
        self.executed.append((remote, sql_file.read_text()))


class FakeDrizzle:
    def __init__(self, migrations_dir: Path, events: list | None = None):
        self.migrations_dir = migrations_dir
        self.events = events if events is not None else []

    def generate(self) -> None:
        self.events.append("generate")
        self.migrations_dir.mkdir(parents=True, exist_ok=True)
        (self.migrations_dir / "0000_initial.sql").write_text("CREATE TABLE users (id INTEGER PRIMARY KEY);")


@pytest.fixture
def fake_sqlite():
    return FakeSqliteCli()


@pytest.fixture
def events():
    return []
