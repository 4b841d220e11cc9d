"""Tests for the wrangler / drizzle-kit wrappers."""

from __future__ import annotations

import json
import subprocess
from pathlib import Path
from unittest.mock import patch

import pytest

from pg2lite.errors import CommandError
from pg2lite.wrangler import LIST_TABLES_SQL, DrizzleKit, WranglerCli, is_system_table


def _out(stdout: str):
    return subprocess.CompletedProcess([], 0, stdout, "")


DATABASES = [
    {"uuid": "1111", "name": "app-db", "created_at": "2024-01-01T00:00:00Z"},
    {"uuid": "2222", "name": "other", "created_at": "2024-01-01T00:00:00Z"},
]

TABLES = [
    {
        "results": [{"name": "_cf_KV"}, {"name": "d1_migrations"}, {"name": "sqlite_sequence"}, {"name": "users"}],
        "success": True,
        "meta": {"duration": 0.2},
    }
]


class TestSystemTables:
    @pytest.mark.parametrize("name", ["_cf_KV", "_cf_METADATA", "sqlite_sequence", "d1_migrations"])
    def test_system(self, name):
        assert is_system_table(name)

    @pytest.mark.parametrize("name", ["users", "cf_users", "migrations"])
    def test_user(self, name):
        assert not is_system_table(name)


class TestWranglerCli:
    def test_list_databases(self):
        with patch("pg2lite.wrangler.run_cmd", return_value=_out(json.dumps(DATABASES))) as mock_run:
            dbs = WranglerCli().list_databases()
        assert [d["name"] for d in dbs] == ["app-db", "other"]
        mock_run.assert_called_once_with(["npx", "wrangler", "d1", "list", "--json"])

    def test_list_databases_skips_banner(self):
        output = " ⛅️ wrangler 3.60.0\n-------------------\n" + json.dumps(DATABASES)
        with patch("pg2lite.wrangler.run_cmd", return_value=_out(output)):
            assert len(WranglerCli().list_databases()) == 2

    def test_garbage_output_is_a_command_error(self):
        with patch("pg2lite.wrangler.run_cmd", return_value=_out("not json at all")):
            with pytest.raises(CommandError):
                WranglerCli().list_databases()

    def test_database_exists(self):
        with patch("pg2lite.wrangler.run_cmd", return_value=_out(json.dumps(DATABASES))):
            cli = WranglerCli()
            assert cli.database_exists("app-db")
            assert not cli.database_exists("missing")

    def test_create_parses_database_id(self):
        output = (
            "✅ Successfully created DB 'app-db' in region WEUR\n\n"
            "[[d1_databases]]\n"
            'binding = "DB"\n'
            'database_name = "app-db"\n'
            'database_id = "0b5a8c3e-1111-2222-3333-444455556666"\n'
        )
        with patch("pg2lite.wrangler.run_cmd", return_value=_out(output)) as mock_run:
            database_id = WranglerCli("wrangler").create_database("app-db")
        assert database_id == "0b5a8c3e-1111-2222-3333-444455556666"
        mock_run.assert_called_once_with(["wrangler", "d1", "create", "app-db"])

    def test_create_json_style_output(self):
        output = '{\n  "d1_databases": [{"binding": "DB", "database_id": "abcdef12-0000"}]\n}'
        with patch("pg2lite.wrangler.run_cmd", return_value=_out(output)):
            assert WranglerCli().create_database("app-db") == "abcdef12-0000"

    def test_create_without_id(self):
        with patch("pg2lite.wrangler.run_cmd", return_value=_out("created")):
            assert WranglerCli().create_database("app-db") is None

    def test_delete(self):
        with patch("pg2lite.wrangler.run_cmd") as mock_run:
            WranglerCli().delete_database("app-db")
        mock_run.assert_called_once_with(["npx", "wrangler", "d1", "delete", "app-db", "--skip-confirmation"])

    def test_list_and_filter_tables(self):
        with patch("pg2lite.wrangler.run_cmd", return_value=_out(json.dumps(TABLES))) as mock_run:
            cli = WranglerCli()
            assert cli.list_tables("app-db") == ["_cf_KV", "d1_migrations", "sqlite_sequence", "users"]
            assert cli.user_tables("app-db") == ["users"]
        args = mock_run.call_args.args[0]
        assert args[:6] == ["npx", "wrangler", "d1", "execute", "app-db", "--remote"]
        assert args[-1] == LIST_TABLES_SQL

    def test_execute_file_targets(self):
        with patch("pg2lite.wrangler.run_cmd") as mock_run:
            cli = WranglerCli()
            cli.execute_file("app-db", Path("/tmp/load.sql"), remote=True)
            cli.execute_file("app-db", Path("/tmp/load.sql"), remote=False)
        remote_args, local_args = (c.args[0] for c in mock_run.call_args_list)
        assert "--remote" in remote_args and "--local" not in remote_args
        assert "--local" in local_args and "--remote" not in local_args
        assert remote_args[-1] == "--file=/tmp/load.sql"

    def test_apply_migrations(self):
        with patch("pg2lite.wrangler.run_cmd") as mock_run:
            WranglerCli().apply_migrations("app-db", remote=True)
        mock_run.assert_called_once_with(["npx", "wrangler", "d1", "migrations", "apply", "app-db", "--remote"])


class TestDrizzleKit:
    def test_generate(self):
        with patch("pg2lite.wrangler.run_cmd") as mock_run:
            DrizzleKit().generate()
        mock_run.assert_called_once_with(["npx", "drizzle-kit", "generate"])
