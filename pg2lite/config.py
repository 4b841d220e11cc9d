"""Configuration loaded from environment variables / .env file."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

from pg2lite.models import Flow

DEFAULT_EXCLUDE_TABLES = ["_drizzle_migrations"]
DEFAULT_REMOTE_EXCLUDE_TABLES = ["__drizzle_migrations", "_drizzle_migrations"]


def _split_list(value: str) -> list[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


def _env_bool(name: str, default: str) -> bool:
    return os.environ.get(name, default).lower() in ("true", "1", "yes")


@dataclass
class Settings:
    # Destination: SQLite file path (local flow) or D1 database name (remote flow)
    destination: str = ""
    # Source: PostgreSQL connection string (optional for the local flow)
    source_url: str = ""

    # Modes
    remote: bool = False
    remote_name: str = ""  # D1 database name; falls back to destination
    reset: bool = False

    # Artifacts
    schema_file: Path = Path("sqlite_schema.sql")
    dump_file: Path = Path("postgres_dump.sql")
    log_file: Path = Path("pg2lite.log")
    migrations_dir: Path = Path("drizzle")

    # Tables never dumped (per flow)
    exclude_tables: list[str] = field(default_factory=lambda: list(DEFAULT_EXCLUDE_TABLES))
    remote_exclude_tables: list[str] = field(default_factory=lambda: list(DEFAULT_REMOTE_EXCLUDE_TABLES))

    # pg_dump emits INSERTs with explicit column lists
    column_inserts: bool = True

    # External tools
    pg_dump_bin: str = "pg_dump"
    sqlite_bin: str = "sqlite3"
    wrangler_cmd: str = "npx wrangler"
    drizzle_kit_cmd: str = "npx drizzle-kit"

    # Logging
    log_level: str = "INFO"

    @property
    def flow(self) -> Flow:
        return Flow.REMOTE if self.remote else Flow.LOCAL

    @property
    def store_name(self) -> str:
        """Name of the remote store (explicit name wins over the positional destination)."""
        return self.remote_name or self.destination

    @property
    def excluded_tables(self) -> list[str]:
        """Exclusion list for the active flow."""
        return self.remote_exclude_tables if self.remote else self.exclude_tables

    def validate(self) -> list[str]:
        """Validate configuration. Returns list of error strings (empty = valid)."""
        errors = []

        if self.remote:
            if not self.store_name:
                errors.append("Remote database name is not set (use --remote NAME or D1_DATABASE_NAME)")
            if not self.source_url:
                errors.append("A PostgreSQL connection string is required for the remote flow")
        elif not self.destination:
            errors.append("SQLite database file is not set")

        # Accept URIs and keyword/value DSNs ("host=... dbname=...")
        is_uri = self.source_url.startswith(("postgres://", "postgresql://"))
        if self.source_url and not is_uri and "=" not in self.source_url:
            errors.append(f"Connection string does not look like a PostgreSQL URI or DSN: {self.source_url[:30]}")

        for name in self.excluded_tables:
            if not name or any(c.isspace() for c in name):
                errors.append(f"Invalid table name in exclusion list: {name!r}")

        if not self.wrangler_cmd.split() or not self.drizzle_kit_cmd.split():
            errors.append("WRANGLER_CMD and DRIZZLE_KIT_CMD must not be empty")

        return errors


def load_settings() -> Settings:
    load_dotenv()

    return Settings(
        source_url=os.environ.get("DATABASE_URL", ""),
        remote_name=os.environ.get("D1_DATABASE_NAME", ""),
        schema_file=Path(os.environ.get("PG2LITE_SCHEMA_FILE", "sqlite_schema.sql")),
        dump_file=Path(os.environ.get("PG2LITE_DUMP_FILE", "postgres_dump.sql")),
        log_file=Path(os.environ.get("PG2LITE_LOG_FILE", "pg2lite.log")),
        migrations_dir=Path(os.environ.get("PG2LITE_MIGRATIONS_DIR", "drizzle")),
        exclude_tables=_split_list(os.environ.get("PG2LITE_EXCLUDE_TABLES", ",".join(DEFAULT_EXCLUDE_TABLES))),
        remote_exclude_tables=_split_list(
            os.environ.get("PG2LITE_REMOTE_EXCLUDE_TABLES", ",".join(DEFAULT_REMOTE_EXCLUDE_TABLES))
        ),
        column_inserts=_env_bool("PG2LITE_COLUMN_INSERTS", "true"),
        pg_dump_bin=os.environ.get("PG_DUMP_BIN", "pg_dump"),
        sqlite_bin=os.environ.get("SQLITE3_BIN", "sqlite3"),
        wrangler_cmd=os.environ.get("WRANGLER_CMD", "npx wrangler"),
        drizzle_kit_cmd=os.environ.get("DRIZZLE_KIT_CMD", "npx drizzle-kit"),
        log_level=os.environ.get("LOG_LEVEL", "INFO"),
    )
