"""
Administrative helpers on top of `SQLiteTool`: migrations, backups,
introspection and maintenance.

Design notes:
- Data access goes through the facade's public operations; only PRAGMA-style
  introspection uses the raw `fetch_*`/`execute` primitives.
- Migrations are versioned, applied in ascending order and recorded in the
  `migrations` tracking table. Each run is one transaction: a failing migration
  rolls back every migration of that run.
- `backup()` is a plain file copy, not SQLite's online backup. If another
  connection holds an open write transaction the copy can be inconsistent.
"""

from __future__ import annotations

import asyncio
import logging
import shutil
from datetime import datetime
from pathlib import Path
from typing import Iterable

from fluentlite.core import NotConnectedError
from fluentlite.core.db.models import (
    ColumnInfo,
    DatabaseConfig,
    DatabaseStats,
    IndexInfo,
    Migration,
    MigrationResult,
    TableInfo,
    TableStats,
)
from fluentlite.core.db.schema import MIGRATIONS_TABLE, migrations_table
from fluentlite.core.sqlite_tool import SQLiteTool

logger = logging.getLogger(__name__)


def _quote_ident(name: str) -> str:
    """Quote an identifier for PRAGMA arguments."""
    escaped = name.replace('"', '""')
    return f'"{escaped}"'


def _file_stat(db_path: str):
    if db_path == ":memory:":
        raise ValueError("In-memory databases have no file to inspect")
    return Path(db_path).stat()


class SQLiteAdmin:
    """
    Migrations, backups and statistics for a connected `SQLiteTool`.

    Usage:
        admin = SQLiteAdmin(db)
        await admin.run_migrations(MIGRATIONS)
        ok = await admin.check_integrity()
    """

    def __init__(self, db: SQLiteTool) -> None:
        self._db = db

    @property
    def db(self) -> SQLiteTool:
        return self._db

    # ===========================================================================
    # Migrations
    # ===========================================================================

    async def _ensure_migrations_table(self) -> None:
        await self._db.create_table(MIGRATIONS_TABLE, migrations_table)

    async def applied_versions(self) -> set[int]:
        await self._ensure_migrations_table()
        rows = await self._db.find(MIGRATIONS_TABLE, columns=["version"])
        return {int(r["version"]) for r in rows}

    async def run_migrations(self, migrations: Iterable[Migration]) -> list[MigrationResult]:
        """
        Apply every migration whose version is not recorded yet.

        On failure the failing migration is recorded in the result list, the
        whole run is rolled back and the original error is re-raised.
        """
        pending = sorted(migrations, key=lambda m: m.version)
        versions = [m.version for m in pending]
        if len(versions) != len(set(versions)):
            raise ValueError("Migration versions must be unique")

        results: list[MigrationResult] = []
        applied = await self.applied_versions()

        async def apply() -> None:
            for migration in pending:
                if migration.version in applied:
                    continue
                try:
                    await migration.up(self._db)
                    await self._db.insert(
                        MIGRATIONS_TABLE,
                        {"version": migration.version, "name": migration.name},
                    )
                except Exception as e:
                    results.append(
                        MigrationResult(version=migration.version, applied=False, error=str(e))
                    )
                    raise
                results.append(MigrationResult(version=migration.version, applied=True))
                logger.info("Applied migration %d (%s)", migration.version, migration.name)

        await self._db.transaction(apply)
        return results

    async def rollback_migrations(
        self,
        migrations: Iterable[Migration],
        count: int = 1,
    ) -> list[MigrationResult]:
        """
        Undo the `count` most recently applied migrations (highest versions first).

        Applied versions with no matching entry in `migrations` are skipped and
        keep their tracking row.
        """
        by_version = {m.version: m for m in migrations}
        results: list[MigrationResult] = []
        await self._ensure_migrations_table()

        async def revert() -> None:
            rows = await self._db.find(
                MIGRATIONS_TABLE,
                columns=["version", "name"],
                order_by="version",
                direction="DESC",
                limit=count,
            )
            for row in rows:
                version = int(row["version"])
                migration = by_version.get(version)
                if migration is None:
                    logger.warning("No migration found for applied version %d", version)
                    continue
                try:
                    await migration.down(self._db)
                    await self._db.delete(MIGRATIONS_TABLE, {"version": version})
                except Exception as e:
                    results.append(MigrationResult(version=version, applied=False, error=str(e)))
                    raise
                results.append(MigrationResult(version=version, applied=False))
                logger.info("Rolled back migration %d (%s)", version, migration.name)

        await self._db.transaction(revert)
        return results

    # ===========================================================================
    # Backup
    # ===========================================================================

    async def backup(self, destination: str | Path) -> Path:
        """Copy the database file to `destination`, creating parent directories."""
        if not self._db.is_connected:
            raise NotConnectedError("Database is not connected. Call await db.connect() first.")
        if self._db.db_path == ":memory:":
            raise ValueError("In-memory databases cannot be backed up by file copy")

        dest = Path(destination)
        await asyncio.to_thread(dest.parent.mkdir, parents=True, exist_ok=True)
        await asyncio.to_thread(shutil.copyfile, self._db.db_path, dest)
        logger.info("Backed up %s to %s", self._db.db_path, dest)
        return dest

    # ===========================================================================
    # Introspection
    # ===========================================================================

    async def get_tables(self) -> list[TableInfo]:
        rows = await self._db.fetch_all(
            """
            SELECT name, type, tbl_name, rootpage, sql
            FROM sqlite_master
            WHERE type = 'table'
            ORDER BY name
            """
        )
        return [TableInfo(**r) for r in rows]

    async def get_columns(self, table_name: str) -> list[ColumnInfo]:
        rows = await self._db.fetch_all(f"PRAGMA table_info({_quote_ident(table_name)})")
        return [ColumnInfo(**r) for r in rows]

    async def get_indexes(self, table_name: str) -> list[IndexInfo]:
        rows = await self._db.fetch_all(f"PRAGMA index_list({_quote_ident(table_name)})")
        return [
            IndexInfo(
                seq=r["seq"],
                name=r["name"],
                unique=r["unique"],
                origin=r.get("origin", "c"),
                partial=r.get("partial", 0),
            )
            for r in rows
        ]

    async def get_database_stats(self) -> DatabaseStats:
        tables = await self.get_tables()
        total_rows = 0
        for table in tables:
            total_rows += await self._db.count(table.name)

        stat = _file_stat(self._db.db_path)
        return DatabaseStats(
            table_count=len(tables),
            total_rows=total_rows,
            database_size=stat.st_size,
            last_modified=datetime.fromtimestamp(stat.st_mtime),
        )

    async def get_table_stats(self, table_name: str) -> TableStats:
        row_count = await self._db.count(table_name)
        columns = await self.get_columns(table_name)
        indexes = await self.get_indexes(table_name)
        stat = _file_stat(self._db.db_path)

        # Heuristic: ~100 bytes per cell plus a share of the file size.
        size = round(row_count * len(columns) * 100 + stat.st_size / 1000)
        return TableStats(
            row_count=row_count,
            column_count=len(columns),
            index_count=len(indexes),
            size=size,
        )

    # ===========================================================================
    # Maintenance
    # ===========================================================================

    async def optimize(self) -> None:
        """VACUUM + ANALYZE."""
        await self._db.execute("VACUUM")
        await self._db.execute("ANALYZE")

    async def check_integrity(self) -> bool:
        row = await self._db.fetch_one("PRAGMA integrity_check")
        return row is not None and next(iter(row.values())) == "ok"

    async def get_config(self) -> DatabaseConfig:
        async def scalar(sql: str):
            row = await self._db.fetch_one(sql)
            return next(iter(row.values())) if row else None

        return DatabaseConfig(
            version=str(await scalar("SELECT sqlite_version() AS version")),
            encoding=str(await scalar("PRAGMA encoding")),
            page_size=int(await scalar("PRAGMA page_size")),
            page_count=int(await scalar("PRAGMA page_count")),
            busy_timeout=int(await scalar("PRAGMA busy_timeout")),
        )
