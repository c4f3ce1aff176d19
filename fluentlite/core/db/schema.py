"""
CREATE TABLE rendering + the migrations tracking table definition.

This module keeps DDL text out of the facade:

- `render_create_table()` turns a `TableBuilder` result into one statement
- `migrations_table()` configures the builder for the tracking table used by
  `SQLiteAdmin.run_migrations()` / `rollback_migrations()`

Design notes:
- Tables are always created with `IF NOT EXISTS`; re-running is a no-op.
- Column/constraint fragments are rendered one per line for readable
  `sqlite_master.sql` output.
"""

from __future__ import annotations

from typing import Final

from fluentlite.core.db.models import TableOptions
from fluentlite.core.db.table_builder import TableBuilder, TableBuildResult

MIGRATIONS_TABLE: Final[str] = "migrations"


def render_create_table(
    table_name: str,
    result: TableBuildResult,
    options: TableOptions | None = None,
) -> str:
    """Render a `CREATE [TEMPORARY] TABLE IF NOT EXISTS` statement."""
    options = options or TableOptions()

    body = ",\n  ".join([*result.columns, *result.constraints])
    head = "CREATE TEMPORARY TABLE" if options.temporary else "CREATE TABLE"
    sql = f"{head} IF NOT EXISTS {table_name} (\n  {body}\n)"

    # Both suffixes are table-options and may be combined with a comma.
    suffixes: list[str] = []
    if options.without_rowid:
        suffixes.append("WITHOUT ROWID")
    if options.strict:
        suffixes.append("STRICT")
    if suffixes:
        sql += " " + ", ".join(suffixes)
    return sql


def migrations_table(builder: TableBuilder) -> None:
    """Schema of the tracking table: one row per applied migration."""
    (
        builder.integer("id")
        .primary_key()
        .auto_increment()
        .integer("version")
        .not_null()
        .string("name")
        .not_null()
        .date("applied_at")
    )
