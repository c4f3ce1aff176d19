"""
Record access facade over a single SQLite connection.

Goals:
- Build and run CREATE TABLE / SELECT / INSERT / UPDATE / DELETE / COUNT without
  hand-written SQL strings.
- SQLite + aiosqlite, async/await friendly.
- One connection per instance, no pooling, no internal locking: callers
  serialize their own operations; concurrent writers rely on the engine's
  busy timeout.

Note:
- SQL rendering lives in `fluentlite.core.db` (builders, DDL helpers)
- Migrations, backups and introspection live in `fluentlite.core.admin`
- The connection runs in autocommit mode; `transaction()` owns BEGIN/COMMIT
"""

from __future__ import annotations

import logging
import sqlite3
from contextlib import contextmanager
from dataclasses import replace
from pathlib import Path
from typing import Any, Awaitable, Callable, Iterator, Mapping, Sequence, TypeVar
from urllib.parse import quote

import aiosqlite

from fluentlite.config import Logger, ToolConfig
from fluentlite.core import NotConnectedError, TransactionError
from fluentlite.core.db.models import (
    ISOLATION_LEVELS,
    Pagination,
    PaginatedResult,
    QueryCondition,
    TableOptions,
    WriteResult,
    check_operator,
    prepare_value,
)
from fluentlite.core.db.query_builder import QueryBuilder
from fluentlite.core.db.schema import render_create_table
from fluentlite.core.db.table_builder import TableBuilder

logger = logging.getLogger(__name__)

T = TypeVar("T")

Conditions = Mapping[str, Any]
Params = Sequence[Any] | Mapping[str, Any]


def _apply_operator(builder: QueryBuilder, column: str, cond: QueryCondition) -> None:
    """Route an explicit-operator condition to the matching builder helper."""
    op = check_operator(cond.operator)
    if op == "IS NULL":
        builder.where_null(column)
    elif op == "IS NOT NULL":
        builder.where_not_null(column)
    elif op == "IN":
        builder.where_in(column, [prepare_value(v) for v in cond.value])
    elif op == "NOT IN":
        builder.where_not_in(column, [prepare_value(v) for v in cond.value])
    elif op == "BETWEEN":
        builder.where_between(column, prepare_value(cond.value), prepare_value(cond.second_value))
    elif op == "NOT BETWEEN":
        builder.where_not_between(
            column, prepare_value(cond.value), prepare_value(cond.second_value)
        )
    else:
        builder.where(column, op, prepare_value(cond.value))


def apply_conditions(builder: QueryBuilder, conditions: Conditions | None) -> QueryBuilder:
    """
    Translate a `find`/`count` condition mapping into builder predicates.

    - list/tuple/set value -> `column IN (...)`
    - `QueryCondition` or a mapping with an "operator" key -> explicit operator
    - anything else -> `column = ?`
    """
    for column, value in (conditions or {}).items():
        if isinstance(value, (list, tuple, set, frozenset)):
            builder.where_in(column, [prepare_value(v) for v in value])
        elif isinstance(value, QueryCondition):
            _apply_operator(builder, column, value)
        elif isinstance(value, Mapping) and "operator" in value:
            _apply_operator(
                builder,
                column,
                QueryCondition(
                    operator=value["operator"],
                    value=value.get("value"),
                    second_value=value.get("second_value"),
                ),
            )
        else:
            builder.where(column, "=", prepare_value(value))
    return builder


def _equality_clause(conditions: Conditions) -> tuple[str, list[Any]]:
    """`a = ? AND b = ?` for update/delete (equality only)."""
    clause = " AND ".join(f"{key} = ?" for key in conditions)
    return clause, [prepare_value(v) for v in conditions.values()]


class SQLiteTool:
    """
    Async facade for one SQLite database file.

    Usage:
        db = SQLiteTool("app.sqlite", logging=True)
        await db.connect()
        await db.create_table("users", lambda t: t.id().string("name").not_null())
        await db.insert("users", {"name": "Ann"})
        rows = await db.find("users", {"name": "Ann"})
        await db.close()

    Or as an async context manager:
        async with SQLiteTool("app.sqlite") as db:
            ...

    Notes:
    - `update()`/`delete()` without conditions touch every row. There is no
      guard; pass conditions.
    - `find_paginated()` runs COUNT and SELECT as two statements; a concurrent
      write in between can make `total` disagree with the returned page.
    - `transaction()` is not reentrant on the same instance.
    """

    def __init__(
        self,
        db_path: str | Path,
        config: ToolConfig | None = None,
        **overrides: Any,
    ) -> None:
        self._db_path = str(db_path)
        self._config = replace(config or ToolConfig(), **overrides)
        self._logger: Logger = self._config.logger or logger
        self._conn: aiosqlite.Connection | None = None
        self._in_transaction = False

    async def __aenter__(self) -> SQLiteTool:
        await self.connect()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    # ===========================================================================
    # Connection
    # ===========================================================================

    @property
    def is_connected(self) -> bool:
        return self._conn is not None

    @property
    def db_path(self) -> str:
        return self._db_path

    @property
    def config(self) -> ToolConfig:
        return self._config

    @property
    def connection(self) -> aiosqlite.Connection | None:
        """Raw aiosqlite connection for advanced usage (None when disconnected)."""
        return self._conn

    def _connect_target(self) -> tuple[str, bool]:
        if self._db_path == ":memory:":
            return self._db_path, False
        return f"file:{quote(self._db_path)}?mode={self._config.open_mode}", True

    async def connect(self) -> None:
        if self._conn is not None:
            self._log("debug", "Already connected to database")
            return

        database, uri = self._connect_target()
        try:
            # isolation_level=None: autocommit, explicit BEGIN in transaction().
            conn = await aiosqlite.connect(database, uri=uri, isolation_level=None)
        except sqlite3.Error as e:
            self._log("error", "Error connecting to SQLite database at %s: %s", self._db_path, e)
            raise

        try:
            conn.row_factory = aiosqlite.Row
            if self._config.timeout:
                await conn.execute(f"PRAGMA busy_timeout = {int(self._config.timeout)};")
            await conn.execute("PRAGMA foreign_keys = ON;")
            if self._config.verbose:
                await conn.set_trace_callback(self._trace)
        except sqlite3.Error as e:
            self._log("error", "Error configuring SQLite database at %s: %s", self._db_path, e)
            await conn.close()
            raise

        self._conn = conn
        self._log("info", "Connected to SQLite database at %s", self._db_path)

    async def close(self) -> None:
        if self._conn is None:
            self._log("debug", "No active connection to close")
            return
        conn, self._conn = self._conn, None
        self._in_transaction = False
        await conn.close()
        self._log("info", "Closed SQLite database connection")

    def _require_conn(self) -> aiosqlite.Connection:
        if self._conn is None:
            raise NotConnectedError("Database is not connected. Call await db.connect() first.")
        return self._conn

    # ===========================================================================
    # Logging
    # ===========================================================================

    def set_logging(self, enabled: bool) -> None:
        self._config = replace(self._config, logging=enabled)
        self._log("info", "Logging %s", "enabled" if enabled else "disabled")

    def _log(self, level: str, msg: str, *args: Any) -> None:
        if self._config.logging:
            getattr(self._logger, level)(msg, *args)

    def _trace(self, statement: str) -> None:
        # Called from the aiosqlite worker thread.
        self._logger.debug("SQL trace: %s", statement)

    @contextmanager
    def _log_errors(self, action: str) -> Iterator[None]:
        try:
            yield
        except sqlite3.Error as e:
            self._log("error", "Error %s: %s", action, e)
            raise

    # ===========================================================================
    # Engine primitives
    # ===========================================================================

    async def execute(self, sql: str, params: Params = ()) -> WriteResult:
        """Run one statement and report last insert id / changed rows."""
        conn = self._require_conn()
        self._log("debug", "Executing SQL: %s %s", sql, params)
        cursor = await conn.execute(sql, params)
        return WriteResult(
            last_insert_id=int(cursor.lastrowid or 0),
            rows_changed=max(cursor.rowcount, 0),
        )

    async def fetch_all(self, sql: str, params: Params = ()) -> list[dict[str, Any]]:
        conn = self._require_conn()
        self._log("debug", "Executing SQL: %s %s", sql, params)
        cursor = await conn.execute(sql, params)
        rows = await cursor.fetchall()
        return [dict(r) for r in rows]

    async def fetch_one(self, sql: str, params: Params = ()) -> dict[str, Any] | None:
        conn = self._require_conn()
        self._log("debug", "Executing SQL: %s %s", sql, params)
        cursor = await conn.execute(sql, params)
        row = await cursor.fetchone()
        return dict(row) if row is not None else None

    # ===========================================================================
    # Schema
    # ===========================================================================

    async def create_table(
        self,
        table_name: str,
        schema: Callable[[TableBuilder], Any],
        options: TableOptions | None = None,
    ) -> None:
        """
        Create a table (IF NOT EXISTS) from a builder configuration function.

        Usage:
            await db.create_table("users", lambda t: t.id().string("name").not_null())
        """
        self._require_conn()
        builder = TableBuilder(table_name)
        schema(builder)
        sql = render_create_table(table_name, builder.build(), options)

        with self._log_errors("creating table"):
            await self.execute(sql)
        self._log("info", "Table %s created or already exists", table_name)

    async def drop_table(self, table_name: str) -> None:
        self._require_conn()
        with self._log_errors("dropping table"):
            await self.execute(f"DROP TABLE IF EXISTS {table_name}")
        self._log("info", "Table %s dropped", table_name)

    async def table_exists(self, table_name: str) -> bool:
        self._require_conn()
        with self._log_errors("checking table existence"):
            row = await self.fetch_one(
                "SELECT name FROM sqlite_master WHERE type = 'table' AND name = ?",
                (table_name,),
            )
        return row is not None

    # ===========================================================================
    # CRUD
    # ===========================================================================

    async def insert(self, table_name: str, data: Mapping[str, Any]) -> WriteResult:
        """Insert one record; values pass through `prepare_value`."""
        self._require_conn()
        if not data:
            raise ValueError("insert() requires at least one column")
        columns = ", ".join(data)
        placeholders = ", ".join("?" for _ in data)
        sql = f"INSERT INTO {table_name} ({columns}) VALUES ({placeholders})"
        values = [prepare_value(v) for v in data.values()]

        with self._log_errors("inserting record"):
            return await self.execute(sql, values)

    async def find(
        self,
        table_name: str,
        conditions: Conditions | None = None,
        *,
        columns: Sequence[str] | None = None,
        order_by: str | Sequence[str] | None = None,
        direction: str = "ASC",
        limit: int | None = None,
        offset: int | None = None,
        group_by: str | Sequence[str] | None = None,
        having: str | None = None,
        having_values: Sequence[Any] = (),
        distinct: bool = False,
    ) -> list[dict[str, Any]]:
        """
        Select rows matching `conditions`.

        `offset` only applies together with `limit`.
        """
        self._require_conn()
        builder = apply_conditions(QueryBuilder(table_name), conditions)

        if columns:
            builder.select(columns)
        if distinct:
            builder.distinct()
        if order_by:
            builder.order_by(order_by, direction)
        if limit is not None:
            builder.limit(limit)
            if offset:
                builder.offset(offset)
        if group_by:
            builder.group_by(group_by)
        if having:
            builder.having(having, having_values)

        sql, values = builder.to_sql()
        with self._log_errors("finding records"):
            return await self.fetch_all(sql, values)

    async def find_one(
        self,
        table_name: str,
        conditions: Conditions | None = None,
        **options: Any,
    ) -> dict[str, Any] | None:
        """First matching row, or None when nothing matches."""
        options["limit"] = 1
        rows = await self.find(table_name, conditions, **options)
        return rows[0] if rows else None

    async def update(
        self,
        table_name: str,
        data: Mapping[str, Any],
        conditions: Conditions | None = None,
    ) -> int:
        """
        Update rows and return how many changed.

        Conditions are equality-only and AND-joined. Without conditions every
        row is updated.
        """
        self._require_conn()
        if not data:
            raise ValueError("update() requires at least one column to set")

        set_clause = ", ".join(f"{key} = ?" for key in data)
        values = [prepare_value(v) for v in data.values()]
        sql = f"UPDATE {table_name} SET {set_clause}"

        if conditions:
            where, where_values = _equality_clause(conditions)
            sql += f" WHERE {where}"
            values.extend(where_values)

        with self._log_errors("updating records"):
            result = await self.execute(sql, values)
        return result.rows_changed

    async def delete(self, table_name: str, conditions: Conditions | None = None) -> int:
        """
        Delete rows and return how many were removed.

        Same equality-only contract as `update()`; no conditions deletes every row.
        """
        self._require_conn()
        sql = f"DELETE FROM {table_name}"
        values: list[Any] = []

        if conditions:
            where, values = _equality_clause(conditions)
            sql += f" WHERE {where}"

        with self._log_errors("deleting records"):
            result = await self.execute(sql, values)
        return result.rows_changed

    async def count(self, table_name: str, conditions: Conditions | None = None) -> int:
        self._require_conn()
        sql, values = apply_conditions(QueryBuilder(table_name), conditions).to_count_sql()
        with self._log_errors("counting records"):
            row = await self.fetch_one(sql, values)
        return int(row["count"]) if row else 0

    async def find_paginated(
        self,
        table_name: str,
        conditions: Conditions | None = None,
        *,
        page: int = 1,
        limit: int = 10,
        **options: Any,
    ) -> PaginatedResult:
        """
        One page of rows plus a pagination summary.

        Not atomic: COUNT and SELECT are separate statements.
        """
        if page < 1 or limit < 1:
            raise ValueError(f"page and limit must be >= 1 (got page={page}, limit={limit})")

        total = await self.count(table_name, conditions)
        data = await self.find(
            table_name,
            conditions,
            **{**options, "limit": limit, "offset": (page - 1) * limit},
        )
        return PaginatedResult(
            data=data,
            pagination=Pagination.compute(page=page, limit=limit, total=total),
        )

    # ===========================================================================
    # Transactions
    # ===========================================================================

    async def transaction(
        self,
        callback: Callable[[], Awaitable[T]],
        *,
        isolation: str = "DEFERRED",
    ) -> T:
        """
        Run `callback` inside BEGIN ... COMMIT.

        Any exception from the callback (or from COMMIT) triggers a ROLLBACK and
        is re-raised. If the ROLLBACK itself fails, that error propagates
        instead, with the original attached as `__context__`.
        """
        conn = self._require_conn()
        if self._in_transaction:
            raise TransactionError("Nested transactions are not supported")
        level = isolation.upper()
        if level not in ISOLATION_LEVELS:
            raise ValueError(f"Unsupported isolation level: {isolation!r}")

        self._in_transaction = True
        try:
            await conn.execute(f"BEGIN {level} TRANSACTION")
            try:
                result = await callback()
                await conn.execute("COMMIT")
            except BaseException as e:
                self._log("error", "Transaction failed, rolling back: %s", e)
                await conn.execute("ROLLBACK")
                raise
            return result
        finally:
            self._in_transaction = False
