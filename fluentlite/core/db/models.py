"""
Value types and small conversion helpers shared by the builders and the facade.

This module is intentionally lightweight:
- No DB connection knowledge
- No SQL rendering beyond single literals
- Pure dataclasses + helper functions
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Awaitable, Callable, Final, Literal

Operator = Literal[
    "=",
    "!=",
    "<>",
    "<",
    "<=",
    ">",
    ">=",
    "LIKE",
    "NOT LIKE",
    "IN",
    "NOT IN",
    "IS NULL",
    "IS NOT NULL",
    "BETWEEN",
    "NOT BETWEEN",
]

OPERATORS: Final[frozenset[str]] = frozenset(
    {
        "=",
        "!=",
        "<>",
        "<",
        "<=",
        ">",
        ">=",
        "LIKE",
        "NOT LIKE",
        "IN",
        "NOT IN",
        "IS NULL",
        "IS NOT NULL",
        "BETWEEN",
        "NOT BETWEEN",
    }
)

IsolationLevel = Literal["DEFERRED", "IMMEDIATE", "EXCLUSIVE"]

ISOLATION_LEVELS: Final[frozenset[str]] = frozenset({"DEFERRED", "IMMEDIATE", "EXCLUSIVE"})

# Values the engine can bind directly.
PreparedValue = str | int | float | bytes | None


def check_operator(operator: str) -> str:
    """Return the normalized operator or raise ValueError if it is not supported."""
    op = operator.strip().upper()
    if op not in OPERATORS:
        raise ValueError(f"Unsupported operator: {operator!r}")
    return op


@dataclass(frozen=True, slots=True)
class QueryCondition:
    """
    Explicit operator condition for `find`/`count`.

    `second_value` is only used by BETWEEN / NOT BETWEEN.
    """

    operator: str
    value: Any = None
    second_value: Any = None


@dataclass(frozen=True, slots=True)
class WriteResult:
    """Outcome of a write statement (INSERT/UPDATE/DELETE or raw execute)."""

    last_insert_id: int
    rows_changed: int


@dataclass(frozen=True, slots=True)
class TableOptions:
    """Modifiers applied to a CREATE TABLE statement."""

    temporary: bool = False
    without_rowid: bool = False
    strict: bool = False


@dataclass(frozen=True, slots=True)
class Pagination:
    """
    Pagination summary derived from a total row count.

    Never constructed field by field; use `Pagination.compute()`.
    """

    page: int
    limit: int
    total: int
    total_pages: int
    has_next: bool
    has_prev: bool

    @classmethod
    def compute(cls, *, page: int, limit: int, total: int) -> Pagination:
        total_pages = -(-total // limit)  # ceil without floats
        return cls(
            page=page,
            limit=limit,
            total=total,
            total_pages=total_pages,
            has_next=page < total_pages,
            has_prev=page > 1,
        )


@dataclass(frozen=True, slots=True)
class PaginatedResult:
    data: list[dict[str, Any]]
    pagination: Pagination


@dataclass(frozen=True, slots=True)
class Migration:
    """
    A versioned schema change.

    `up` and `down` receive the `SQLiteTool` they run against.
    """

    version: int
    name: str
    up: Callable[[Any], Awaitable[None]]
    down: Callable[[Any], Awaitable[None]]


@dataclass(frozen=True, slots=True)
class MigrationResult:
    version: int
    applied: bool
    error: str | None = None


@dataclass(frozen=True, slots=True)
class TableInfo:
    """Row of `sqlite_master` describing a table."""

    name: str
    type: str
    tbl_name: str
    rootpage: int
    sql: str | None


@dataclass(frozen=True, slots=True)
class ColumnInfo:
    """Row of `PRAGMA table_info`."""

    cid: int
    name: str
    type: str
    notnull: int
    dflt_value: Any
    pk: int


@dataclass(frozen=True, slots=True)
class IndexInfo:
    """Row of `PRAGMA index_list`."""

    seq: int
    name: str
    unique: int
    origin: str = "c"
    partial: int = 0


@dataclass(frozen=True, slots=True)
class DatabaseStats:
    table_count: int
    total_rows: int
    database_size: int
    last_modified: datetime


@dataclass(frozen=True, slots=True)
class TableStats:
    row_count: int
    column_count: int
    index_count: int
    # Rough estimate, not a measured size.
    size: int


@dataclass(frozen=True, slots=True)
class DatabaseConfig:
    version: str
    encoding: str
    page_size: int
    page_count: int
    busy_timeout: int


@dataclass(slots=True)
class ColumnDefinition:
    """Column accumulated by the table builder; `modifiers` keep call order."""

    name: str
    type: str
    modifiers: list[str] = field(default_factory=list)

    def render(self) -> str:
        if self.modifiers:
            return f"{self.name} {self.type} {' '.join(self.modifiers)}"
        return f"{self.name} {self.type}"


def prepare_value(value: Any) -> PreparedValue:
    """
    Convert a Python value into something the engine binds.

    - None -> NULL
    - datetime/date -> ISO-8601 text
    - bool -> 0/1
    - dict/list/tuple -> JSON text
    - anything else unchanged
    """
    if value is None:
        return None
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, bool):
        return 1 if value else 0
    if isinstance(value, (dict, list, tuple)):
        return json.dumps(value)
    return value


def escape_value(value: Any) -> str:
    """
    Render a Python value as a SQL literal for DEFAULT clauses.

    Only used for DDL, where parameters cannot be bound.
    """
    if value is None:
        return "NULL"
    if isinstance(value, str):
        if value == "CURRENT_TIMESTAMP":
            return value
        escaped = value.replace("'", "''")
        return f"'{escaped}'"
    if isinstance(value, bool):
        return "1" if value else "0"
    if isinstance(value, (datetime, date)):
        return f"'{value.isoformat()}'"
    return str(value)
