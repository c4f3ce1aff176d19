"""
Connection-free building blocks of fluentlite.

This package holds everything that renders SQL without touching the engine:
value types, the table/query builders and the DDL helpers. `SQLiteTool` in
`fluentlite.core.sqlite_tool` is the single piece that executes what these
modules render.
"""

from __future__ import annotations

# Models / value helpers
from .models import (
    Migration,
    MigrationResult,
    Pagination,
    PaginatedResult,
    QueryCondition,
    TableOptions,
    WriteResult,
    escape_value,
    prepare_value,
)

# Builders
from .query_builder import QueryBuilder, SQLQuery, WhereBuilder, WhereClause
from .table_builder import TableBuilder, TableBuildResult

# Schema
from .schema import MIGRATIONS_TABLE, render_create_table

__all__ = [
    # models
    "Migration",
    "MigrationResult",
    "Pagination",
    "PaginatedResult",
    "QueryCondition",
    "TableOptions",
    "WriteResult",
    "escape_value",
    "prepare_value",
    # builders
    "QueryBuilder",
    "SQLQuery",
    "WhereBuilder",
    "WhereClause",
    "TableBuilder",
    "TableBuildResult",
    # schema
    "MIGRATIONS_TABLE",
    "render_create_table",
]
