"""
fluentlite - fluent helpers for building and running SQLite statements.

fluentlite renders CREATE TABLE / SELECT / INSERT / UPDATE / DELETE / COUNT
statements from chained builder calls and runs them through one aiosqlite
connection, with migrations, backups and introspection on top.
"""

__version__ = "0.1.0"
__license__ = "GPL-2.0"

from fluentlite.core.admin import SQLiteAdmin
from fluentlite.core.db import QueryBuilder, TableBuilder, WhereBuilder
from fluentlite.core.sqlite_tool import SQLiteTool

__all__ = [
    "QueryBuilder",
    "SQLiteAdmin",
    "SQLiteTool",
    "TableBuilder",
    "WhereBuilder",
    "__version__",
]
