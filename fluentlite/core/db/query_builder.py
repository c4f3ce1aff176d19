"""
Fluent SELECT / COUNT builder plus a standalone WHERE accumulator.

Design:
- The builder only accumulates fragments; nothing touches a connection.
- Rendering order is fixed:
    SELECT [DISTINCT] cols FROM table JOIN... WHERE... GROUP BY HAVING ORDER BY LIMIT OFFSET
- Every `?` placeholder is paired with exactly one value. WHERE values and
  HAVING values are kept in separate lists and concatenated at render time, so
  the value order always follows placeholder order regardless of call order.

Important:
- Table/column names, join conditions, `where_raw` and `having` fragments are
  rendered verbatim (no escaping). Only *values* are parameterized.
- `or_where` binds to the immediately preceding predicate only:
    .where("a", "=", 1).where("b", "=", 2).or_where("c", "=", 3)
  renders `a = ? AND b = ? OR c = ?`. AND binds tighter than OR, so SQLite
  evaluates that as `(a = ? AND b = ?) OR c = ?`. Use `where_raw` for
  explicit grouping.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Literal, Sequence

from fluentlite.core.db.models import check_operator
from fluentlite.core.db.ordering import column_list, group_clause, order_clause

JoinKind = Literal["INNER", "LEFT", "RIGHT", "FULL"]


@dataclass(frozen=True, slots=True)
class SQLQuery:
    """Rendered SQL text plus its positional parameters."""

    sql: str
    values: list[Any]

    def __iter__(self):
        # Allows `sql, values = builder.to_sql()`.
        return iter((self.sql, self.values))


@dataclass(frozen=True, slots=True)
class WhereClause:
    clause: str
    values: list[Any]

    def __iter__(self):
        return iter((self.clause, self.values))


class QueryBuilder:
    """
    Accumulates the pieces of a SELECT statement against one table.

    Usage:
        sql, values = (
            QueryBuilder("users")
            .select(["id", "name"])
            .where("age", ">", 18)
            .where_in("status", ["active", "pending"])
            .order_by("name")
            .limit(10)
            .to_sql()
        )
    """

    def __init__(self, table_name: str) -> None:
        self._table_name = table_name
        self._columns: list[str] = ["*"]
        self._distinct = False
        self._joins: list[str] = []
        self._wheres: list[str] = []
        self._where_values: list[Any] = []
        self._group_by = ""
        self._having = ""
        self._having_values: list[Any] = []
        self._order_by = ""
        self._limit: int | None = None
        self._offset: int | None = None

    # ===========================================================================
    # Projection
    # ===========================================================================

    def select(self, columns: Sequence[str]) -> QueryBuilder:
        self._columns = list(columns) or ["*"]
        return self

    def distinct(self) -> QueryBuilder:
        self._distinct = True
        return self

    # ===========================================================================
    # Predicates
    # ===========================================================================

    def _push(self, fragment: str, values: Sequence[Any] = ()) -> QueryBuilder:
        self._wheres.append(fragment)
        self._where_values.extend(values)
        return self

    def where(self, column: str, operator: str, value: Any) -> QueryBuilder:
        """
        AND a single parameterized predicate: `column <operator> ?`.

        Always emits exactly one placeholder; use the dedicated helpers for
        IN / BETWEEN / NULL checks.
        """
        return self._push(f"{column} {check_operator(operator)} ?", (value,))

    def or_where(self, column: str, operator: str, value: Any) -> QueryBuilder:
        """OR a predicate onto the previous one (or behave like `where` if none)."""
        fragment = f"{column} {check_operator(operator)} ?"
        if self._wheres:
            last = self._wheres.pop()
            fragment = f"{last} OR {fragment}"
        return self._push(fragment, (value,))

    def where_raw(self, condition: str, values: Sequence[Any] = ()) -> QueryBuilder:
        """AND a trusted SQL fragment with its own parameters."""
        return self._push(condition, values)

    def where_in(self, column: str, values: Sequence[Any]) -> QueryBuilder:
        values = list(values)
        if not values:
            # `IN ()` is invalid SQL; an empty set matches nothing.
            return self._push("1 = 0")
        placeholders = ", ".join("?" for _ in values)
        return self._push(f"{column} IN ({placeholders})", values)

    def where_not_in(self, column: str, values: Sequence[Any]) -> QueryBuilder:
        values = list(values)
        if not values:
            # Excluding nothing matches everything: no predicate.
            return self
        placeholders = ", ".join("?" for _ in values)
        return self._push(f"{column} NOT IN ({placeholders})", values)

    def where_null(self, column: str) -> QueryBuilder:
        return self._push(f"{column} IS NULL")

    def where_not_null(self, column: str) -> QueryBuilder:
        return self._push(f"{column} IS NOT NULL")

    def where_between(self, column: str, low: Any, high: Any) -> QueryBuilder:
        return self._push(f"{column} BETWEEN ? AND ?", (low, high))

    def where_not_between(self, column: str, low: Any, high: Any) -> QueryBuilder:
        return self._push(f"{column} NOT BETWEEN ? AND ?", (low, high))

    def where_like(self, column: str, pattern: str) -> QueryBuilder:
        return self._push(f"{column} LIKE ?", (pattern,))

    def where_not_like(self, column: str, pattern: str) -> QueryBuilder:
        return self._push(f"{column} NOT LIKE ?", (pattern,))

    # ===========================================================================
    # Joins
    # ===========================================================================

    def join(
        self,
        table: str,
        first: str,
        operator: str,
        second: str,
        kind: JoinKind = "INNER",
    ) -> QueryBuilder:
        self._joins.append(f"{kind.upper()} JOIN {table} ON {first} {operator} {second}")
        return self

    def left_join(self, table: str, first: str, operator: str, second: str) -> QueryBuilder:
        return self.join(table, first, operator, second, "LEFT")

    def right_join(self, table: str, first: str, operator: str, second: str) -> QueryBuilder:
        return self.join(table, first, operator, second, "RIGHT")

    # ===========================================================================
    # Grouping / ordering / pagination (last call wins)
    # ===========================================================================

    def group_by(self, columns: str | Sequence[str]) -> QueryBuilder:
        self._group_by = group_clause(columns)
        return self

    def having(self, condition: str, values: Sequence[Any] = ()) -> QueryBuilder:
        self._having = f"HAVING {condition}"
        self._having_values = list(values)
        return self

    def order_by(self, columns: str | Sequence[str], direction: str = "ASC") -> QueryBuilder:
        self._order_by = order_clause(columns, direction)
        return self

    def limit(self, count: int) -> QueryBuilder:
        self._limit = int(count)
        return self

    def offset(self, count: int) -> QueryBuilder:
        self._offset = int(count)
        return self

    def paginate(self, page: int, per_page: int) -> QueryBuilder:
        """LIMIT `per_page` OFFSET `(page - 1) * per_page`."""
        return self.limit(per_page).offset((page - 1) * per_page)

    # ===========================================================================
    # Rendering
    # ===========================================================================

    def _filter_parts(self) -> list[str]:
        parts: list[str] = []
        if self._joins:
            parts.append(" ".join(self._joins))
        if self._wheres:
            parts.append("WHERE " + " AND ".join(self._wheres))
        if self._group_by:
            parts.append(self._group_by)
        if self._having:
            parts.append(self._having)
        return parts

    def _values(self) -> list[Any]:
        # WHERE renders before HAVING.
        return [*self._where_values, *self._having_values]

    def to_sql(self) -> SQLQuery:
        head = "SELECT DISTINCT" if self._distinct else "SELECT"
        parts = [f"{head} {column_list(self._columns)} FROM {self._table_name}"]
        parts.extend(self._filter_parts())
        if self._order_by:
            parts.append(self._order_by)
        if self._limit is not None:
            parts.append(f"LIMIT {self._limit}")
        elif self._offset is not None:
            # SQLite only accepts OFFSET after a LIMIT; -1 means unbounded.
            parts.append("LIMIT -1")
        if self._offset is not None:
            parts.append(f"OFFSET {self._offset}")
        return SQLQuery(sql=" ".join(parts), values=self._values())

    def to_count_sql(self) -> SQLQuery:
        """COUNT(*) over the same joins/filters; projection, order and limit are dropped."""
        parts = [f"SELECT COUNT(*) AS count FROM {self._table_name}"]
        parts.extend(self._filter_parts())
        return SQLQuery(sql=" ".join(parts), values=self._values())


class WhereBuilder:
    """
    Standalone AND/OR predicate accumulator for hand-written statements.

    Tokens are joined with single spaces. `and_` inserts an AND token after a
    preceding predicate; `or_` always emits an OR token, so its placement is up
    to the caller. `raw` fragments are appended as-is:
        WhereBuilder().and_("a", "=", 1).and_("c", ">", 0).or_("b", "=", 2).build()
        -> clause "a = ? AND c > ? OR b = ?", values [1, 0, 2]
    """

    def __init__(self) -> None:
        self._tokens: list[str] = []
        self._values: list[Any] = []

    def and_(self, column: str, operator: str, value: Any) -> WhereBuilder:
        if self._tokens and self._tokens[-1] != "OR":
            self._tokens.append("AND")
        self._tokens.append(f"{column} {check_operator(operator)} ?")
        self._values.append(value)
        return self

    def or_(self, column: str, operator: str, value: Any) -> WhereBuilder:
        self._tokens.append("OR")
        self._tokens.append(f"{column} {check_operator(operator)} ?")
        self._values.append(value)
        return self

    def raw(self, condition: str, values: Sequence[Any] = ()) -> WhereBuilder:
        self._tokens.append(condition)
        self._values.extend(values)
        return self

    def build(self) -> WhereClause:
        return WhereClause(clause=" ".join(self._tokens), values=list(self._values))
