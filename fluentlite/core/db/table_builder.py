"""
Fluent builder for CREATE TABLE column and constraint fragments.

Usage:
    builder = TableBuilder("users")
    (
        builder.id()
        .string("name").not_null()
        .integer("age")
        .boolean("active").default(True)
        .date("created_at")
        .integer("team_id")
        .foreign_key("team_id").references("teams.id").on_delete("CASCADE")
    )
    columns, constraints = builder.build()

Notes:
- Column modifiers always apply to the most recently declared column.
- `references`/`on_delete`/`on_update` amend the foreign key that was added
  last, and only while it is still the last constraint. Calls made out of order
  (e.g. `on_delete` before `references`) are silently ignored.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Final, Sequence

from fluentlite.core import NoColumnSelectedError
from fluentlite.core.db.models import ColumnDefinition, escape_value
from fluentlite.core.db.ordering import column_list

FOREIGN_KEY_ACTIONS: Final[frozenset[str]] = frozenset(
    {"CASCADE", "SET NULL", "SET DEFAULT", "RESTRICT", "NO ACTION"}
)


@dataclass(frozen=True, slots=True)
class TableBuildResult:
    columns: list[str]
    constraints: list[str]

    def __iter__(self):
        # Allows `columns, constraints = builder.build()`.
        return iter((self.columns, self.constraints))


# ---------------------------------------------------------------------------
# Table constraint variants
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class PrimaryKeyConstraint:
    columns: str

    def render(self) -> str:
        return f"PRIMARY KEY ({self.columns})"


@dataclass(frozen=True, slots=True)
class UniqueConstraint:
    columns: str

    def render(self) -> str:
        return f"UNIQUE ({self.columns})"


@dataclass(frozen=True, slots=True)
class CheckConstraint:
    expression: str

    def render(self) -> str:
        return f"CHECK ({self.expression})"


@dataclass(slots=True)
class ForeignKeyConstraint:
    """
    Foreign key amended in place by `references`/`on_delete`/`on_update`.

    `actions` keep call order (`ON DELETE ...`, `ON UPDATE ...`).
    """

    column: str
    ref_table: str | None = None
    ref_column: str | None = None
    actions: list[str] = field(default_factory=list)

    def render(self) -> str:
        parts = [f"FOREIGN KEY ({self.column})"]
        if self.ref_table is not None:
            parts.append(f"REFERENCES {self.ref_table}({self.ref_column})")
        parts.extend(self.actions)
        return " ".join(parts)


TableConstraint = PrimaryKeyConstraint | UniqueConstraint | CheckConstraint | ForeignKeyConstraint


def _check_action(action: str) -> str:
    a = " ".join(action.upper().split())
    if a not in FOREIGN_KEY_ACTIONS:
        raise ValueError(f"Unsupported foreign key action: {action!r}")
    return a


class TableBuilder:
    """Accumulates column definitions and table constraints for one table."""

    def __init__(self, table_name: str) -> None:
        self._table_name = table_name
        self._columns: list[ColumnDefinition] = []
        self._constraints: list[TableConstraint] = []
        self._current: ColumnDefinition | None = None
        # Foreign key that is currently the last constraint.
        self._last_fk: ForeignKeyConstraint | None = None

    @property
    def table_name(self) -> str:
        return self._table_name

    # ===========================================================================
    # Column types
    # ===========================================================================

    def _add_column(self, name: str, type_: str, modifiers: Sequence[str] = ()) -> TableBuilder:
        self._current = ColumnDefinition(name=name, type=type_, modifiers=list(modifiers))
        self._columns.append(self._current)
        return self

    def id(self, name: str = "id") -> TableBuilder:
        """Auto-incrementing integer primary key."""
        return self._add_column(name, "INTEGER", ("PRIMARY KEY", "AUTOINCREMENT"))

    def string(self, name: str, length: int | None = None) -> TableBuilder:
        return self._add_column(name, f"TEXT({length})" if length else "TEXT")

    def text(self, name: str) -> TableBuilder:
        return self.string(name)

    def integer(self, name: str) -> TableBuilder:
        return self._add_column(name, "INTEGER")

    def real(self, name: str) -> TableBuilder:
        return self._add_column(name, "REAL")

    def boolean(self, name: str) -> TableBuilder:
        """Boolean stored as INTEGER 0/1."""
        return self._add_column(name, "INTEGER")

    def blob(self, name: str) -> TableBuilder:
        return self._add_column(name, "BLOB")

    def date(self, name: str) -> TableBuilder:
        """Date stored as TEXT, defaulting to CURRENT_TIMESTAMP."""
        return self._add_column(name, "TEXT").default("CURRENT_TIMESTAMP")

    def timestamp(self, name: str) -> TableBuilder:
        """Timestamp stored as INTEGER."""
        return self._add_column(name, "INTEGER")

    def numeric(self, name: str) -> TableBuilder:
        return self._add_column(name, "NUMERIC")

    def json(self, name: str) -> TableBuilder:
        """JSON document stored as TEXT."""
        return self._add_column(name, "TEXT")

    # ===========================================================================
    # Column modifiers (apply to the current column)
    # ===========================================================================

    def _modify(self, fragment: str) -> TableBuilder:
        if self._current is None:
            raise NoColumnSelectedError("No column selected. Call a column type method first.")
        self._current.modifiers.append(fragment)
        return self

    def primary_key(self) -> TableBuilder:
        return self._modify("PRIMARY KEY")

    def auto_increment(self) -> TableBuilder:
        return self._modify("AUTOINCREMENT")

    def not_null(self) -> TableBuilder:
        return self._modify("NOT NULL")

    def unique(self) -> TableBuilder:
        return self._modify("UNIQUE")

    def default(self, value: Any) -> TableBuilder:
        return self._modify(f"DEFAULT {escape_value(value)}")

    def check(self, expression: str) -> TableBuilder:
        return self._modify(f"CHECK ({expression})")

    def collate(self, collation: str) -> TableBuilder:
        return self._modify(f"COLLATE {collation}")

    # ===========================================================================
    # Table constraints
    # ===========================================================================

    def _add_constraint(self, constraint: TableConstraint) -> TableBuilder:
        self._constraints.append(constraint)
        self._last_fk = constraint if isinstance(constraint, ForeignKeyConstraint) else None
        return self

    def primary(self, columns: str | Sequence[str]) -> TableBuilder:
        """Composite primary key."""
        return self._add_constraint(PrimaryKeyConstraint(column_list(columns)))

    def unique_constraint(self, columns: str | Sequence[str]) -> TableBuilder:
        return self._add_constraint(UniqueConstraint(column_list(columns)))

    def check_constraint(self, expression: str) -> TableBuilder:
        return self._add_constraint(CheckConstraint(expression))

    def foreign_key(self, column: str) -> TableBuilder:
        return self._add_constraint(ForeignKeyConstraint(column))

    def references(self, table_column: str) -> TableBuilder:
        """
        Set the referenced `table.column` of the pending foreign key.

        Ignored when the last constraint is not a foreign key.
        """
        table, sep, column = table_column.partition(".")
        if not sep:
            raise ValueError(f"Expected 'table.column', got {table_column!r}")
        fk = self._last_fk
        if fk is not None:
            fk.ref_table = table
            fk.ref_column = column
        return self

    def _add_action(self, kind: str, action: str) -> TableBuilder:
        fragment = f"{kind} {_check_action(action)}"
        fk = self._last_fk
        if fk is not None and fk.ref_table is not None:
            fk.actions.append(fragment)
        return self

    def on_delete(self, action: str) -> TableBuilder:
        return self._add_action("ON DELETE", action)

    def on_update(self, action: str) -> TableBuilder:
        return self._add_action("ON UPDATE", action)

    # ===========================================================================
    # Build
    # ===========================================================================

    def build(self) -> TableBuildResult:
        """Render column and constraint fragments. Safe to call repeatedly."""
        return TableBuildResult(
            columns=[c.render() for c in self._columns],
            constraints=[c.render() for c in self._constraints],
        )
