"""
Shared ORDER BY / GROUP BY helpers for the query builder and the facade.

Important:
- Only the sort *direction* is validated here (against a small whitelist).
- Column expressions are trusted caller input and are rendered verbatim.
  Do NOT pass end-user input as a column name.
"""

from __future__ import annotations

from typing import Final, Literal, Sequence

Direction = Literal["ASC", "DESC"]

DIRECTIONS: Final[frozenset[str]] = frozenset({"ASC", "DESC"})


def column_list(columns: str | Sequence[str]) -> str:
    """Join a column name or a sequence of names into `a, b, c`."""
    if isinstance(columns, str):
        return columns
    return ", ".join(columns)


def normalize_direction(direction: str) -> str:
    """Return `ASC`/`DESC`, raising ValueError for anything else."""
    d = direction.strip().upper()
    if d not in DIRECTIONS:
        raise ValueError(f"Unsupported sort direction: {direction!r}")
    return d


def order_clause(columns: str | Sequence[str], direction: str = "ASC") -> str:
    """
    Return an ORDER BY clause.

    The direction applies once, after the last column, e.g.
    `ORDER BY name, id DESC`.
    """
    return f"ORDER BY {column_list(columns)} {normalize_direction(direction)}"


def group_clause(columns: str | Sequence[str]) -> str:
    return f"GROUP BY {column_list(columns)}"
