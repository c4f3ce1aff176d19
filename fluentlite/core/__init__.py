"""
Core package.

Builders, the record access facade and the administrative layer live here. The
exception hierarchy is defined at package level so every submodule (and callers)
can import it without pulling in the engine.
"""

from __future__ import annotations

__all__: list[str] = [
    "FluentliteError",
    "StateError",
    "NotConnectedError",
    "NoColumnSelectedError",
    "TransactionError",
]


class FluentliteError(Exception):
    """Base class for fluentlite exceptions."""


class StateError(FluentliteError, RuntimeError):
    """Raised when an operation is attempted in a state that does not allow it."""


class NotConnectedError(StateError):
    """Raised when a data operation is attempted before `connect()`."""


class NoColumnSelectedError(StateError):
    """Raised when a column modifier is called before any column was declared."""


class TransactionError(StateError):
    """Raised when `transaction()` is nested on the same connection."""
