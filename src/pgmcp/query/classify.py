"""Decide whether an execution error is schema-shaped (unknown table or column)."""

from __future__ import annotations

from typing import Iterable

SCHEMA_SQLSTATES = frozenset({
    "42P01",  # undefined_table
    "42703",  # undefined_column
    "3F000",  # invalid_schema_name
    "42702",  # ambiguous_column
    "42P09",  # ambiguous_alias
    "42P10",  # invalid_column_reference
    "42701",  # duplicate_column
    "42P07",  # duplicate_table
    "42803",  # grouping_error
})

SCHEMA_HINT_MODES = ("auto", "sqlstate", "substring")


def error_sqlstate(exc: BaseException) -> str | None:
    sqlstate = getattr(exc, "sqlstate", None)
    return sqlstate if isinstance(sqlstate, str) and sqlstate else None


class SchemaHintPredicate:
    """Configurable test for "this failure would be helped by a schema snapshot".

    ``sqlstate`` trusts only the driver's SQLSTATE code, ``substring`` only
    looks for keywords in the error text, and ``auto`` accepts an error that
    either test accepts.
    """

    def __init__(
        self,
        mode: str = "auto",
        keywords: Iterable[str] = ("column", "table"),
        sqlstates: Iterable[str] = SCHEMA_SQLSTATES,
    ):
        if mode not in SCHEMA_HINT_MODES:
            raise ValueError(f"Unknown schema hint mode: {mode}. Choose: {', '.join(SCHEMA_HINT_MODES)}")
        self.mode = mode
        self.keywords = tuple(k.lower() for k in keywords)
        self.sqlstates = frozenset(sqlstates)

    def _mentions_keyword(self, exc: BaseException) -> bool:
        text = str(exc).lower()
        return any(keyword in text for keyword in self.keywords)

    def __call__(self, exc: BaseException) -> bool:
        sqlstate = error_sqlstate(exc)
        if self.mode == "sqlstate":
            return sqlstate in self.sqlstates
        if self.mode == "substring":
            return self._mentions_keyword(exc)
        return sqlstate in self.sqlstates or self._mentions_keyword(exc)
