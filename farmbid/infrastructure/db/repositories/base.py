"""Base repository class with shared database query helpers.

This module provides a base class for all repository implementations,
eliminating duplicate cursor→dict conversion logic.
"""

from __future__ import annotations

import sqlite3
from typing import Any

from ..connection import StorageTransientError, is_transient

LIKE_ESCAPE = "\\"


def contains_pattern(text: str) -> str:
    """LIKE pattern matching ``text`` as a literal, case-folded substring."""
    escaped = (
        text.strip()
        .lower()
        .replace(LIKE_ESCAPE, LIKE_ESCAPE * 2)
        .replace("%", LIKE_ESCAPE + "%")
        .replace("_", LIKE_ESCAPE + "_")
    )
    return f"%{escaped}%"


class BaseRepository:
    """Base class for all repository implementations.

    Provides shared helper methods for executing queries and converting
    results to dictionaries. Lock/busy errors reported by SQLite are
    re-raised as ``StorageTransientError`` so callers can retry them.
    """

    def __init__(self, conn: sqlite3.Connection) -> None:
        """Initialize repository with a database connection.

        Args:
            conn: SQLite database connection
        """
        self.conn = conn

    def _fetch_all_as_dicts(
        self, query: str, params: tuple[Any, ...] | None = None
    ) -> list[dict[str, Any]]:
        """Execute query and return all rows as dictionaries.

        Example:
            >>> rows = self._fetch_all_as_dicts(
            ...     "SELECT id, title FROM auctions WHERE seller_id = ?",
            ...     (7,)
            ... )
            >>> rows[0]['title']
            'Jersey heifer'
        """
        cur = self._execute(query, params)
        columns = [c[0] for c in cur.description]
        return [dict(zip(columns, row)) for row in cur.fetchall()]

    def _fetch_one_as_dict(
        self, query: str, params: tuple[Any, ...] | None = None
    ) -> dict[str, Any] | None:
        """Execute query and return first row as dictionary, or None if no rows."""
        cur = self._execute(query, params)
        row = cur.fetchone()
        if not row:
            return None
        columns = [c[0] for c in cur.description]
        return dict(zip(columns, row))

    def _fetch_scalar(self, query: str, params: tuple[Any, ...] | None = None) -> Any:
        """Execute query and return first column of first row."""
        cur = self._execute(query, params)
        row = cur.fetchone()
        return row[0] if row else None

    def _execute_insert(self, query: str, params: tuple[Any, ...] | None = None) -> int:
        """Execute INSERT query and return last row ID."""
        cur = self._execute(query, params)
        return cur.lastrowid or 0

    def _execute(
        self, query: str, params: tuple[Any, ...] | None = None
    ) -> sqlite3.Cursor:
        """Execute query and return cursor for custom processing."""
        try:
            return self.conn.execute(query, params or ())
        except sqlite3.OperationalError as exc:
            if is_transient(exc):
                raise StorageTransientError(str(exc)) from exc
            raise

    def _commit(self) -> None:
        try:
            self.conn.commit()
        except sqlite3.OperationalError as exc:
            if is_transient(exc):
                raise StorageTransientError(str(exc)) from exc
            raise
