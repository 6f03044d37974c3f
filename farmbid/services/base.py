"""Base service class with shared connection and infrastructure patterns.

This module provides a base class for service layer implementations,
standardizing connection management, logging, and schema initialization.
"""

from __future__ import annotations

import sqlite3
from contextlib import AbstractContextManager
from typing import Any, Callable, TypeVar

from farmbid.infrastructure.db import ensure_schema, get_connection
from farmbid.infrastructure.observability import get_logger

ConnectionFactory = Callable[[], AbstractContextManager[sqlite3.Connection]]
T = TypeVar("T")
S = TypeVar("S", bound="BaseService")


class BaseService:
    """Base class for all service layer implementations.

    Provides shared infrastructure for:
    - Connection factory pattern (dependency injection for testing)
    - Automatic schema initialization
    - Consistent logging setup

    Example usage:
        class MyService(BaseService):
            def count(self) -> int:
                return self._with_connection(
                    lambda conn: AuctionRepository(conn).count_bids()
                )

        # Production usage:
        service = MyService.from_sqlite_path("/path/to/farmbid.db")

        # Test usage with a stub:
        service = MyService(stub_connection_factory)
    """

    def __init__(self, connection_factory: ConnectionFactory) -> None:
        """Initialize service with a connection factory.

        Args:
            connection_factory: Callable returning a context manager that yields
                               a sqlite3.Connection
        """
        self._connection_factory = connection_factory
        self._logger = get_logger(self.__class__.__module__)

    @classmethod
    def from_sqlite_path(cls: type[S], db_path: str, **kwargs: Any) -> S:
        """Create a service bound to a SQLite database path.

        Each call of the factory opens its own connection, so one service
        instance may be shared across threads.

        Args:
            db_path: Path to the SQLite database file
            **kwargs: Extra collaborators forwarded to the constructor

        Returns:
            Service instance configured to use the specified database
        """

        def connection_factory() -> AbstractContextManager[sqlite3.Connection]:
            return get_connection(db_path)

        return cls(connection_factory, **kwargs)

    def _with_connection(self, fn: Callable[[sqlite3.Connection], T]) -> T:
        """Execute a function within a database connection context.

        Automatically ensures the schema is initialized before executing
        the provided function.
        """
        with self._connection_factory() as conn:
            ensure_schema(conn)
            return fn(conn)
