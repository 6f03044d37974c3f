from __future__ import annotations

from .migrations import SchemaMigrator
from .tables import (
    SCHEMA_AUCTIONS_SQL,
    SCHEMA_NOTIFICATIONS_SQL,
    SCHEMA_PRODUCTS_SQL,
    SCHEMA_USERS_SQL,
)


def ensure_schema(conn) -> None:
    """Apply the full database schema and pending column migrations."""

    conn.executescript(SCHEMA_USERS_SQL)
    conn.executescript(SCHEMA_AUCTIONS_SQL)
    conn.executescript(SCHEMA_PRODUCTS_SQL)
    conn.executescript(SCHEMA_NOTIFICATIONS_SQL)
    migrator = SchemaMigrator(conn)
    migrator.ensure_table()
    _ensure_auction_columns(conn, migrator)
    migrator.ensure_current_version()


def _ensure_auction_columns(conn, migrator: SchemaMigrator) -> None:
    # Version 1 databases predate settlement and the denormalised bid count.
    existing = {row[1] for row in conn.execute("PRAGMA table_info(auctions)").fetchall()}
    to_add = {
        "settled_at": "TEXT",
        "bid_count": "INTEGER NOT NULL DEFAULT 0",
    }
    added_cols: list[str] = []
    for col, col_type in to_add.items():
        if col in existing:
            continue
        conn.execute(f"ALTER TABLE auctions ADD COLUMN {col} {col_type}")
        added_cols.append(col)
    if added_cols:
        migration_name = "add_auction_settlement_columns_v2"
        if not migrator.has_migration(migration_name):
            migrator.record(migration_name, ",".join(added_cols))
        conn.commit()
