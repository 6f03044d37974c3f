from __future__ import annotations

SCHEMA_VERSION_SQL = """
CREATE TABLE IF NOT EXISTS schema_version (
    version INTEGER PRIMARY KEY,
    applied_at TEXT NOT NULL
);
"""

SCHEMA_MIGRATIONS_SQL = """
CREATE TABLE IF NOT EXISTS schema_migrations (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL UNIQUE,
    applied_at TEXT NOT NULL,
    notes TEXT
);
"""

SCHEMA_USERS_SQL = """
CREATE TABLE IF NOT EXISTS users (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL,
    phone TEXT,
    email TEXT UNIQUE,
    farm_name TEXT,
    token_hash TEXT UNIQUE,
    created_at TEXT NOT NULL
);
"""

# Bids live in an embedded JSON array so a bid append is a single-row update
# guarded by the ``version`` column.
SCHEMA_AUCTIONS_SQL = """
CREATE TABLE IF NOT EXISTS auctions (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    seller_id INTEGER NOT NULL,
    title TEXT NOT NULL,
    description TEXT NOT NULL,
    livestock_type TEXT NOT NULL,
    breed TEXT NOT NULL,
    age INTEGER NOT NULL CHECK (age >= 0),
    weight REAL NOT NULL CHECK (weight >= 0),
    health_status TEXT NOT NULL DEFAULT 'Good',
    images TEXT NOT NULL DEFAULT '[]',
    starting_bid REAL NOT NULL CHECK (starting_bid >= 0),
    current_bid REAL NOT NULL,
    min_bid_increment REAL NOT NULL DEFAULT 100 CHECK (min_bid_increment > 0),
    start_date TEXT NOT NULL,
    end_date TEXT NOT NULL,
    location_city TEXT,
    location_state TEXT,
    is_active INTEGER NOT NULL DEFAULT 1,
    is_sold INTEGER NOT NULL DEFAULT 0,
    winner_id INTEGER,
    views INTEGER NOT NULL DEFAULT 0,
    bids TEXT NOT NULL DEFAULT '[]',
    bid_count INTEGER NOT NULL DEFAULT 0,
    version INTEGER NOT NULL DEFAULT 0,
    settled_at TEXT,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    FOREIGN KEY (seller_id) REFERENCES users (id) ON DELETE CASCADE,
    FOREIGN KEY (winner_id) REFERENCES users (id) ON DELETE SET NULL
);
CREATE INDEX IF NOT EXISTS idx_auctions_seller_id ON auctions (seller_id);
CREATE INDEX IF NOT EXISTS idx_auctions_window ON auctions (start_date, end_date);
"""

SCHEMA_PRODUCTS_SQL = """
CREATE TABLE IF NOT EXISTS products (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    seller_id INTEGER NOT NULL,
    name TEXT NOT NULL,
    description TEXT NOT NULL,
    category TEXT NOT NULL,
    price REAL NOT NULL CHECK (price >= 0),
    quantity INTEGER NOT NULL CHECK (quantity >= 0),
    unit TEXT NOT NULL,
    images TEXT NOT NULL DEFAULT '[]',
    location_city TEXT,
    location_state TEXT,
    is_organic INTEGER NOT NULL DEFAULT 0,
    is_available INTEGER NOT NULL DEFAULT 1,
    views INTEGER NOT NULL DEFAULT 0,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    FOREIGN KEY (seller_id) REFERENCES users (id) ON DELETE CASCADE
);
CREATE INDEX IF NOT EXISTS idx_products_seller_id ON products (seller_id);
"""

SCHEMA_NOTIFICATIONS_SQL = """
CREATE TABLE IF NOT EXISTS notifications (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    recipient_id INTEGER NOT NULL,
    kind TEXT NOT NULL,
    title TEXT NOT NULL,
    body TEXT NOT NULL,
    payload TEXT NOT NULL DEFAULT '{}',
    is_read INTEGER NOT NULL DEFAULT 0,
    created_at TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_notifications_recipient
    ON notifications (recipient_id, is_read, created_at);
"""
