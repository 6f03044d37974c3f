"""Infrastructure adapters: SQLite persistence, media storage, observability."""
