from .config import (DEFAULT_DB_TIMEOUT, BiddingConfig, get_bidding_config,
                     get_default_timeout, get_list_limit,
                     get_path_config, is_http_settlement_enabled,
                     load_config)
from .connection import (DatabaseError, StorageTransientError, apply_pragmas,
                         get_connection, is_transient, iso_utcnow, to_iso,
                         utcnow)
from .schema import SchemaMigrator, ensure_schema

__all__ = [
    "DEFAULT_DB_TIMEOUT",
    "BiddingConfig",
    "DatabaseError",
    "StorageTransientError",
    "apply_pragmas",
    "get_bidding_config",
    "get_connection",
    "get_default_timeout",
    "get_list_limit",
    "get_path_config",
    "is_http_settlement_enabled",
    "is_transient",
    "iso_utcnow",
    "load_config",
    "SchemaMigrator",
    "ensure_schema",
    "to_iso",
    "utcnow",
]
