from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict

DEFAULT_DB_TIMEOUT = 30.0
DEFAULT_LIST_LIMIT = 20
MAX_LIST_LIMIT = 100

_REPO_ROOT = Path(__file__).resolve().parents[3]
_CONFIG_FILE = _REPO_ROOT / "config.json"
CONFIG_ENV_VAR = "FARMBID_CONFIG"


@dataclass(frozen=True)
class BiddingConfig:
    """Tunables for the bid admission retry loop."""

    max_attempts: int = 5
    retry_backoff_seconds: float = 0.01


def _default_config_path() -> Path:
    override = os.environ.get(CONFIG_ENV_VAR)
    return Path(override) if override else _CONFIG_FILE


def load_config(config_path: Path | str | None = None) -> Dict[str, Any]:
    """Load ``config.json`` if present and return it as a dictionary."""

    path = Path(config_path) if config_path is not None else _default_config_path()
    if not path.exists():
        return {}
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


def get_path_config(config_path: Path | str | None = None) -> Dict[str, Path]:
    """Return resolved filesystem paths from the project configuration."""

    cfg = load_config(config_path)
    root = (
        Path(config_path).parent
        if config_path is not None
        else _default_config_path().parent
    )
    defaults = {
        "db_path": root / "farmbid.db",
        "uploads_dir": root / "uploads",
    }
    paths_cfg = cfg.get("paths", {}) if isinstance(cfg.get("paths", {}), dict) else {}
    resolved: Dict[str, Path] = {}
    for key, default_value in defaults.items():
        raw_value = paths_cfg.get(key, default_value)
        resolved_value = Path(raw_value)
        if not resolved_value.is_absolute():
            resolved_value = (root / resolved_value).resolve()
        resolved[key] = resolved_value
    return resolved


def get_default_timeout(config_path: Path | str | None = None) -> float:
    """Read the preferred database timeout from configuration."""

    cfg = load_config(config_path)
    try:
        return float(cfg.get("db_timeout_seconds", DEFAULT_DB_TIMEOUT))
    except (TypeError, ValueError):
        return DEFAULT_DB_TIMEOUT


def get_bidding_config(config_path: Path | str | None = None) -> BiddingConfig:
    """Read the ``bidding`` section, falling back to defaults on bad values."""

    cfg = load_config(config_path)
    section = cfg.get("bidding", {}) if isinstance(cfg.get("bidding"), dict) else {}
    defaults = BiddingConfig()
    try:
        max_attempts = max(1, int(section.get("max_attempts", defaults.max_attempts)))
    except (TypeError, ValueError):
        max_attempts = defaults.max_attempts
    try:
        backoff = max(
            0.0,
            float(section.get("retry_backoff_seconds", defaults.retry_backoff_seconds)),
        )
    except (TypeError, ValueError):
        backoff = defaults.retry_backoff_seconds
    return BiddingConfig(max_attempts=max_attempts, retry_backoff_seconds=backoff)


def get_list_limit(config_path: Path | str | None = None) -> int:
    """Default number of auctions returned by a listing query."""

    cfg = load_config(config_path)
    section = cfg.get("auctions", {}) if isinstance(cfg.get("auctions"), dict) else {}
    try:
        limit = int(section.get("list_limit", DEFAULT_LIST_LIMIT))
    except (TypeError, ValueError):
        return DEFAULT_LIST_LIMIT
    return min(max(limit, 1), MAX_LIST_LIMIT)


def is_http_settlement_enabled(config_path: Path | str | None = None) -> bool:
    """Whether ``POST /admin/settle`` may run the sweep (``settlement.http_enabled``)."""

    cfg = load_config(config_path)
    section = cfg.get("settlement", {}) if isinstance(cfg.get("settlement"), dict) else {}
    return section.get("http_enabled", False) is True
