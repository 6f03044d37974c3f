"""Logging for FarmBid.

All project loggers live under the ``farmbid`` namespace. Fields bound with
``log_context`` (auction, bidder, seller ids) are appended to every line
emitted while the context is active, so a bid can be followed through
admission, notification and settlement without threading ids through each
log call.
"""

from __future__ import annotations

import logging
import sys
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any, Iterator, TextIO

ROOT_LOGGER = "farmbid"

_log_context: ContextVar[dict[str, Any]] = ContextVar("log_context", default={})

_LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
_HANDLER_NAME = "farmbid-stream"


class ContextualFormatter(logging.Formatter):
    """Formatter that appends the bound context fields to each message."""

    def formatMessage(self, record: logging.LogRecord) -> str:
        line = super().formatMessage(record)
        fields = _log_context.get()
        if not fields:
            return line
        return f"{line} [{' '.join(f'{k}={v}' for k, v in fields.items())}]"


@contextmanager
def log_context(**fields: Any) -> Iterator[None]:
    """Bind ``fields`` to log lines emitted inside the block.

    Usage::

        with log_context(auction_id=42, bidder_id=7):
            logger.info("Admitting bid")  # ... Admitting bid [auction_id=42 bidder_id=7]

    Nested blocks merge with the enclosing fields.
    """
    token = _log_context.set({**_log_context.get(), **fields})
    try:
        yield
    finally:
        _log_context.reset(token)


def get_log_context() -> dict[str, Any]:
    """Return a copy of the fields currently bound by ``log_context``."""
    return dict(_log_context.get())


def configure_logging(level: int = logging.INFO, stream: TextIO | None = None) -> None:
    """Send ``farmbid.*`` records to ``stream`` (stderr by default).

    Safe to call more than once: later calls only change the level.
    """
    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(level)
    if any(handler.get_name() == _HANDLER_NAME for handler in logger.handlers):
        return
    handler = logging.StreamHandler(stream or sys.stderr)
    handler.set_name(_HANDLER_NAME)
    handler.setFormatter(ContextualFormatter(_LOG_FORMAT))
    logger.addHandler(handler)


def get_logger(name: str) -> logging.Logger:
    """Return a logger under the ``farmbid`` namespace."""
    if name != ROOT_LOGGER and not name.startswith(ROOT_LOGGER + "."):
        name = f"{ROOT_LOGGER}.{name}"
    return logging.getLogger(name)


def log_exception(
    logger: logging.Logger,
    message: str,
    exc: BaseException,
    **context: Any,
) -> None:
    """Log ``exc`` with its traceback and ``context`` bound for this line."""
    with log_context(**context):
        logger.error("%s: %s", message, exc, exc_info=exc)
