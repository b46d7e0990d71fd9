# facility_analytics/core/enhanced_logging.py
"""
Logging helpers: contextual key/value fields attached to every record emitted
inside a ``logging_context`` block.
"""
import logging
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any, Dict, Iterator

_log_context: ContextVar[Dict[str, Any]] = ContextVar("log_context", default={})

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s%(context)s"


class ContextFilter(logging.Filter):
    """Render the active logging context onto each record as ``record.context``."""

    def filter(self, record: logging.LogRecord) -> bool:
        fields = _log_context.get()
        if fields:
            rendered = " ".join(f"{key}={value}" for key, value in sorted(fields.items()))
            record.context = f" | {rendered}"
        else:
            record.context = ""
        return True


@contextmanager
def logging_context(**fields: Any) -> Iterator[Dict[str, Any]]:
    """Attach ``fields`` to every log record emitted inside the block. Nests."""
    merged = {**_log_context.get(), **fields}
    token = _log_context.set(merged)
    try:
        yield merged
    finally:
        _log_context.reset(token)


def get_enhanced_logger(name: str) -> logging.Logger:
    logger = logging.getLogger(name)
    if not any(isinstance(f, ContextFilter) for f in logger.filters):
        logger.addFilter(ContextFilter())
    return logger


def setup_logging(level: str = "INFO") -> None:
    """Configure the root handler once; safe to call repeatedly."""
    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper(), logging.INFO))

    for handler in root.handlers:
        if getattr(handler, "_facility_analytics", False):
            return

    handler = logging.StreamHandler()
    handler.addFilter(ContextFilter())
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    handler._facility_analytics = True
    root.addHandler(handler)
    logging.getLogger(__name__).info(f"Logging configured at level {level.upper()}")
