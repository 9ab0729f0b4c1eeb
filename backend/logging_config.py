"""
JSON-lines logging for the client registry.

Every module logger hangs off the single `clients` logger, which owns the one
stream handler. Event names go in the message ("store.created") and context
goes in `extra=`, which is flattened into the emitted object:

    logger.info("store.created", extra={"client_id": cid})
    {"ts": "...", "level": "INFO", "logger": "clients.client_store",
     "event": "store.created", "client_id": "..."}
"""

import json
import logging
from datetime import datetime, timezone
from typing import Any

from config import LOG_LEVEL

ROOT_LOGGER = "clients"

# Attributes every LogRecord carries; anything else came in through `extra=`.
_RECORD_ATTRS = frozenset(vars(logging.LogRecord("", 0, "", 0, "", None, None))) | {"message", "asctime"}


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "event": record.getMessage(),
        }
        entry.update(
            (key, value)
            for key, value in vars(record).items()
            if key not in _RECORD_ATTRS and not key.startswith("_")
        )
        if record.levelno >= logging.WARNING:
            entry["where"] = f"{record.module}:{record.lineno}"
        if record.exc_info:
            entry["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


def configure_logging(level: str = LOG_LEVEL) -> logging.Logger:
    """Attach the JSON handler to the `clients` logger. Idempotent."""
    root = logging.getLogger(ROOT_LOGGER)
    root.setLevel(getattr(logging, level, logging.INFO))
    if not any(isinstance(h.formatter, JsonFormatter) for h in root.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(JsonFormatter())
        root.addHandler(handler)
        root.propagate = False
    return root


def get_logger(name: str) -> logging.Logger:
    configure_logging()
    return logging.getLogger(f"{ROOT_LOGGER}.{name}")
