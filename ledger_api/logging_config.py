"""
Structured logging configuration.

Log records from every module under the ledger_api package are emitted as
one JSON object per line, which is what log shippers expect. Modules get
their logger the usual way:

    logger = logging.getLogger(__name__)

Never pass secret keys, or anything derived from them, to a logger.
"""

import json
import logging
from datetime import datetime, timezone

LOGGER_NAME = "ledger_api"

# Attributes present on every LogRecord; anything else came in via extra=
_RESERVED_ATTRS = set(vars(logging.makeLogRecord({}))) | {"message", "asctime"}


class JSONFormatter(logging.Formatter):
    """Render a log record as a single-line JSON object."""

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        for key, value in vars(record).items():
            if key not in _RESERVED_ATTRS and not key.startswith("_"):
                log_entry[key] = value

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_entry, default=str)


def setup_logging(level: str = "INFO") -> logging.Logger:
    """
    Configure the package logger with a JSON stream handler.

    Safe to call more than once (e.g. app factory invoked per test): existing
    handlers are replaced, not duplicated.

    Args:
        level: Log level name (DEBUG, INFO, WARNING, ERROR, CRITICAL).

    Returns:
        The configured "ledger_api" logger.
    """
    logger = logging.getLogger(LOGGER_NAME)

    for handler in logger.handlers[:]:
        logger.removeHandler(handler)

    handler = logging.StreamHandler()
    handler.setFormatter(JSONFormatter())
    logger.addHandler(handler)
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    # uvicorn configures the root logger; don't print everything twice
    logger.propagate = False

    return logger
