"""
ATM Logging Module

Every component logs under the ``atm`` namespace (``atm.ledger``,
``atm.storage``, ``atm.session``, ``atm.api``). Ledger operations are
logged through log_action, which attaches the account holder's name, the
operation and the account it touched, so a JSON log line reads as one
entry of an ATM journal. PINs are never written to the log.
"""

import logging
import json
from datetime import datetime, timezone
from typing import Optional


ATM_LOGGER = "atm"
TEXT_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

# Structured fields log_action may attach to a record
JOURNAL_FIELDS = ("user_id", "action", "resource", "extra")
REDACTED_KEYS = frozenset({"pin", "new_pin", "old_pin"})


def redact(extra: dict) -> dict:
    """Mask PIN values in structured data before it is logged"""
    return {key: "****" if key.lower() in REDACTED_KEYS else value for key, value in extra.items()}


class JSONFormatter(logging.Formatter):
    """One JSON object per record, journal fields included only when set"""

    def format(self, record):
        log_entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for name in JOURNAL_FIELDS:
            value = getattr(record, name, None)
            if value is not None:
                log_entry[name] = value

        if record.exc_info:
            log_entry['exception'] = self.formatException(record.exc_info)

        return json.dumps(log_entry, default=str)


def setup_logging(level: str = "INFO", logger_name: str = ATM_LOGGER, fmt: str = "json") -> logging.Logger:
    """
    Attach a single console handler to the ATM logger.

    Args:
        level: Log level name (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        logger_name: Root of the namespace to configure, ``atm`` by default
        fmt: "json" for journal lines, "text" for a human-readable console

    Returns:
        The configured logger
    """
    if fmt not in ("json", "text"):
        raise ValueError(f"Unknown log format: {fmt}")

    logger = logging.getLogger(logger_name)

    # Calling setup twice must not duplicate output
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)

    handler = logging.StreamHandler()
    handler.setFormatter(JSONFormatter() if fmt == "json" else logging.Formatter(TEXT_FORMAT))

    logger.addHandler(handler)
    logger.setLevel(getattr(logging, level.upper()))
    logger.propagate = False

    return logger


def get_logger(name: str = ATM_LOGGER) -> logging.Logger:
    return logging.getLogger(name)


def log_action(logger: logging.Logger, level: str, message: str,
               user_id: Optional[str] = None, action: Optional[str] = None,
               resource: Optional[str] = None, extra: Optional[dict] = None):
    """
    Log one ledger operation as a journal entry.

    Args:
        logger: Logger under the ``atm`` namespace
        level: Level name (info, warning, error, ...)
        message: Human-readable summary, e.g. "Deposit applied"
        user_id: Name of the account holder performing the operation
        action: Operation name such as register, deposit or transfer
        resource: Account touched, as ``account:<name>``
        extra: Amounts, balances and error kinds; PIN keys are masked
    """
    levelno = getattr(logging, level.upper())
    if not logger.isEnabledFor(levelno):
        return

    record = logger.makeRecord(
        logger.name, levelno, __name__, 0, message, (), None
    )

    if user_id:
        record.user_id = user_id
    if action:
        record.action = action
    if resource:
        record.resource = resource
    if extra:
        record.extra = redact(extra)

    logger.handle(record)
