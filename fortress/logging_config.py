"""
Root logging setup for the Fortress backend.

Modules log through named loggers (``rule_engine``, ``notification_outbox``,
``inventory`` ...). ``setup_logging`` installs one stream handler on the
root logger, optionally a file handler from ``LOG_FILE``, and keeps the
SQLAlchemy engine and uvicorn access loggers at WARNING unless
``LOG_SQL`` / ``LOG_ACCESS`` ask for them.
"""

import logging
import os
from typing import Optional

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

_HANDLER_NAMES = {"fortress-stream", "fortress-file"}

_QUIET_LOGGERS = {
    "sqlalchemy.engine": "LOG_SQL",
    "uvicorn.access": "LOG_ACCESS",
}


def resolve_level(level: int | str | None) -> int:
    if isinstance(level, int):
        return level
    name = (level or "").strip().upper()
    resolved = logging.getLevelName(name) if name else logging.INFO
    if not isinstance(resolved, int):
        logging.getLogger("logging_config").warning("Unknown log level %r; using INFO", level)
        return logging.INFO
    return resolved


def _handler(handler: logging.Handler, name: str) -> logging.Handler:
    handler.set_name(name)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    return handler


def setup_logging(level: int | str | None = logging.INFO, log_file: Optional[str] = None) -> int:
    """Install the Fortress handlers on the root logger; safe to call repeatedly."""
    root_level = resolve_level(level)
    root = logging.getLogger()
    for existing in list(root.handlers):
        if existing.get_name() in _HANDLER_NAMES:
            root.removeHandler(existing)
            existing.close()
    root.addHandler(_handler(logging.StreamHandler(), "fortress-stream"))
    log_file = log_file or os.getenv("LOG_FILE")
    if log_file:
        root.addHandler(_handler(logging.FileHandler(log_file), "fortress-file"))
    root.setLevel(root_level)
    for name, flag in _QUIET_LOGGERS.items():
        verbose = os.getenv(flag, "false").lower() in {"1", "true", "yes"}
        logging.getLogger(name).setLevel(root_level if verbose else max(root_level, logging.WARNING))
    return root_level
