"""
Structured logging configuration for the Lumina wallet.

Supports two output formats:
  - **human** – single-line, coloured when writing to a terminal
  - **json**  – newline-delimited JSON for log aggregators

All wallet components log below the ``lumina`` logger (``lumina.wallet``,
``lumina.sync``, ...), so configuring it never touches loggers owned by
third-party libraries.

Usage:
    from lumina_core.logging_config import setup_logging
    log = setup_logging(level="DEBUG", fmt="json", log_file="lumina_wallet.log")
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, TextIO

ROOT_LOGGER_NAME = "lumina"


class _JSONFormatter(logging.Formatter):
    """Emit each log record as a single JSON object."""

    def format(self, record: logging.LogRecord) -> str:
        log_obj = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        if record.exc_info and record.exc_info[1]:
            log_obj["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_obj, default=str)


class _HumanFormatter(logging.Formatter):
    """Concise single-line format, optionally coloured."""

    COLOURS = {
        "DEBUG": "\033[36m",     # cyan
        "INFO": "\033[32m",      # green
        "WARNING": "\033[33m",   # yellow
        "ERROR": "\033[31m",     # red
        "CRITICAL": "\033[1;31m",  # bold red
    }
    RESET = "\033[0m"

    def __init__(self, colour: bool = True):
        super().__init__()
        self.colour = colour

    def format(self, record: logging.LogRecord) -> str:
        ts = datetime.fromtimestamp(record.created).strftime("%Y-%m-%d %H:%M:%S")
        if self.colour:
            colour = self.COLOURS.get(record.levelname, "")
            head = f"{colour}{ts} [{record.levelname:<7}]{self.RESET}"
        else:
            head = f"{ts} [{record.levelname:<7}]"
        line = f"{head} {record.name}: {record.getMessage()}"
        if record.exc_info and record.exc_info[1]:
            line += "\n" + self.formatException(record.exc_info)
        return line


def setup_logging(
    level: str = "INFO",
    fmt: str = "human",
    log_file: Optional[str] = None,
    stream: Optional[TextIO] = None,
) -> logging.Logger:
    """
    Configure and return the ``lumina`` logger.

    Parameters
    ----------
    level : str
        One of DEBUG, INFO, WARNING, ERROR, CRITICAL.
    fmt : str
        ``"human"`` for single-line output, ``"json"`` for
        newline-delimited JSON.
    log_file : str, optional
        If provided, logs are *also* appended to this file (always JSON).
    stream : file-like, optional
        Console destination; defaults to ``sys.stderr``.
    """
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    logger.propagate = False

    # Remove any existing handlers (avoid duplicates on reload)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    # --- Console handler ---
    out = stream if stream is not None else sys.stderr
    console = logging.StreamHandler(out)
    if fmt == "json":
        console.setFormatter(_JSONFormatter())
    else:
        console.setFormatter(_HumanFormatter(colour=bool(getattr(out, "isatty", lambda: False)())))
    logger.addHandler(console)

    # --- Optional file handler ---
    if log_file:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        fh = logging.FileHandler(str(path), encoding="utf-8")
        fh.setFormatter(_JSONFormatter())  # always JSON for files
        logger.addHandler(fh)

    return logger
