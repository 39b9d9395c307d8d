"""Logging setup shared by the CLI commands."""

from __future__ import annotations

import logging
from pathlib import Path

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def _attach(root: logging.Logger, handler: logging.Handler, formatter: logging.Formatter, level: int) -> None:
    handler.setFormatter(formatter)
    handler.setLevel(level)
    root.addHandler(handler)


def configure_logging(log_file: Path | None, level: int = logging.INFO) -> logging.Logger:
    """Route every crank logger to stderr, and to ``log_file`` when one is given.

    Handlers from an earlier call are closed and replaced, so repeated CLI
    invocations in one process never write a line twice.
    """

    root = logging.getLogger()
    for stale in list(root.handlers):
        root.removeHandler(stale)
        stale.close()
    root.setLevel(level)

    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=LOG_DATE_FORMAT)
    _attach(root, logging.StreamHandler(), formatter, level)
    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        _attach(root, logging.FileHandler(log_file, encoding="utf-8"), formatter, level)

    crank_logger = logging.getLogger("crank")
    crank_logger.setLevel(level)
    return crank_logger
