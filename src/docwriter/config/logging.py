"""Logging setup for the docwriter CLI."""

from __future__ import annotations

import logging

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(*, level: int = logging.INFO, force: bool = False) -> None:
    """Route ``docwriter`` loggers (bulk writes, transactions, conflicts) to stderr.

    ``force=True`` replaces handlers installed by an earlier call.
    """

    logging.basicConfig(level=level, format=LOG_FORMAT, datefmt="%H:%M:%S", force=force)
    logging.getLogger("docwriter").setLevel(level)
