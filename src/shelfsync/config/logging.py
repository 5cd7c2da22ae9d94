"""Logging setup for the command line."""

from __future__ import annotations

import logging
from typing import Final

# transport libraries log every request at INFO or DEBUG
_CHATTY_LOGGERS: Final[tuple[str, ...]] = ("httpx", "httpcore", "hishel")


def configure_logging(*, level: int = logging.INFO, force: bool = False) -> None:
    """Set up the root logger for CLI output.

    Does nothing when the root logger already has handlers, unless ``force``
    is set. Transport libraries stay at WARNING unless ``level`` is stricter.
    """

    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)-7s %(name)s: %(message)s",
        datefmt="%H:%M:%S",
        force=force,
    )
    for name in _CHATTY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))
