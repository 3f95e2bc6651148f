"""Logging setup for the relay process.

Library modules only create module loggers; the CLI calls
``configure_logging`` once at startup.
"""

from __future__ import annotations

import logging

from rich.console import Console
from rich.logging import RichHandler

PLAIN_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"


def configure_logging(level: str = "INFO", fmt: str = "rich") -> None:
    """Configure the root logger.

    Args:
        level: Logging level name (``DEBUG``, ``INFO``...).
        fmt: ``rich`` for colored console output, ``plain`` for line logs.
    """
    if fmt == "rich":
        handler: logging.Handler = RichHandler(
            console=Console(stderr=True),
            show_path=False,
            rich_tracebacks=True,
        )
        handler.setFormatter(logging.Formatter("%(name)s: %(message)s"))
    else:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(PLAIN_FORMAT))

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level.upper())

    # httpx logs every request at INFO; keep the relay output readable
    logging.getLogger("httpx").setLevel(logging.WARNING)
