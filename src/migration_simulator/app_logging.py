"""
Logging setup for the migration simulator.

Modules log through ``logging.getLogger(__name__)``, so every record ends up
under the ``migration_simulator`` logger. Until ``setup_logging`` is called
that logger only has a NullHandler and library use stays silent.
"""

import logging
import sys

from rich.console import Console
from rich.logging import RichHandler


ROOT_LOGGER_NAME = "migration_simulator"

PLAIN_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"

# stderr, so JSON printed to stdout can be piped
_stderr_console = Console(stderr=True)


def setup_logging(level: str = "WARNING", rich_output: bool = True) -> logging.Logger:
    """
    Route the package's log records to stderr.

    Args:
        level: Level name (DEBUG, INFO, WARNING, ERROR)
        rich_output: Render with rich; plain timestamped lines otherwise

    Returns:
        The package root logger
    """
    level_value = logging.getLevelName(level.upper())
    if not isinstance(level_value, int):
        raise ValueError(f"Unknown log level: {level}")

    if rich_output:
        handler: logging.Handler = RichHandler(
            console=_stderr_console,
            show_path=False,
            markup=False,
            rich_tracebacks=True,
        )
    else:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(PLAIN_FORMAT))

    root = logging.getLogger(ROOT_LOGGER_NAME)
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level_value)
    root.propagate = False
    return root


def get_logger(component: str) -> logging.Logger:
    """Logger for a named component, e.g. ``get_logger("cli")``."""
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{component}")


logging.getLogger(ROOT_LOGGER_NAME).addHandler(logging.NullHandler())
