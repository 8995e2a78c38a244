"""
Logging for chowchow.

Everything logs under the ``chowchow`` logger: ``chowchow.app`` for the
lifecycle, ``chowchow.module`` for registration and teardown,
``chowchow.http`` for route failures and ``chowchow.events`` for the bus.
"""

import logging
import sys
from collections.abc import Callable

logger = logging.getLogger("chowchow")

TIMESTAMP_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
PLAIN_FORMAT = "%(levelname)-8s | %(name)s | %(message)s"


class ChowChowFormatter(logging.Formatter):
    """Pipe separated records, optionally without timestamps."""

    def __init__(self, include_timestamp: bool = True):
        if include_timestamp:
            super().__init__(fmt=TIMESTAMP_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")
        else:
            super().__init__(fmt=PLAIN_FORMAT)


def configure_logging(
    level: int = logging.INFO,
    handler: logging.Handler | None = None,
    format_timestamps: bool = True,
) -> logging.Logger:
    """
    Send chowchow's records to ``handler`` (stderr by default) at ``level``.

    Calling it again replaces the previous handler.

    Example:
        configure_logging(level=logging.DEBUG)
        await app.start()  # every lifecycle step is now visible
    """
    if handler is None:
        handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(ChowChowFormatter(include_timestamp=format_timestamps))
    handler.setLevel(level)

    logger.setLevel(level)
    logger.handlers.clear()
    logger.addHandler(handler)
    return logger


def get_logger(name: str) -> logging.Logger:
    """A child of the chowchow logger, e.g. get_logger("jwt")."""
    return logger.getChild(name)


app_logger = get_logger("app")
module_logger = get_logger("module")
http_logger = get_logger("http")
event_logger = get_logger("events")


def step_logger(verbose: bool) -> Callable[..., None]:
    """
    The log function for lifecycle steps.

    Steps go to INFO when starting verbosely and to DEBUG otherwise.
    """
    return app_logger.info if verbose else app_logger.debug
