"""
Console logging for llmrelay, rendered through rich.
"""
import logging
import os
from typing import Optional, Union

from rich.console import Console
from rich.logging import RichHandler

LOGGER_NAME = "llmrelay"
LOG_LEVEL_ENV = "LLMRELAY_LOG_LEVEL"


def configure_logging(
    level: Optional[Union[str, int]] = None,
    console: Optional[Console] = None,
) -> logging.Logger:
    """
    Attach a RichHandler to the package logger.

    Calling it again replaces the previous handler instead of stacking a
    second one.

    Args:
        level: Log level name or number. Defaults to $LLMRELAY_LOG_LEVEL,
            then "INFO".
        console: Console to write to. Defaults to stderr.

    Returns:
        logging.Logger: The configured "llmrelay" logger.
    """
    if level is None:
        level = os.environ.get(LOG_LEVEL_ENV, "INFO")
    if isinstance(level, str):
        level = level.upper()

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level)

    for handler in list(logger.handlers):
        if isinstance(handler, RichHandler):
            logger.removeHandler(handler)

    handler = RichHandler(
        console=console or Console(stderr=True),
        rich_tracebacks=True,
        show_path=False,
        markup=False,
    )
    handler.setFormatter(logging.Formatter("%(message)s", datefmt="[%X]"))
    logger.addHandler(handler)
    logger.propagate = False
    return logger
