import logging
from typing import Optional


DEFAULT_FORMAT  = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DEFAULT_DATEFMT = "%Y-%m-%d %H:%M:%S"


def configure_logger(
    name:  Optional[str] = "BalancedBST",
    level: int           = logging.INFO,
    fmt:   str           = DEFAULT_FORMAT

) -> logging.Logger:

    """
    Attach a console handler to a logger and return it.

    Calling it again for the same logger only updates the level, so handlers
    are never duplicated.

    Args:
        name (Optional[str]): Logger name. None configures the root logger.
        level (int): Logging level, e.g. logging.DEBUG.
        fmt (str): Record format passed to logging.Formatter.

    Returns:
        logging.Logger: The configured logger.
    """

    logger = logging.getLogger(name)
    logger.setLevel(level)

    has_console = any(
        type(handler) is logging.StreamHandler for handler in logger.handlers
    )

    if not has_console:
        console_handler = logging.StreamHandler()
        console_handler.setFormatter(logging.Formatter(fmt=fmt, datefmt=DEFAULT_DATEFMT))
        logger.addHandler(console_handler)

    for handler in logger.handlers:
        if type(handler) is logging.StreamHandler:
            handler.setLevel(level)

    return logger
