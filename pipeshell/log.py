import logging
import sys

from pipeshell.config import LOG_LEVEL, SHELL_NAME

LOG_FORMAT = "%(levelname)s %(name)s: %(message)s"


def setup_logging(level=None):
    """Attach a stderr handler to the shell's root logger (once)."""
    logger = logging.getLogger(SHELL_NAME)
    if not logger.handlers:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)
    logger.setLevel(level or LOG_LEVEL)
    logger.propagate = False
    return logger
