"""Console logging setup."""

import logging
import sys
from typing import Union

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s:%(lineno)d - %(message)s"


class ColoredFormatter(logging.Formatter):
    """Formatter that colors console lines by level."""

    cyan = "\x1b[36m"
    green = "\x1b[32m"
    yellow = "\x1b[33m"
    red = "\x1b[31m"
    bold_red = "\x1b[31;1m"
    reset = "\x1b[0m"

    FORMATS = {
        logging.DEBUG: cyan + LOG_FORMAT + reset,
        logging.INFO: green + LOG_FORMAT + reset,
        logging.WARNING: yellow + LOG_FORMAT + reset,
        logging.ERROR: red + LOG_FORMAT + reset,
        logging.CRITICAL: bold_red + LOG_FORMAT + reset,
    }

    def format(self, record: logging.LogRecord) -> str:
        log_fmt = self.FORMATS.get(record.levelno, LOG_FORMAT)
        formatter = logging.Formatter(log_fmt, datefmt="%Y-%m-%d %H:%M:%S")
        return formatter.format(record)


def setup_logging(level: Union[int, str] = logging.INFO) -> None:
    """Install a single colored stderr handler on the ``bugboard`` logger.

    Args:
        level: Logging level (name or number).
    """
    logger = logging.getLogger("bugboard")

    # Clear existing handlers to prevent duplicate lines on repeated setup
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)

    logger.setLevel(level)

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(ColoredFormatter())
    logger.addHandler(console_handler)
    logger.propagate = False

    # waitress logs through its own logger
    logging.getLogger("waitress").setLevel(level)
