import logging
import os
import sys


def _build_logger():
    logger = logging.getLogger("tosync_auth")

    # Prevent creation of handlers more than once
    if logger.handlers:
        return logger

    logger.setLevel(os.getenv("TOSYNC_LOG_LEVEL", "INFO").upper())

    formatter = logging.Formatter(
        "[%(asctime)s] [%(levelname)s] %(name)s "
        "%(message)s  (in %(filename)s:%(lineno)d)"
    )

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)

    logger.addHandler(console_handler)

    return logger


log = _build_logger()
