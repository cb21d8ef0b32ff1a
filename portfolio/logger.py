# portfolio/logger.py
import logging
from logging.handlers import RotatingFileHandler
import os

LOG_DIR = os.getenv("LOG_DIR", "logs")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_FILE = os.getenv("LOG_FILE", "portfolio.log")
LOG_FORMAT = "[%(asctime)s] [%(levelname)s] [%(name)s] %(message)s"

# one handler pair for the whole process; rotating handlers must not share a file
_handlers = []


def _shared_handlers() -> list:
    if _handlers:
        return _handlers

    os.makedirs(LOG_DIR, exist_ok=True)
    formatter = logging.Formatter(LOG_FORMAT)

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)

    file_handler = RotatingFileHandler(
        os.path.join(LOG_DIR, LOG_FILE),
        maxBytes=10 * 1024 * 1024,
        backupCount=5,
        encoding="utf-8",
    )
    file_handler.setFormatter(formatter)

    _handlers.extend([console_handler, file_handler])
    return _handlers


def get_logger(name: str) -> logging.Logger:
    '''
    Module logger writing to the console and to LOG_DIR/LOG_FILE.

    :param name: Usually ``__name__``
    :type name: str
    :rtype: logging.Logger
    '''
    logger = logging.getLogger(name)

    if logger.handlers:
        return logger

    logger.setLevel(getattr(logging, LOG_LEVEL, logging.INFO))
    for handler in _shared_handlers():
        logger.addHandler(handler)
    # werkzeug / root handlers would print every line twice
    logger.propagate = False

    return logger
