import logging
import sys
from logging.handlers import RotatingFileHandler

LOGGER_NAME = "wallhaven_browser"

logger = logging.getLogger(LOGGER_NAME)

formatter = logging.Formatter(
    '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    datefmt='%Y-%m-%d %H:%M:%S')


def get_logger(name=None):
    """Return the app logger, or a child of it for a module."""
    if not name:
        return logger
    return logger.getChild(name)


def setup_logging(level="INFO", log_file=None):
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    logger.setLevel(level)

    # Re-running setup replaces the previous handlers
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)
        handler.close()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_file:
        # 1MB per file, 5 backups
        file_handler = RotatingFileHandler(
            log_file, maxBytes=1024 * 1024, backupCount=5, encoding="utf-8")
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)
        logger.info("File logging initialized: %s", log_file)

    return logger
