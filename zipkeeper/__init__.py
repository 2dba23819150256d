import os
import sys
import logging

__version__ = '1.0.0'

LOG_FILENAME = 'log.txt'


def configure_logging(dst_dir: str, debug: bool = False) -> logging.Logger:
    """
    Configure logging for a backup run.

    Messages go to stdout and to ``<dst_dir>/log.txt``. The log file is
    truncated on every call so it only ever holds the latest run.

    Args:
        dst_dir: Backup directory holding the log file
        debug: Enable DEBUG level output

    Returns:
        The package logger

    Raises:
        OSError: If the log file cannot be opened for writing
    """
    logger = logging.getLogger('zipkeeper')

    # Drop handlers from a previous run (scheduled mode reconfigures per run)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    log_level = logging.DEBUG if debug else logging.INFO
    logger.setLevel(log_level)
    logger.propagate = False

    # Console handler goes first so a broken log file is still reported
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(log_level)
    console_formatter = logging.Formatter(
        '[%(asctime)s] %(levelname)s in %(module)s: %(message)s'
    )
    console_handler.setFormatter(console_formatter)
    logger.addHandler(console_handler)

    # File handler, truncated each run
    file_handler = logging.FileHandler(
        os.path.join(dst_dir, LOG_FILENAME),
        mode='w',
        encoding='utf-8'
    )
    file_handler.setLevel(log_level)
    file_formatter = logging.Formatter(
        '[%(asctime)s] %(levelname)s [%(name)s.%(funcName)s:%(lineno)d] %(message)s'
    )
    file_handler.setFormatter(file_formatter)
    logger.addHandler(file_handler)

    logger.debug(f"Logging configured (level: {logging.getLevelName(log_level)})")
    return logger
