# driftlight/logger_setup.py

import logging
import os

LOG_FORMAT = "[%(asctime)s] %(levelname)s %(name)s: %(message)s"
DATE_FORMAT = "%H:%M:%S"


def setup_logging(level="INFO", log_file=None):
    """
    Sets up logging for the daemon.

    Configures the dedicated "driftlight" logger (not the root logger) to
    write to the console and, optionally, to a file.  Module loggers under
    driftlight.* propagate to it.

    Args:
        level: logging level name or number
        log_file: optional path of a log file; its directory is created

    Returns:
        The configured "driftlight" logger.
    """
    logger = logging.getLogger("driftlight")
    logger.setLevel(level)

    # Keep third party chatter (uvicorn, asyncio) out of our handlers
    logger.propagate = False

    formatter = logging.Formatter(LOG_FORMAT, DATE_FORMAT)

    # Clear existing handlers to avoid duplication if this function is called again
    if logger.hasHandlers():
        logger.handlers.clear()

    stream_handler = logging.StreamHandler()
    stream_handler.setFormatter(formatter)
    logger.addHandler(stream_handler)

    if log_file:
        log_dir = os.path.dirname(log_file)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    logger.debug("Logging initialized at %s%s", logging.getLevelName(logger.level),
                 f", log file {log_file}" if log_file else "")
    return logger
