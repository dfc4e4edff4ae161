# ------------------------------------------------------------------------
# File: logging_config.py
# Location: rhodesign/logging_config.py
# Description:
#     Shared logging setup for the RhodeSign service. Every module asks for
#     its own named logger through configure_logging(); handlers are only
#     attached once per logger name so repeated imports do not duplicate
#     output. File output is enabled by setting LOG_DIR.
# ------------------------------------------------------------------------

import logging
import os
from logging.handlers import RotatingFileHandler

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
DEFAULT_LEVEL = "INFO"
MAX_BYTES = 5 * 1024 * 1024
BACKUP_COUNT = 5


def _resolve_level(level):
    if level is None:
        level = os.getenv("LOG_LEVEL", DEFAULT_LEVEL)
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(str(level).upper())
    return resolved if isinstance(resolved, int) else logging.INFO


def configure_logging(name: str, logfile: str | None = None, level=None) -> logging.Logger:
    """
    Return the logger called `name`, configured with a console handler and,
    when LOG_DIR is set and `logfile` is given, a rotating file handler.
    `level` may be a level name or number; None falls back to LOG_LEVEL.
    """
    logger = logging.getLogger(name)
    logger.setLevel(_resolve_level(level))

    if getattr(logger, "_rhodesign_configured", False):
        return logger

    formatter = logging.Formatter(LOG_FORMAT)

    stream_handler = logging.StreamHandler()
    stream_handler.setFormatter(formatter)
    logger.addHandler(stream_handler)

    log_dir = os.getenv("LOG_DIR")
    if log_dir and logfile:
        os.makedirs(log_dir, exist_ok=True)
        file_handler = RotatingFileHandler(
            os.path.join(log_dir, logfile), maxBytes=MAX_BYTES, backupCount=BACKUP_COUNT
        )
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    # Handlers live on this logger; don't repeat through the root logger.
    logger.propagate = False
    logger._rhodesign_configured = True
    return logger
