from __future__ import annotations

import logging

ROOT_LOGGER_NAME = "apn_client"
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def get_logger(name: str) -> logging.Logger:
    """Module logger under the `apn_client` hierarchy."""
    if name != ROOT_LOGGER_NAME and not name.startswith(ROOT_LOGGER_NAME + "."):
        name = f"{ROOT_LOGGER_NAME}.{name}"
    return logging.getLogger(name)


def configure_logging(level: str | int = "INFO") -> logging.Logger:
    """
    What it does:
    - Attaches one stream handler to the `apn_client` logger and sets its level.

    Behavior:
    - Safe to call multiple times (no duplicate handlers).
    - Unknown level names fall back to INFO.
    """
    logger = logging.getLogger(ROOT_LOGGER_NAME)

    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO
    logger.setLevel(level)

    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)

    return logger


def mask_username(username: str) -> str:
    return f"{username[:4]}..." if username else ""
