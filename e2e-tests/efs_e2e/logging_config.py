"""Logging setup for the E2E runner."""

import logging
import os

LOG_LEVEL_ENV_VAR = "E2E_LOG_LEVEL"

LOG_FORMAT = "[%(asctime)s] [%(levelname)-8s] [%(name)s] %(message)s"


def configure_logging(level: str | None = None, verbose: bool = False) -> logging.Logger:
    """Configure console logging for the harness.

    Args:
        level: Log level name; defaults to $E2E_LOG_LEVEL, then INFO
        verbose: Force DEBUG

    Returns:
        The ``efs_e2e`` package logger
    """
    if verbose:
        level = "DEBUG"
    level = (level or os.getenv(LOG_LEVEL_ENV_VAR) or "INFO").upper()

    logger = logging.getLogger("efs_e2e")
    logger.setLevel(level)
    logger.handlers.clear()

    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(handler)
    return logger
