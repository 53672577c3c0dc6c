"""
Configuration - environment-driven settings and logging setup.

All settings are read once from the environment at import time.
"""

import logging
import os

# Environment configuration
MOSAIC_ENV = os.getenv("MOSAIC_ENV", "development")
ALLOWED_ORIGINS = os.getenv("ALLOWED_ORIGINS", "*").split(",")
LOG_LEVEL = os.getenv("MOSAIC_LOG_LEVEL", "INFO")

# Blob fetch timeout in seconds
FETCH_TIMEOUT = float(os.getenv("MOSAIC_FETCH_TIMEOUT", "30"))

# Upper bound on room-code draws before giving up
ROOM_CODE_ATTEMPTS = int(os.getenv("MOSAIC_ROOM_CODE_ATTEMPTS", "100"))

# PBKDF2 iterations for canvas passwords
PASSWORD_ITERATIONS = int(os.getenv("MOSAIC_PASSWORD_ITERATIONS", "100000"))

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(level: str | None = None) -> logging.Logger:
    """
    Configure root logging for the service and CLI.

    Returns the package logger.
    """
    logging.basicConfig(
        level=getattr(logging, (level or LOG_LEVEL).upper(), logging.INFO),
        format=LOG_FORMAT,
    )
    return logging.getLogger("mosaic")
