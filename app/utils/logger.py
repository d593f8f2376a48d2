# app/utils/logger.py

import logging


def get_logger(name: str) -> logging.Logger:
    """Module logger; handlers come from app.core.logging.setup_logging()."""
    return logging.getLogger(name)
