import logging
import os
import sys
from logging.config import dictConfig
from app.core.config import APP_ENV, LOG_PATH

LOG_LEVEL = "DEBUG" if APP_ENV == "development" else "INFO"


def _file_handlers(formatter: str) -> dict:
    if not LOG_PATH:
        return {}

    directory = os.path.dirname(os.path.abspath(LOG_PATH))
    os.makedirs(directory, exist_ok=True)

    return {
        f"{formatter}_file": {
            "class": "logging.FileHandler",
            "filename": LOG_PATH,
            "encoding": "utf-8",
            "formatter": formatter,
        },
    }


def setup_logging():
    handlers = {
        "console": {
            "class": "logging.StreamHandler",
            "stream": sys.stdout,
            "formatter": "default",
        },
        "access_console": {
            "class": "logging.StreamHandler",
            "stream": sys.stdout,
            "formatter": "access",
        },
        **_file_handlers("default"),
        **_file_handlers("access"),
    }

    dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,

            # -----------------
            # FORMATTERS
            # -----------------
            "formatters": {
                "default": {
                    "format": (
                        "%(asctime)s | %(levelname)s | "
                        "%(name)s | %(message)s"
                    ),
                },
                "access": {
                    "format": (
                        "%(asctime)s | ACCESS | "
                        "%(client_addr)s | %(method)s | "
                        "%(path)s | %(status_code)s | "
                        "%(process_time_ms)sms"
                    ),
                },
            },

            # -----------------
            # HANDLERS
            # -----------------
            "handlers": handlers,

            # -----------------
            # LOGGERS
            # -----------------
            "loggers": {
                # Used by request_logging_middleware
                "access": {
                    "handlers": [h for h in handlers if h.startswith("access")],
                    "level": "INFO",
                    "propagate": False,
                },
                # SQL echo stays off unless asked for explicitly
                "sqlalchemy.engine": {
                    "level": "WARNING",
                },
            },

            # -----------------
            # ROOT LOGGER
            # -----------------
            "root": {
                "level": LOG_LEVEL,
                "handlers": [h for h in handlers if h in {"console", "default_file"}],
            },
        }
    )

    logging.getLogger(__name__).debug(
        "Logging configured", extra={"log_path": LOG_PATH or None}
    )
