import logging.config

from bulletin.config import get_settings


def setup_logging() -> None:
    """Console logging for the app; uvicorn keeps its own handlers."""
    level = get_settings().log_level.upper()
    logging.config.dictConfig({
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "default": {
                "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
                "datefmt": "%Y-%m-%d %H:%M:%S",
            },
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "default",
                "stream": "ext://sys.stdout",
            },
        },
        "loggers": {
            "bulletin": {
                "handlers": ["console"],
                "level": level,
                "propagate": False,
            },
        },
    })
