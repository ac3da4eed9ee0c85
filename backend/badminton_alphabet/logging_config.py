import logging
import os
from logging.config import dictConfig

DEFAULT_LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"
_TRUTHY = {"1", "true", "yes", "on"}


def _flag(name: str) -> bool:
    return os.getenv(name, "0").strip().lower() in _TRUTHY


def configure_logging() -> None:
    """Configure process-wide logging.

    ALPHABET_LOG_LEVEL sets the root level. SQL statement logging stays at
    WARNING unless ALPHABET_DATABASE_ECHO is set, and ALPHABET_DEBUG_HTTP opens
    up the identity provider client and access logs.
    """
    level = os.getenv("ALPHABET_LOG_LEVEL", "INFO").upper()
    sql_level = "INFO" if _flag("ALPHABET_DATABASE_ECHO") else "WARNING"

    dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "default": {
                    "format": DEFAULT_LOG_FORMAT,
                },
            },
            "handlers": {
                "default": {
                    "class": "logging.StreamHandler",
                    "formatter": "default",
                },
            },
            "loggers": {
                "sqlalchemy.engine": {"level": sql_level},
                "alembic": {"level": "INFO"},
            },
            "root": {
                "handlers": ["default"],
                "level": level,
            },
        }
    )

    if _flag("ALPHABET_DEBUG_HTTP"):
        logging.getLogger("httpx").setLevel(logging.DEBUG)
        logging.getLogger("uvicorn.access").setLevel(logging.DEBUG)
