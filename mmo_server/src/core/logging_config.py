"""
Logging configuration for the MMO character server.

Provides structured logging with different levels for development, testing, and production.
Configures formatters, handlers, and loggers for the persistence subsystem.

Severity of swallowed errors is carried on each record as structured fields
(``error_kind`` and ``severity``, passed through ``extra=``) rather than only in
the message text, so log consumers and tests can filter on them.
"""

import logging
import logging.config
import os
import sys
from typing import Dict, Any

# Formatter used when ENVIRONMENT=production
JSON_FORMATTER_CLASS = "pythonjsonlogger.json.JsonFormatter"


def get_log_level() -> str:
    """Get the log level from environment variables."""
    return os.getenv("LOG_LEVEL", "INFO").upper()


def get_logging_config() -> Dict[str, Any]:
    """
    Get the logging configuration dictionary.

    Returns a logging configuration that can be used with logging.config.dictConfig().
    Production emits JSON lines; every other environment gets human-readable output.
    """
    log_level = get_log_level()
    environment = os.getenv("ENVIRONMENT", "development").lower()

    if environment == "production":
        formatter_class = JSON_FORMATTER_CLASS
        formatter_format = "%(asctime)s %(name)s %(levelname)s %(message)s"
    else:
        formatter_class = "logging.Formatter"
        formatter_format = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    component_logger = {
        "level": log_level,
        "handlers": ["console", "error_console"],
        "propagate": False,
    }

    config = {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "default": {
                "class": formatter_class,
                "format": formatter_format,
                "datefmt": "%Y-%m-%d %H:%M:%S",
            },
            "detailed": {
                "class": formatter_class,
                "format": "%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s",
                "datefmt": "%Y-%m-%d %H:%M:%S",
            },
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "level": log_level,
                "formatter": "default",
                "stream": sys.stdout,
            },
            "error_console": {
                "class": "logging.StreamHandler",
                "level": "ERROR",
                "formatter": "detailed",
                "stream": sys.stderr,
            },
        },
        "loggers": {
            # Application loggers
            "mmo": dict(component_logger),
            "mmo.database": dict(component_logger),
            "mmo.migrations": dict(component_logger),
            "mmo.services": dict(component_logger),
            "mmo.listeners": dict(component_logger),
            "mmo.api": dict(component_logger),
            # Third-party loggers
            "sqlalchemy.engine": {
                "level": "WARNING",  # Reduce SQLAlchemy verbosity
                "handlers": ["console"],
                "propagate": False,
            },
            "alembic": {
                "level": "WARNING",
                "handlers": ["console"],
                "propagate": False,
            },
            "uvicorn": {
                "level": "INFO",
                "handlers": ["console"],
                "propagate": False,
            },
        },
        "root": {
            "level": log_level,
            "handlers": ["console", "error_console"],
        },
    }

    return config


def setup_logging() -> None:
    """
    Configure logging for the application.

    This should be called once at application startup, before any other
    logging occurs.
    """
    config = get_logging_config()
    logging.config.dictConfig(config)

    logger = logging.getLogger("mmo.logging")
    logger.info(
        "Logging configured",
        extra={
            "log_level": get_log_level(),
            "environment": os.getenv("ENVIRONMENT", "development"),
        },
    )


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance for the given name.

    Args:
        name: The logger name, typically __name__ from the calling module

    Returns:
        A configured logger instance
    """
    # Ensure the logger name starts with 'mmo.' for proper hierarchy
    if not name.startswith("mmo."):
        if name.startswith("mmo_server.src."):
            # Convert mmo_server.src.services.character_manager -> mmo.services
            parts = name.split(".")
            if len(parts) >= 3:
                component = parts[2]  # core, services, listeners, etc.
                if component == "core":
                    name = f"mmo.{parts[3]}" if len(parts) > 3 else "mmo.core"
                else:
                    name = f"mmo.{component}"
            else:
                name = "mmo"
        else:
            name = f"mmo.{name}"

    return logging.getLogger(name)
