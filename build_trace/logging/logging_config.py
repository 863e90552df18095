"""Centralized logging configuration for build-trace.

Supports a YAML configuration file (``logging.config.dictConfig`` format) and
falls back to a console configuration with sensible defaults.

Usage:
    >>> from build_trace.logging import get_pipeline_logger
    >>> logger = get_pipeline_logger(__name__)
    >>> logger.info("Fetching jobs")

Environment variables:
    BUILD_TRACE_LOGGING_CONFIG: Path to custom logging.yml
    BUILD_TRACE_LOG_LEVEL: Default log level (INFO, DEBUG, etc.)
"""

import logging  # noqa: TID251
import logging.config  # noqa: TID251
import os
from pathlib import Path
from typing import Any

import yaml

# Default log levels for different components
DEFAULT_LOG_LEVELS = {
    "build_trace": "INFO",
    "build_trace.builds": "INFO",
    "build_trace.fetch": "INFO",
    "build_trace.tracing": "INFO",
}


class LoggingConfig:
    """Manages logging configuration for build-trace.

    Configuration precedence:
        1. Explicit config_path parameter
        2. BUILD_TRACE_LOGGING_CONFIG environment variable
        3. Default configuration

    Example:
        >>> config = LoggingConfig()
        >>> config.apply()
        >>>
        >>> config = LoggingConfig(Path("custom_logging.yml"))
        >>> config.apply()
    """

    def __init__(self, config_path: Path | None = None):
        self.config_path = config_path or self._get_default_config_path()
        self._config: dict[str, Any] | None = None

    @staticmethod
    def _get_default_config_path() -> Path | None:
        """Get config path from the environment, or None for the defaults."""
        if env_path := os.environ.get("BUILD_TRACE_LOGGING_CONFIG"):
            return Path(env_path)
        return None

    def load_config(self) -> dict[str, Any]:
        """Load logging configuration from file or defaults.

        Returns:
            Dictionary in ``logging.config.dictConfig`` format.

        Note:
            Configuration is cached after first load. Create a new
            LoggingConfig instance to reload from disk.
        """
        if self._config is None:
            if self.config_path and self.config_path.exists():
                with open(self.config_path, "r") as f:
                    self._config = yaml.safe_load(f)
            else:
                self._config = self._get_default_config()
        assert self._config is not None
        return self._config

    @staticmethod
    def _get_default_config() -> dict[str, Any]:
        """Get default logging configuration.

        Default format:
            "HH:MM:SS.mmm | LEVEL | logger.name - message"
        """
        return {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "standard": {
                    "format": "%(asctime)s.%(msecs)03d | %(levelname)-7s | %(name)s - %(message)s",
                    "datefmt": "%H:%M:%S",
                },
                "detailed": {
                    "format": ("%(asctime)s | %(levelname)-7s | %(name)s | %(funcName)s:%(lineno)d - %(message)s"),
                    "datefmt": "%Y-%m-%d %H:%M:%S",
                },
            },
            "handlers": {
                "console": {
                    "class": "logging.StreamHandler",
                    "formatter": "standard",
                    "stream": "ext://sys.stderr",
                },
            },
            "loggers": {
                "build_trace": {
                    "level": os.environ.get("BUILD_TRACE_LOG_LEVEL", "INFO"),
                    "handlers": ["console"],
                    "propagate": False,
                },
            },
            "root": {
                "level": "WARNING",
                "handlers": ["console"],
            },
        }

    def apply(self):
        """Apply the logging configuration to Python's logging system."""
        config = self.load_config()
        logging.config.dictConfig(config)


# Global configuration instance
_logging_config: LoggingConfig | None = None


def setup_logging(config_path: Path | None = None, level: str | None = None):
    """Setup logging for build-trace.

    Args:
        config_path: Optional path to YAML logging configuration file.
                    If None, uses environment variables or defaults.
        level: Optional log level override (INFO, DEBUG, WARNING, etc.).
              This overrides any level set in configuration or environment.

    Example:
        >>> setup_logging()
        >>> setup_logging(level="DEBUG")
        >>> setup_logging(Path("custom.yml"), level="WARNING")
    """
    global _logging_config

    _logging_config = LoggingConfig(config_path)
    _logging_config.apply()

    if level:
        for logger_name in DEFAULT_LOG_LEVELS:
            logging.getLogger(logger_name).setLevel(level.upper())


def get_pipeline_logger(name: str) -> logging.Logger:
    """Get a logger for build-trace components.

    Automatically initializes logging if not already configured.

    Args:
        name: Logger name, typically __name__.

    Example:
        >>> logger = get_pipeline_logger(__name__)
        >>> logger.debug("Decoded %d jobs", 12)
    """
    if _logging_config is None:
        setup_logging()

    return logging.getLogger(name)
