"""Logging infrastructure for build-trace.

Key components:
    get_pipeline_logger: Factory function for creating component loggers
    setup_logging: Initialize logging configuration from YAML or defaults
    LoggingConfig: Configuration class for logging settings

Note:
    Never import Python's logging module directly outside this package.
    Always use get_pipeline_logger() so configuration is applied first.
"""

from .logging_config import LoggingConfig, get_pipeline_logger, setup_logging

__all__ = [
    "LoggingConfig",
    "setup_logging",
    "get_pipeline_logger",
]
