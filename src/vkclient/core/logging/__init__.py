"""
Structured logging for the VK API client.

Example:
    >>> from vkclient import VkApi, VkApiConfig
    >>> from vkclient.core.logging import LoggingConfig
    >>>
    >>> config = VkApiConfig.create(
    ...     "token",
    ...     logging=LoggingConfig.create(level="DEBUG", format="json"),
    ... )
    >>> api = VkApi(config=config)  # request/long poll events are logged
"""

from .config import LoggingConfig, LogLevel, LogFormat
from .logger import VkClientLogger, get_logger
from .formatters import JSONFormatter, TextFormatter, ColoredFormatter, get_formatter
from .filters import (
    CorrelationIdFilter,
    ExtraFieldsFilter,
    set_correlation_id,
    get_correlation_id,
    reset_correlation_id,
    clear_correlation_id,
)
from .handlers import create_console_handler, create_file_handler

__all__ = [
    # Config
    "LoggingConfig",
    "LogLevel",
    "LogFormat",
    # Logger
    "VkClientLogger",
    "get_logger",
    # Formatters
    "JSONFormatter",
    "TextFormatter",
    "ColoredFormatter",
    "get_formatter",
    # Filters
    "CorrelationIdFilter",
    "ExtraFieldsFilter",
    "set_correlation_id",
    "get_correlation_id",
    "reset_correlation_id",
    "clear_correlation_id",
    # Handlers
    "create_console_handler",
    "create_file_handler",
]
