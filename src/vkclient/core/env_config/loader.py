"""
Build VkApiConfig from environment variables and .env files.
"""

from typing import Optional

from ..config import TimeoutConfig, VkApiConfig
from ..logging.config import LoggingConfig
from .settings import VkApiSettings


def load_settings(env_file: Optional[str] = None, **overrides) -> VkApiSettings:
    """
    Read VkApiSettings.

    Args:
        env_file: Custom .env path (default: ./.env if present)
        **overrides: Explicit values, highest priority

    Raises:
        pydantic.ValidationError: Invalid value in environment or overrides
    """
    if env_file is not None:
        return VkApiSettings(_env_file=env_file, **overrides)
    return VkApiSettings(**overrides)


def load_from_env(env_file: Optional[str] = None, **overrides) -> VkApiConfig:
    """
    Load VkApiConfig from environment variables.

    Priority (highest to lowest):
    1. **overrides - explicit parameters
    2. Environment variables (VK_API_*)
    3. .env file
    4. Defaults

    Args:
        env_file: Custom .env file path
        **overrides: Explicit overrides, named as VkApiSettings fields

    Returns:
        VkApiConfig instance

    Example:
        >>> config = load_from_env()
        >>> config = load_from_env(env_file=".env.bot", compression="gzip")
        >>> api = VkApi(config=config)
    """
    settings = load_settings(env_file, **overrides)

    logging_config = None
    if settings.log_enabled:
        logging_config = LoggingConfig.create(
            level=settings.log_level,
            format=settings.log_format,
            enable_console=settings.log_enable_console,
            enable_file=settings.log_enable_file,
            file_path=settings.log_file_path,
            max_bytes=settings.log_max_bytes,
            backup_count=settings.log_backup_count,
            enable_correlation_id=settings.log_enable_correlation_id,
        )

    return VkApiConfig.create(
        access_token=settings.access_token.get_secret_value(),
        version=settings.version,
        domain=settings.domain,
        compression=settings.compression,
        format=settings.format,
        timeout=TimeoutConfig(connect=settings.timeout_connect, read=settings.timeout_read),
        verify_ssl=settings.verify_ssl,
        pool_connections=settings.pool_connections,
        pool_maxsize=settings.pool_maxsize,
        logging=logging_config,
    )
