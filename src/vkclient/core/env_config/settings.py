"""
Pydantic settings for configuration from environment variables.
"""

from typing import Literal, Optional

from pydantic import Field, SecretStr, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from ..config import DEFAULT_DOMAIN, Version


class VkApiSettings(BaseSettings):
    """
    VK API client configuration from environment variables.

    Reads from:
    1. Explicit keyword arguments
    2. Environment variables (VK_API_*)
    3. .env file
    4. Defaults

    Example .env file:
        VK_API_ACCESS_TOKEN=vk1.a.xxxxxxxx
        VK_API_VERSION=5.199
        VK_API_COMPRESSION=gzip
        VK_API_FORMAT=json
        VK_API_TIMEOUT_READ=40
        VK_API_LOG_ENABLED=true
        VK_API_LOG_FORMAT=json

    Usage:
        >>> settings = VkApiSettings()
        >>> settings.access_token.get_secret_value()
        'vk1.a.xxxxxxxx'
    """

    model_config = SettingsConfigDict(
        env_prefix='VK_API_',
        env_file='.env',
        env_file_encoding='utf-8',
        case_sensitive=False,
        extra='ignore',
    )

    access_token: SecretStr = Field(default=SecretStr(""), description="User, group or service token")
    version: str = Field(default=str(Version()), description="API version, e.g. 5.131")
    domain: str = Field(default=DEFAULT_DOMAIN)

    # None = best available codec
    compression: Optional[Literal["none", "gzip", "zstd"]] = None
    format: Optional[Literal["none", "json", "msgpack"]] = None

    timeout_connect: float = Field(default=5.0, gt=0)
    timeout_read: float = Field(default=30.0, gt=0)
    verify_ssl: bool = Field(default=True)

    pool_connections: int = Field(default=10, ge=1)
    pool_maxsize: int = Field(default=10, ge=1)

    # Logging (off unless VK_API_LOG_ENABLED=true)
    log_enabled: bool = Field(default=False)
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(default="INFO")
    log_format: Literal["json", "text", "colored"] = Field(default="text")
    log_enable_console: bool = Field(default=True)
    log_enable_file: bool = Field(default=False)
    log_file_path: Optional[str] = None
    log_max_bytes: int = Field(default=10 * 1024 * 1024, gt=0)
    log_backup_count: int = Field(default=5, ge=0)
    log_enable_correlation_id: bool = Field(default=True)

    @field_validator('version')
    @classmethod
    def validate_version(cls, v: str) -> str:
        """Version must look like '5.131'."""
        return str(Version.parse(v))

    @field_validator('compression', 'format', 'log_format', mode='before')
    @classmethod
    def lower_case(cls, v):
        return v.lower() if isinstance(v, str) else v

    @field_validator('log_level', mode='before')
    @classmethod
    def upper_case(cls, v):
        return v.upper() if isinstance(v, str) else v

    @model_validator(mode='after')
    def validate_log_file(self) -> 'VkApiSettings':
        """file_path is required when file logging is on."""
        if self.log_enabled and self.log_enable_file and not self.log_file_path:
            raise ValueError("log_file_path is required when log_enable_file=True")
        return self
