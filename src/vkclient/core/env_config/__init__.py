"""
Configuration from environment variables and .env files.

Example:
    >>> from vkclient.core.env_config import load_from_env
    >>>
    >>> config = load_from_env()                       # VK_API_* + .env
    >>> config = load_from_env(env_file=".env.prod")   # custom file
    >>> config = load_from_env(format="json")          # explicit override
"""

from .loader import load_from_env, load_settings
from .settings import VkApiSettings

__all__ = [
    "load_from_env",
    "load_settings",
    "VkApiSettings",
]
