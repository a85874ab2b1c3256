"""vkclient - VK API client with content negotiation (msgpack/json, zstd/gzip) and long poll."""

import logging
from importlib.metadata import version, PackageNotFoundError

from .core.client import VkApi, Subscription

# Опциональный импорт AsyncVkApi (требует httpx)
try:
    from .async_client import AsyncVkApi, AsyncSubscription
    _HAS_ASYNC = True
except ImportError:
    _HAS_ASYNC = False
    AsyncVkApi = None  # type: ignore
    AsyncSubscription = None  # type: ignore
from .core.capabilities import Capabilities, detect_capabilities
from .core.config import (
    Compression,
    ConnectionPoolConfig,
    EncodingProfile,
    Format,
    TimeoutConfig,
    Version,
    VkApiConfig,
)
from .core.env_config import load_from_env
from .core.exceptions import (
    VkApiException,
    TransportError,
    TimeoutError,
    ConnectionError,
    RequestSerializeError,
    ResponseDecodeError,
    BadEncodingError,
    DecompressionError,
    EnvelopeError,
    FormatParseError,
    JsonParseError,
    MsgpackParseError,
    TextParseError,
    ResponseValidationError,
    ApiBusinessError,
    LongPollError,
    LongPollRecoverableError,
    LongPollFatalError,
    ConfigurationError,
)
from .core.longpoll import Cursor, LongPollUpdates
from .core.negotiation import List
from .core.pipeline import RequestPipeline
from .core.wrapper import ApiMethod

# NullHandler: без настройки пользователем библиотека молчит
logging.getLogger('vkclient').addHandler(logging.NullHandler())

try:
    __version__ = version("vkclient")
except PackageNotFoundError:
    __version__ = "0.0.0-dev"

__all__ = [
    # Clients
    "VkApi",
    "AsyncVkApi",
    "Subscription",
    "AsyncSubscription",
    "RequestPipeline",

    # Config
    "VkApiConfig",
    "EncodingProfile",
    "Compression",
    "Format",
    "Version",
    "TimeoutConfig",
    "ConnectionPoolConfig",
    "Capabilities",
    "detect_capabilities",
    "load_from_env",

    # Params / long poll / typed methods
    "List",
    "Cursor",
    "LongPollUpdates",
    "ApiMethod",

    # Exceptions
    "VkApiException",
    "TransportError",
    "TimeoutError",
    "ConnectionError",
    "RequestSerializeError",
    "ResponseDecodeError",
    "BadEncodingError",
    "DecompressionError",
    "EnvelopeError",
    "FormatParseError",
    "JsonParseError",
    "MsgpackParseError",
    "TextParseError",
    "ResponseValidationError",
    "ApiBusinessError",
    "LongPollError",
    "LongPollRecoverableError",
    "LongPollFatalError",
    "ConfigurationError",

    # Version
    "__version__",
]
