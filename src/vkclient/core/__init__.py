"""Core модули VK API клиента."""

from .capabilities import Capabilities, detect_capabilities
from .config import (
    Compression,
    ConnectionPoolConfig,
    EncodingProfile,
    Format,
    TimeoutConfig,
    Version,
    VkApiConfig,
)
from .exceptions import (
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
    classify_requests_exception,
    classify_httpx_exception,
)
from .negotiation import List, PreparedRequest, flatten_params, build_call_request, build_longpoll_request
from .decoding import ResponseDecoder, decode_body, decode_text
from .envelope import Success, Error, decode_envelope, resolve_envelope
from .longpoll import (
    Cursor,
    LongPollSession,
    LongPollUpdates,
    LongPollRecoverable,
    LongPollFatal,
    decode_longpoll_outcome,
    normalize_ts,
)
from .pipeline import RequestPipeline
from .wrapper import ApiMethod
from .client import VkApi, Subscription

__all__ = [
    # Config
    "Capabilities",
    "detect_capabilities",
    "Compression",
    "ConnectionPoolConfig",
    "EncodingProfile",
    "Format",
    "TimeoutConfig",
    "Version",
    "VkApiConfig",
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
    "classify_requests_exception",
    "classify_httpx_exception",
    # Negotiation / decoding
    "List",
    "PreparedRequest",
    "flatten_params",
    "build_call_request",
    "build_longpoll_request",
    "ResponseDecoder",
    "decode_body",
    "decode_text",
    "Success",
    "Error",
    "decode_envelope",
    "resolve_envelope",
    # Long poll
    "Cursor",
    "LongPollSession",
    "LongPollUpdates",
    "LongPollRecoverable",
    "LongPollFatal",
    "decode_longpoll_outcome",
    "normalize_ts",
    # Clients
    "RequestPipeline",
    "ApiMethod",
    "VkApi",
    "Subscription",
]
