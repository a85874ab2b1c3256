"""
Иерархия исключений VK API клиента.

Классификация:
- TransportError - сеть/IO, никогда не ретраится этим слоем
- RequestSerializeError - параметры не сериализуются, до любого I/O
- ResponseDecodeError - тело ответа не удалось распаковать/разобрать
- ApiBusinessError - ошибка бизнес-логики VK (нормальный результат)
- LongPollError - ошибки long poll сервера (recoverable / fatal)
"""

from typing import Any, List, Optional

import requests
import urllib3

# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# BASE
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

class VkApiException(Exception):
    """Базовое исключение VK API клиента."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)

# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# TRANSPORT
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

class TransportError(VkApiException):
    """
    Ошибка транспорта (сеть, TLS, обрыв соединения).

    Args:
        message: Сообщение об ошибке
        url: URL запроса
    """

    def __init__(self, message: str, url: Optional[str] = None):
        self.url = url
        full_message = message
        if url:
            full_message += f" (url: {url})"
        super().__init__(full_message)

class TimeoutError(TransportError):
    """Таймаут запроса."""
    pass

class ConnectionError(TransportError):
    """
    Ошибка подключения.

    Примеры:
    - Connection refused
    - Connection reset
    - DNS resolution failed
    """
    pass

# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# REQUEST
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

class RequestSerializeError(VkApiException):
    """
    Параметры запроса не удалось развернуть в form/query пары.

    Args:
        message: Что именно не сериализуется
        key: Имя проблемного параметра (если известно)
    """

    def __init__(self, message: str, key: Optional[str] = None):
        self.key = key
        msg = message
        if key:
            msg = f"{message} (param: {key})"
        super().__init__(msg)

# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# RESPONSE DECODING
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

class ResponseDecodeError(VkApiException):
    """
    Базовая ошибка декодирования ответа.

    Args:
        message: Сообщение
        status_code: HTTP статус ответа (если ответ был получен)
    """

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)

class BadEncodingError(ResponseDecodeError):
    """
    Сервер вернул Content-Type, для которого нет доступного декодера.

    Args:
        content_type: Значение заголовка Content-Type (None если заголовка нет)
        status_code: HTTP статус
    """

    def __init__(self, content_type: Optional[str], status_code: Optional[int] = None):
        self.content_type = content_type
        msg = f"vk api bad encoding or compression returned (content-type: {content_type!r})"
        if status_code is not None:
            msg += f", HTTP {status_code}"
        super().__init__(msg, status_code)

class DecompressionError(ResponseDecodeError):
    """
    Объявленный Content-Encoding не смог распаковать тело (битые данные).

    Args:
        encoding: Значение Content-Encoding
        reason: Сообщение декодера
    """

    def __init__(self, encoding: str, reason: str, status_code: Optional[int] = None):
        self.encoding = encoding
        self.reason = reason
        super().__init__(f"Failed to decompress {encoding} body: {reason}", status_code)

class EnvelopeError(ResponseDecodeError):
    """
    Тело разобрано, но не подходит ни под одну из ожидаемых форм
    (или подходит под обе сразу).
    """
    pass

class FormatParseError(ResponseDecodeError):
    """
    Тело объявленного формата не разбирается.

    Args:
        format_name: Имя формата ('json', 'msgpack', ...)
        reason: Сообщение парсера
    """

    format_name: str = "unknown"

    def __init__(self, reason: str, status_code: Optional[int] = None):
        self.reason = reason
        super().__init__(f"Malformed {self.format_name} body: {reason}", status_code)

class JsonParseError(FormatParseError):
    """Битый JSON."""
    format_name = "json"

class MsgpackParseError(FormatParseError):
    """Битый MessagePack."""
    format_name = "msgpack"

class TextParseError(FormatParseError):
    """Тело текстового ответа (upload сервер) не UTF-8."""
    format_name = "text"

class ResponseValidationError(FormatParseError):
    """Разобранное значение не соответствует ожидаемой модели ответа."""
    format_name = "typed"

# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# BUSINESS ERRORS
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

class ApiBusinessError(VkApiException):
    """
    Ошибка бизнес-логики VK API (невалидные параметры, протухший токен и т.д.).

    Это ожидаемый результат, а не сбой транспорта.
    Коды: https://dev.vk.com/reference/errors

    Args:
        code: error_code (signed 16-bit)
        message: error_msg
        request_params: Параметры запроса, которые VK вернул вместе с ошибкой
    """

    def __init__(
        self,
        code: int,
        message: str,
        request_params: Optional[List[Any]] = None
    ):
        self.code = code
        self.error_msg = message
        self.request_params = request_params or []
        super().__init__(
            f"vk api error occurred. Code: {code}, message: {message}"
        )

# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# LONG POLL
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

class LongPollError(VkApiException):
    """
    Ошибка long poll сервера.

    Args:
        failed: Код ошибки из поля "failed"
    """

    def __init__(self, failed: int, message: Optional[str] = None):
        self.failed = failed
        super().__init__(message or f"long poll error occured, code: {failed}")

class LongPollRecoverableError(LongPollError):
    """
    Сервер потерял часть истории или ts устарел, но вернул новый ts.

    Подписка (subscribe) обрабатывает эту ошибку сама и до потребителя
    её не доносит. Выбрасывается только из subscribe_once().
    """

    def __init__(self, failed: int, ts: str):
        self.ts = ts
        super().__init__(failed, f"long poll error occured, code: {failed}, new ts: {ts}")

class LongPollFatalError(LongPollError):
    """
    Фатальная ошибка long poll: протух key, потеряна информация,
    неподдерживаемая версия протокола.

    Args:
        failed: Код ошибки
        min_version: Минимальная поддерживаемая версия (для failed=4)
        max_version: Максимальная поддерживаемая версия (для failed=4)
    """

    def __init__(
        self,
        failed: int,
        min_version: Optional[int] = None,
        max_version: Optional[int] = None
    ):
        self.min_version = min_version
        self.max_version = max_version
        msg = f"long poll error occured, code: {failed}"
        if min_version is not None or max_version is not None:
            msg += f" (supported versions: {min_version}..{max_version})"
        super().__init__(failed, msg)

# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# СПЕЦИАЛЬНЫЕ
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

class ConfigurationError(VkApiException):
    """Ошибка конфигурации (например, выбран недоступный кодек)."""
    pass

# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# УТИЛИТЫ
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

def classify_requests_exception(exc: Exception, url: str) -> VkApiException:
    """
    Конвертировать исключения requests (и urllib3 при чтении тела) в наши.

    Args:
        exc: Исключение из requests или urllib3
        url: URL запроса

    Returns:
        TransportError (или его подкласс)

    Examples:
        >>> exc = requests.exceptions.ConnectTimeout()
        >>> our_exc = classify_requests_exception(exc, "https://api.vk.com")
        >>> assert isinstance(our_exc, TimeoutError)
    """
    if isinstance(exc, (requests.exceptions.Timeout, urllib3.exceptions.TimeoutError)):
        return TimeoutError("Request timeout", url)

    elif isinstance(exc, (requests.exceptions.ConnectionError, urllib3.exceptions.ProtocolError)):
        return ConnectionError("Connection error", url)

    else:
        # Любая другая ошибка requests/urllib3 - тоже транспорт
        return TransportError(str(exc) or type(exc).__name__, url)


def classify_httpx_exception(exc: Exception, url: str) -> VkApiException:
    """
    Конвертировать httpx исключения в наши.

    Args:
        exc: Исключение из httpx
        url: URL запроса

    Returns:
        TransportError (или его подкласс); DecompressionError, если httpx
        сам попытался распаковать тело
    """
    import httpx

    if isinstance(exc, httpx.DecodingError):
        return DecompressionError("content-encoding", str(exc) or type(exc).__name__)

    elif isinstance(exc, httpx.TimeoutException):
        return TimeoutError("Request timeout", url)

    elif isinstance(exc, (httpx.ConnectError, httpx.RemoteProtocolError)):
        return ConnectionError("Connection error", url)

    else:
        return TransportError(str(exc) or type(exc).__name__, url)
