"""
Разбор конверта ответа VK API.

Ответ не содержит явного поля-дискриминатора: успех и ошибка различаются
только набором полей ({"response": ...} против {"error": {...}}).
Пробуем обе формы явно; если подходит ни одна или обе - это ошибка
декодирования, а не молчаливое угадывание.
"""

from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Generic, List, Optional, Type, TypeVar, Union

from pydantic import TypeAdapter, ValidationError

from .exceptions import ApiBusinessError, EnvelopeError, ResponseValidationError

T = TypeVar("T")

_INT16_MIN = -(2 ** 15)
_INT16_MAX = 2 ** 15 - 1


@dataclass(frozen=True)
class Success(Generic[T]):
    """Успешный конверт."""
    value: T


@dataclass(frozen=True)
class Error:
    """Конверт с ошибкой бизнес-логики."""
    code: int
    message: str
    request_params: Optional[List[Any]] = None

    def to_exception(self) -> ApiBusinessError:
        return ApiBusinessError(self.code, self.message, self.request_params)


Envelope = Union[Success[Any], Error]


def _parse_error_object(error: Any) -> Error:
    if not isinstance(error, dict):
        raise EnvelopeError(f"'error' must be an object, got {type(error).__name__}")

    code = error.get("error_code")
    message = error.get("error_msg")

    # bool - подкласс int, его кодом ошибки не считаем
    if not isinstance(code, int) or isinstance(code, bool):
        raise EnvelopeError(f"'error.error_code' must be an integer, got {code!r}")
    if not _INT16_MIN <= code <= _INT16_MAX:
        raise EnvelopeError(f"'error.error_code' is out of range: {code}")
    if not isinstance(message, str):
        raise EnvelopeError(f"'error.error_msg' must be a string, got {message!r}")

    request_params = error.get("request_params")
    if request_params is not None and not isinstance(request_params, list):
        raise EnvelopeError(f"'error.request_params' must be a list, got {type(request_params).__name__}")

    return Error(code=code, message=message, request_params=request_params)


def decode_envelope(payload: Any) -> Envelope:
    """
    Классифицировать разобранное тело как Success или Error.

    Args:
        payload: Результат десериализации тела

    Returns:
        Success(value) или Error(code, message)

    Raises:
        EnvelopeError: Неоднозначный или неизвестный конверт

    Examples:
        >>> decode_envelope({"response": [1, 2]})
        Success(value=[1, 2])
        >>> decode_envelope({"error": {"error_code": 5, "error_msg": "access denied"}})
        Error(code=5, message='access denied', request_params=None)
    """
    if not isinstance(payload, dict):
        raise EnvelopeError(f"Envelope must be an object, got {type(payload).__name__}")

    has_response = "response" in payload
    has_error = "error" in payload

    if has_response and has_error:
        raise EnvelopeError("Ambiguous envelope: both 'response' and 'error' are present")
    if has_response:
        return Success(payload["response"])
    if has_error:
        return _parse_error_object(payload["error"])

    raise EnvelopeError(
        f"Unknown envelope: expected 'response' or 'error', got keys {sorted(map(str, payload))}"
    )


@lru_cache(maxsize=256)
def _adapter(model: Any) -> TypeAdapter:
    return TypeAdapter(model)


def validate_model(value: Any, model: Optional[Type[T]]) -> T:
    """
    Привести значение к модели ответа через pydantic.

    Args:
        value: Разобранное значение
        model: Тип (pydantic модель, dataclass, List[...], ...) или None

    Returns:
        Провалидированное значение (или value как есть, если model=None)

    Raises:
        ResponseValidationError: Значение не соответствует модели
    """
    if model is None:
        return value
    try:
        return _adapter(model).validate_python(value)
    except ValidationError as e:
        raise ResponseValidationError(str(e)) from e


def resolve_envelope(payload: Any, model: Optional[Type[T]] = None) -> T:
    """
    Развернуть конверт: вернуть значение или выбросить ApiBusinessError.

    Args:
        payload: Результат десериализации тела
        model: Опциональная модель для значения response

    Raises:
        ApiBusinessError: VK вернул ошибку бизнес-логики
        EnvelopeError: Неоднозначный или неизвестный конверт
        ResponseValidationError: response не соответствует модели
    """
    envelope = decode_envelope(payload)
    if isinstance(envelope, Error):
        raise envelope.to_exception()
    return validate_model(envelope.value, model)
