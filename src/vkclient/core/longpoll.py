"""
Long poll: курсор, исходы тиков и машина состояний подписки.

Модуль sans-IO: LongPollSession только строит запрос для текущего курсора
и применяет к себе декодированный исход. Сетью занимаются клиенты
(VkApi / AsyncVkApi), поэтому одна и та же логика работает и в sync
генераторе, и в async генераторе.

Жизненный цикл одного тика:

    Idle --request()--> (транспорт) --decode_longpoll_outcome()--> advance()
      Updates      -> ts заменяется, элементы отдаются по порядку
      Recoverable  -> ts заменяется, элементов нет
      Fatal        -> сессия завершается, LongPollFatalError
"""

from dataclasses import dataclass, field, replace
from typing import Any, Generic, List, Mapping, Optional, Type, TypeVar, Union

from .capabilities import Capabilities
from .config import EncodingProfile, Format, Compression
from .envelope import validate_model
from .exceptions import EnvelopeError, LongPollFatalError
from .negotiation import PreparedRequest, build_longpoll_request

T = TypeVar("T")

DEFAULT_WAIT = 25


def normalize_ts(value: Any) -> str:
    """
    Привести ts к строке.

    На проводе ts бывает и числом, и строкой (зависит от формата и версии).
    Клиент никогда не сравнивает и не инкрементирует ts, только заменяет.

    Examples:
        >>> normalize_ts(123)
        '123'
        >>> normalize_ts("123")
        '123'

    Raises:
        EnvelopeError: ts не строка и не неотрицательное целое
    """
    if isinstance(value, str):
        return value
    if isinstance(value, int) and not isinstance(value, bool) and value >= 0:
        return str(value)
    raise EnvelopeError(f"'ts' must be a string or a non-negative integer, got {value!r}")


@dataclass(frozen=True)
class Cursor:
    """
    Точка возобновления long poll подписки.

    Args:
        server: Адрес long poll сервера (схема может отсутствовать)
        key: Ключ сессии
        ts: Номер последнего события (int или str, хранится как str)

    Examples:
        >>> Cursor("lp.vk.com/wh1", "abc", 10).ts
        '10'
    """
    server: str
    key: str
    ts: str

    def __post_init__(self):
        object.__setattr__(self, 'ts', normalize_ts(self.ts))

    def with_ts(self, ts: Union[str, int]) -> 'Cursor':
        """Новый курсор с заменённым ts."""
        return replace(self, ts=ts)

    @classmethod
    def from_response(cls, payload: Mapping[str, Any]) -> 'Cursor':
        """
        Курсор из ответа groups.getLongPollServer / messages.getLongPollServer.

        Raises:
            EnvelopeError: В ответе нет server, key или ts
        """
        try:
            server, key, ts = payload["server"], payload["key"], payload["ts"]
        except (KeyError, TypeError) as e:
            raise EnvelopeError(f"Long poll server response is incomplete: {e}") from e
        if not isinstance(server, str) or not isinstance(key, str):
            raise EnvelopeError("Long poll 'server' and 'key' must be strings")
        return cls(server=server, key=key, ts=ts)


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# OUTCOMES
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

@dataclass(frozen=True)
class LongPollUpdates(Generic[T]):
    """Успешный тик: новый ts и события по порядку."""
    ts: str
    updates: List[T] = field(default_factory=list)


@dataclass(frozen=True)
class LongPollRecoverable:
    """Сервер прислал failed вместе с новым ts: продолжаем с него."""
    ts: str
    failed: int


@dataclass(frozen=True)
class LongPollFatal:
    """failed без ts: продолжать нельзя."""
    failed: int
    min_version: Optional[int] = None
    max_version: Optional[int] = None

    def to_exception(self) -> LongPollFatalError:
        return LongPollFatalError(self.failed, self.min_version, self.max_version)


LongPollOutcome = Union[LongPollUpdates[Any], LongPollRecoverable, LongPollFatal]


def _optional_int(payload: Mapping[str, Any], name: str) -> Optional[int]:
    value = payload.get(name)
    if value is None:
        return None
    if not isinstance(value, int) or isinstance(value, bool):
        raise EnvelopeError(f"'{name}' must be an integer, got {value!r}")
    return value


def decode_longpoll_outcome(
    payload: Any,
    item_model: Optional[Type[T]] = None
) -> LongPollOutcome:
    """
    Классифицировать тело ответа long poll сервера.

    Формы:
        {"ts": ..., "updates": [...]}            -> LongPollUpdates
        {"failed": N, "ts": ...}                 -> LongPollRecoverable
        {"failed": N[, "min_version", "max_version"]} -> LongPollFatal

    Args:
        payload: Разобранное тело
        item_model: Опциональная модель для каждого события

    Raises:
        EnvelopeError: Тело не подходит ни под одну форму или под обе
        ResponseValidationError: Событие не соответствует item_model
    """
    if not isinstance(payload, dict):
        raise EnvelopeError(f"Long poll body must be an object, got {type(payload).__name__}")

    has_failed = "failed" in payload
    has_updates = "updates" in payload

    if has_failed and has_updates:
        raise EnvelopeError("Ambiguous long poll body: both 'failed' and 'updates' are present")

    if has_failed:
        failed = payload["failed"]
        if not isinstance(failed, int) or isinstance(failed, bool):
            raise EnvelopeError(f"'failed' must be an integer, got {failed!r}")
        if payload.get("ts") is not None:
            return LongPollRecoverable(ts=normalize_ts(payload["ts"]), failed=failed)
        return LongPollFatal(
            failed=failed,
            min_version=_optional_int(payload, "min_version"),
            max_version=_optional_int(payload, "max_version"),
        )

    if has_updates and "ts" in payload:
        updates = payload["updates"]
        if not isinstance(updates, list):
            raise EnvelopeError(f"'updates' must be a list, got {type(updates).__name__}")
        ts = normalize_ts(payload["ts"])
        if item_model is not None:
            updates = [validate_model(item, item_model) for item in updates]
        return LongPollUpdates(ts=ts, updates=updates)

    raise EnvelopeError(
        f"Unknown long poll body: got keys {sorted(map(str, payload))}"
    )


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# SESSION
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

def longpoll_profile(capabilities: Capabilities) -> EncodingProfile:
    """
    Профиль для long poll и upload серверов: они отвечают только JSON и gzip.

    Если JSON или gzip нет в capabilities, просим text/* и identity.
    """
    compression = Compression.GZIP if capabilities.supports_compression(Compression.GZIP) else Compression.NONE
    fmt = Format.JSON if capabilities.supports_format(Format.JSON) else Format.NONE
    return EncodingProfile(compression, fmt)


class LongPollSession:
    """
    Состояние одной подписки: курсор, wait и дополнительные параметры.

    Принадлежит ровно одному генератору подписки и никогда не
    разделяется между потоками или задачами.

    Args:
        cursor: Начальный курсор
        wait: Серверное время ожидания (сек)
        extra_params: Дополнительные параметры тика (mode, version, ...)

    Example:
        >>> session = LongPollSession(cursor, wait=25)
        >>> while not session.terminated:
        ...     request = session.request(profile)
        ...     outcome = decode_longpoll_outcome(send(request))
        ...     for item in session.advance(outcome):
        ...         handle(item)
    """

    def __init__(
        self,
        cursor: Cursor,
        wait: int = DEFAULT_WAIT,
        extra_params: Any = None
    ):
        if isinstance(wait, bool) or not isinstance(wait, int) or wait < 0:
            raise ValueError("wait must be a non-negative integer")
        self.cursor = cursor
        self.wait = wait
        self.extra_params = extra_params
        self.ticks = 0
        self._terminated = False

    @property
    def terminated(self) -> bool:
        return self._terminated

    def terminate(self) -> None:
        """Остановить подписку: новых тиков не будет."""
        self._terminated = True

    def request(
        self,
        profile: EncodingProfile,
        extra_headers: Optional[Mapping[str, str]] = None
    ) -> PreparedRequest:
        """
        Запрос следующего тика для текущего курсора.

        Raises:
            RuntimeError: Сессия уже завершена
            RequestSerializeError: extra_params не сериализуются
        """
        if self._terminated:
            raise RuntimeError("long poll session is terminated")
        return build_longpoll_request(
            self.cursor.server,
            self.cursor.key,
            self.cursor.ts,
            self.wait,
            self.extra_params,
            profile=profile,
            extra_headers=extra_headers,
        )

    def advance(self, outcome: LongPollOutcome) -> List[Any]:
        """
        Применить исход тика к курсору.

        Returns:
            События для потребителя (пусто для Recoverable)

        Raises:
            LongPollFatalError: Фатальный исход, сессия завершена
        """
        self.ticks += 1

        if isinstance(outcome, LongPollFatal):
            self._terminated = True
            raise outcome.to_exception()

        # Курсор заменяется целиком, старый объект не меняется
        self.cursor = self.cursor.with_ts(outcome.ts)

        if isinstance(outcome, LongPollRecoverable):
            return []
        return list(outcome.updates)
