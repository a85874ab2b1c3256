"""
Согласование запроса: заголовки, путь метода, тело и query string.

Чистые функции, без I/O. Результат - PreparedRequest, который выполняет
транспорт (requests или httpx).
"""

import dataclasses
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List as TypingList, Mapping, Optional, Tuple
from urllib.parse import urlencode

from pydantic import BaseModel

from .config import EncodingProfile, Version
from .exceptions import RequestSerializeError

RESERVED_KEYS = frozenset({"v", "access_token"})

_SCALARS = (str, int, float, Version)


class List:
    """
    Хелпер для списочных параметров VK API: элементы через запятую.

    Examples:
        >>> str(List([1, 2, 3]))
        '1,2,3'
        >>> str(List(["id", "sex", "age"]))
        'id,sex,age'
    """

    __slots__ = ("items",)

    def __init__(self, items: Iterable[Any]):
        self.items = tuple(items)

    def __str__(self) -> str:
        return ",".join(_scalar_to_str(item, None) for item in self.items)

    def __repr__(self) -> str:
        return f"List({list(self.items)!r})"

    def __eq__(self, other: object) -> bool:
        if isinstance(other, List):
            return self.items == other.items
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self.items)


@dataclass(frozen=True)
class PreparedRequest:
    """
    Готовый к отправке запрос.

    Args:
        method: HTTP метод
        url: Полный URL
        headers: Заголовки
        data: Form-пары тела (для POST)
        params: Query-пары (для GET)
    """
    method: str
    url: str
    headers: Mapping[str, str] = field(default_factory=dict)
    data: Tuple[Tuple[str, str], ...] = ()
    params: Tuple[Tuple[str, str], ...] = ()

    @property
    def body(self) -> str:
        """Тело в виде application/x-www-form-urlencoded."""
        return urlencode(self.data)

    @property
    def full_url(self) -> str:
        """URL вместе с query string."""
        if not self.params:
            return self.url
        return f"{self.url}?{urlencode(self.params)}"


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# FLATTENING
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

def _scalar_to_str(value: Any, key: Optional[str]) -> str:
    # bool раньше int: bool - подкласс int
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, Enum):
        return _scalar_to_str(value.value, key)
    if isinstance(value, _SCALARS):
        return str(value)
    raise RequestSerializeError(
        f"Unsupported value of type {type(value).__name__}", key
    )


def _value_to_str(key: str, value: Any) -> str:
    if isinstance(value, List):
        return str(value)
    if isinstance(value, (list, tuple, set, frozenset)):
        if any(isinstance(item, (Mapping, list, tuple, set, frozenset, List)) for item in value):
            raise RequestSerializeError("Nested sequences can not be flattened", key)
        items = sorted(value, key=str) if isinstance(value, (set, frozenset)) else value
        return ",".join(_scalar_to_str(item, key) for item in items)
    if isinstance(value, Mapping):
        raise RequestSerializeError("Nested objects can not be flattened", key)
    return _scalar_to_str(value, key)


def _params_to_mapping(params: Any) -> Mapping[str, Any]:
    if params is None:
        return {}
    if isinstance(params, BaseModel):
        return params.model_dump(exclude_none=True, by_alias=True)
    if dataclasses.is_dataclass(params) and not isinstance(params, type):
        return {f.name: getattr(params, f.name) for f in dataclasses.fields(params)}
    if isinstance(params, Mapping):
        return params
    raise RequestSerializeError(
        f"Params must be a mapping, a dataclass or a pydantic model, "
        f"got {type(params).__name__}"
    )


def flatten_params(params: Any) -> TypingList[Tuple[str, str]]:
    """
    Развернуть параметры метода в плоские пары ключ-значение.

    Args:
        params: dict, dataclass, pydantic модель или None

    Returns:
        Список (key, value) в исходном порядке; None значения пропускаются

    Raises:
        RequestSerializeError: Вложенные объекты/списки или неподдерживаемый тип

    Examples:
        >>> flatten_params({"user_ids": List([1, 2]), "fields": ["id", "sex"]})
        [('user_ids', '1,2'), ('fields', 'id,sex')]
        >>> flatten_params({"extended": True, "offset": None})
        [('extended', 'true')]
    """
    pairs = []
    for key, value in _params_to_mapping(params).items():
        if not isinstance(key, str):
            raise RequestSerializeError(f"Param keys must be strings, got {key!r}")
        if value is None:
            continue
        pairs.append((key, _value_to_str(key, value)))
    return pairs


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# REQUEST BUILDERS
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

def build_call_request(
    domain: str,
    method: str,
    params: Any,
    *,
    profile: EncodingProfile,
    access_token: str,
    version: Version,
    extra_headers: Optional[Mapping[str, str]] = None
) -> PreparedRequest:
    """
    Собрать POST запрос к методу API.

    Тело: v и access_token + развернутые параметры метода.

    Raises:
        RequestSerializeError: Параметры не сериализуются
    """
    if not method:
        raise RequestSerializeError("Method name must not be empty")

    pairs = flatten_params(params)
    for key, _ in pairs:
        if key in RESERVED_KEYS:
            raise RequestSerializeError("Reserved parameter can not be overridden", key)

    headers: Dict[str, str] = dict(extra_headers or {})
    headers.update(profile.headers())
    headers["Content-Type"] = "application/x-www-form-urlencoded"
    if access_token:
        headers["Authorization"] = f"Bearer {access_token}"

    return PreparedRequest(
        method="POST",
        url=f"https://{domain}{profile.method_path(method)}",
        headers=headers,
        data=(("v", str(version)), ("access_token", access_token), *pairs),
    )


def longpoll_server_url(server: str) -> str:
    """
    URL long poll сервера: VK отдаёт его без схемы.

    Examples:
        >>> longpoll_server_url("lp.vk.com/wh123")
        'https://lp.vk.com/wh123'
    """
    if server.startswith(("http://", "https://")):
        return server
    return f"https://{server}"


def build_longpoll_request(
    server: str,
    key: str,
    ts: str,
    wait: int,
    params: Any,
    *,
    profile: EncodingProfile,
    extra_headers: Optional[Mapping[str, str]] = None
) -> PreparedRequest:
    """
    Собрать GET запрос одного тика long poll.

    Query: act=a_check, key, ts, wait + развернутые дополнительные параметры.

    Raises:
        RequestSerializeError: Дополнительные параметры не сериализуются
    """
    extra = flatten_params(params)
    for name, _ in extra:
        if name in ("act", "key", "ts", "wait"):
            raise RequestSerializeError("Reserved parameter can not be overridden", name)

    headers: Dict[str, str] = dict(extra_headers or {})
    headers.update(profile.headers())

    return PreparedRequest(
        method="GET",
        url=longpoll_server_url(server),
        headers=headers,
        params=(("act", "a_check"), ("key", key), ("ts", ts), ("wait", str(wait)), *extra),
    )
