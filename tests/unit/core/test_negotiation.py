"""Тесты согласования запроса: параметры, путь, заголовки."""

from dataclasses import dataclass
from enum import Enum
from typing import Optional
from urllib.parse import parse_qsl

import pytest
from pydantic import BaseModel, Field

from vkclient.core.config import Compression, EncodingProfile, Format, Version
from vkclient.core.exceptions import RequestSerializeError
from vkclient.core.negotiation import (
    List,
    PreparedRequest,
    build_call_request,
    build_longpoll_request,
    flatten_params,
    longpoll_server_url,
)

JSON_GZIP = EncodingProfile(Compression.GZIP, Format.JSON)
MSGPACK_ZSTD = EncodingProfile(Compression.ZSTD, Format.MSGPACK)

# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# flatten_params
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

def test_flatten_scalars():
    """Скаляры превращаются в строки."""
    assert flatten_params({"user_id": 1, "q": "text", "lat": 1.5}) == [
        ("user_id", "1"), ("q", "text"), ("lat", "1.5"),
    ]

def test_flatten_bool():
    """bool передаётся как true/false, а не 1/0 или True/False."""
    assert flatten_params({"extended": True, "count": False}) == [
        ("extended", "true"), ("count", "false"),
    ]

def test_flatten_list_helper_and_sequences():
    """List и обычные списки - через запятую."""
    assert flatten_params({"user_ids": List([1, 2, 3]), "fields": ["sex", "bdate"]}) == [
        ("user_ids", "1,2,3"), ("fields", "sex,bdate"),
    ]

def test_flatten_set_is_sorted():
    """Множества разворачиваются в стабильном порядке."""
    assert flatten_params({"ids": {3, 1, 2}}) == [("ids", "1,2,3")]

def test_flatten_skips_none():
    """None пропускается."""
    assert flatten_params({"offset": None, "count": 10}) == [("count", "10")]

def test_flatten_none_params():
    """None вместо параметров - пустой список."""
    assert flatten_params(None) == []

def test_flatten_enum():
    """Enum разворачивается в своё значение."""
    class Sort(Enum):
        ASC = 0

    assert flatten_params({"sort": Sort.ASC}) == [("sort", "0")]

def test_flatten_dataclass():
    """dataclass разворачивается по полям."""
    @dataclass
    class Params:
        group_id: int
        fields: Optional[list] = None

    assert flatten_params(Params(group_id=7)) == [("group_id", "7")]

def test_flatten_pydantic_model_uses_aliases():
    """pydantic модель: alias и exclude_none."""
    class Params(BaseModel):
        owner_id: int
        from_group: bool = Field(alias="fromGroup")
        message: Optional[str] = None

    params = Params(owner_id=-1, fromGroup=True)
    assert flatten_params(params) == [("owner_id", "-1"), ("fromGroup", "true")]

def test_flatten_nested_object_rejected():
    """Вложенные объекты не сериализуются."""
    with pytest.raises(RequestSerializeError) as exc_info:
        flatten_params({"filter": {"a": 1}})
    assert exc_info.value.key == "filter"

def test_flatten_nested_sequence_rejected():
    """Вложенные списки не сериализуются."""
    with pytest.raises(RequestSerializeError, match="Nested sequences"):
        flatten_params({"ids": [[1, 2], [3]]})

def test_flatten_unsupported_type():
    """bytes и прочие типы - ошибка."""
    with pytest.raises(RequestSerializeError, match="bytes"):
        flatten_params({"data": b"raw"})

def test_flatten_non_mapping_params():
    """Параметры-список не принимаются."""
    with pytest.raises(RequestSerializeError, match="mapping"):
        flatten_params([("a", 1)])

def test_list_helper_repr_and_eq():
    """List сравнивается по элементам."""
    assert List([1, 2]) == List((1, 2))
    assert str(List([True, "x"])) == "true,x"

# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# build_call_request
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

def _call(params=None, profile=JSON_GZIP, **kwargs):
    return build_call_request(
        "api.vk.com",
        "users.get",
        params,
        profile=profile,
        access_token=kwargs.pop("access_token", "secret"),
        version=kwargs.pop("version", Version(5, 131)),
        **kwargs
    )

def test_call_request_json():
    """POST на /method/<name>, v и access_token первыми."""
    request = _call({"user_ids": List([1])})
    assert request.method == "POST"
    assert request.url == "https://api.vk.com/method/users.get"
    assert request.data == (("v", "5.131"), ("access_token", "secret"), ("user_ids", "1"))
    assert parse_qsl(request.body) == [("v", "5.131"), ("access_token", "secret"), ("user_ids", "1")]

def test_call_request_headers():
    """Заголовки согласования и авторизации."""
    request = _call(extra_headers={"User-Agent": "bot/1.0", "Accept": "text/html"})
    assert request.headers["Accept"] == "application/json"
    assert request.headers["Accept-Encoding"] == "gzip"
    assert request.headers["Content-Type"] == "application/x-www-form-urlencoded"
    assert request.headers["Authorization"] == "Bearer secret"
    assert request.headers["User-Agent"] == "bot/1.0"

def test_call_request_msgpack_path():
    """msgpack добавляет суффикс к пути."""
    request = _call(profile=MSGPACK_ZSTD)
    assert request.url == "https://api.vk.com/method/users.get.msgpack"
    assert request.headers["Accept"] == "application/x-msgpack"
    assert request.headers["Accept-Encoding"] == "zstd"

def test_call_request_without_token():
    """Без токена нет Authorization."""
    request = _call(access_token="")
    assert "Authorization" not in request.headers
    assert ("access_token", "") in request.data

@pytest.mark.parametrize("key", ["v", "access_token"])
def test_call_request_reserved_keys(key):
    """v и access_token нельзя передать параметрами."""
    with pytest.raises(RequestSerializeError, match="Reserved"):
        _call({key: "x"})

def test_call_request_empty_method():
    """Пустое имя метода."""
    with pytest.raises(RequestSerializeError):
        build_call_request(
            "api.vk.com", "", None,
            profile=JSON_GZIP, access_token="t", version=Version(),
        )

# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# long poll
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

def test_longpoll_server_url():
    """Схема добавляется, если её нет."""
    assert longpoll_server_url("lp.vk.com/wh1") == "https://lp.vk.com/wh1"
    assert longpoll_server_url("https://lp.vk.com/wh1") == "https://lp.vk.com/wh1"

def test_longpoll_request():
    """GET с act=a_check, key, ts, wait и доп. параметрами."""
    request = build_longpoll_request(
        "lp.vk.com/wh1", "abc", "10", 25, {"mode": 2},
        profile=JSON_GZIP,
    )
    assert request.method == "GET"
    assert request.url == "https://lp.vk.com/wh1"
    assert request.params == (
        ("act", "a_check"), ("key", "abc"), ("ts", "10"), ("wait", "25"), ("mode", "2"),
    )
    assert request.data == ()
    assert request.full_url == "https://lp.vk.com/wh1?act=a_check&key=abc&ts=10&wait=25&mode=2"

def test_longpoll_request_reserved():
    """Доп. параметры не перекрывают ts."""
    with pytest.raises(RequestSerializeError):
        build_longpoll_request("lp.vk.com", "k", "1", 25, {"ts": 5}, profile=JSON_GZIP)

def test_prepared_request_full_url_without_params():
    """Без params URL не меняется."""
    assert PreparedRequest("POST", "https://x").full_url == "https://x"
