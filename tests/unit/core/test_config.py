"""Тесты для системы конфигурации."""

import pytest

from vkclient.core.capabilities import Capabilities
from vkclient.core.config import (
    Compression,
    ConnectionPoolConfig,
    EncodingProfile,
    Format,
    TimeoutConfig,
    Version,
    VkApiConfig,
)
from vkclient.core.exceptions import ConfigurationError

# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# EncodingProfile
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

@pytest.mark.parametrize("compression,expected", [
    (Compression.ZSTD, "zstd"),
    (Compression.GZIP, "gzip"),
    (Compression.NONE, "identity"),
])
def test_profile_accept_encoding(compression, expected):
    """Accept-Encoding по сжатию."""
    assert EncodingProfile(compression=compression).accept_encoding == expected

@pytest.mark.parametrize("fmt,expected", [
    (Format.MSGPACK, "application/x-msgpack"),
    (Format.JSON, "application/json"),
    (Format.NONE, "text/*"),
])
def test_profile_accept(fmt, expected):
    """Accept по формату."""
    assert EncodingProfile(format=fmt).accept == expected

def test_profile_accepts_strings():
    """Строки приводятся к enum."""
    profile = EncodingProfile("gzip", "msgpack")
    assert profile.compression is Compression.GZIP
    assert profile.format is Format.MSGPACK

def test_profile_rejects_unknown_codec():
    """Неизвестный кодек - ValueError."""
    with pytest.raises(ValueError):
        EncodingProfile("brotli", "json")

def test_profile_method_path_msgpack_suffix():
    """Суффикс .msgpack зависит только от формата."""
    assert EncodingProfile(Compression.NONE, Format.MSGPACK).method_path("users.get") == "/method/users.get.msgpack"
    assert EncodingProfile(Compression.ZSTD, Format.JSON).method_path("users.get") == "/method/users.get"
    assert EncodingProfile(Compression.NONE, Format.NONE).method_path("users.get") == "/method/users.get"

def test_profile_headers():
    """Заголовки согласования."""
    assert EncodingProfile(Compression.ZSTD, Format.MSGPACK).headers() == {
        "Accept": "application/x-msgpack",
        "Accept-Encoding": "zstd",
    }

def test_profile_best_uses_capabilities(all_capabilities):
    """Лучший профиль: zstd + msgpack, без них gzip + json."""
    assert EncodingProfile.best(all_capabilities) == EncodingProfile(Compression.ZSTD, Format.MSGPACK)
    assert EncodingProfile.best(Capabilities()) == EncodingProfile(Compression.GZIP, Format.JSON)

def test_profile_best_without_anything():
    """Без кодеков - identity и text/*."""
    caps = Capabilities(compressions=frozenset(), formats=frozenset())
    assert EncodingProfile.best(caps) == EncodingProfile(Compression.NONE, Format.NONE)

# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Version
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

def test_version_default():
    """По умолчанию 5.131."""
    assert str(Version()) == "5.131"

def test_version_parse():
    """Разбор строки."""
    assert Version.parse("5.199") == Version(5, 199)
    assert Version.parse(Version(5, 100)) == Version(5, 100)

@pytest.mark.parametrize("value", ["5", "x.y", ""])
def test_version_parse_invalid(value):
    """Невалидная строка - ValueError."""
    with pytest.raises(ValueError):
        Version.parse(value)

def test_version_negative():
    """Отрицательные части запрещены."""
    with pytest.raises(ValueError):
        Version(-1, 0)

# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# TimeoutConfig / ConnectionPoolConfig
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

def test_timeout_config_defaults():
    """Тест дефолтных значений."""
    config = TimeoutConfig()
    assert config.connect == 5
    assert config.read == 30

def test_timeout_config_as_tuple_with_wait():
    """Для long poll к read добавляется wait."""
    config = TimeoutConfig(connect=3, read=30)
    assert config.as_tuple() == (3, 30)
    assert config.as_tuple(extra_read=25) == (3, 55)

def test_timeout_config_validation():
    """Тест валидации."""
    with pytest.raises(ValueError, match="connect timeout must be positive"):
        TimeoutConfig(connect=0)
    with pytest.raises(ValueError, match="read timeout must be positive"):
        TimeoutConfig(read=-1)

def test_timeout_config_immutable():
    """Тест immutability."""
    config = TimeoutConfig()
    with pytest.raises(Exception):  # frozen dataclass
        config.connect = 10

def test_pool_config_validation():
    """Размеры пула должны быть положительными."""
    with pytest.raises(ValueError, match="pool_maxsize"):
        ConnectionPoolConfig(pool_maxsize=0)

# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# VkApiConfig
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

def test_vk_config_defaults():
    """Тест дефолтных значений."""
    config = VkApiConfig()
    assert config.access_token == ""
    assert config.version == Version(5, 131)
    assert config.domain == "api.vk.com"
    assert config.base_url == "https://api.vk.com"
    assert config.encoding is None
    assert config.verify_ssl is True

def test_vk_config_domain_normalized():
    """Схема и завершающий слеш отрезаются."""
    assert VkApiConfig(domain="https://api.vk.ru/").domain == "api.vk.ru"

def test_vk_config_empty_domain():
    """Пустой домен - ValueError."""
    with pytest.raises(ValueError, match="domain"):
        VkApiConfig(domain="https://")

def test_vk_config_headers_frozen():
    """Заголовки нельзя изменить после создания."""
    config = VkApiConfig(headers={"User-Agent": "bot/1.0"})
    with pytest.raises(TypeError):
        config.headers["User-Agent"] = "other"

def test_vk_config_create():
    """Удобный конструктор."""
    config = VkApiConfig.create(
        "token",
        version="5.199",
        compression="gzip",
        format="json",
        timeout=(2, 40),
        pool_maxsize=20,
    )
    assert config.access_token == "token"
    assert config.version == Version(5, 199)
    assert config.encoding == EncodingProfile(Compression.GZIP, Format.JSON)
    assert config.timeout == TimeoutConfig(connect=2, read=40)
    assert config.pool.pool_maxsize == 20

def test_vk_config_create_partial_encoding(all_capabilities):
    """Незаданная ось берётся из лучшего доступного профиля."""
    config = VkApiConfig.create("token", format="json", capabilities=all_capabilities)
    assert config.encoding == EncodingProfile(Compression.ZSTD, Format.JSON)

def test_vk_config_builder_setters():
    """with_* возвращают новый конфиг, исходный не меняется."""
    base = VkApiConfig.create("a", compression="none", format="json")
    changed = (
        base.with_access_token("b")
        .with_version("5.199")
        .with_domain("api.vk.ru")
        .with_compression("gzip")
        .with_headers({"X-Test": "1"})
    )
    assert base.access_token == "a"
    assert changed.access_token == "b"
    assert changed.version == Version(5, 199)
    assert changed.domain == "api.vk.ru"
    assert changed.encoding == EncodingProfile(Compression.GZIP, Format.JSON)
    assert changed.headers["X-Test"] == "1"

def test_vk_config_resolve_encoding_default(all_capabilities):
    """Без encoding - лучший профиль."""
    config = VkApiConfig(capabilities=all_capabilities)
    assert config.resolve_encoding() == EncodingProfile(Compression.ZSTD, Format.MSGPACK)

def test_vk_config_resolve_encoding_unavailable_compression():
    """Недоступное сжатие - ConfigurationError."""
    config = VkApiConfig(
        encoding=EncodingProfile(Compression.ZSTD, Format.JSON),
        capabilities=Capabilities(),
    )
    with pytest.raises(ConfigurationError, match="zstd"):
        config.resolve_encoding()

def test_vk_config_resolve_encoding_unavailable_format():
    """Недоступный формат - ConfigurationError."""
    config = VkApiConfig(
        encoding=EncodingProfile(Compression.GZIP, Format.MSGPACK),
        capabilities=Capabilities(),
    )
    with pytest.raises(ConfigurationError, match="msgpack"):
        config.resolve_encoding()
